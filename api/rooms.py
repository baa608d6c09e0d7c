"""
Room API Endpoints

職責：
1. 房間列表、建立、加入、離開
2. 建立者專用：修改設定、移出使用者、關閉房間
3. 房間內聊天
"""
from typing import List
from uuid import UUID
from fastapi import APIRouter, Depends, HTTPException
import logging

from api.deps import get_engine, to_http_error
from core.engine import EffortEngine
from core.exceptions import EffortRoomException
from schemas import (
    ActionResponse,
    CurrentRoomResponse,
    MessageResponse,
    MessageSubmit,
    RoomCreate,
    RoomJoin,
    RoomResponse,
    RoomSettingsUpdate,
)

router = APIRouter(prefix="/api/rooms", tags=["rooms"])
logger = logging.getLogger(__name__)


@router.get("", response_model=List[RoomResponse])
def list_rooms(include_closed: bool = False, engine: EffortEngine = Depends(get_engine)):
    """房間列表（預設不含已關閉的房間）"""
    rooms = engine.rooms.list_rooms(include_closed=include_closed)
    return [RoomResponse.from_room(room) for room in rooms]


@router.post("", response_model=RoomResponse)
def create_room(room_data: RoomCreate, engine: EffortEngine = Depends(get_engine)):
    """
    建立房間（建立者自動加入）

    免費版每月最多建立 5 個房間，超過時回傳 402
    """
    try:
        room = engine.rooms.create_room(
            room_data.name,
            room_data.tags,
            engine.current_user,
            is_private=room_data.is_private,
            is_invite_only=room_data.is_invite_only,
            password=room_data.password,
            max_participants=room_data.max_participants
        )
        return RoomResponse.from_room(room)

    except EffortRoomException as e:
        raise to_http_error(e)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to create room: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/current", response_model=CurrentRoomResponse)
def get_current_room(engine: EffortEngine = Depends(get_engine)):
    """目前所在的房間與經過時間"""
    user_id = engine.current_user.id
    room = engine.rooms.active_room_for(user_id)
    if room is None:
        return CurrentRoomResponse()

    return CurrentRoomResponse(
        room=RoomResponse.from_room(room),
        elapsed_seconds=engine.sessions.active_duration(user_id)
    )


@router.post("/leave", response_model=ActionResponse)
def leave_current_room(engine: EffortEngine = Depends(get_engine)):
    """離開目前的房間（不在任何房間時也回傳 ok）"""
    engine.rooms.leave_current_room(engine.current_user)
    return ActionResponse(status="ok")


@router.get("/{room_id}", response_model=RoomResponse)
def get_room(room_id: UUID, engine: EffortEngine = Depends(get_engine)):
    try:
        return RoomResponse.from_room(engine.rooms.get_room(room_id))
    except EffortRoomException as e:
        raise to_http_error(e)


@router.post("/{room_id}/join", response_model=RoomResponse)
def join_room(room_id: UUID, join_data: RoomJoin, engine: EffortEngine = Depends(get_engine)):
    """
    加入房間

    前置條件：
    - 房間未關閉
    - 私人房間需要正確密碼
    - 邀請制房間只有建立者或參加者
    - 人數未滿

    已經在其他房間時，會先自動離開
    """
    try:
        room = engine.rooms.join_room(room_id, engine.current_user, password=join_data.password)
        return RoomResponse.from_room(room)

    except EffortRoomException as e:
        raise to_http_error(e)
    except Exception as e:
        logger.error(f"Failed to join room: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.put("/{room_id}/settings", response_model=RoomResponse)
def update_room_settings(
    room_id: UUID,
    settings_data: RoomSettingsUpdate,
    engine: EffortEngine = Depends(get_engine)
):
    """修改房間設定（建立者 endpoint）"""
    try:
        room = engine.rooms.update_room_settings(
            room_id,
            engine.current_user,
            is_private=settings_data.is_private,
            is_invite_only=settings_data.is_invite_only,
            password=settings_data.password,
            max_participants=settings_data.max_participants
        )
        return RoomResponse.from_room(room)

    except EffortRoomException as e:
        raise to_http_error(e)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/{room_id}/participants/{user_id}", response_model=RoomResponse)
def remove_participant(room_id: UUID, user_id: UUID, engine: EffortEngine = Depends(get_engine)):
    """把使用者移出房間（建立者 endpoint）"""
    try:
        room = engine.rooms.remove_user_from_room(room_id, user_id, engine.current_user)
        return RoomResponse.from_room(room)
    except EffortRoomException as e:
        raise to_http_error(e)


@router.post("/{room_id}/close", response_model=RoomResponse)
def close_room(room_id: UUID, engine: EffortEngine = Depends(get_engine)):
    """
    關閉房間（建立者 endpoint）

    效果：
    - 所有參加者離開（session 結束）
    - 之後無法再加入或發送訊息
    """
    try:
        room = engine.rooms.close_room(room_id, engine.current_user)
        return RoomResponse.from_room(room)

    except EffortRoomException as e:
        raise to_http_error(e)
    except Exception as e:
        logger.error(f"Failed to close room: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/{room_id}/messages", response_model=List[MessageResponse])
def get_messages(room_id: UUID, engine: EffortEngine = Depends(get_engine)):
    """房間的聊天記錄（依時間排序）"""
    try:
        engine.rooms.get_room(room_id)
    except EffortRoomException as e:
        raise to_http_error(e)

    return [MessageResponse.from_message(m) for m in engine.chat.messages_for(room_id)]


@router.post("/{room_id}/messages", response_model=MessageResponse)
def send_message(room_id: UUID, message_data: MessageSubmit, engine: EffortEngine = Depends(get_engine)):
    """發送訊息（已關閉的房間回傳 403）"""
    try:
        message = engine.chat.send_message(
            room_id,
            engine.current_user,
            message_data.message,
            message_type=message_data.message_type
        )
        return MessageResponse.from_message(message)

    except EffortRoomException as e:
        raise to_http_error(e)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
