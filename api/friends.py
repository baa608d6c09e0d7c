"""
Friend API Endpoints

職責：
1. 送出 / 承認 / 拒絕好友請求
2. 好友清單、移除好友
3. 好友群組
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
    FriendGroupCreate,
    FriendGroupResponse,
    FriendRequestCreate,
    FriendRequestResponse,
)

router = APIRouter(prefix="/api/friends", tags=["friends"])
logger = logging.getLogger(__name__)


@router.get("", response_model=List[UUID])
def list_friends(engine: EffortEngine = Depends(get_engine)):
    return engine.identity.current().friends


@router.delete("/{friend_id}", response_model=ActionResponse)
def remove_friend(friend_id: UUID, engine: EffortEngine = Depends(get_engine)):
    if not engine.friends.remove_friend(friend_id, engine.current_user):
        raise HTTPException(status_code=404, detail="Friend not found")
    return ActionResponse(status="ok")


@router.post("/requests", response_model=FriendRequestResponse)
def send_friend_request(request_data: FriendRequestCreate, engine: EffortEngine = Depends(get_engine)):
    """
    送出好友請求

    免費版好友數上限 10，超過時回傳 402；重複的 pending 請求回傳 409
    """
    try:
        request = engine.friends.send_request(
            engine.current_user,
            request_data.to_user_id,
            message=request_data.message
        )
        return FriendRequestResponse.from_request(request)

    except EffortRoomException as e:
        raise to_http_error(e)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to send friend request: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/requests/pending", response_model=List[FriendRequestResponse])
def get_pending_requests(engine: EffortEngine = Depends(get_engine)):
    """收到且尚未處理的請求"""
    requests = engine.friends.pending_requests_for(engine.current_user.id)
    return [FriendRequestResponse.from_request(r) for r in requests]


@router.get("/requests/sent", response_model=List[FriendRequestResponse])
def get_sent_requests(engine: EffortEngine = Depends(get_engine)):
    requests = engine.friends.sent_requests_from(engine.current_user.id)
    return [FriendRequestResponse.from_request(r) for r in requests]


@router.post("/requests/{request_id}/accept", response_model=FriendRequestResponse)
def accept_friend_request(request_id: UUID, engine: EffortEngine = Depends(get_engine)):
    """承認請求（只有收件者，且只能處理一次）"""
    try:
        request = engine.friends.accept_request(request_id, engine.current_user)
        return FriendRequestResponse.from_request(request)
    except EffortRoomException as e:
        raise to_http_error(e)


@router.post("/requests/{request_id}/reject", response_model=FriendRequestResponse)
def reject_friend_request(request_id: UUID, engine: EffortEngine = Depends(get_engine)):
    try:
        request = engine.friends.reject_request(request_id, engine.current_user)
        return FriendRequestResponse.from_request(request)
    except EffortRoomException as e:
        raise to_http_error(e)


@router.get("/groups", response_model=List[FriendGroupResponse])
def list_groups(engine: EffortEngine = Depends(get_engine)):
    groups = engine.friends.groups_for(engine.current_user.id)
    return [FriendGroupResponse.from_group(g) for g in groups]


@router.post("/groups", response_model=FriendGroupResponse)
def create_group(group_data: FriendGroupCreate, engine: EffortEngine = Depends(get_engine)):
    try:
        group = engine.friends.create_group(
            group_data.name,
            group_data.member_ids,
            engine.current_user,
            description=group_data.description
        )
        return FriendGroupResponse.from_group(group)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
