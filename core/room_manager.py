"""
Room Manager：管理 Room 的完整生命週期

職責：
1. 建立 Room（建立者自動加入）
2. 加入 / 離開（每個使用者同時只會在一個房間內）
3. 建立者專用操作：移出使用者、修改設定、關閉房間
4. 查詢 Room 資訊

狀態：
    Open ⇄ Open(滿員)（join / leave）→ Closed（close_room，不可逆）

原則：
- 先驗證，再修改：被拒絕的操作不會留下部分修改
- 每次進出房間都同步處理 EffortRecord 和系統訊息
- 關閉的房間不會被刪除，保留作為歷史記錄
"""
from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID
import logging

from models import Room, User
from core.chat_log import ChatLog
from core.collaborators import Clock, Notifier
from core.exceptions import (
    AccessDenied,
    NotRoomCreator,
    ParticipantNotFound,
    QuotaExceeded,
    RoomClosed,
    RoomNotFound,
)
from core.feature_limiter import FeatureLimiter
from core.locks import WriteGate, single_writer, consistent_read
from core.session_tracker import SessionTracker
from services.message_service import (
    joined_message,
    left_message,
    removed_message,
    room_closed_message,
    room_closed_notification,
    room_created_message,
)

logger = logging.getLogger(__name__)


class RoomManager:
    """Room 生命週期管理器"""

    def __init__(
        self,
        gate: WriteGate,
        clock: Clock,
        limiter: FeatureLimiter,
        sessions: SessionTracker,
        chat: ChatLog,
        notifier: Notifier,
        rooms: Optional[List[Room]] = None,
        default_max_participants: int = 10,
    ):
        self._gate = gate
        self._clock = clock
        self._limiter = limiter
        self._sessions = sessions
        self._chat = chat
        self._notifier = notifier
        self._rooms: List[Room] = rooms if rooms is not None else []
        self._default_max_participants = default_max_participants

        # user_id -> room_id（目前所在的房間）
        self._active_rooms: Dict[UUID, UUID] = {}
        self._restore_active_rooms()

    @property
    def rooms(self) -> List[Room]:
        return self._rooms

    # ============ 查詢 ============

    def require_room(self, room_id: UUID) -> Room:
        """
        取得 Room 本身（不是 copy，只在持有鎖的情況下使用）

        異常：
            RoomNotFound: Room 不存在
        """
        for room in self._rooms:
            if room.id == room_id:
                return room
        raise RoomNotFound(room_id)

    @consistent_read
    def get_room(self, room_id: UUID) -> Room:
        return self.require_room(room_id)

    @consistent_read
    def list_rooms(self, include_closed: bool = False) -> List[Room]:
        return [r for r in self._rooms if include_closed or not r.is_closed]

    @consistent_read
    def active_room_for(self, user_id: UUID) -> Optional[Room]:
        room_id = self._active_rooms.get(user_id)
        if room_id is None:
            return None
        return self.require_room(room_id)

    @consistent_read
    def can_join(self, room_id: UUID, user_id: UUID, password: Optional[str] = None) -> bool:
        """
        檢查是否可以加入（closed → 密碼 → 邀請制 → 人數，依序判斷）

        異常：
            RoomNotFound: Room 不存在
        """
        return self.require_room(room_id).can_join(user_id, password)

    # ============ 建立 / 加入 / 離開 ============

    @single_writer
    def create_room(
        self,
        name: str,
        tags: List[str],
        actor: User,
        is_private: bool = False,
        is_invite_only: bool = False,
        password: Optional[str] = None,
        max_participants: Optional[int] = None,
    ) -> Room:
        """
        建立新房間（建立者自動加入）

        流程：
        1. 檢查額度（premium 不檢查）
        2. 如果建立者在其他房間，先離開
        3. 建立 Room，建立者成為第一位參加者
        4. 增加每月建立數、開始 session、系統訊息

        參數：
            name: 房間名稱
            tags: 標籤（會複製到之後的 EffortRecord）
            actor: 建立者
            max_participants: 最多人數（預設使用設定值）

        返回：
            建立好的 Room（copy）

        異常：
            QuotaExceeded: 本月建立數或標籤數超過免費額度
            ValueError: 名稱空白或人數上限小於 1
        """
        if not name.strip():
            raise ValueError("Room name must not be empty")
        if max_participants is None:
            max_participants = self._default_max_participants
        if max_participants < 1:
            raise ValueError(f"max_participants must be >= 1, got {max_participants}")

        now = self._clock.now()
        exempt = self._limiter.is_exempt

        if not self._limiter.can_use_tags(len(tags)):
            raise QuotaExceeded("tags", self._limiter.tag_limit)
        if not exempt and not self._limiter.can_create_room(now):
            raise QuotaExceeded("room_creation", self._limiter.room_creation_limit)

        self._leave_active_room(actor, now)

        room = Room(
            name=name.strip(),
            tags=list(tags),
            created_at=now,
            created_by=actor.id,
            participants=[actor.snapshot()],
            is_private=is_private,
            is_invite_only=is_invite_only,
            password=password,
            max_participants=max_participants
        )
        self._rooms.append(room)

        if not exempt:
            self._limiter.increment_room_count()

        self._sessions.open_session(actor.id, room, now)
        self._chat.append_system(room.id, room_created_message(actor.name))
        self._active_rooms[actor.id] = room.id

        logger.info(f"Created room {room.id} ({room.name}) by user {actor.id}")
        return room.model_copy(deep=True)

    @single_writer
    def join_room(self, room_id: UUID, actor: User, password: Optional[str] = None) -> Room:
        """
        加入房間

        流程：
        1. 檢查 can_join
        2. 如果已經在某個房間（包括同一個），先離開（結束 session、系統訊息）
        3. 加入參加者、開始新的 session、系統訊息

        異常：
            RoomNotFound: Room 不存在
            RoomClosed: Room 已關閉
            AccessDenied: 密碼錯誤、邀請制、人數已滿
        """
        room = self.require_room(room_id)

        denial = room.join_denial(actor.id, password)
        if denial is not None:
            if room.is_closed:
                raise RoomClosed(room_id)
            logger.info(f"User {actor.id} denied joining room {room_id}: {denial}")
            raise AccessDenied(f"Cannot join room {room_id}: {denial}")

        # 密碼或邀請制通過時也不能超過人數上限
        if not room.has_participant(actor.id) and len(room.participants) >= room.max_participants:
            logger.info(f"User {actor.id} denied joining room {room_id}: room is full")
            raise AccessDenied("room is full")

        now = self._clock.now()
        self._leave_active_room(actor, now)

        if not room.has_participant(actor.id):
            room.participants.append(actor.snapshot())
        self._sessions.open_session(actor.id, room, now)
        self._chat.append_system(room.id, joined_message(actor.name))
        self._active_rooms[actor.id] = room.id

        logger.info(
            f"User {actor.id} joined room {room_id} "
            f"({len(room.participants)}/{room.max_participants})"
        )
        return room.model_copy(deep=True)

    @single_writer
    def leave_current_room(self, actor: User) -> Optional[Room]:
        """
        離開目前所在的房間

        返回：
            離開的 Room（copy）；不在任何房間時回傳 None（不是錯誤）
        """
        room = self._leave_active_room(actor, self._clock.now())
        return room.model_copy(deep=True) if room is not None else None

    # ============ 建立者專用 ============

    @single_writer
    def remove_user_from_room(self, room_id: UUID, target_user_id: UUID, actor: User) -> Room:
        """
        把使用者移出房間（建立者專用，不能移出自己）

        異常：
            RoomNotFound: Room 不存在
            NotRoomCreator: actor 不是建立者
            AccessDenied: 嘗試移出自己
            ParticipantNotFound: 對象不在房間內
        """
        room = self._require_creator(room_id, actor)

        if target_user_id == actor.id:
            raise AccessDenied("Room creator cannot remove themselves")

        target = room.find_participant(target_user_id)
        if target is None:
            raise ParticipantNotFound(room_id, target_user_id)

        self._depart(room, target, self._clock.now(), removed_message(target.name))

        logger.info(f"User {target_user_id} removed from room {room_id} by {actor.id}")
        return room.model_copy(deep=True)

    @single_writer
    def update_room_settings(
        self,
        room_id: UUID,
        actor: User,
        is_private: bool,
        is_invite_only: bool,
        password: Optional[str],
        max_participants: int,
    ) -> Room:
        """
        修改房間設定（建立者專用，四個設定整個取代）

        注意：
            不檢查 max_participants >= 目前人數。人數超過上限的房間
            在人數降到上限以下之前，不會再有人能加入。

        異常：
            RoomNotFound / NotRoomCreator / RoomClosed
            ValueError: max_participants < 1
        """
        room = self._require_creator(room_id, actor)
        if room.is_closed:
            raise RoomClosed(room_id)
        if max_participants < 1:
            raise ValueError(f"max_participants must be >= 1, got {max_participants}")

        room.is_private = is_private
        room.is_invite_only = is_invite_only
        room.password = password
        room.max_participants = max_participants

        logger.info(f"Settings updated for room {room_id}")
        return room.model_copy(deep=True)

    @single_writer
    def close_room(self, room_id: UUID, actor: User) -> Room:
        """
        關閉房間（建立者專用，終止狀態）

        流程：
        1. 標記 is_closed、closed_at、closed_by（只設定這一次）
        2. 建立者以外的參加者依序離開（結束 session、系統訊息）
        3. 建立者最後離開
        4. 「房間已關閉」系統訊息

        異常：
            RoomNotFound / NotRoomCreator
            RoomClosed: 已經關閉過
        """
        room = self._require_creator(room_id, actor)
        if room.is_closed:
            raise RoomClosed(room_id)

        now = self._clock.now()
        room.is_closed = True
        room.closed_at = now
        room.closed_by = actor.id

        others = [p for p in room.participants if p.id != actor.id]
        for participant in others:
            self._depart(room, participant, now, left_message(participant.name))

        creator = room.find_participant(actor.id)
        if creator is not None:
            self._depart(room, creator, now, left_message(creator.name))

        self._chat.append_system(room.id, room_closed_message())
        try:
            self._notifier.notify(room_closed_notification(room.name))
        except Exception as e:
            logger.error(f"Failed to notify room close {room_id}: {e}", exc_info=True)

        logger.info(f"Room {room_id} closed by {actor.id}, {len(others)} participants removed")
        return room.model_copy(deep=True)

    # ============ 內部 ============

    def _require_creator(self, room_id: UUID, actor: User) -> Room:
        room = self.require_room(room_id)
        if not room.is_creator(actor.id):
            raise NotRoomCreator(room_id, actor.id)
        return room

    def _leave_active_room(self, actor: User, now: datetime) -> Optional[Room]:
        room_id = self._active_rooms.get(actor.id)
        if room_id is None:
            return None

        room = self.require_room(room_id)
        participant = room.find_participant(actor.id) or actor
        self._depart(room, participant, now, left_message(actor.name))

        logger.info(f"User {actor.id} left room {room_id}")
        return room

    def _depart(self, room: Room, user: User, now: datetime, message: str) -> None:
        """結束 session、移出參加者、系統訊息、清除所在房間"""
        self._sessions.close_session(user.id, room.id, now)
        room.participants = [p for p in room.participants if p.id != user.id]
        self._chat.append_system(room.id, message)
        if self._active_rooms.get(user.id) == room.id:
            del self._active_rooms[user.id]

    def _restore_active_rooms(self) -> None:
        """從進行中的 EffortRecord 還原每個使用者目前所在的房間"""
        room_ids = {r.id for r in self._rooms if not r.is_closed}
        for record in sorted(self._sessions.open_records(), key=lambda r: r.start_time):
            if record.room_id not in room_ids:
                continue
            previous = self._active_rooms.get(record.user_id)
            if previous is not None and previous != record.room_id:
                logger.warning(
                    f"User {record.user_id} has open sessions in rooms {previous} and "
                    f"{record.room_id}, keeping the latest"
                )
            self._active_rooms[record.user_id] = record.room_id
