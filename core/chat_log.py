"""
ChatLog：每個房間的聊天記錄（只能追加）

系統訊息（入室、退室、關閉）由 RoomManager 在狀態轉換時產生；
使用者訊息不能送到已關閉的房間。
"""
from typing import Callable, List, Optional
from uuid import UUID
import logging

from models import (
    ChatMessage,
    MessageType,
    Room,
    User,
    SYSTEM_USER_ID,
    SYSTEM_USER_NAME,
    SYSTEM_PROFILE_IMAGE,
)
from core.collaborators import Clock
from core.exceptions import RoomClosed
from core.locks import WriteGate, single_writer, consistent_read

logger = logging.getLogger(__name__)


class ChatLog:

    def __init__(
        self,
        gate: WriteGate,
        clock: Clock,
        room_resolver: Callable[[UUID], Room],
        messages: Optional[List[ChatMessage]] = None,
    ):
        self._gate = gate
        self._clock = clock
        self._resolve_room = room_resolver
        self._messages: List[ChatMessage] = messages if messages is not None else []

    @property
    def messages(self) -> List[ChatMessage]:
        return self._messages

    @single_writer
    def append_system(self, room_id: UUID, text: str) -> ChatMessage:
        """追加系統訊息（不檢查房間是否已關閉，關閉流程本身也會產生訊息）"""
        message = ChatMessage(
            user_id=SYSTEM_USER_ID,
            room_id=room_id,
            user_name=SYSTEM_USER_NAME,
            user_profile_image=SYSTEM_PROFILE_IMAGE,
            message=text,
            timestamp=self._clock.now(),
            message_type=MessageType.SYSTEM
        )
        self._messages.append(message)
        return message

    @single_writer
    def send_message(
        self,
        room_id: UUID,
        actor: User,
        text: str,
        message_type: MessageType = MessageType.TEXT,
    ) -> ChatMessage:
        """
        使用者發送訊息

        異常：
            RoomNotFound: 房間不存在
            RoomClosed: 房間已關閉
            ValueError: 空白訊息，或嘗試以使用者身分發送系統訊息
        """
        if message_type == MessageType.SYSTEM:
            raise ValueError("System messages cannot be sent by users")
        if not text.strip():
            raise ValueError("Message must not be empty")

        room = self._resolve_room(room_id)
        if room.is_closed:
            raise RoomClosed(room_id)

        message = ChatMessage(
            user_id=actor.id,
            room_id=room_id,
            user_name=actor.name,
            user_profile_image=actor.profile_image,
            message=text,
            timestamp=self._clock.now(),
            message_type=message_type
        )
        self._messages.append(message)
        return message.model_copy(deep=True)

    @consistent_read
    def messages_for(self, room_id: UUID) -> List[ChatMessage]:
        """依 timestamp 排序（同時間的訊息保持追加順序）"""
        return sorted(
            (m for m in self._messages if m.room_id == room_id),
            key=lambda m: m.timestamp
        )
