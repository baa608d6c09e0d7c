"""
資料模型

- Enum：好友請求狀態、訊息類型、統計期間
- Domain entities（pydantic）：User、Room、EffortRecord、FriendRequest、
  FriendGroup、ChatMessage，全部可以無損地 JSON round-trip
- StoreEntry（SQLAlchemy）：key-value store 的資料表
"""
import enum
from datetime import datetime
from typing import List, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import Column, DateTime, LargeBinary, String, func

from database import Base


# ============ Enums ============

class RequestStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class MessageType(str, enum.Enum):
    TEXT = "text"
    SYSTEM = "system"      # 入室・退室などのシステムメッセージ
    REACTION = "reaction"


class TimePeriod(str, enum.Enum):
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"


# 系統訊息使用的固定 user id
SYSTEM_USER_ID = UUID(int=0)
SYSTEM_USER_NAME = "システム"
SYSTEM_PROFILE_IMAGE = "info.circle.fill"
DEFAULT_PROFILE_IMAGE = "person.circle.fill"


class Entity(BaseModel):
    """所有 domain entity 的基類（bytes 以 base64 存成 JSON）"""
    model_config = ConfigDict(ser_json_bytes="base64", val_json_bytes="base64")


# ============ Domain entities ============

class User(Entity):
    id: UUID = Field(default_factory=uuid4)
    name: str
    profile_image: Optional[str] = DEFAULT_PROFILE_IMAGE
    custom_profile_image_data: Optional[bytes] = None
    friends: List[UUID] = Field(default_factory=list)
    bio: Optional[str] = None
    goal: Optional[str] = None

    def snapshot(self) -> "User":
        """取得一份獨立的 value copy（嵌入 Room.participants 用）"""
        return self.model_copy(deep=True)


class Room(Entity):
    id: UUID = Field(default_factory=uuid4)
    name: str
    tags: List[str] = Field(default_factory=list)
    created_at: datetime
    created_by: UUID
    participants: List[User] = Field(default_factory=list)
    is_private: bool = False
    is_invite_only: bool = False
    password: Optional[str] = None
    max_participants: int = Field(default=10, ge=1)
    is_closed: bool = False
    closed_at: Optional[datetime] = None
    closed_by: Optional[UUID] = None

    def is_creator(self, user_id: UUID) -> bool:
        return self.created_by == user_id

    def has_participant(self, user_id: UUID) -> bool:
        return any(p.id == user_id for p in self.participants)

    def find_participant(self, user_id: UUID) -> Optional[User]:
        for participant in self.participants:
            if participant.id == user_id:
                return participant
        return None

    def join_denial(self, user_id: UUID, password: Optional[str] = None) -> Optional[str]:
        """
        檢查使用者是否可以加入，回傳拒絕的理由（可以加入時回傳 None）

        判斷順序（closed 永遠最先）：
        1. 已關閉 → 拒絕
        2. 私人房間且有設定密碼 → 只看密碼是否完全相同
        3. 邀請制 → 只有建立者或已在房間內的人
        4. 人數已滿 → 拒絕
        """
        if self.is_closed:
            return "room is closed"

        if self.is_private and self.password is not None:
            return None if self.password == password else "wrong password"

        if self.is_invite_only:
            if self.is_creator(user_id) or self.has_participant(user_id):
                return None
            return "room is invite-only"

        if len(self.participants) >= self.max_participants:
            return "room is full"
        return None

    def can_join(self, user_id: UUID, password: Optional[str] = None) -> bool:
        return self.join_denial(user_id, password) is None


class EffortRecord(Entity):
    id: UUID = Field(default_factory=uuid4)
    user_id: UUID
    room_id: UUID
    tags: List[str] = Field(default_factory=list)
    start_time: datetime
    end_time: Optional[datetime] = None

    @property
    def is_open(self) -> bool:
        return self.end_time is None

    def duration(self, now: datetime) -> float:
        """秒數；進行中的記錄以 now 計算"""
        end = self.end_time if self.end_time is not None else now
        return (end - self.start_time).total_seconds()


class FriendRequest(Entity):
    id: UUID = Field(default_factory=uuid4)
    from_user_id: UUID
    to_user_id: UUID
    status: RequestStatus = RequestStatus.PENDING
    timestamp: datetime
    message: Optional[str] = None


class FriendGroup(Entity):
    id: UUID = Field(default_factory=uuid4)
    name: str
    description: Optional[str] = None
    members: List[UUID] = Field(default_factory=list)
    created_by: UUID
    created_at: datetime


class ChatMessage(Entity):
    id: UUID = Field(default_factory=uuid4)
    user_id: UUID
    room_id: UUID
    user_name: str
    user_profile_image: Optional[str] = None
    message: str
    timestamp: datetime
    message_type: MessageType = MessageType.TEXT


# ============ Statistics ============

class EffortStats(BaseModel):
    total_duration: float = 0.0
    average_duration: float = 0.0
    session_count: int = 0


class TagStat(BaseModel):
    tag: str
    total_duration: float
    session_count: int


# ============ Key-value store table ============

class StoreEntry(Base):
    __tablename__ = "store_entries"

    key = Column(String, primary_key=True)
    value = Column(LargeBinary, nullable=False)
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())
