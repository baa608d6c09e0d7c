"""
API request / response schemas
"""
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from models import (
    ChatMessage,
    FriendGroup,
    FriendRequest,
    MessageType,
    RequestStatus,
    Room,
    User,
)


class ActionResponse(BaseModel):
    status: str = "ok"


# ============ Users ============

class UserResponse(BaseModel):
    id: UUID
    name: str
    profile_image: Optional[str] = None
    has_custom_profile_image: bool = False
    friends: List[UUID] = []
    bio: Optional[str] = None
    goal: Optional[str] = None

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            name=user.name,
            profile_image=user.profile_image,
            has_custom_profile_image=user.custom_profile_image_data is not None,
            friends=list(user.friends),
            bio=user.bio,
            goal=user.goal
        )


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    bio: Optional[str] = None
    goal: Optional[str] = None
    profile_image: Optional[str] = None


# ============ Rooms ============

class RoomCreate(BaseModel):
    name: str
    tags: List[str] = []
    is_private: bool = False
    is_invite_only: bool = False
    password: Optional[str] = None
    max_participants: Optional[int] = Field(default=None, ge=1)


class RoomJoin(BaseModel):
    password: Optional[str] = None


class RoomSettingsUpdate(BaseModel):
    is_private: bool
    is_invite_only: bool
    password: Optional[str] = None
    max_participants: int = Field(ge=1)


class ParticipantResponse(BaseModel):
    id: UUID
    name: str
    profile_image: Optional[str] = None


class RoomResponse(BaseModel):
    id: UUID
    name: str
    tags: List[str]
    created_at: datetime
    created_by: UUID
    participants: List[ParticipantResponse]
    participant_count: int
    is_private: bool
    is_invite_only: bool
    has_password: bool
    max_participants: int
    is_closed: bool
    closed_at: Optional[datetime] = None
    closed_by: Optional[UUID] = None

    @classmethod
    def from_room(cls, room: Room) -> "RoomResponse":
        # 密碼不會回傳
        return cls(
            id=room.id,
            name=room.name,
            tags=list(room.tags),
            created_at=room.created_at,
            created_by=room.created_by,
            participants=[
                ParticipantResponse(id=p.id, name=p.name, profile_image=p.profile_image)
                for p in room.participants
            ],
            participant_count=len(room.participants),
            is_private=room.is_private,
            is_invite_only=room.is_invite_only,
            has_password=room.password is not None,
            max_participants=room.max_participants,
            is_closed=room.is_closed,
            closed_at=room.closed_at,
            closed_by=room.closed_by
        )


class CurrentRoomResponse(BaseModel):
    room: Optional[RoomResponse] = None
    elapsed_seconds: float = 0.0


# ============ Chat ============

class MessageSubmit(BaseModel):
    message: str
    message_type: MessageType = MessageType.TEXT


class MessageResponse(BaseModel):
    id: UUID
    user_id: UUID
    user_name: str
    user_profile_image: Optional[str] = None
    message: str
    timestamp: datetime
    message_type: MessageType

    @classmethod
    def from_message(cls, message: ChatMessage) -> "MessageResponse":
        return cls(**message.model_dump(exclude={"room_id"}))


# ============ Friends ============

class FriendRequestCreate(BaseModel):
    to_user_id: UUID
    message: Optional[str] = None


class FriendRequestResponse(BaseModel):
    id: UUID
    from_user_id: UUID
    to_user_id: UUID
    status: RequestStatus
    timestamp: datetime
    message: Optional[str] = None

    @classmethod
    def from_request(cls, request: FriendRequest) -> "FriendRequestResponse":
        return cls(**request.model_dump())


class FriendGroupCreate(BaseModel):
    name: str
    description: Optional[str] = None
    member_ids: List[UUID] = []


class FriendGroupResponse(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None
    members: List[UUID]
    created_by: UUID
    created_at: datetime

    @classmethod
    def from_group(cls, group: FriendGroup) -> "FriendGroupResponse":
        return cls(**group.model_dump())


# ============ Stats ============

class StatsResponse(BaseModel):
    total_duration: float
    average_duration: float
    session_count: int
    formatted_total_duration: str


class TagStatResponse(BaseModel):
    tag: str
    total_duration: float
    session_count: int


class UsageItem(BaseModel):
    current: int
    limit: int
    remaining: int


class UsageResponse(BaseModel):
    is_premium: bool
    rooms: UsageItem
    friends: UsageItem
