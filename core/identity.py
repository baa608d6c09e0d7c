"""
Identity：目前操作中的使用者

id 在整個 process 內不變；只有個人資料會被修改。
已經嵌入 Room.participants / ChatMessage 的快照不會跟著更新。
"""
from typing import Optional
from uuid import UUID
import logging

from models import User
from core.locks import WriteGate, single_writer, consistent_read

logger = logging.getLogger(__name__)


class Identity:

    def __init__(self, gate: WriteGate, user: User):
        self._gate = gate
        self._user = user

    @property
    def user(self) -> User:
        """目前使用者本身（不是 copy），作為各種操作的 actor"""
        return self._user

    @consistent_read
    def current(self) -> User:
        return self._user

    def is_current(self, user_id: UUID) -> bool:
        return self._user.id == user_id

    @single_writer
    def update_profile(
        self,
        name: Optional[str] = None,
        bio: Optional[str] = None,
        goal: Optional[str] = None,
        profile_image: Optional[str] = None,
        custom_profile_image_data: Optional[bytes] = None,
    ) -> User:
        """
        修改個人資料（None 表示不修改）

        異常：
            ValueError: name 是空字串
        """
        if name is not None:
            if not name.strip():
                raise ValueError("Name must not be empty")
            self._user.name = name.strip()
        if bio is not None:
            self._user.bio = bio
        if goal is not None:
            self._user.goal = goal
        if profile_image is not None:
            self._user.profile_image = profile_image
        if custom_profile_image_data is not None:
            self._user.custom_profile_image_data = custom_profile_image_data

        logger.info(f"Profile updated for user {self._user.id}")
        return self._user.model_copy(deep=True)

    @single_writer
    def link_friend(self, user_id: UUID, friend_id: UUID) -> None:
        """user_id 是目前使用者時，把 friend_id 加進好友清單"""
        if not self.is_current(user_id):
            return
        if friend_id not in self._user.friends:
            self._user.friends.append(friend_id)
