"""
FeatureLimiter：免費版的使用額度

- 每月建立房間數（跨月自動歸零）
- 累計好友數（只會手動增減，不會自動歸零）
- Premium 使用者不受任何限制，但額度查詢仍然可以顯示
"""
from datetime import datetime
from typing import Any, Dict, Optional
import logging

from core.collaborators import Entitlement
from core.exceptions import PersistenceFailure
from core.locks import WriteGate, single_writer, consistent_read
from core.repository import Repository

logger = logging.getLogger(__name__)

MONTHLY_ROOM_COUNT_KEY = "monthlyRoomCount"
CURRENT_FRIEND_COUNT_KEY = "currentFriendCount"
LAST_RESET_MONTH_KEY = "lastResetMonth"


def month_key(now: datetime) -> str:
    """日曆月份的識別字串，例如 2025-03（包含年份，跨年同月份也算不同月）"""
    return f"{now.year:04d}-{now.month:02d}"


class FeatureLimiter:
    """額度管理器"""

    def __init__(
        self,
        gate: WriteGate,
        repository: Repository,
        entitlement: Entitlement,
        room_creation_limit: int = 5,
        friend_limit: int = 10,
        tag_limit: int = 5,
    ):
        self._gate = gate
        self._repository = repository
        self._entitlement = entitlement
        self.room_creation_limit = room_creation_limit
        self.friend_limit = friend_limit
        self.tag_limit = tag_limit

        self._monthly_room_count = repository.load_int(MONTHLY_ROOM_COUNT_KEY)
        self._current_friend_count = repository.load_int(CURRENT_FRIEND_COUNT_KEY)
        self._last_reset_month: Optional[str] = repository.load_str(LAST_RESET_MONTH_KEY)

    @property
    def is_exempt(self) -> bool:
        return self._entitlement.is_premium

    @property
    def monthly_room_count(self) -> int:
        return self._monthly_room_count

    @property
    def current_friend_count(self) -> int:
        return self._current_friend_count

    @single_writer
    def can_create_room(self, now: datetime) -> bool:
        """
        檢查是否還能建立房間

        注意：這是會修改狀態的查詢。
        now 的月份和上次歸零的月份不同時，會先把每月計數歸零並記錄新的月份。
        同一個月內呼叫幾次都只會歸零一次。
        """
        current_month = month_key(now)
        if current_month != self._last_reset_month:
            self._reset_monthly_count(current_month)

        if self.is_exempt:
            return True
        return self._monthly_room_count < self.room_creation_limit

    def can_add_friend(self) -> bool:
        if self.is_exempt:
            return True
        return self._current_friend_count < self.friend_limit

    def can_use_tags(self, tag_count: int) -> bool:
        if self.is_exempt:
            return True
        return tag_count <= self.tag_limit

    @single_writer
    def increment_room_count(self) -> None:
        self._monthly_room_count += 1
        self._save(MONTHLY_ROOM_COUNT_KEY, self._monthly_room_count)

    @single_writer
    def increment_friend_count(self) -> None:
        self._current_friend_count += 1
        self._save(CURRENT_FRIEND_COUNT_KEY, self._current_friend_count)

    @single_writer
    def decrement_friend_count(self) -> None:
        self._current_friend_count = max(0, self._current_friend_count - 1)
        self._save(CURRENT_FRIEND_COUNT_KEY, self._current_friend_count)

    @consistent_read
    def usage(self, now: datetime) -> Dict[str, Any]:
        """
        目前的使用狀況（給額度顯示畫面用）

        不會觸發每月歸零：上次歸零的月份不是 now 的月份時，房間數視為 0。
        """
        room_count = self._monthly_room_count
        if self._last_reset_month != month_key(now):
            room_count = 0

        return {
            "is_premium": self.is_exempt,
            "rooms": {
                "current": room_count,
                "limit": self.room_creation_limit,
                "remaining": max(0, self.room_creation_limit - room_count),
            },
            "friends": {
                "current": self._current_friend_count,
                "limit": self.friend_limit,
                "remaining": max(0, self.friend_limit - self._current_friend_count),
            },
        }

    def flush(self) -> None:
        """重新寫入所有計數（上一次寫入失敗時由下一次修改補寫）"""
        self._save(MONTHLY_ROOM_COUNT_KEY, self._monthly_room_count)
        self._save(CURRENT_FRIEND_COUNT_KEY, self._current_friend_count)
        if self._last_reset_month is not None:
            self._save(LAST_RESET_MONTH_KEY, self._last_reset_month)

    def _reset_monthly_count(self, current_month: str) -> None:
        logger.info(
            f"Monthly room count reset ({self._last_reset_month} -> {current_month}), "
            f"was {self._monthly_room_count}"
        )
        self._monthly_room_count = 0
        self._last_reset_month = current_month
        self._save(LAST_RESET_MONTH_KEY, current_month)
        self._save(MONTHLY_ROOM_COUNT_KEY, 0)

    def _save(self, key: str, value: Any) -> None:
        try:
            self._repository.save_scalar(key, value)
        except PersistenceFailure as e:
            logger.error(f"Failed to persist {key}={value}: {e}", exc_info=True)
