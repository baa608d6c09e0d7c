"""
外部協作者（Clock / Entitlement / Notifier）

engine 只透過這些窄介面和外界互動，測試時可以直接替換。
"""
from datetime import datetime
from typing import Protocol
import logging

logger = logging.getLogger(__name__)


class Clock(Protocol):
    def now(self) -> datetime: ...


class Entitlement(Protocol):
    @property
    def is_premium(self) -> bool: ...


class Notifier(Protocol):
    def notify(self, message: str) -> None: ...


class SystemClock:
    """本地時區的現在時間（timezone-aware）"""

    def now(self) -> datetime:
        return datetime.now().astimezone()


class StaticEntitlement:
    """固定的 premium 狀態（由設定或購買驗證結果決定）"""

    def __init__(self, is_premium: bool = False):
        self._is_premium = is_premium

    @property
    def is_premium(self) -> bool:
        return self._is_premium

    def set_premium(self, value: bool) -> None:
        logger.info(f"Premium entitlement changed: {self._is_premium} -> {value}")
        self._is_premium = value


class LoggingNotifier:
    """只寫 log 的通知（實際推播由平台層負責）"""

    def notify(self, message: str) -> None:
        logger.info(f"Notification: {message}")
