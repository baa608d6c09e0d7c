"""Common utilities for tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from core.collaborators import StaticEntitlement
from core.engine import EffortEngine
from core.exceptions import PersistenceFailure
from database import Settings

T0 = datetime(2025, 3, 13, 15, 0, tzinfo=timezone.utc)


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime = T0) -> None:
        self.current = now

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs: Any) -> None:
        self.current = self.current + timedelta(**kwargs)


class MemoryStore:
    """Dict-backed key-value store."""

    def __init__(self) -> None:
        self.data: dict[str, bytes] = {}
        self.writes = 0

    def get(self, key: str) -> Optional[bytes]:
        return self.data.get(key)

    def set(self, key: str, value: bytes) -> None:
        self.writes += 1
        self.data[key] = value


class FailingStore(MemoryStore):
    """Store whose writes fail until fail_writes is switched off."""

    def __init__(self) -> None:
        super().__init__()
        self.fail_writes = True

    def set(self, key: str, value: bytes) -> None:
        if self.fail_writes:
            raise PersistenceFailure(key, "disk full")
        super().set(key, value)


class RecordingNotifier:
    def __init__(self) -> None:
        self.messages: list[str] = []

    def notify(self, message: str) -> None:
        self.messages.append(message)


def make_engine(
    store: Optional[MemoryStore] = None,
    clock: Optional[FakeClock] = None,
    premium: bool = False,
    notifier: Optional[RecordingNotifier] = None,
    **settings: Any,
) -> EffortEngine:
    settings.setdefault("seed_sample_rooms", False)
    return EffortEngine(
        store if store is not None else MemoryStore(),
        clock=clock or FakeClock(),
        entitlement=StaticEntitlement(premium),
        notifier=notifier or RecordingNotifier(),
        settings=Settings(**settings),
    )


class FailingNotifier:
    """Notifier whose delivery always fails."""

    def notify(self, message: str) -> None:
        raise ConnectionError("push service down")
