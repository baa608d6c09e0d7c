"""Tests for FeatureLimiter."""

from __future__ import annotations

import json
import unittest
from datetime import datetime, timezone

from core.collaborators import StaticEntitlement
from core.feature_limiter import (
    CURRENT_FRIEND_COUNT_KEY,
    LAST_RESET_MONTH_KEY,
    MONTHLY_ROOM_COUNT_KEY,
    FeatureLimiter,
    month_key,
)
from core.locks import WriteGate
from core.repository import Repository
from tests.helpers import T0, FailingStore, MemoryStore


def march(day: int = 13) -> datetime:
    return datetime(2025, 3, day, 12, 0, tzinfo=timezone.utc)


class TestFeatureLimiter(unittest.TestCase):
    def setUp(self) -> None:
        self.store = MemoryStore()
        self.entitlement = StaticEntitlement(False)
        self.limiter = self.make_limiter()

    def make_limiter(self, store=None) -> FeatureLimiter:
        return FeatureLimiter(
            WriteGate(),
            Repository(store or self.store),
            self.entitlement,
            room_creation_limit=5,
            friend_limit=10,
        )

    def stored(self, key: str):
        return json.loads(self.store.data[key])

    def test_room_limit(self) -> None:
        for _ in range(5):
            self.assertTrue(self.limiter.can_create_room(march()))
            self.limiter.increment_room_count()

        self.assertFalse(self.limiter.can_create_room(march()))

    def test_reset_once_per_month(self) -> None:
        self.limiter.can_create_room(march(1))
        self.limiter.increment_room_count()
        self.limiter.increment_room_count()

        for day in (2, 15, 31):
            self.limiter.can_create_room(march(day))
        self.assertEqual(self.limiter.monthly_room_count, 2)

        self.limiter.can_create_room(datetime(2025, 4, 1, tzinfo=timezone.utc))
        self.assertEqual(self.limiter.monthly_room_count, 0)
        self.assertEqual(self.stored(LAST_RESET_MONTH_KEY), "2025-04")

    def test_same_month_next_year_resets(self) -> None:
        self.limiter.can_create_room(march())
        self.limiter.increment_room_count()

        self.limiter.can_create_room(datetime(2026, 3, 2, tzinfo=timezone.utc))

        self.assertEqual(self.limiter.monthly_room_count, 0)

    def test_counts_are_persisted_immediately(self) -> None:
        self.limiter.can_create_room(march())
        self.limiter.increment_room_count()
        self.limiter.increment_friend_count()

        self.assertEqual(self.stored(MONTHLY_ROOM_COUNT_KEY), 1)
        self.assertEqual(self.stored(CURRENT_FRIEND_COUNT_KEY), 1)

        reloaded = self.make_limiter()
        self.assertEqual(reloaded.monthly_room_count, 1)
        self.assertEqual(reloaded.current_friend_count, 1)
        self.assertTrue(reloaded.can_create_room(march(20)))
        self.assertEqual(reloaded.monthly_room_count, 1)

    def test_friend_limit_and_decrement(self) -> None:
        for _ in range(10):
            self.assertTrue(self.limiter.can_add_friend())
            self.limiter.increment_friend_count()
        self.assertFalse(self.limiter.can_add_friend())

        self.limiter.decrement_friend_count()
        self.assertTrue(self.limiter.can_add_friend())

    def test_decrement_floors_at_zero(self) -> None:
        self.limiter.decrement_friend_count()
        self.assertEqual(self.limiter.current_friend_count, 0)

    def test_exempt_never_blocks(self) -> None:
        self.entitlement.set_premium(True)
        for _ in range(20):
            self.limiter.increment_friend_count()
            self.limiter.increment_room_count()

        self.assertTrue(self.limiter.can_add_friend())
        self.assertTrue(self.limiter.can_create_room(march()))
        self.assertTrue(self.limiter.can_use_tags(50))

    def test_usage(self) -> None:
        self.limiter.can_create_room(T0)
        self.limiter.increment_room_count()
        self.limiter.increment_friend_count()

        usage = self.limiter.usage(T0)
        self.assertFalse(usage["is_premium"])
        self.assertEqual(usage["rooms"], {"current": 1, "limit": 5, "remaining": 4})
        self.assertEqual(usage["friends"], {"current": 1, "limit": 10, "remaining": 9})

        next_month = self.limiter.usage(datetime(2025, 4, 2, tzinfo=timezone.utc))
        self.assertEqual(next_month["rooms"]["current"], 0)
        self.assertEqual(self.limiter.monthly_room_count, 1)

    def test_write_failure_is_not_fatal(self) -> None:
        store = FailingStore()
        limiter = self.make_limiter(store)

        limiter.increment_friend_count()
        self.assertEqual(limiter.current_friend_count, 1)

        store.fail_writes = False
        limiter.flush()
        self.assertEqual(json.loads(store.data[CURRENT_FRIEND_COUNT_KEY]), 1)

    def test_month_key(self) -> None:
        self.assertEqual(month_key(datetime(2025, 1, 31)), "2025-01")


if __name__ == "__main__":
    unittest.main()
