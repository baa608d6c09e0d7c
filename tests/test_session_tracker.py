"""Tests for SessionTracker and the statistics helpers."""

from __future__ import annotations

import unittest
from datetime import datetime, timedelta, timezone
from uuid import uuid4

from core.locks import WriteGate
from core.session_tracker import SessionTracker
from models import EffortRecord, Room, TimePeriod
from services.period_service import is_in_period, period_start
from services.stats_service import format_duration
from tests.helpers import T0, FakeClock, make_engine

JST = timezone(timedelta(hours=9))


def record(tags, start, end=None, user_id=None):
    return EffortRecord(
        user_id=user_id or uuid4(),
        room_id=uuid4(),
        tags=tags,
        start_time=start,
        end_time=end,
    )


class TestEffortStats(unittest.TestCase):
    def setUp(self) -> None:
        self.clock = FakeClock()
        self.tracker = SessionTracker(WriteGate(), self.clock)

    def test_stats_by_tag_today(self) -> None:
        self.tracker.records.extend([
            record(["勉強"], T0 - timedelta(hours=1), T0),
            record(["筋トレ"], T0 - timedelta(hours=2)),
        ])

        stats = self.tracker.get_stats(["勉強"], TimePeriod.TODAY, T0)

        self.assertEqual(stats.total_duration, 3600)
        self.assertEqual(stats.session_count, 1)
        self.assertEqual(stats.average_duration, 3600)

    def test_no_matches_gives_zero_average(self) -> None:
        self.tracker.records.append(record(["筋トレ"], T0 - timedelta(hours=1), T0))

        stats = self.tracker.get_stats(["勉強"], TimePeriod.MONTH, T0)

        self.assertEqual(stats.total_duration, 0)
        self.assertEqual(stats.average_duration, 0)
        self.assertEqual(stats.session_count, 0)

    def test_any_tag_overlap_matches(self) -> None:
        self.tracker.records.extend([
            record(["勉強", "朝活"], T0 - timedelta(hours=3), T0 - timedelta(hours=2)),
            record(["資格"], T0 - timedelta(hours=2), T0 - timedelta(minutes=90)),
        ])

        stats = self.tracker.get_stats(["朝活", "資格"], TimePeriod.TODAY, T0)

        self.assertEqual(stats.session_count, 2)
        self.assertEqual(stats.total_duration, 3600 + 1800)
        self.assertEqual(stats.average_duration, 2700)

    def test_open_session_duration_grows(self) -> None:
        self.tracker.records.append(record(["勉強"], T0 - timedelta(minutes=10)))

        first = self.tracker.get_stats(["勉強"], TimePeriod.TODAY, T0)
        later = self.tracker.get_stats(["勉強"], TimePeriod.TODAY, T0 + timedelta(minutes=5))

        self.assertEqual(first.total_duration, 600)
        self.assertEqual(later.total_duration, 900)

    def test_now_defaults_to_clock(self) -> None:
        self.tracker.records.append(record(["勉強"], T0 - timedelta(minutes=10)))
        self.clock.advance(minutes=20)

        self.assertEqual(self.tracker.get_stats(["勉強"], TimePeriod.TODAY).total_duration, 1800)

    def test_tag_stats_sorted_by_total(self) -> None:
        self.tracker.records.extend([
            record(["勉強"], T0 - timedelta(hours=1), T0 - timedelta(minutes=30)),
            record(["筋トレ", "健康"], T0 - timedelta(hours=3), T0 - timedelta(hours=1)),
        ])

        stats = self.tracker.tag_stats(TimePeriod.TODAY, T0)

        self.assertEqual({s.tag for s in stats[:2]}, {"筋トレ", "健康"})
        self.assertEqual(stats[-1].tag, "勉強")
        self.assertEqual(stats[-1].total_duration, 1800)
        self.assertEqual(self.tracker.total_duration(TimePeriod.TODAY, T0), 1800 + 7200)

    def test_open_and_close_session(self) -> None:
        room = Room(name="R", tags=["勉強"], created_at=T0, created_by=uuid4())
        user_id = uuid4()

        opened = self.tracker.open_session(user_id, room, T0)
        self.assertEqual(opened.tags, ["勉強"])
        self.assertEqual(self.tracker.active_duration(user_id, T0 + timedelta(seconds=42)), 42)

        closed = self.tracker.close_session(user_id, room.id, T0 + timedelta(minutes=1))
        self.assertEqual(closed.id, opened.id)
        self.assertEqual(self.tracker.active_duration(user_id, T0 + timedelta(hours=1)), 0)
        self.assertIsNone(self.tracker.close_session(user_id, room.id, T0))

    def test_reopening_keeps_single_open_record(self) -> None:
        room = Room(name="R", tags=[], created_at=T0, created_by=uuid4())
        user_id = uuid4()

        self.tracker.open_session(user_id, room, T0)
        self.tracker.open_session(user_id, room, T0 + timedelta(minutes=5))

        open_records = [r for r in self.tracker.records if r.is_open]
        self.assertEqual(len(open_records), 1)
        self.assertEqual(len(self.tracker.records_for(user_id)), 2)


class TestPeriods(unittest.TestCase):
    # 2025-03-13 is a Thursday
    def test_today(self) -> None:
        self.assertTrue(is_in_period(T0.replace(hour=0), TimePeriod.TODAY, T0))
        self.assertFalse(is_in_period(T0 - timedelta(days=1), TimePeriod.TODAY, T0))

    def test_week_starts_on_monday(self) -> None:
        self.assertEqual(period_start(TimePeriod.WEEK, T0), datetime(2025, 3, 10, tzinfo=timezone.utc))
        self.assertTrue(is_in_period(datetime(2025, 3, 10, 1, tzinfo=timezone.utc), TimePeriod.WEEK, T0))
        self.assertFalse(is_in_period(datetime(2025, 3, 9, 23, tzinfo=timezone.utc), TimePeriod.WEEK, T0))

    def test_month(self) -> None:
        self.assertTrue(is_in_period(datetime(2025, 3, 1, tzinfo=timezone.utc), TimePeriod.MONTH, T0))
        self.assertFalse(is_in_period(datetime(2025, 2, 28, 23, tzinfo=timezone.utc), TimePeriod.MONTH, T0))
        self.assertFalse(is_in_period(T0 + timedelta(hours=1), TimePeriod.MONTH, T0))

    def test_calendar_day_uses_timezone_of_now(self) -> None:
        now = datetime(2025, 3, 13, 9, 0, tzinfo=JST)
        # 2025-03-13 01:00 JST
        start = datetime(2025, 3, 12, 16, 0, tzinfo=timezone.utc)

        self.assertTrue(is_in_period(start, TimePeriod.TODAY, now))

    def test_format_duration(self) -> None:
        self.assertEqual(format_duration(5400), "1時間30分")
        self.assertEqual(format_duration(59), "0時間0分")


class TestStatsThroughEngine(unittest.TestCase):
    def test_session_from_room_visit(self) -> None:
        clock = FakeClock()
        engine = make_engine(clock=clock)
        user = engine.current_user

        engine.rooms.create_room("R", ["勉強"], user)
        clock.advance(hours=1)
        engine.rooms.leave_current_room(user)
        clock.advance(hours=1)

        stats = engine.sessions.get_stats(["勉強"], TimePeriod.TODAY)
        self.assertEqual(stats.total_duration, 3600)
        self.assertEqual(stats.session_count, 1)


if __name__ == "__main__":
    unittest.main()
