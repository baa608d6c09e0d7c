"""Tests for the store, the repository codec and engine reloads."""

from __future__ import annotations

import json
import unittest

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from core.exceptions import PersistenceFailure
from core.repository import (
    CURRENT_USER_KEY,
    FRIEND_REQUESTS_KEY,
    ROOMS,
    ROOMS_KEY,
    Repository,
)
from core.store import SqlKeyValueStore
from database import Base
from models import User
from tests.helpers import FailingStore, FakeClock, MemoryStore, make_engine


def sqlite_session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    return engine, sessionmaker(autocommit=False, autoflush=False, bind=engine)


class TestSqlKeyValueStore(unittest.TestCase):
    def setUp(self) -> None:
        self.engine, factory = sqlite_session_factory()
        self.store = SqlKeyValueStore(factory)

    def test_get_and_set(self) -> None:
        self.assertIsNone(self.store.get("missing"))

        self.store.set("key", b"first")
        self.store.set("key", b"second")

        self.assertEqual(self.store.get("key"), b"second")

    def test_errors_become_persistence_failures(self) -> None:
        Base.metadata.drop_all(bind=self.engine)

        with self.assertRaises(PersistenceFailure):
            self.store.get("key")
        with self.assertRaises(PersistenceFailure):
            self.store.set("key", b"value")


class TestEngineReload(unittest.TestCase):
    def setUp(self) -> None:
        self.store = MemoryStore()
        self.clock = FakeClock()

    def reload(self, **settings):
        return make_engine(store=self.store, clock=self.clock, **settings)

    def test_round_trip(self) -> None:
        engine = self.reload()
        me = engine.current_user
        other = User(name="B")

        room = engine.rooms.create_room("R", ["勉強"], me, is_private=True, password="1234", max_participants=3)
        engine.rooms.join_room(room.id, other, password="1234")
        engine.chat.send_message(room.id, other, "こんにちは")
        engine.friends.send_request(other, me.id, message="hi")
        engine.friends.create_group("G", [other.id], me)
        engine.identity.update_profile(bio="毎日1時間", custom_profile_image_data=b"\x89PNG\x00\xff")

        reloaded = self.reload()

        self.assertEqual(reloaded.current_user, engine.current_user)
        self.assertEqual(reloaded.rooms.list_rooms(), engine.rooms.list_rooms())
        self.assertEqual(reloaded.sessions.records, engine.sessions.records)
        self.assertEqual(reloaded.chat.messages, engine.chat.messages)
        self.assertEqual(reloaded.friends.requests, engine.friends.requests)
        self.assertEqual(reloaded.friends.groups, engine.friends.groups)
        self.assertEqual(reloaded.current_user.custom_profile_image_data, b"\x89PNG\x00\xff")
        self.assertEqual(reloaded.limiter.monthly_room_count, 1)
        self.assertEqual(reloaded.limiter.current_friend_count, 1)

    def test_active_rooms_restored_from_open_sessions(self) -> None:
        engine = self.reload()
        other = User(name="B")
        room = engine.rooms.create_room("R", [], engine.current_user)
        engine.rooms.join_room(room.id, other)

        reloaded = self.reload()

        self.assertEqual(reloaded.rooms.active_room_for(other.id).id, room.id)
        reloaded.rooms.leave_current_room(other)
        self.assertFalse(reloaded.rooms.get_room(room.id).has_participant(other.id))
        self.assertEqual([r for r in reloaded.sessions.records if r.user_id == other.id and r.is_open], [])

    def test_optional_fields_encoded_as_null(self) -> None:
        engine = self.reload()
        engine.rooms.create_room("R", [], engine.current_user)

        saved = json.loads(self.store.data[ROOMS_KEY])
        self.assertIsNone(saved[0]["password"])
        self.assertIsNone(saved[0]["closed_at"])

    def test_seed_rooms_on_first_start(self) -> None:
        engine = self.reload(seed_sample_rooms=True)

        rooms = engine.rooms.list_rooms()
        self.assertEqual([r.name for r in rooms], ["朝活勉強", "夜の筋トレ", "資格勉強"])
        self.assertTrue(all(r.created_by == engine.current_user.id for r in rooms))

        private = rooms[2]
        self.assertTrue(private.is_private and private.is_invite_only)
        self.assertEqual(private.max_participants, 5)
        engine.rooms.join_room(private.id, User(name="B"), password="1234")

    def test_undecodable_collection_falls_back(self) -> None:
        engine = self.reload()
        engine.friends.send_request(engine.current_user, User(name="X").id)
        user_id = engine.current_user.id
        self.store.data[ROOMS_KEY] = b"{not json"
        self.store.data[FRIEND_REQUESTS_KEY] = b'[{"id": 1}]'

        reloaded = self.reload(seed_sample_rooms=True)

        self.assertEqual(len(reloaded.rooms.list_rooms()), 3)
        self.assertEqual(reloaded.friends.requests, [])
        self.assertEqual(reloaded.current_user.id, user_id)

    def test_missing_user_gets_default(self) -> None:
        engine = self.reload()
        self.assertNotIn(CURRENT_USER_KEY, self.store.data)
        self.assertEqual(engine.current_user.name, "ユーザー")

    def test_write_failure_keeps_memory_state_and_retries(self) -> None:
        store = FailingStore()
        engine = make_engine(store=store, clock=self.clock)
        me = engine.current_user

        room = engine.rooms.create_room("R", [], me)

        self.assertEqual(engine.rooms.get_room(room.id).participants[0].id, me.id)
        self.assertNotIn(ROOMS_KEY, store.data)

        store.fail_writes = False
        engine.rooms.leave_current_room(me)

        saved = ROOMS.validate_json(store.data[ROOMS_KEY])
        self.assertEqual(saved[0].id, room.id)
        self.assertEqual(saved[0].participants, [])

    def test_persist_reports_failure(self) -> None:
        store = FailingStore()
        engine = make_engine(store=store)

        self.assertFalse(engine.persist())
        store.fail_writes = False
        self.assertTrue(engine.persist())

    def test_engine_on_sql_store(self) -> None:
        _, factory = sqlite_session_factory()
        store = SqlKeyValueStore(factory)
        engine = make_engine(store=store, clock=self.clock)
        room = engine.rooms.create_room("R", ["勉強"], engine.current_user)

        reloaded = make_engine(store=store, clock=self.clock)

        self.assertEqual(reloaded.rooms.get_room(room.id).name, "R")
        self.assertEqual(reloaded.current_user.id, engine.current_user.id)


class TestRepository(unittest.TestCase):
    def test_scalars(self) -> None:
        store = MemoryStore()
        repository = Repository(store)

        repository.save_scalar("n", 3)
        repository.save_scalar("s", "2025-03")
        store.data["bad"] = b"\xff\xfe"

        self.assertEqual(repository.load_int("n"), 3)
        self.assertEqual(repository.load_str("s"), "2025-03")
        self.assertEqual(repository.load_int("s"), 0)
        self.assertEqual(repository.load_int("bad", default=7), 7)
        self.assertIsNone(repository.load_str("missing"))


if __name__ == "__main__":
    unittest.main()
