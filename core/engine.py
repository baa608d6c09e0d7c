"""
EffortEngine：整個系統的 aggregate root

每個 process 建立一次，注入 Store / Clock / Entitlement / Notifier，
再把同一個 instance 傳給所有呼叫者（不使用全域 singleton）。

持久化：
    每次最外層的修改成功後，把所有 collection 寫回 Store。
    寫入失敗只記錄 log，記憶體中的狀態不會 rollback；
    下一次修改會再寫一次完整的狀態。
"""
from typing import Optional
import logging

from database import Settings, get_settings
from models import User
from core.chat_log import ChatLog
from core.collaborators import (
    Clock,
    Entitlement,
    LoggingNotifier,
    Notifier,
    StaticEntitlement,
    SystemClock,
)
from core.exceptions import PersistenceFailure
from core.feature_limiter import FeatureLimiter
from core.friend_graph import FriendGraph
from core.identity import Identity
from core.locks import WriteGate
from core.repository import (
    CHAT_MESSAGES,
    CHAT_MESSAGES_KEY,
    CURRENT_USER,
    CURRENT_USER_KEY,
    EFFORT_RECORDS,
    EFFORT_RECORDS_KEY,
    FRIEND_GROUPS,
    FRIEND_GROUPS_KEY,
    FRIEND_REQUESTS,
    FRIEND_REQUESTS_KEY,
    ROOMS,
    ROOMS_KEY,
    PersistedState,
    Repository,
)
from core.room_manager import RoomManager
from core.session_tracker import SessionTracker
from core.store import PersistentStore
from services.seed_service import sample_rooms

logger = logging.getLogger(__name__)

DEFAULT_USER_NAME = "ユーザー"


class EffortEngine:

    def __init__(
        self,
        store: PersistentStore,
        clock: Optional[Clock] = None,
        entitlement: Optional[Entitlement] = None,
        notifier: Optional[Notifier] = None,
        settings: Optional[Settings] = None,
    ):
        settings = settings or get_settings()
        self.clock = clock or SystemClock()
        self.entitlement = entitlement or StaticEntitlement(settings.premium)
        self.notifier = notifier or LoggingNotifier()
        self.gate = WriteGate()
        self.repository = Repository(store)
        self._persist_failed = False

        now = self.clock.now()

        # 1. 目前使用者（seed 房間需要建立者 id）
        user = self.repository.load(CURRENT_USER_KEY, CURRENT_USER)
        if user is None:
            user = User(name=DEFAULT_USER_NAME)
            logger.info(f"No saved user, created default user {user.id}")

        # 2. 各個 collection（不存在或無法解碼時使用預設值）
        rooms = self.repository.load(ROOMS_KEY, ROOMS)
        if rooms is None:
            rooms = sample_rooms(user.id, now) if settings.seed_sample_rooms else []
            logger.info(f"No saved rooms, starting with {len(rooms)} sample rooms")

        records = self.repository.load(EFFORT_RECORDS_KEY, EFFORT_RECORDS) or []
        messages = self.repository.load(CHAT_MESSAGES_KEY, CHAT_MESSAGES) or []
        requests = self.repository.load(FRIEND_REQUESTS_KEY, FRIEND_REQUESTS) or []
        groups = self.repository.load(FRIEND_GROUPS_KEY, FRIEND_GROUPS) or []

        # 3. 組裝元件（全部共用同一個 gate）
        self.identity = Identity(self.gate, user)
        self.limiter = FeatureLimiter(
            self.gate,
            self.repository,
            self.entitlement,
            room_creation_limit=settings.free_room_creation_limit,
            friend_limit=settings.free_friend_limit,
            tag_limit=settings.free_tag_limit
        )
        self.sessions = SessionTracker(self.gate, self.clock, records)
        self.chat = ChatLog(
            self.gate,
            self.clock,
            lambda room_id: self.rooms.require_room(room_id),
            messages
        )
        self.rooms = RoomManager(
            self.gate,
            self.clock,
            self.limiter,
            self.sessions,
            self.chat,
            self.notifier,
            rooms,
            default_max_participants=settings.default_max_participants
        )
        self.friends = FriendGraph(
            self.gate,
            self.clock,
            self.limiter,
            self.identity,
            self.notifier,
            requests,
            groups
        )

        self.gate.add_commit_hook(self.persist)

        logger.info(
            f"Engine loaded: {len(rooms)} rooms, {len(records)} records, "
            f"{len(messages)} messages, {len(requests)} requests, {len(groups)} groups"
        )

    @property
    def current_user(self) -> User:
        return self.identity.user

    def persist(self) -> bool:
        """
        把所有 collection 寫回 Store（best effort）

        返回：
            True 如果全部寫入成功
        """
        state = PersistedState(
            rooms=self.rooms.rooms,
            effort_records=self.sessions.records,
            chat_messages=self.chat.messages,
            friend_requests=self.friends.requests,
            friend_groups=self.friends.groups,
            current_user=self.identity.user
        )
        try:
            with self.gate.read():
                self.repository.save_all(state)
        except PersistenceFailure as e:
            logger.error(f"Persistence failed, keeping in-memory state: {e}", exc_info=True)
            self._persist_failed = True
            return False

        self.limiter.flush()
        if self._persist_failed:
            logger.info("Persistence recovered")
            self._persist_failed = False
        return True
