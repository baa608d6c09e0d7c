"""
Repository：把各個 collection 編碼成 JSON 存進 Persistent Store

每個最上層 collection 獨立存在一個固定的 key 底下，
讀取時 key 不存在或無法解碼只會讓該 collection 回到預設值，不會讓整個載入失敗。
"""
from typing import Any, List, Optional
import json
import logging

from pydantic import TypeAdapter, ValidationError

from models import ChatMessage, EffortRecord, FriendGroup, FriendRequest, Room, User
from core.exceptions import PersistenceFailure
from core.store import PersistentStore

logger = logging.getLogger(__name__)

ROOMS_KEY = "savedRooms"
EFFORT_RECORDS_KEY = "savedEffortRecords"
CHAT_MESSAGES_KEY = "savedChatMessages"
FRIEND_REQUESTS_KEY = "savedFriendRequests"
FRIEND_GROUPS_KEY = "savedFriendGroups"
CURRENT_USER_KEY = "savedCurrentUser"

ROOMS = TypeAdapter(List[Room])
EFFORT_RECORDS = TypeAdapter(List[EffortRecord])
CHAT_MESSAGES = TypeAdapter(List[ChatMessage])
FRIEND_REQUESTS = TypeAdapter(List[FriendRequest])
FRIEND_GROUPS = TypeAdapter(List[FriendGroup])
CURRENT_USER = TypeAdapter(User)


class Repository:
    """Store 之上的 encode / decode"""

    def __init__(self, store: PersistentStore):
        self._store = store

    def load(self, key: str, adapter: TypeAdapter) -> Optional[Any]:
        """
        讀取並解碼一個 collection

        返回：
            解碼後的值；key 不存在、讀取失敗或無法解碼時回傳 None
        """
        try:
            raw = self._store.get(key)
        except PersistenceFailure as e:
            logger.error(f"Failed to read {key}: {e}", exc_info=True)
            return None

        if raw is None:
            return None

        try:
            return adapter.validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Discarding undecodable data under {key}: {e.error_count()} errors")
            return None

    def save(self, key: str, adapter: TypeAdapter, value: Any) -> None:
        self._store.set(key, adapter.dump_json(value))

    def save_all(self, state: "PersistedState") -> None:
        """
        寫入所有 collection

        每個 key 都會嘗試寫入；有任何一個失敗時，寫完其他 key 之後拋出第一個 PersistenceFailure
        """
        failures = []
        for key, adapter, value in state.entries():
            try:
                self.save(key, adapter, value)
            except PersistenceFailure as e:
                failures.append(e)

        if failures:
            raise failures[0]

    def load_int(self, key: str, default: int = 0) -> int:
        value = self._load_scalar(key)
        return value if isinstance(value, int) else default

    def load_str(self, key: str) -> Optional[str]:
        value = self._load_scalar(key)
        return value if isinstance(value, str) else None

    def save_scalar(self, key: str, value: Any) -> None:
        self._store.set(key, json.dumps(value).encode("utf-8"))

    def _load_scalar(self, key: str) -> Any:
        try:
            raw = self._store.get(key)
        except PersistenceFailure as e:
            logger.error(f"Failed to read {key}: {e}", exc_info=True)
            return None

        if raw is None:
            return None

        try:
            return json.loads(raw)
        except ValueError:
            logger.warning(f"Discarding undecodable value under {key}")
            return None


class PersistedState:
    """一次持久化要寫入的所有 collection"""

    def __init__(
        self,
        rooms: List[Room],
        effort_records: List[EffortRecord],
        chat_messages: List[ChatMessage],
        friend_requests: List[FriendRequest],
        friend_groups: List[FriendGroup],
        current_user: User,
    ):
        self.rooms = rooms
        self.effort_records = effort_records
        self.chat_messages = chat_messages
        self.friend_requests = friend_requests
        self.friend_groups = friend_groups
        self.current_user = current_user

    def entries(self):
        return [
            (ROOMS_KEY, ROOMS, self.rooms),
            (EFFORT_RECORDS_KEY, EFFORT_RECORDS, self.effort_records),
            (CHAT_MESSAGES_KEY, CHAT_MESSAGES, self.chat_messages),
            (FRIEND_REQUESTS_KEY, FRIEND_REQUESTS, self.friend_requests),
            (FRIEND_GROUPS_KEY, FRIEND_GROUPS, self.friend_groups),
            (CURRENT_USER_KEY, CURRENT_USER, self.current_user),
        ]
