"""
Persistent Store：以字串 key 存取 bytes 的 key-value store

SqlKeyValueStore 把每個 key 存成 store_entries 的一筆資料。
任何 SQLAlchemy 錯誤都轉成 PersistenceFailure，由呼叫者決定要不要中斷。
"""
from typing import Optional, Protocol
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from database import SessionLocal, transactional
from models import StoreEntry
from core.exceptions import PersistenceFailure

logger = logging.getLogger(__name__)


class PersistentStore(Protocol):
    def get(self, key: str) -> Optional[bytes]: ...

    def set(self, key: str, value: bytes) -> None: ...


@transactional
def _write_entry(db: Session, key: str, value: bytes) -> None:
    db.merge(StoreEntry(key=key, value=value))


class SqlKeyValueStore:
    """SQLAlchemy 實作的 key-value store"""

    def __init__(self, session_factory: sessionmaker = SessionLocal):
        self._session_factory = session_factory

    def get(self, key: str) -> Optional[bytes]:
        """
        讀取 key 對應的值

        返回：
            bytes，key 不存在時回傳 None

        異常：
            PersistenceFailure: 資料庫讀取失敗
        """
        db = self._session_factory()
        try:
            entry = db.get(StoreEntry, key)
            return bytes(entry.value) if entry is not None else None
        except SQLAlchemyError as e:
            raise PersistenceFailure(key, e) from e
        finally:
            db.close()

    def set(self, key: str, value: bytes) -> None:
        """
        寫入（覆蓋）key 對應的值

        異常：
            PersistenceFailure: 資料庫寫入失敗（transaction 已 rollback）
        """
        db = self._session_factory()
        try:
            _write_entry(db, key, value)
        except SQLAlchemyError as e:
            raise PersistenceFailure(key, e) from e
        finally:
            db.close()
