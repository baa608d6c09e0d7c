"""
SessionTracker：努力記錄（EffortRecord）管理器

職責：
1. 開始 / 結束 session（每個 (user, room) 同時最多一筆進行中的記錄）
2. 統計查詢（依標籤、期間）

時長是計算出來的，不會儲存：進行中的記錄以 now - start_time 計算。
"""
from datetime import datetime
from typing import List, Optional
from uuid import UUID
import logging

from models import EffortRecord, EffortStats, Room, TagStat, TimePeriod
from core.collaborators import Clock
from core.locks import WriteGate, single_writer, consistent_read
from services.stats_service import (
    calculate_stats,
    calculate_tag_stats,
    filter_records,
    summarize,
)

logger = logging.getLogger(__name__)


class SessionTracker:

    def __init__(
        self,
        gate: WriteGate,
        clock: Clock,
        records: Optional[List[EffortRecord]] = None,
    ):
        self._gate = gate
        self._clock = clock
        self._records: List[EffortRecord] = records if records is not None else []

    @property
    def records(self) -> List[EffortRecord]:
        return self._records

    def find_open(self, user_id: UUID, room_id: UUID) -> Optional[EffortRecord]:
        for record in self._records:
            if record.user_id == user_id and record.room_id == room_id and record.is_open:
                return record
        return None

    def open_records(self) -> List[EffortRecord]:
        return [r for r in self._records if r.is_open]

    @single_writer
    def open_session(self, user_id: UUID, room: Room, now: datetime) -> EffortRecord:
        """
        開始新的 session（標籤從房間複製）

        同一個 (user, room) 還有進行中的記錄時，先在 now 結束它，
        確保同時最多只有一筆進行中的記錄。
        """
        existing = self.find_open(user_id, room.id)
        if existing is not None:
            logger.warning(
                f"User {user_id} already had an open session {existing.id} in room {room.id}, closing it"
            )
            existing.end_time = now

        record = EffortRecord(
            user_id=user_id,
            room_id=room.id,
            tags=list(room.tags),
            start_time=now
        )
        self._records.append(record)
        return record

    @single_writer
    def close_session(self, user_id: UUID, room_id: UUID, now: datetime) -> Optional[EffortRecord]:
        """
        結束進行中的 session

        返回：
            被結束的記錄；沒有進行中的記錄時回傳 None
        """
        record = self.find_open(user_id, room_id)
        if record is None:
            return None

        record.end_time = now
        logger.info(
            f"Session {record.id} closed for user {user_id} in room {room_id} "
            f"({record.duration(now):.0f}s)"
        )
        return record

    @consistent_read
    def get_stats(
        self,
        tags: List[str],
        period: TimePeriod,
        now: Optional[datetime] = None,
    ) -> EffortStats:
        """
        標籤有交集、且 start_time 落在期間內的記錄統計

        參數：
            tags: 查詢標籤（任一個符合即可）
            period: TODAY / WEEK / MONTH
            now: 基準時間（預設為 clock.now()）
        """
        now = now or self._clock.now()
        return calculate_stats(self._records, tags, period, now)

    @consistent_read
    def tag_stats(self, period: TimePeriod, now: Optional[datetime] = None) -> List[TagStat]:
        now = now or self._clock.now()
        return calculate_tag_stats(self._records, period, now)

    @consistent_read
    def total_duration(self, period: TimePeriod, now: Optional[datetime] = None) -> float:
        """期間內所有記錄的總時長（不看標籤）"""
        now = now or self._clock.now()
        return summarize(filter_records(self._records, period, now), now).total_duration

    @consistent_read
    def active_duration(self, user_id: UUID, now: Optional[datetime] = None) -> float:
        """使用者進行中 session 的經過秒數（沒有時為 0）"""
        now = now or self._clock.now()
        for record in self._records:
            if record.user_id == user_id and record.is_open:
                return record.duration(now)
        return 0.0

    @consistent_read
    def records_for(self, user_id: UUID) -> List[EffortRecord]:
        return [r for r in self._records if r.user_id == user_id]
