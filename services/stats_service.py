"""
統計服務：努力記錄的彙總計算

純計算邏輯，不修改任何記錄。進行中的記錄以 now - start_time 計算時長，
所以 session 還沒結束時，每次計算的結果都會變大。
"""
from datetime import datetime
from typing import Iterable, List

from models import EffortRecord, EffortStats, TagStat, TimePeriod
from services.period_service import is_in_period


def matches_tags(record: EffortRecord, tags: Iterable[str]) -> bool:
    """記錄的標籤集合和查詢標籤集合有交集"""
    return not set(record.tags).isdisjoint(tags)


def filter_records(
    records: Iterable[EffortRecord],
    period: TimePeriod,
    now: datetime,
) -> List[EffortRecord]:
    return [r for r in records if is_in_period(r.start_time, period, now)]


def summarize(records: List[EffortRecord], now: datetime) -> EffortStats:
    """
    計算總時長、平均時長、次數

    沒有任何記錄時平均為 0（不會除以零）
    """
    total = sum(r.duration(now) for r in records)
    count = len(records)
    average = total / count if count else 0.0

    return EffortStats(
        total_duration=total,
        average_duration=average,
        session_count=count
    )


def calculate_stats(
    records: Iterable[EffortRecord],
    tags: Iterable[str],
    period: TimePeriod,
    now: datetime,
) -> EffortStats:
    """
    計算符合標籤與期間的統計

    範例：
        記錄 A：["勉強"]，now - 1h 開始，已結束（1h）
        記錄 B：["筋トレ"]，now - 2h 開始
        calculate_stats([A, B], ["勉強"], TODAY, now)
        -> total=3600, average=3600, count=1
    """
    tag_set = set(tags)
    matched = [
        r for r in filter_records(records, period, now)
        if matches_tags(r, tag_set)
    ]
    return summarize(matched, now)


def calculate_tag_stats(
    records: Iterable[EffortRecord],
    period: TimePeriod,
    now: datetime,
) -> List[TagStat]:
    """每個出現過的標籤各一筆統計，依總時長由大到小排序"""
    records = list(records)
    all_tags = sorted({tag for r in records for tag in r.tags})

    result = []
    for tag in all_tags:
        stats = calculate_stats(records, [tag], period, now)
        result.append(TagStat(
            tag=tag,
            total_duration=stats.total_duration,
            session_count=stats.session_count
        ))

    result.sort(key=lambda s: s.total_duration, reverse=True)
    return result


def format_duration(seconds: float) -> str:
    """例如 5400 秒 -> 1時間30分"""
    hours = int(seconds) // 3600
    minutes = int(seconds) % 3600 // 60
    return f"{hours}時間{minutes}分"
