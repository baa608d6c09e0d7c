"""
期間服務：判斷時間是否落在統計期間內

- TODAY：和 now 同一個日曆日
- WEEK：[本週一 00:00, now]（ISO 週，週一開始）
- MONTH：[本月 1 日 00:00, now]

所有判斷都以 now 的時區為準。
"""
from datetime import datetime, timedelta

from models import TimePeriod


def to_timezone_of(value: datetime, now: datetime) -> datetime:
    """
    把 value 換算成 now 的時區

    naive 的 value 視為已經是 now 的時區；naive 的 now 會讓 aware 的 value 換成本地時間後去掉時區
    """
    if now.tzinfo is None:
        if value.tzinfo is None:
            return value
        return value.astimezone().replace(tzinfo=None)

    if value.tzinfo is None:
        return value.replace(tzinfo=now.tzinfo)
    return value.astimezone(now.tzinfo)


def start_of_day(now: datetime) -> datetime:
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def start_of_week(now: datetime) -> datetime:
    return start_of_day(now) - timedelta(days=now.weekday())


def start_of_month(now: datetime) -> datetime:
    return start_of_day(now).replace(day=1)


def period_start(period: TimePeriod, now: datetime) -> datetime:
    """
    取得期間的起點

    範例（now = 2025-03-13 週四 15:00）：
        TODAY -> 2025-03-13 00:00
        WEEK  -> 2025-03-10 00:00
        MONTH -> 2025-03-01 00:00
    """
    if period == TimePeriod.TODAY:
        return start_of_day(now)
    elif period == TimePeriod.WEEK:
        return start_of_week(now)
    else:
        return start_of_month(now)


def is_in_period(value: datetime, period: TimePeriod, now: datetime) -> bool:
    """
    檢查 value 是否落在期間內

    TODAY 只比較日曆日；WEEK、MONTH 的區間是 [起點, now]
    """
    local = to_timezone_of(value, now)

    if period == TimePeriod.TODAY:
        return local.date() == now.date()

    return period_start(period, now) <= local <= now
