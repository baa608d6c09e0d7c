"""
Stats API Endpoints

- 努力時間統計（依標籤、期間）
- 免費版額度使用狀況
"""
from typing import List
from fastapi import APIRouter, Depends, Query

from api.deps import get_engine
from core.engine import EffortEngine
from models import TimePeriod
from schemas import StatsResponse, TagStatResponse, UsageResponse
from services.stats_service import format_duration

router = APIRouter(prefix="/api", tags=["stats"])


@router.get("/stats", response_model=StatsResponse)
def get_stats(
    tags: List[str] = Query(default=[]),
    period: TimePeriod = TimePeriod.TODAY,
    engine: EffortEngine = Depends(get_engine)
):
    """
    統計符合標籤的努力時間

    參數：
        tags: 查詢標籤（可重複，例如 ?tags=勉強&tags=資格）
        period: today / week / month
    """
    stats = engine.sessions.get_stats(tags, period)
    return StatsResponse(
        total_duration=stats.total_duration,
        average_duration=stats.average_duration,
        session_count=stats.session_count,
        formatted_total_duration=format_duration(stats.total_duration)
    )


@router.get("/stats/tags", response_model=List[TagStatResponse])
def get_tag_stats(period: TimePeriod = TimePeriod.TODAY, engine: EffortEngine = Depends(get_engine)):
    """每個標籤的統計（總時長由大到小）"""
    return [TagStatResponse(**s.model_dump()) for s in engine.sessions.tag_stats(period)]


@router.get("/usage", response_model=UsageResponse)
def get_usage(engine: EffortEngine = Depends(get_engine)):
    return UsageResponse(**engine.limiter.usage(engine.clock.now()))
