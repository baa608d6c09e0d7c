"""
API 共用的 dependency 與錯誤轉換
"""
from fastapi import HTTPException, Request

from core.engine import EffortEngine
from core.exceptions import (
    AccessDenied,
    DuplicateRequest,
    EffortRoomException,
    InvalidStateTransition,
    NotFound,
    QuotaExceeded,
)


def get_engine(request: Request) -> EffortEngine:
    """FastAPI dependency：lifespan 建立的 engine"""
    return request.app.state.engine


def to_http_error(error: EffortRoomException) -> HTTPException:
    """
    業務異常 -> HTTP 狀態碼

    NotFound 404、AccessDenied 403、QuotaExceeded 402、
    DuplicateRequest / InvalidStateTransition 409
    """
    if isinstance(error, NotFound):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, AccessDenied):
        return HTTPException(status_code=403, detail=str(error))
    if isinstance(error, QuotaExceeded):
        return HTTPException(
            status_code=402,
            detail={"message": str(error), "resource": error.resource, "limit": error.limit}
        )
    if isinstance(error, (DuplicateRequest, InvalidStateTransition)):
        return HTTPException(status_code=409, detail=str(error))
    return HTTPException(status_code=500, detail="Internal error")
