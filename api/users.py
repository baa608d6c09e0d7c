"""
User API Endpoints

職責：
1. 查詢目前使用者
2. 修改個人資料（已經在房間或聊天中的快照不會被更新）
"""
from fastapi import APIRouter, Depends, HTTPException

from api.deps import get_engine
from core.engine import EffortEngine
from schemas import ProfileUpdate, UserResponse

router = APIRouter(prefix="/api/me", tags=["users"])


@router.get("", response_model=UserResponse)
def get_me(engine: EffortEngine = Depends(get_engine)):
    return UserResponse.from_user(engine.identity.current())


@router.put("", response_model=UserResponse)
def update_me(profile: ProfileUpdate, engine: EffortEngine = Depends(get_engine)):
    try:
        user = engine.identity.update_profile(
            name=profile.name,
            bio=profile.bio,
            goal=profile.goal,
            profile_image=profile.profile_image
        )
        return UserResponse.from_user(user)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
