"""
Seed 服務：第一次啟動（或房間資料無法解碼）時建立的範例房間
"""
from datetime import datetime
from typing import List
from uuid import UUID

from models import Room


def sample_rooms(created_by: UUID, now: datetime) -> List[Room]:
    """
    建立三個範例房間（都由目前的使用者建立，沒有參加者）

    - 朝活勉強：公開
    - 夜の筋トレ：公開
    - 資格勉強：私人 + 邀請制，密碼 1234，最多 5 人
    """
    return [
        Room(
            name="朝活勉強",
            tags=["勉強", "朝活"],
            created_at=now,
            created_by=created_by
        ),
        Room(
            name="夜の筋トレ",
            tags=["筋トレ", "健康"],
            created_at=now,
            created_by=created_by
        ),
        Room(
            name="資格勉強",
            tags=["勉強", "資格"],
            created_at=now,
            created_by=created_by,
            is_private=True,
            is_invite_only=True,
            password="1234",
            max_participants=5
        ),
    ]
