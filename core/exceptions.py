"""
自定義異常類別

集中管理所有業務邏輯異常，方便 API 層統一處理

所有可預期的失敗（額度、權限、重複請求）都在修改任何狀態之前拋出，
所以被拒絕的操作不會留下部分修改。
"""


class EffortRoomException(Exception):
    """所有業務異常的基類"""
    pass


# ============ 額度 ============

class QuotaExceeded(EffortRoomException):
    """免費版額度已用完（建立房間、好友數、標籤數）"""
    def __init__(self, resource, limit):
        self.resource = resource
        self.limit = limit
        super().__init__(f"Free limit reached for {resource} ({limit})")


# ============ 權限 ============

class AccessDenied(EffortRoomException):
    """密碼錯誤、邀請制、人數已滿、權限不足"""
    pass


class RoomClosed(AccessDenied):
    """房間已關閉（終止狀態）"""
    def __init__(self, room_id):
        self.room_id = room_id
        super().__init__(f"Room {room_id} is closed")


class NotRoomCreator(AccessDenied):
    """只有房間建立者可以執行此操作"""
    def __init__(self, room_id, user_id):
        self.room_id = room_id
        self.user_id = user_id
        super().__init__(f"User {user_id} is not the creator of room {room_id}")


# ============ 好友請求 ============

class DuplicateRequest(EffortRoomException):
    """同一個 (from, to) 已經有 pending 請求"""
    def __init__(self, from_user_id, to_user_id):
        self.from_user_id = from_user_id
        self.to_user_id = to_user_id
        super().__init__(f"Friend request {from_user_id} -> {to_user_id} is already pending")


# ============ 不存在 ============

class NotFound(EffortRoomException):
    """操作的對象不存在"""
    pass


class RoomNotFound(NotFound):
    """房間不存在"""
    def __init__(self, room_id):
        self.room_id = room_id
        super().__init__(f"Room {room_id} not found")


class FriendRequestNotFound(NotFound):
    """好友請求不存在"""
    def __init__(self, request_id):
        self.request_id = request_id
        super().__init__(f"Friend request {request_id} not found")


class ParticipantNotFound(NotFound):
    """使用者不在房間內"""
    def __init__(self, room_id, user_id):
        self.room_id = room_id
        self.user_id = user_id
        super().__init__(f"User {user_id} is not in room {room_id}")


# ============ 狀態轉換 ============

class InvalidStateTransition(EffortRoomException):
    """非法的狀態轉換"""
    pass


class RequestNotPending(InvalidStateTransition):
    """好友請求已經是 accepted / rejected（終止狀態）"""
    def __init__(self, request_id, status):
        self.request_id = request_id
        self.status = status
        super().__init__(f"Friend request {request_id} is already {status.value}")


# ============ 持久化 ============

class PersistenceFailure(EffortRoomException):
    """Store 讀寫失敗（只記錄，不中斷流程）"""
    def __init__(self, key, cause=None):
        self.key = key
        self.cause = cause
        super().__init__(f"Persistence failed for key {key}: {cause}")
