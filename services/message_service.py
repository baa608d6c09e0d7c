"""
訊息服務：產生系統訊息的文字

純計算邏輯，不涉及狀態轉換
"""


def room_created_message(user_name: str) -> str:
    return f"{user_name}さんが部屋を作成しました"


def joined_message(user_name: str) -> str:
    return f"{user_name}さんが部屋に参加しました"


def left_message(user_name: str) -> str:
    return f"{user_name}さんが部屋から退出しました"


def removed_message(user_name: str) -> str:
    """被建立者移出房間"""
    return f"{user_name}さんが部屋から削除されました"


def room_closed_message() -> str:
    return "部屋が作成者によって閉鎖されました"


def room_closed_notification(room_name: str) -> str:
    return f"「{room_name}」を閉鎖しました"


def friend_accepted_notification(user_name: str) -> str:
    return f"{user_name}さんと友達になりました"
