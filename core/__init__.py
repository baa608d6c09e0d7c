"""
核心業務邏輯層

這個 package 包含所有有狀態的元件，包括：
- RoomManager：房間生命週期（建立、加入、離開、關閉）
- SessionTracker：努力記錄與統計
- FriendGraph：好友請求、好友、群組
- FeatureLimiter：免費版額度
- ChatLog：聊天與系統訊息
- Locks：單一寫入者的並發控制
- EffortEngine：組裝以上元件並負責持久化
"""
