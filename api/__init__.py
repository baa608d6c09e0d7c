"""
API 層

FastAPI routers，全部以目前的使用者（Identity）身分操作 engine：
- rooms：房間、聊天
- friends：好友請求、好友、群組
- stats：努力統計、使用額度
- users：個人資料
"""
