"""
服務層

這個 package 包含純計算邏輯，不負責狀態轉換：
- PeriodService：統計期間判斷
- StatsService：努力時間彙總
- MessageService：系統訊息文字
- SeedService：範例房間
"""
