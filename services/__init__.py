"""
服務層

這個 package 包含計算與查詢邏輯，不負責狀態轉換：
- roll_service：擲骰紀錄
- sequencing_service：依擲骰結果排出輪值順序
- driver_service：司機分配
- team_service：團隊目錄（唯讀）
- summary_service：歷史與總結
"""
