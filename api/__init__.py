"""
API 層

這個 package 只負責 HTTP 轉換，業務邏輯全部在 core/ 和 services/：
- rolls：擲骰
- turns：輪值狀態、完成輪值
- cycles：歷史與總結
"""
