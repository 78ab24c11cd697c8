"""
核心業務邏輯層

這個 package 包含所有狀態轉換，包括：
- CycleManager：管理 Cycle 的生命週期（建立、結束、開下一輪）
- RollManager：擲骰與全員到齊時的排序
- TurnManager：完成輪值、分配司機
- Locks：並發控制工具
"""
