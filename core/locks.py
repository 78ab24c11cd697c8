"""
並發控制工具

提供 Database-level 的鎖定機制，防止競態條件（Race Condition）

主要使用 PostgreSQL 的 SELECT ... FOR UPDATE 來實現悲觀鎖（Pessimistic Locking）。
SQLite 會忽略 FOR UPDATE，但 SQLite 本身一次只允許一個 writer。
"""
from sqlalchemy.orm import Session, Query
from uuid import UUID

from models import Team, Cycle


def with_team_lock(team_id: UUID, db: Session) -> Query:
    """
    鎖定一個 Team（行級鎖）

    使用場景：
    - 擲骰：建立 cycle、寫入 roll、判斷是否全員擲完、產生 MealTurn
    - 完成輪值：更新 MealTurn、分配司機、結束 cycle 並開新 cycle

    同一個團隊的所有輪值寫入都先拿這把鎖，
    兩位成員同時擲骰時只會有一個請求看到「全員到齊」。

    範例：
        team = with_team_lock(team_id, db).first()
        if not team:
            raise TeamNotFound(team_id)

    參數：
        team_id: Team 的 UUID
        db: SQLAlchemy Session

    返回：
        Query object（需要呼叫 .first() 或 .one() 來取得結果）

    注意：
        - nowait=False 表示如果鎖被佔用，會等待
        - 必須在 transaction 內使用（確保有 commit 或 rollback）
    """
    return db.query(Team).filter(
        Team.id == team_id
    ).with_for_update(nowait=False)


def with_cycle_lock(cycle_id: UUID, db: Session) -> Query:
    """
    鎖定一個 Cycle（行級鎖）

    使用場景：
    - 結束 cycle 時，確保不會被重複結束

    參數：
        cycle_id: Cycle 的 UUID
        db: SQLAlchemy Session

    返回：
        Query object（需要呼叫 .first() 或 .one() 來取得結果）
    """
    return db.query(Cycle).filter(
        Cycle.id == cycle_id
    ).with_for_update(nowait=False)
