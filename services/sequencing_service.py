"""
排序服務：把一組完整的擲骰結果轉成輪值順序

排序規則（決定性，不含任何隨機）：
1. total 由大到小
2. die1 由大到小
3. rolled_at 由早到晚（先擲先贏）
4. user_id 字串由小到大（前三項完全相同時仍保證結果固定）

隨機性只存在於骰子點數本身，排序階段完全可重現。
"""
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Tuple
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from models import DiceRoll, MealTurn
from core.exceptions import TurnsAlreadyCreated

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    # SQLite 讀回來的時間沒有 tzinfo
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def roll_sort_key(roll) -> Tuple[int, int, datetime, str]:
    """
    擲骰排序用的 key

    參數：
        roll: 任何有 total、die1、rolled_at、user_id 屬性的物件

    範例：
        A: total=15, die1=8, 10:00:05
        B: total=15, die1=8, 10:00:01
        C: total=12
        sorted([A, B, C], key=roll_sort_key) -> [B, A, C]
    """
    return (-roll.total, -roll.die1, _as_utc(roll.rolled_at), str(roll.user_id))


def rank_rolls(rolls: Iterable) -> List:
    """回傳依名次排序的擲骰（第 1 名在最前面）"""
    return sorted(rolls, key=roll_sort_key)


def turns_already_created(cycle_id: UUID, db: Session) -> bool:
    """
    檢查 cycle 是否已經產生過 MealTurn

    用途：
        防止重複排序，也用來判斷擲骰階段是否已結束
    """
    return db.query(MealTurn.id).filter(MealTurn.cycle_id == cycle_id).first() is not None


def create_meal_turns(cycle_id: UUID, db: Session) -> List[MealTurn]:
    """
    依擲骰名次建立整個 cycle 的 MealTurn

    流程：
    1. 取出 cycle 的所有擲骰
    2. 依 roll_sort_key 排序
    3. turn_order = week_number = 名次（1 起算）
    4. 一次寫入所有 MealTurn（is_completed=False）

    參數：
        cycle_id: Cycle ID
        db: SQLAlchemy Session

    返回：
        依 turn_order 排序的 MealTurn 列表

    異常：
        TurnsAlreadyCreated: 這個 cycle 已經排過了

    注意：
        只在「最後一位成員擲完」的那次請求內呼叫一次，
        並且與寫入擲骰在同一個 transaction
    """
    if turns_already_created(cycle_id, db):
        raise TurnsAlreadyCreated(f"Meal turns already created for cycle {cycle_id}")

    rolls = db.query(DiceRoll).filter(DiceRoll.cycle_id == cycle_id).all()
    ranked = rank_rolls(rolls)

    turns = []
    for rank, roll in enumerate(ranked, start=1):
        turn = MealTurn(
            cycle_id=cycle_id,
            user_id=roll.user_id,
            turn_order=rank,
            week_number=rank,
            is_completed=False
        )
        db.add(turn)
        turns.append(turn)

    db.flush()  # 交由外層 transaction 處理 commit

    logger.info(
        f"Created {len(turns)} meal turns for cycle {cycle_id}: "
        f"{[str(t.user_id) for t in turns]}"
    )
    return turns


def get_turns(cycle_id: UUID, db: Session) -> List[MealTurn]:
    return db.query(MealTurn).filter(
        MealTurn.cycle_id == cycle_id
    ).order_by(MealTurn.turn_order).all()


def get_current_turn(cycle_id: UUID, db: Session) -> Optional[MealTurn]:
    """
    取得目前輪到的 MealTurn

    定義：
        turn_order 最小且 is_completed=False 的那一筆

    返回：
        MealTurn，或 None（全部完成，或尚未排序）
    """
    return db.query(MealTurn).filter(
        MealTurn.cycle_id == cycle_id,
        MealTurn.is_completed == False
    ).order_by(MealTurn.turn_order).first()


def all_turns_completed(cycle_id: UUID, db: Session) -> bool:
    """
    檢查 cycle 內是否所有 MealTurn 都完成了

    沒有任何 MealTurn 的 cycle 視為未完成
    """
    total = db.query(MealTurn).filter(MealTurn.cycle_id == cycle_id).count()
    if total == 0:
        return False
    pending = db.query(MealTurn).filter(
        MealTurn.cycle_id == cycle_id,
        MealTurn.is_completed == False
    ).count()
    return pending == 0
