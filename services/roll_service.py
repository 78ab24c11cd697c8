"""
擲骰服務：記錄每位成員在每個 cycle 的擲骰結果

純記錄邏輯，不負責狀態轉換（由 RollManager 負責）
"""
from typing import Optional, Tuple
from uuid import UUID
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models import DiceRoll, utcnow
from core.exceptions import InvalidDiceValue, DuplicateRoll

logger = logging.getLogger(__name__)

DIE_MIN = 1
DIE_MAX = 10


def validate_dice(die1: int, die2: int) -> None:
    """
    檢查兩顆骰子的點數

    規則：
    - 必須是整數（bool 不算）
    - 介於 1 到 10（含）

    異常：
        InvalidDiceValue: 點數不合法
    """
    for value in (die1, die2):
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidDiceValue(f"Dice values must be integers, got {value!r}")
        if value < DIE_MIN or value > DIE_MAX:
            raise InvalidDiceValue(
                f"Dice values must be between {DIE_MIN} and {DIE_MAX}, got {value}"
            )


def get_user_roll(cycle_id: UUID, user_id: UUID, db: Session) -> Optional[DiceRoll]:
    return db.query(DiceRoll).filter(
        DiceRoll.cycle_id == cycle_id,
        DiceRoll.user_id == user_id
    ).first()


def count_rolls(cycle_id: UUID, db: Session) -> int:
    return db.query(DiceRoll).filter(DiceRoll.cycle_id == cycle_id).count()


def record_roll(cycle_id: UUID, user_id: UUID, die1: int, die2: int, db: Session) -> Tuple[DiceRoll, int]:
    """
    寫入一筆擲骰紀錄

    流程：
    1. 驗證點數
    2. 檢查是否已擲過
    3. 寫入（total = die1 + die2，rolled_at = now）

    參數：
        cycle_id: Cycle ID
        user_id: 成員 ID
        die1, die2: 骰子點數
        db: SQLAlchemy Session

    返回：
        (DiceRoll, 寫入後這個 cycle 的擲骰總數) tuple
        呼叫者拿擲骰總數跟成員數比較，決定是否觸發排序

    異常：
        InvalidDiceValue: 點數不合法
        DuplicateRoll: 已擲過（先查詢，最後由 unique constraint 把關）

    注意：
        只 flush 不 commit，交由外層 transaction 處理
    """
    validate_dice(die1, die2)

    if get_user_roll(cycle_id, user_id, db):
        raise DuplicateRoll(f"User {user_id} already rolled in cycle {cycle_id}")

    roll = DiceRoll(
        cycle_id=cycle_id,
        user_id=user_id,
        die1=die1,
        die2=die2,
        total=die1 + die2,
        rolled_at=utcnow()
    )
    db.add(roll)
    try:
        db.flush()
    except IntegrityError as e:
        # 兩個請求同時通過上面的檢查，第二筆被 uq_dice_rolls_cycle_user 擋下
        raise DuplicateRoll(f"User {user_id} already rolled in cycle {cycle_id}") from e

    logger.info(f"Recorded roll {die1}+{die2}={roll.total} for user {user_id} in cycle {cycle_id}")
    return roll, count_rolls(cycle_id, db)


def is_complete(cycle_id: UUID, team_member_count: int, db: Session) -> bool:
    """
    檢查是否所有成員都擲過骰子

    邏輯：
        擲骰數 == 成員數（用等號而不是 >=）

    參數：
        cycle_id: Cycle ID
        team_member_count: 團隊目前的成員數
        db: SQLAlchemy Session
    """
    return count_rolls(cycle_id, db) == team_member_count
