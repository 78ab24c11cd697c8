"""
Turn Manager：處理「完成輪值」以及查詢輪值狀態

完成輪值的流程（同一個 transaction、同一把團隊鎖內）：
1. 找到 MealTurn（必須屬於這個團隊）
2. 只有輪值的主人可以完成
3. 已完成的輪值不能再完成
4. 條件式更新：UPDATE ... WHERE id=X AND is_completed=false
5. 分配司機（預設自動分配；呼叫端也可指定名單，但會被驗證）
6. 全部輪值完成 → 結束 cycle 並開新 cycle

任何一步失敗都會整個 rollback，不會留下「有餐廳、沒司機」的輪值。
"""
from sqlalchemy.orm import Session
from uuid import UUID
from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Tuple
import logging

from models import Cycle, EventLog, MealTurn, utcnow
from core.cycle_manager import CycleManager
from core.locks import with_team_lock
from core.exceptions import (
    TeamNotFound,
    TurnNotFound,
    Forbidden,
    AlreadyCompleted,
    ValidationError
)
from services import driver_service, sequencing_service, team_service
from database import transactional

logger = logging.getLogger(__name__)


class TurnManager:
    """輪值完成流程管理器"""

    @staticmethod
    def get_turn_for_team(db: Session, team_id: UUID, turn_id: UUID) -> MealTurn:
        """
        取得屬於某團隊的 MealTurn

        異常：
            TurnNotFound: 不存在，或屬於別的團隊
        """
        turn = db.query(MealTurn).join(
            Cycle, MealTurn.cycle_id == Cycle.id
        ).filter(
            MealTurn.id == turn_id,
            Cycle.team_id == team_id
        ).first()
        if not turn:
            raise TurnNotFound(turn_id)
        return turn

    @staticmethod
    @transactional
    def complete_turn(
        db: Session,
        team_id: UUID,
        turn_id: UUID,
        restaurant_name: str,
        meal_date: Optional[date],
        requesting_user_id: UUID,
        drivers: Optional[Sequence[UUID]] = None
    ) -> Tuple[MealTurn, List[UUID], bool]:
        """
        完成輪值

        參數：
            db: SQLAlchemy Session
            team_id: Team UUID
            turn_id: MealTurn UUID
            restaurant_name: 選定的餐廳
            meal_date: 聚餐日期（可為 None）
            requesting_user_id: 發出請求的使用者
            drivers: None 表示自動分配；否則為指定的司機 user_id 列表

        返回：
            (MealTurn, 司機 user_id 列表, cycle_completed) tuple

        異常：
            ValidationError: 餐廳名稱為空
            TeamNotFound: 團隊不存在
            TurnNotFound: 輪值不存在或不屬於這個團隊
            Forbidden: 不是輪值的主人
            AlreadyCompleted: 輪值已經完成
            NoDriversAvailable: 自動分配時沒有任何有車成員
            InvalidDrivers: 指定的司機名單不合法
        """
        restaurant_name = (restaurant_name or "").strip()
        if not restaurant_name:
            raise ValidationError("Restaurant name is required")

        # 1. 鎖定團隊，找到輪值
        team = with_team_lock(team_id, db).first()
        if not team:
            raise TeamNotFound(team_id)

        turn = TurnManager.get_turn_for_team(db, team_id, turn_id)

        # 2. 只有主人可以完成
        if turn.user_id != requesting_user_id:
            raise Forbidden(f"Meal turn {turn_id} does not belong to user {requesting_user_id}")

        # 3. 已完成
        if turn.is_completed:
            raise AlreadyCompleted(f"Meal turn {turn_id} is already completed")

        # 4. 條件式更新，關掉「檢查」與「寫入」之間的競態
        updated = db.query(MealTurn).filter(
            MealTurn.id == turn_id,
            MealTurn.is_completed == False
        ).update({
            MealTurn.restaurant_name: restaurant_name,
            MealTurn.meal_date: meal_date,
            MealTurn.is_completed: True,
            MealTurn.completed_at: utcnow(),
        }, synchronize_session="fetch")
        if updated == 0:
            raise AlreadyCompleted(f"Meal turn {turn_id} is already completed")

        # 5. 分配司機
        car_owner_ids = team_service.get_car_owner_ids(team_id, db)
        vehicle_capacity = team_service.get_vehicle_capacity(team)

        if drivers is None:
            drive_counts = driver_service.get_drive_counts(car_owner_ids, db)
            driver_ids = driver_service.select_drivers(car_owner_ids, drive_counts, vehicle_capacity)
        else:
            driver_ids = driver_service.validate_drivers(list(drivers), car_owner_ids, vehicle_capacity)

        driver_service.assign_drivers(turn, driver_ids, db)

        db.add(EventLog(
            team_id=team_id,
            cycle_id=turn.cycle_id,
            event_type="TURN_COMPLETED",
            data={
                "turn_id": str(turn.id),
                "turn_order": turn.turn_order,
                "restaurant_name": restaurant_name,
                "drivers": [str(d) for d in driver_ids],
                "auto_assigned": drivers is None,
            }
        ))

        logger.info(
            f"Turn #{turn.turn_order} ({turn.id}) completed by {requesting_user_id} "
            f"at {restaurant_name!r}"
        )

        # 6. 全部完成 → 結束 cycle
        cycle_completed = sequencing_service.all_turns_completed(turn.cycle_id, db)
        if cycle_completed:
            CycleManager.complete_cycle(db, turn.cycle_id)

        return turn, driver_ids, cycle_completed

    @staticmethod
    def get_rotation_state(db: Session, team_id: UUID, user_id: UUID) -> Dict[str, Any]:
        """
        查詢團隊目前的輪值狀態

        返回：
            - team: Team
            - turns: 目前 cycle 的 MealTurn（依 turn_order）
            - current_turn: 目前輪到的 MealTurn 或 None
            - is_current_user: 是否輪到發出請求的使用者

        異常：
            TeamNotFound: 團隊不存在
            NotTeamMember: 使用者不是成員
        """
        team = team_service.get_team(team_id, db)
        team_service.require_member(team_id, user_id, db)

        cycle = CycleManager.find_active_cycle(db, team_id)
        if not cycle:
            return {"team": team, "turns": [], "current_turn": None, "is_current_user": False}

        turns = sequencing_service.get_turns(cycle.id, db)
        current_turn = sequencing_service.get_current_turn(cycle.id, db)

        return {
            "team": team,
            "turns": turns,
            "current_turn": current_turn,
            "is_current_user": current_turn is not None and current_turn.user_id == user_id,
        }
