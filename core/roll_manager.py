"""
Roll Manager：處理成員擲骰，並在全員到齊時排出輪值順序

流程（同一個 transaction、同一把團隊鎖內）：
1. 鎖定團隊，確認使用者是成員
2. 取得或建立 active cycle
3. 順序已排好 → 拒絕
4. 交給 roll_service.record_roll 驗證點數、檢查重複並寫入
5. 擲骰數 == 成員數 → 觸發排序，一次建立所有 MealTurn

「全員到齊」是一個轉換邊緣，只會在最後一筆擲骰的請求內發生一次，
不是每次查詢時輪詢。
"""
from sqlalchemy.orm import Session
from uuid import UUID
from typing import Any, Dict, Tuple
import logging

from models import DiceRoll, EventLog
from core.cycle_manager import CycleManager
from core.locks import with_team_lock
from core.exceptions import TeamNotFound, RotationInProgress
from services import roll_service, sequencing_service, team_service
from database import transactional

logger = logging.getLogger(__name__)


class RollManager:
    """擲骰流程管理器"""

    @staticmethod
    @transactional
    def submit_roll(db: Session, team_id: UUID, user_id: UUID, die1: int, die2: int) -> Tuple[DiceRoll, bool]:
        """
        成員擲骰

        參數：
            db: SQLAlchemy Session
            team_id: Team UUID
            user_id: 擲骰的成員
            die1, die2: 骰子點數（1-10）

        返回：
            (DiceRoll, all_rolled) tuple
            all_rolled=True 表示這一筆是最後一位，MealTurn 已經建立

        異常：
            InvalidDiceValue: 點數不合法（整個 transaction rollback，不留任何寫入）
            TeamNotFound: 團隊不存在
            NotTeamMember: 使用者不是成員
            RotationInProgress: 這個 cycle 已經排好順序
            DuplicateRoll: 已經擲過
            CycleConflict: 並發建立 cycle 時輸掉
        """
        # 1. 鎖定團隊並檢查成員資格
        team = with_team_lock(team_id, db).first()
        if not team:
            raise TeamNotFound(team_id)
        team_service.require_member(team_id, user_id, db)

        # 2. 取得或建立 active cycle
        cycle = CycleManager.get_or_create_active_cycle(db, team_id)

        # 3. 順序排好之後（例如新成員晚加入）要等下一個 cycle
        if sequencing_service.turns_already_created(cycle.id, db):
            raise RotationInProgress(
                f"Turn order for cycle #{cycle.cycle_number} is already decided"
            )

        # 4. 寫入擲骰（點數驗證與重複檢查都在 record_roll 內）
        roll, roll_count = roll_service.record_roll(cycle.id, user_id, die1, die2, db)

        db.add(EventLog(
            team_id=team_id,
            cycle_id=cycle.id,
            event_type="ROLL_RECORDED",
            data={"user_id": str(user_id), "die1": die1, "die2": die2, "total": roll.total}
        ))

        # 5. 全員到齊 → 排序
        member_count = team_service.get_member_count(team_id, db)
        all_rolled = roll_count == member_count

        if all_rolled:
            turns = sequencing_service.create_meal_turns(cycle.id, db)
            db.add(EventLog(
                team_id=team_id,
                cycle_id=cycle.id,
                event_type="TURNS_SEQUENCED",
                data={"order": [str(t.user_id) for t in turns]}
            ))
            logger.info(
                f"All {member_count} members rolled in cycle #{cycle.cycle_number} "
                f"for team {team_id}, turn order decided"
            )
        else:
            logger.info(
                f"{roll_count}/{member_count} members rolled in cycle #{cycle.cycle_number} "
                f"for team {team_id}"
            )

        return roll, all_rolled

    @staticmethod
    def get_roll_status(db: Session, team_id: UUID, user_id: UUID) -> Dict[str, Any]:
        """
        查詢使用者在目前 cycle 的擲骰狀態

        返回：
            - active_cycle: Cycle 或 None
            - user_roll: DiceRoll 或 None
            - rolled_count: 已擲骰人數
            - member_count: 成員數
            - all_rolled: 是否全員擲完（順序已決定）

        異常：
            TeamNotFound: 團隊不存在
            NotTeamMember: 使用者不是成員
        """
        team_service.get_team(team_id, db)
        team_service.require_member(team_id, user_id, db)

        member_count = team_service.get_member_count(team_id, db)
        cycle = CycleManager.find_active_cycle(db, team_id)
        if not cycle:
            return {
                "active_cycle": None,
                "user_roll": None,
                "rolled_count": 0,
                "member_count": member_count,
                "all_rolled": False,
            }

        return {
            "active_cycle": cycle,
            "user_roll": roll_service.get_user_roll(cycle.id, user_id, db),
            "rolled_count": roll_service.count_rolls(cycle.id, db),
            "member_count": member_count,
            "all_rolled": roll_service.is_complete(cycle.id, member_count, db),
        }
