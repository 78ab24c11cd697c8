"""
Cycle Manager：管理 Cycle 的完整生命週期

職責：
1. 查詢團隊目前的 active cycle
2. 第一次擲骰時建立 cycle
3. 最後一個輪值完成時結束 cycle，並立即開下一個

規則：
- 每個團隊同時最多一個 active cycle（由 partial unique index 保證）
- cycle_number 從 1 開始，每個團隊各自遞增
- 結束與開新 cycle 是同一個轉換，團隊第一次擲骰後永遠至少有一個 cycle

這裡的方法都只 flush，不 commit，
由呼叫者（RollManager / TurnManager）的 @transactional 統一處理。
"""
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from uuid import UUID
from typing import List, Optional
import logging

from models import Cycle, EventLog, utcnow
from core.locks import with_cycle_lock
from core.exceptions import (
    CycleNotFound,
    CycleConflict,
    InvalidStateTransition
)

logger = logging.getLogger(__name__)


class CycleManager:
    """Cycle 生命週期管理器"""

    @staticmethod
    def find_active_cycle(db: Session, team_id: UUID) -> Optional[Cycle]:
        """
        取得團隊目前的 active cycle

        返回：
            Cycle 或 None（團隊還沒有人擲過骰子）
        """
        return db.query(Cycle).filter(
            Cycle.team_id == team_id,
            Cycle.is_active == True
        ).first()

    @staticmethod
    def next_cycle_number(db: Session, team_id: UUID) -> int:
        """團隊下一個 cycle 的編號：現有最大編號 + 1（沒有則為 1）"""
        last_number = db.query(func.max(Cycle.cycle_number)).filter(
            Cycle.team_id == team_id
        ).scalar()
        return (last_number or 0) + 1

    @staticmethod
    def _open_cycle(db: Session, team_id: UUID) -> Cycle:
        """
        建立新的 active cycle（內部使用）

        異常：
            CycleConflict: 另一個請求已經建立了 active cycle
        """
        cycle_number = CycleManager.next_cycle_number(db, team_id)
        cycle = Cycle(
            team_id=team_id,
            cycle_number=cycle_number,
            started_at=utcnow(),
            is_active=True
        )
        db.add(cycle)
        try:
            db.flush()  # 取得 cycle.id，並讓 unique index 立即檢查
        except IntegrityError as e:
            raise CycleConflict(
                f"Another active cycle was created concurrently for team {team_id}"
            ) from e

        db.add(EventLog(
            team_id=team_id,
            cycle_id=cycle.id,
            event_type="CYCLE_STARTED",
            data={"cycle_number": cycle_number}
        ))

        logger.info(f"Started cycle #{cycle_number} ({cycle.id}) for team {team_id}")
        return cycle

    @staticmethod
    def get_or_create_active_cycle(db: Session, team_id: UUID) -> Cycle:
        """
        取得 active cycle，沒有就建立一個

        前置條件：
            呼叫者已經用 with_team_lock 鎖住團隊

        參數：
            db: SQLAlchemy Session
            team_id: Team UUID

        返回：
            active Cycle

        異常：
            CycleConflict: 並發建立時輸掉的那一方
        """
        cycle = CycleManager.find_active_cycle(db, team_id)
        if cycle:
            return cycle
        return CycleManager._open_cycle(db, team_id)

    @staticmethod
    def complete_cycle(db: Session, cycle_id: UUID) -> Cycle:
        """
        結束 cycle，並立即開下一個

        流程：
        1. 鎖定並檢查 cycle
        2. is_active=False、completed_at=now
        3. 建立下一個 cycle（cycle_number + 1，沒有任何擲骰）
        4. 記錄事件

        參數：
            db: SQLAlchemy Session
            cycle_id: 要結束的 Cycle UUID

        返回：
            新開的 Cycle

        異常：
            CycleNotFound: Cycle 不存在
            InvalidStateTransition: Cycle 已經結束
        """
        cycle = with_cycle_lock(cycle_id, db).first()
        if not cycle:
            raise CycleNotFound(cycle_id)

        if not cycle.is_active:
            raise InvalidStateTransition(f"Cycle {cycle_id} is already completed")

        cycle.is_active = False
        cycle.completed_at = utcnow()
        # 先寫入 is_active=False，新 cycle 才不會撞到 unique index
        db.flush()

        db.add(EventLog(
            team_id=cycle.team_id,
            cycle_id=cycle.id,
            event_type="CYCLE_COMPLETED",
            data={"cycle_number": cycle.cycle_number}
        ))
        logger.info(f"Completed cycle #{cycle.cycle_number} ({cycle.id}) for team {cycle.team_id}")

        return CycleManager._open_cycle(db, cycle.team_id)

    @staticmethod
    def get_cycle_by_id(db: Session, cycle_id: UUID) -> Cycle:
        """
        異常：
            CycleNotFound: Cycle 不存在
        """
        cycle = db.query(Cycle).filter(Cycle.id == cycle_id).first()
        if not cycle:
            raise CycleNotFound(cycle_id)
        return cycle

    @staticmethod
    def list_cycles(db: Session, team_id: UUID) -> List[Cycle]:
        """團隊所有 cycle，新的在前"""
        return db.query(Cycle).filter(
            Cycle.team_id == team_id
        ).order_by(Cycle.cycle_number.desc()).all()

    @staticmethod
    def get_last_completed_cycle(db: Session, team_id: UUID) -> Optional[Cycle]:
        return db.query(Cycle).filter(
            Cycle.team_id == team_id,
            Cycle.is_active == False
        ).order_by(Cycle.completed_at.desc(), Cycle.cycle_number.desc()).first()
