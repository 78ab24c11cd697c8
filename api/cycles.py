"""
Cycle History API Endpoints

唯讀的歷史與總結查詢，只有團隊成員可以看
"""
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from uuid import UUID
from typing import Optional
import logging

from database import get_db
from schemas import CycleHistoryResponse, CycleSummaryResponse
from core.cycle_manager import CycleManager
from core.exceptions import Forbidden, NotFound
from services import team_service
from services.summary_service import get_cycle_history, get_cycle_summary
from api.dependencies import get_current_user_id

router = APIRouter(prefix="/api/teams", tags=["cycles"])
logger = logging.getLogger(__name__)


@router.get("/{team_id}/cycles", response_model=CycleHistoryResponse)
def list_cycles(
    team_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """
    取得團隊所有 cycle 的統計（新的在前）

    返回：
        每個 cycle 的輪值數、完成數、前三家餐廳、餐廳總數
    """
    try:
        team_service.get_team(team_id, db)
        team_service.require_member(team_id, user_id, db)

        cycles = CycleManager.list_cycles(db, team_id)
        return CycleHistoryResponse(cycles=get_cycle_history(cycles, db))

    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Forbidden:
        raise HTTPException(status_code=403, detail="Not a team member")
    except Exception as e:
        logger.error(f"Failed to list cycles: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/{team_id}/cycles/summary", response_model=CycleSummaryResponse)
def cycle_summary(
    team_id: UUID,
    cycle_id: Optional[UUID] = Query(None),
    user_id: UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """
    取得一個 cycle 的總結

    參數：
        cycle_id: 指定 cycle（省略時使用最近一個已結束的 cycle）

    返回：
        - cycle: cycle 資訊
        - restaurants: 餐廳、日期、主辦人
        - driver_stats: 每位司機的開車次數（多的在前）
        - total_meals / total_drives
    """
    try:
        team_service.get_team(team_id, db)
        team_service.require_member(team_id, user_id, db)

        if cycle_id is None:
            cycle = CycleManager.get_last_completed_cycle(db, team_id)
            if not cycle:
                raise HTTPException(status_code=404, detail="No completed cycles found")
        else:
            cycle = CycleManager.get_cycle_by_id(db, cycle_id)
            if cycle.team_id != team_id:
                raise HTTPException(status_code=404, detail="Cycle not found")

        return CycleSummaryResponse(**get_cycle_summary(cycle, db))

    except HTTPException:
        raise
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Forbidden:
        raise HTTPException(status_code=403, detail="Not a team member")
    except Exception as e:
        logger.error(f"Failed to get cycle summary: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")
