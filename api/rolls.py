"""
Dice Roll API Endpoints

職責：
1. 成員擲骰（最後一位擲完時自動排出輪值順序）
2. 查詢自己在目前 cycle 的擲骰狀態
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from uuid import UUID
import logging

from database import get_db
from schemas import (
    CycleResponse,
    DiceRollResponse,
    RollSubmit,
    RollSubmitResponse,
    RollStatusResponse
)
from core.roll_manager import RollManager
from core.exceptions import (
    ValidationError,
    Forbidden,
    NotFound,
    DuplicateRoll,
    RotationInProgress,
    CycleConflict
)
from api.dependencies import get_current_user_id

router = APIRouter(prefix="/api/teams", tags=["rolls"])
logger = logging.getLogger(__name__)


@router.post("/{team_id}/rolls", response_model=RollSubmitResponse)
def submit_roll(
    team_id: UUID,
    roll_data: RollSubmit,
    user_id: UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """
    擲骰

    前置條件：
    - 使用者必須是團隊成員
    - 這個 cycle 還沒擲過、順序還沒排好

    流程：
    1. RollManager.submit_roll()（建立 cycle、寫入擲骰、必要時排序，都在同一個 transaction）
    2. 返回是否全員擲完

    返回：
        - success: True
        - all_rolled: 全員擲完，輪值順序已決定
    """
    try:
        roll, all_rolled = RollManager.submit_roll(
            db, team_id, user_id, roll_data.die1, roll_data.die2
        )
        return RollSubmitResponse(
            success=True,
            all_rolled=all_rolled,
            roll=DiceRollResponse.model_validate(roll)
        )

    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Forbidden as e:
        raise HTTPException(status_code=403, detail=str(e))
    except DuplicateRoll:
        raise HTTPException(status_code=400, detail="You have already rolled in this cycle")
    except RotationInProgress as e:
        raise HTTPException(status_code=400, detail=str(e))
    except CycleConflict as e:
        raise HTTPException(status_code=409, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to submit roll: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/{team_id}/rolls/me", response_model=RollStatusResponse)
def get_roll_status(
    team_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """
    查詢自己在目前 cycle 的擲骰狀態

    返回：
        - active_cycle: 目前的 cycle（團隊還沒人擲過時為 null）
        - user_roll: 自己的擲骰（還沒擲時為 null）
        - rolled_count / member_count: 擲骰進度
        - all_rolled: 是否全員擲完
    """
    try:
        status = RollManager.get_roll_status(db, team_id, user_id)
        cycle = status["active_cycle"]
        user_roll = status["user_roll"]

        return RollStatusResponse(
            active_cycle=CycleResponse.model_validate(cycle) if cycle else None,
            user_roll=DiceRollResponse.model_validate(user_roll) if user_roll else None,
            rolled_count=status["rolled_count"],
            member_count=status["member_count"],
            all_rolled=status["all_rolled"]
        )

    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Forbidden as e:
        raise HTTPException(status_code=403, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to get roll status: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")
