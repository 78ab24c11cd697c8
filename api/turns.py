"""
Meal Turn API Endpoints

職責：
1. 查詢團隊目前的輪值狀態
2. 完成輪值（選餐廳、分配司機、必要時結束 cycle）
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from uuid import UUID
import logging

from database import get_db
from schemas import (
    MealTurnResponse,
    RotationStateResponse,
    TeamResponse,
    TurnComplete,
    TurnCompleteResponse
)
from core.turn_manager import TurnManager
from core.exceptions import (
    ValidationError,
    Forbidden,
    NotFound,
    AlreadyCompleted,
    NoDriversAvailable,
    InvalidDrivers,
    CycleConflict
)
from api.dependencies import get_current_user_id

router = APIRouter(prefix="/api/teams", tags=["turns"])
logger = logging.getLogger(__name__)


@router.get("/{team_id}/rotation", response_model=RotationStateResponse)
def get_rotation(
    team_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """
    取得目前 cycle 的輪值狀態

    返回：
        - team: 團隊資訊
        - turns: 所有輪值（依 turn_order）
        - current_turn: 目前輪到的輪值（還沒排序或全部完成時為 null）
        - is_current_user: 是否輪到自己
    """
    try:
        state = TurnManager.get_rotation_state(db, team_id, user_id)
        current_turn = state["current_turn"]

        return RotationStateResponse(
            team=TeamResponse.model_validate(state["team"]),
            turns=[MealTurnResponse.model_validate(t) for t in state["turns"]],
            current_turn=MealTurnResponse.model_validate(current_turn) if current_turn else None,
            is_current_user=state["is_current_user"]
        )

    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Forbidden as e:
        raise HTTPException(status_code=403, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to get rotation: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{team_id}/turns/{turn_id}/complete", response_model=TurnCompleteResponse)
def complete_turn(
    team_id: UUID,
    turn_id: UUID,
    turn_data: TurnComplete,
    user_id: UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """
    完成輪值

    前置條件：
    - 只有輪值的主人可以完成
    - 輪值尚未完成

    司機分配：
    - drivers 省略：依歷史開車次數自動分配（開最少的優先）
    - drivers 指定：必須是有車的團隊成員，且不超過 vehicle_capacity

    返回：
        - success: True
        - cycle_completed: 這是最後一個輪值，cycle 已結束並開了新的 cycle
        - drivers: 這次的司機
    """
    try:
        turn, driver_ids, cycle_completed = TurnManager.complete_turn(
            db,
            team_id,
            turn_id,
            turn_data.restaurant_name,
            turn_data.meal_date,
            user_id,
            drivers=turn_data.drivers
        )

        return TurnCompleteResponse(
            success=True,
            cycle_completed=cycle_completed,
            drivers=driver_ids
        )

    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Forbidden:
        raise HTTPException(status_code=403, detail="Not your turn")
    except AlreadyCompleted:
        raise HTTPException(status_code=400, detail="Turn already completed")
    except (NoDriversAvailable, InvalidDrivers) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except CycleConflict as e:
        raise HTTPException(status_code=409, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to complete turn: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")
