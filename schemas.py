"""
API Request / Response Schemas（Pydantic）
"""
from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# ============ Team ============

class TeamResponse(ORMModel):
    id: UUID
    name: str
    max_members: int
    vehicle_capacity: int


# ============ Cycle / Roll ============

class CycleResponse(ORMModel):
    id: UUID
    team_id: UUID
    cycle_number: int
    started_at: datetime
    completed_at: Optional[datetime] = None
    is_active: bool


class DiceRollResponse(ORMModel):
    id: UUID
    cycle_id: UUID
    user_id: UUID
    die1: int
    die2: int
    total: int
    rolled_at: datetime


class RollSubmit(BaseModel):
    die1: int = Field(..., ge=1, le=10)
    die2: int = Field(..., ge=1, le=10)


class RollSubmitResponse(BaseModel):
    success: bool
    all_rolled: bool
    roll: DiceRollResponse


class RollStatusResponse(BaseModel):
    active_cycle: Optional[CycleResponse] = None
    user_roll: Optional[DiceRollResponse] = None
    rolled_count: int
    member_count: int
    all_rolled: bool


# ============ Meal Turn ============

class MealTurnResponse(ORMModel):
    id: UUID
    cycle_id: UUID
    user_id: UUID
    turn_order: int
    week_number: int
    restaurant_name: Optional[str] = None
    meal_date: Optional[date] = None
    is_completed: bool
    completed_at: Optional[datetime] = None


class RotationStateResponse(BaseModel):
    team: TeamResponse
    turns: List[MealTurnResponse]
    current_turn: Optional[MealTurnResponse] = None
    is_current_user: bool


class TurnComplete(BaseModel):
    restaurant_name: str = Field(..., min_length=1, max_length=255)
    meal_date: Optional[date] = None
    # None：依歷史開車次數自動分配
    drivers: Optional[List[UUID]] = None

    @field_validator("restaurant_name")
    @classmethod
    def strip_restaurant_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("restaurant_name must not be blank")
        return value


class TurnCompleteResponse(BaseModel):
    success: bool
    cycle_completed: bool
    drivers: List[UUID]


# ============ History / Summary ============

class CycleHistoryEntry(BaseModel):
    id: UUID
    cycle_number: int
    is_active: bool
    started_at: datetime
    completed_at: Optional[datetime] = None
    total_turns: int
    completed_turns: int
    restaurants: List[str]
    total_restaurants: int


class CycleHistoryResponse(BaseModel):
    cycles: List[CycleHistoryEntry]


class SummaryCycle(BaseModel):
    id: UUID
    cycle_number: int
    team_name: Optional[str] = None
    started_at: datetime
    completed_at: Optional[datetime] = None


class SummaryRestaurant(BaseModel):
    name: str
    meal_date: Optional[date] = None
    host: str


class DriverStat(BaseModel):
    driver_id: UUID
    name: str
    count: int


class CycleSummaryResponse(BaseModel):
    cycle: SummaryCycle
    restaurants: List[SummaryRestaurant]
    driver_stats: List[DriverStat]
    total_meals: int
    total_drives: int
