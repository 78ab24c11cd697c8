"""
資料模型（SQLAlchemy ORM）

表格關係：
- Team 1 - N TeamMember（TeamMember 連到 User）
- Team 1 - N Cycle
- Cycle 1 - N DiceRoll / MealTurn（cascade 刪除）
- MealTurn 1 - N VehicleAssignment（cascade 刪除）
- EventLog：輪值狀態轉換的流水帳

唯一性約束都放在資料庫層，不靠應用程式慣例：
- 每個團隊最多一個 is_active 的 Cycle（partial unique index）
- 每個 Cycle 每位成員只有一筆 DiceRoll
- 每個 Cycle 的 turn_order 不重複
"""
from datetime import datetime, timezone
import uuid

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    UniqueConstraint,
    Uuid,
    text,
)
from sqlalchemy.orm import relationship

from database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """使用者 profile（只用於顯示名稱，身份驗證由外部負責）"""
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String(255), nullable=False, unique=True)
    full_name = Column(String(255), nullable=True)
    is_admin = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class Team(Base):
    __tablename__ = "teams"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    max_members = Column(Integer, nullable=False)
    # 每次聚餐需要幾位司機
    vehicle_capacity = Column(Integer, nullable=False, default=1)
    created_by = Column(Uuid, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    members = relationship("TeamMember", back_populates="team", cascade="all, delete-orphan")
    cycles = relationship("Cycle", back_populates="team", cascade="all, delete-orphan")


class TeamMember(Base):
    __tablename__ = "team_members"
    __table_args__ = (
        UniqueConstraint("team_id", "user_id", name="uq_team_members_team_user"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    team_id = Column(Uuid, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    has_car = Column(Boolean, nullable=False, default=False)
    joined_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    team = relationship("Team", back_populates="members")
    user = relationship("User")


class Cycle(Base):
    """一輪完整的輪值：從第一位成員擲骰到最後一個 MealTurn 完成"""
    __tablename__ = "cycles"
    __table_args__ = (
        UniqueConstraint("team_id", "cycle_number", name="uq_cycles_team_number"),
        Index(
            "uq_cycles_one_active_per_team",
            "team_id",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    team_id = Column(Uuid, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True)
    cycle_number = Column(Integer, nullable=False)
    started_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    team = relationship("Team", back_populates="cycles")
    dice_rolls = relationship("DiceRoll", back_populates="cycle", cascade="all, delete-orphan")
    meal_turns = relationship(
        "MealTurn",
        back_populates="cycle",
        cascade="all, delete-orphan",
        order_by="MealTurn.turn_order"
    )


class DiceRoll(Base):
    """擲骰紀錄，寫入後不可修改"""
    __tablename__ = "dice_rolls"
    __table_args__ = (
        UniqueConstraint("cycle_id", "user_id", name="uq_dice_rolls_cycle_user"),
        CheckConstraint("die1 BETWEEN 1 AND 10", name="ck_dice_rolls_die1"),
        CheckConstraint("die2 BETWEEN 1 AND 10", name="ck_dice_rolls_die2"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    cycle_id = Column(Uuid, ForeignKey("cycles.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=False)
    die1 = Column(Integer, nullable=False)
    die2 = Column(Integer, nullable=False)
    total = Column(Integer, nullable=False)
    rolled_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    cycle = relationship("Cycle", back_populates="dice_rolls")
    user = relationship("User")


class MealTurn(Base):
    __tablename__ = "meal_turns"
    __table_args__ = (
        UniqueConstraint("cycle_id", "turn_order", name="uq_meal_turns_cycle_order"),
        UniqueConstraint("cycle_id", "user_id", name="uq_meal_turns_cycle_user"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    cycle_id = Column(Uuid, ForeignKey("cycles.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=False)
    turn_order = Column(Integer, nullable=False)
    week_number = Column(Integer, nullable=False)
    restaurant_name = Column(String(255), nullable=True)
    meal_date = Column(Date, nullable=True)
    is_completed = Column(Boolean, nullable=False, default=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    cycle = relationship("Cycle", back_populates="meal_turns")
    user = relationship("User")
    vehicle_assignments = relationship(
        "VehicleAssignment",
        back_populates="meal_turn",
        cascade="all, delete-orphan"
    )


class VehicleAssignment(Base):
    __tablename__ = "vehicle_assignments"
    __table_args__ = (
        UniqueConstraint("meal_turn_id", "driver_id", name="uq_vehicle_assignments_turn_driver"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    meal_turn_id = Column(Uuid, ForeignKey("meal_turns.id", ondelete="CASCADE"), nullable=False, index=True)
    driver_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    meal_turn = relationship("MealTurn", back_populates="vehicle_assignments")
    driver = relationship("User")


class EventLog(Base):
    __tablename__ = "event_logs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    team_id = Column(Uuid, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True)
    cycle_id = Column(Uuid, nullable=True)
    event_type = Column(String(50), nullable=False)
    data = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
