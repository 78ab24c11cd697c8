"""
司機分配服務：從有車成員中挑出這次聚餐的司機

策略：貪婪的「最少開車者優先」
- 依歷史開車次數（所有 cycle、所有輪值）由少到多排序
- 次數相同時依 user_id 字串排序，讓結果固定
- 取前 min(vehicle_capacity, 有車人數) 位

沒有前瞻也沒有重新平衡，只保證每次分配當下不會讓差距變大。
"""
from typing import Dict, Iterable, List, Sequence
from uuid import UUID
import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from models import MealTurn, VehicleAssignment
from core.exceptions import NoDriversAvailable, InvalidDrivers

logger = logging.getLogger(__name__)


def get_drive_counts(driver_ids: Iterable[UUID], db: Session) -> Dict[UUID, int]:
    """
    計算每位司機的歷史開車次數

    參數：
        driver_ids: 要計算的司機 user_id
        db: SQLAlchemy Session

    返回：
        {driver_id: 次數}，沒開過車的人為 0
    """
    driver_ids = list(driver_ids)
    counts = {driver_id: 0 for driver_id in driver_ids}
    if not driver_ids:
        return counts

    rows = db.query(
        VehicleAssignment.driver_id,
        func.count(VehicleAssignment.id)
    ).filter(
        VehicleAssignment.driver_id.in_(driver_ids)
    ).group_by(VehicleAssignment.driver_id).all()

    for driver_id, count in rows:
        counts[driver_id] = count
    return counts


def select_drivers(
    car_owner_ids: Sequence[UUID],
    drive_counts: Dict[UUID, int],
    vehicle_capacity: int
) -> List[UUID]:
    """
    選出這次的司機（純計算，不碰資料庫）

    參數：
        car_owner_ids: 有車成員的 user_id
        drive_counts: 歷史開車次數（缺少的視為 0）
        vehicle_capacity: 需要幾位司機

    返回：
        被選中的 user_id，開車次數少的在前

    異常：
        NoDriversAvailable: 沒有任何有車成員

    範例：
        car_owner_ids = [X, Y, Z]
        drive_counts = {X: 3, Y: 1, Z: 1}
        select_drivers(..., vehicle_capacity=2) -> [Y, Z]（依 user_id 決定 Y/Z 先後）
    """
    if not car_owner_ids:
        raise NoDriversAvailable("No team member with a car is available to drive")

    ordered = sorted(
        car_owner_ids,
        key=lambda driver_id: (drive_counts.get(driver_id, 0), str(driver_id))
    )
    return ordered[:min(max(vehicle_capacity, 0), len(ordered))]


def validate_drivers(
    requested_ids: Sequence[UUID],
    car_owner_ids: Sequence[UUID],
    vehicle_capacity: int
) -> List[UUID]:
    """
    驗證呼叫端指定的司機名單

    規則：
    - 不可為空
    - 不可重複
    - 每一位都必須是有車的團隊成員
    - 人數不可超過 vehicle_capacity

    異常：
        InvalidDrivers: 任一規則不符合
    """
    if not requested_ids:
        raise InvalidDrivers("At least one driver must be selected")

    if len(set(requested_ids)) != len(requested_ids):
        raise InvalidDrivers("Driver list contains duplicates")

    allowed = set(car_owner_ids)
    unknown = [str(d) for d in requested_ids if d not in allowed]
    if unknown:
        raise InvalidDrivers(f"Drivers must be team members with a car: {unknown}")

    if len(requested_ids) > vehicle_capacity:
        raise InvalidDrivers(
            f"Too many drivers: {len(requested_ids)} selected, capacity is {vehicle_capacity}"
        )

    return list(requested_ids)


def assign_drivers(turn: MealTurn, driver_ids: Sequence[UUID], db: Session) -> List[VehicleAssignment]:
    """
    為一個 MealTurn 寫入 VehicleAssignment（每位司機一筆）

    注意：
        只 flush 不 commit，交由外層 transaction 處理
    """
    assignments = []
    for driver_id in driver_ids:
        assignment = VehicleAssignment(meal_turn_id=turn.id, driver_id=driver_id)
        db.add(assignment)
        assignments.append(assignment)

    db.flush()

    logger.info(f"Assigned drivers {[str(d) for d in driver_ids]} to meal turn {turn.id}")
    return assignments


def get_cycle_assignments(cycle_id: UUID, db: Session) -> List[VehicleAssignment]:
    """取得一個 cycle 內所有輪值的 VehicleAssignment"""
    return db.query(VehicleAssignment).join(
        MealTurn, VehicleAssignment.meal_turn_id == MealTurn.id
    ).filter(MealTurn.cycle_id == cycle_id).all()
