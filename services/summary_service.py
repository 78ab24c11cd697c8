"""
Cycle history and summary service.

Read-only aggregation over cycles, meal turns and vehicle assignments so
the frontend can render the history and summary pages straight from the
server. Nothing here changes rotation state.
"""
from typing import Any, Dict, List
from uuid import UUID

from sqlalchemy.orm import Session

from models import Cycle, MealTurn, User
from services.driver_service import get_cycle_assignments
from services.team_service import get_display_name

# How many restaurant names the history list shows per cycle
HISTORY_RESTAURANT_PREVIEW = 3


def get_cycle_history(cycles: List[Cycle], db: Session) -> List[Dict[str, Any]]:
    """
    Build per-cycle stats for the given cycles (kept in the given order).

    Each entry carries turn counts and a short preview of the restaurants
    chosen so far.
    """
    if not cycles:
        return []

    cycle_ids = [cycle.id for cycle in cycles]
    turns = db.query(MealTurn).filter(
        MealTurn.cycle_id.in_(cycle_ids)
    ).order_by(MealTurn.turn_order).all()

    turns_by_cycle: Dict[UUID, List[MealTurn]] = {cycle_id: [] for cycle_id in cycle_ids}
    for turn in turns:
        turns_by_cycle[turn.cycle_id].append(turn)

    history: List[Dict[str, Any]] = []
    for cycle in cycles:
        cycle_turns = turns_by_cycle[cycle.id]
        restaurants = [t.restaurant_name for t in cycle_turns if t.restaurant_name]
        history.append({
            "id": cycle.id,
            "cycle_number": cycle.cycle_number,
            "is_active": cycle.is_active,
            "started_at": cycle.started_at,
            "completed_at": cycle.completed_at,
            "total_turns": len(cycle_turns),
            "completed_turns": sum(1 for t in cycle_turns if t.is_completed),
            "restaurants": restaurants[:HISTORY_RESTAURANT_PREVIEW],
            "total_restaurants": len(restaurants),
        })

    return history


def get_cycle_summary(cycle: Cycle, db: Session) -> Dict[str, Any]:
    """
    Summarize one cycle: restaurants visited, who hosted, who drove.

    Driver stats are sorted by drive count, most drives first.
    """
    turns = db.query(MealTurn).filter(
        MealTurn.cycle_id == cycle.id
    ).order_by(MealTurn.turn_order).all()
    assignments = get_cycle_assignments(cycle.id, db)

    user_ids = {t.user_id for t in turns} | {a.driver_id for a in assignments}
    users = {}
    if user_ids:
        users = {u.id: u for u in db.query(User).filter(User.id.in_(user_ids)).all()}

    restaurants = [
        {
            "name": t.restaurant_name,
            "meal_date": t.meal_date,
            "host": get_display_name(users.get(t.user_id)),
        }
        for t in turns if t.restaurant_name
    ]

    driver_stats: Dict[UUID, Dict[str, Any]] = {}
    for assignment in assignments:
        entry = driver_stats.setdefault(assignment.driver_id, {
            "driver_id": assignment.driver_id,
            "name": get_display_name(users.get(assignment.driver_id)),
            "count": 0,
        })
        entry["count"] += 1

    return {
        "cycle": {
            "id": cycle.id,
            "cycle_number": cycle.cycle_number,
            "team_name": cycle.team.name if cycle.team else None,
            "started_at": cycle.started_at,
            "completed_at": cycle.completed_at,
        },
        "restaurants": restaurants,
        "driver_stats": sorted(driver_stats.values(), key=lambda s: (-s["count"], s["name"])),
        "total_meals": len(turns),
        "total_drives": len(assignments),
    }
