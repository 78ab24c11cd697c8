from uuid import UUID

import pytest

from core.exceptions import InvalidDrivers, NoDriversAvailable
from models import Cycle, MealTurn, VehicleAssignment
from services.driver_service import get_drive_counts, select_drivers, validate_drivers

X = UUID("00000000-0000-0000-0000-00000000000a")
Y = UUID("00000000-0000-0000-0000-00000000000b")
Z = UUID("00000000-0000-0000-0000-00000000000c")


def test_least_loaded_drivers_are_selected():
    counts = {X: 3, Y: 1, Z: 1}
    assert set(select_drivers([X, Y, Z], counts, vehicle_capacity=2)) == {Y, Z}


def test_equal_counts_are_broken_by_user_id():
    counts = {X: 0, Y: 0, Z: 0}
    assert select_drivers([Z, Y, X], counts, vehicle_capacity=2) == [X, Y]


def test_missing_counts_mean_never_drove():
    assert select_drivers([X, Y], {X: 2}, vehicle_capacity=1) == [Y]


def test_capacity_larger_than_owners_selects_everyone():
    assert select_drivers([X, Y], {}, vehicle_capacity=5) == [X, Y]


def test_no_car_owners_fails():
    with pytest.raises(NoDriversAvailable):
        select_drivers([], {}, vehicle_capacity=2)


@pytest.mark.parametrize("requested", [[], [X, X]])
def test_validate_drivers_rejects_empty_or_duplicate(requested):
    with pytest.raises(InvalidDrivers):
        validate_drivers(requested, [X, Y], vehicle_capacity=2)


def test_validate_drivers_rejects_non_car_owner():
    with pytest.raises(InvalidDrivers):
        validate_drivers([Z], [X, Y], vehicle_capacity=2)


def test_validate_drivers_rejects_more_than_capacity():
    with pytest.raises(InvalidDrivers):
        validate_drivers([X, Y], [X, Y], vehicle_capacity=1)


def test_validate_drivers_accepts_car_owners():
    assert validate_drivers([Y], [X, Y], vehicle_capacity=1) == [Y]


def test_drive_counts_span_all_cycles(db, make_team):
    team, (alice, bob, carol) = make_team([True, True, False])
    for number in (1, 2):
        cycle = Cycle(team_id=team.id, cycle_number=number, is_active=number == 2)
        db.add(cycle)
        db.flush()
        turn = MealTurn(cycle_id=cycle.id, user_id=carol.id, turn_order=1, week_number=1)
        db.add(turn)
        db.flush()
        db.add(VehicleAssignment(meal_turn_id=turn.id, driver_id=alice.id))
    db.commit()

    counts = get_drive_counts([alice.id, bob.id], db)
    assert counts == {alice.id: 2, bob.id: 0}
