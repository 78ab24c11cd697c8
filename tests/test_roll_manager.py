from uuid import uuid4

import pytest

from conftest import create_team
from core.exceptions import (
    DuplicateRoll,
    InvalidDiceValue,
    NotTeamMember,
    RotationInProgress,
    TeamNotFound,
)
from core.roll_manager import RollManager
from models import Cycle, DiceRoll, EventLog, MealTurn, TeamMember, User
from services import roll_service


def test_first_roll_opens_cycle(db, make_team):
    team, (alice, bob) = make_team([True, False])

    roll, all_rolled = RollManager.submit_roll(db, team.id, alice.id, 4, 6)

    assert not all_rolled
    assert roll.total == 10
    cycle = db.query(Cycle).filter(Cycle.team_id == team.id).one()
    assert cycle.cycle_number == 1
    assert cycle.is_active
    assert db.query(MealTurn).count() == 0


def test_second_roll_in_same_cycle_is_rejected(db, make_team):
    team, (alice, bob) = make_team([True, False])
    RollManager.submit_roll(db, team.id, alice.id, 4, 6)

    with pytest.raises(DuplicateRoll):
        RollManager.submit_roll(db, team.id, alice.id, 10, 10)

    rolls = db.query(DiceRoll).filter(DiceRoll.user_id == alice.id).all()
    assert [(r.die1, r.die2) for r in rolls] == [(4, 6)]


def test_concurrent_roll_is_stopped_by_unique_constraint(file_session_factory, monkeypatch):
    setup = file_session_factory()
    team, (alice, bob, carol) = create_team(setup, [True, False, True])
    RollManager.submit_roll(setup, team.id, bob.id, 2, 2)
    cycle_id = setup.query(Cycle).filter(Cycle.team_id == team.id).one().id
    team_id, alice_id = team.id, alice.id
    setup.close()

    # Both requests look up alice's roll before either one inserts
    stale = file_session_factory()
    stale_view = roll_service.get_user_roll(cycle_id, alice_id, stale)
    stale.commit()
    assert stale_view is None

    winner = file_session_factory()
    RollManager.submit_roll(winner, team_id, alice_id, 6, 6)
    winner.close()

    monkeypatch.setattr(roll_service, "get_user_roll", lambda *args: stale_view)
    with pytest.raises(DuplicateRoll):
        RollManager.submit_roll(stale, team_id, alice_id, 1, 1)
    stale.close()

    check = file_session_factory()
    rolls = check.query(DiceRoll).filter(DiceRoll.user_id == alice_id).all()
    assert [(r.die1, r.die2) for r in rolls] == [(6, 6)]
    assert check.query(DiceRoll).filter(DiceRoll.cycle_id == cycle_id).count() == 2
    assert check.query(MealTurn).count() == 0
    check.close()


@pytest.mark.parametrize("dice", [(0, 5), (5, 11), (True, 3)])
def test_invalid_dice_write_nothing(db, make_team, dice):
    team, (alice,) = make_team([True])

    with pytest.raises(InvalidDiceValue):
        RollManager.submit_roll(db, team.id, alice.id, *dice)

    assert db.query(Cycle).count() == 0
    assert db.query(DiceRoll).count() == 0


def test_outsider_cannot_roll(db, make_team):
    team, _ = make_team([True, True])
    outsider = User(email="outsider@example.com")
    db.add(outsider)
    db.commit()

    with pytest.raises(NotTeamMember):
        RollManager.submit_roll(db, team.id, outsider.id, 5, 5)
    assert db.query(Cycle).count() == 0


def test_unknown_team(db, make_team):
    _, (alice,) = make_team([True])

    with pytest.raises(TeamNotFound):
        RollManager.submit_roll(db, uuid4(), alice.id, 5, 5)


def test_last_roll_sequences_turns(db, make_team):
    team, (alice, bob, carol) = make_team([True, False, True])

    _, done = RollManager.submit_roll(db, team.id, alice.id, 3, 4)
    assert not done
    _, done = RollManager.submit_roll(db, team.id, bob.id, 9, 9)
    assert not done
    _, done = RollManager.submit_roll(db, team.id, carol.id, 6, 6)
    assert done

    turns = db.query(MealTurn).order_by(MealTurn.turn_order).all()
    assert [t.user_id for t in turns] == [bob.id, carol.id, alice.id]
    assert [t.turn_order for t in turns] == [1, 2, 3]
    assert all(t.week_number == t.turn_order for t in turns)
    assert not any(t.is_completed for t in turns)

    events = [e.event_type for e in db.query(EventLog).filter(EventLog.team_id == team.id).all()]
    assert events.count("TURNS_SEQUENCED") == 1


def test_member_joining_after_sequencing_waits_for_next_cycle(db, make_team):
    team, (alice,) = make_team([True])
    RollManager.submit_roll(db, team.id, alice.id, 2, 2)

    late = User(email="late@example.com")
    db.add(late)
    db.flush()
    db.add(TeamMember(team_id=team.id, user_id=late.id, has_car=False))
    db.commit()

    with pytest.raises(RotationInProgress):
        RollManager.submit_roll(db, team.id, late.id, 10, 10)
    assert db.query(MealTurn).count() == 1


def test_roll_status(db, make_team):
    team, (alice, bob) = make_team([True, False])

    status = RollManager.get_roll_status(db, team.id, alice.id)
    assert status["active_cycle"] is None
    assert status["member_count"] == 2

    RollManager.submit_roll(db, team.id, alice.id, 1, 2)
    status = RollManager.get_roll_status(db, team.id, alice.id)
    assert status["user_roll"].total == 3
    assert status["rolled_count"] == 1
    assert not status["all_rolled"]

    status = RollManager.get_roll_status(db, team.id, bob.id)
    assert status["user_roll"] is None

    RollManager.submit_roll(db, team.id, bob.id, 1, 1)
    assert RollManager.get_roll_status(db, team.id, bob.id)["all_rolled"]
