from uuid import uuid4

from conftest import auth
from models import User


def roll(client, team, user, die1, die2):
    return client.post(
        f"/api/teams/{team.id}/rolls",
        json={"die1": die1, "die2": die2},
        headers=auth(user),
    )


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


def test_roll_requires_identity(client, make_team):
    team, _ = make_team([True])
    response = client.post(f"/api/teams/{team.id}/rolls", json={"die1": 1, "die2": 1})
    assert response.status_code == 401


def test_roll_validation_errors_are_400(client, make_team):
    team, (alice,) = make_team([True])

    assert roll(client, team, alice, 0, 5).status_code == 400
    assert roll(client, team, alice, 5, 11).status_code == 400
    response = client.post(f"/api/teams/{team.id}/rolls", json={"die1": 3}, headers=auth(alice))
    assert response.status_code == 400


def test_roll_errors(client, db, make_team):
    team, (alice, bob) = make_team([True, False])
    outsider = User(email="outsider@example.com")
    db.add(outsider)
    db.commit()

    assert roll(client, team, outsider, 5, 5).status_code == 403
    assert client.post(
        f"/api/teams/{uuid4()}/rolls", json={"die1": 5, "die2": 5}, headers=auth(alice)
    ).status_code == 404

    first = roll(client, team, alice, 5, 5)
    assert first.status_code == 200
    assert first.json()["success"] is True
    assert first.json()["all_rolled"] is False
    assert first.json()["roll"]["total"] == 10

    duplicate = roll(client, team, alice, 6, 6)
    assert duplicate.status_code == 400


def test_full_rotation_over_http(client, make_team):
    team, users = make_team([True, False, True], vehicle_capacity=1)
    alice, bob, carol = users

    status = client.get(f"/api/teams/{team.id}/rolls/me", headers=auth(alice)).json()
    assert status["active_cycle"] is None

    assert roll(client, team, alice, 2, 3).json()["all_rolled"] is False
    assert roll(client, team, bob, 9, 8).json()["all_rolled"] is False
    assert roll(client, team, carol, 7, 7).json()["all_rolled"] is True

    status = client.get(f"/api/teams/{team.id}/rolls/me", headers=auth(alice)).json()
    assert status["active_cycle"]["cycle_number"] == 1
    assert status["user_roll"]["total"] == 5
    assert status["all_rolled"] is True

    state = client.get(f"/api/teams/{team.id}/rotation", headers=auth(bob)).json()
    assert [t["user_id"] for t in state["turns"]] == [str(bob.id), str(carol.id), str(alice.id)]
    assert state["current_turn"]["user_id"] == str(bob.id)
    assert state["is_current_user"] is True
    assert state["team"]["vehicle_capacity"] == 1

    turn_ids = [t["id"] for t in state["turns"]]

    forbidden = client.post(
        f"/api/teams/{team.id}/turns/{turn_ids[0]}/complete",
        json={"restaurant_name": "Dumplings"},
        headers=auth(alice),
    )
    assert forbidden.status_code == 403

    hosts = [bob, carol, alice]
    for i, (turn_id, host) in enumerate(zip(turn_ids, hosts)):
        response = client.post(
            f"/api/teams/{team.id}/turns/{turn_id}/complete",
            json={"restaurant_name": f"Place {i}", "meal_date": f"2024-06-0{i + 1}"},
            headers=auth(host),
        )
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["cycle_completed"] is (i == 2)
        assert len(body["drivers"]) == 1
        assert body["drivers"][0] in {str(alice.id), str(carol.id)}

    again = client.post(
        f"/api/teams/{team.id}/turns/{turn_ids[2]}/complete",
        json={"restaurant_name": "Again"},
        headers=auth(alice),
    )
    assert again.status_code == 400

    state = client.get(f"/api/teams/{team.id}/rotation", headers=auth(bob)).json()
    assert state["turns"] == []
    assert state["current_turn"] is None

    history = client.get(f"/api/teams/{team.id}/cycles", headers=auth(alice)).json()["cycles"]
    assert [c["cycle_number"] for c in history] == [2, 1]
    assert history[0]["is_active"] is True
    assert history[1]["completed_turns"] == 3
    assert history[1]["restaurants"] == ["Place 0", "Place 1", "Place 2"]

    summary = client.get(f"/api/teams/{team.id}/cycles/summary", headers=auth(alice)).json()
    assert summary["cycle"]["cycle_number"] == 1
    assert summary["cycle"]["team_name"] == "Lunch Crew"
    assert summary["total_meals"] == 3
    assert summary["total_drives"] == 3
    assert [r["host"] for r in summary["restaurants"]] == ["Member 1", "Member 2", "Member 0"]
    assert sorted(s["count"] for s in summary["driver_stats"]) == [1, 2]
    assert summary["driver_stats"][0]["count"] == 2


def test_complete_with_unknown_driver_is_400(client, make_team):
    team, (alice,) = make_team([True])
    roll(client, team, alice, 1, 1)
    state = client.get(f"/api/teams/{team.id}/rotation", headers=auth(alice)).json()

    response = client.post(
        f"/api/teams/{team.id}/turns/{state['turns'][0]['id']}/complete",
        json={"restaurant_name": "Cafe", "drivers": [str(uuid4())]},
        headers=auth(alice),
    )
    assert response.status_code == 400


def test_history_and_rotation_are_members_only(client, db, make_team):
    team, _ = make_team([True])
    outsider = User(email="nosy@example.com")
    db.add(outsider)
    db.commit()

    assert client.get(f"/api/teams/{team.id}/cycles", headers=auth(outsider)).status_code == 403
    assert client.get(f"/api/teams/{team.id}/rotation", headers=auth(outsider)).status_code == 403


def test_summary_without_completed_cycle_is_404(client, make_team):
    team, (alice,) = make_team([True])
    response = client.get(f"/api/teams/{team.id}/cycles/summary", headers=auth(alice))
    assert response.status_code == 404
