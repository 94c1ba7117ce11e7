from datetime import timedelta

from pennywise.core import parse_date, utcnow


def _create(client, **overrides):
    payload = {"name": "Emergency Fund", "targetAmount": 1000, **overrides}
    return client.post("/api/goals", json=payload)


def test_create_goal_defaults(auth_client):
    response = _create(auth_client)
    assert response.status_code == 201
    goal = response.get_json()["goal"]
    assert goal["currentAmount"] == 0
    assert goal["remaining"] == 1000
    assert goal["percentageComplete"] == 0.0
    target = parse_date(goal["targetDate"])
    assert abs(target - (utcnow() + timedelta(days=365))) < timedelta(minutes=5)


def test_create_goal_requires_name_and_positive_target(auth_client):
    assert _create(auth_client, name="  ").status_code == 400
    response = _create(auth_client, targetAmount=-5)
    assert response.status_code == 400
    assert response.get_json()["message"] == "targetAmount must be greater than 0"


def test_contribute_adds_to_current_amount(auth_client):
    goal_id = _create(auth_client, targetDate="2030-01-01").get_json()["goal"]["id"]
    auth_client.post(f"/api/goals/{goal_id}/contribute", json={"amount": 250})
    goal = auth_client.post(f"/api/goals/{goal_id}/contribute", json={"amount": "150"}).get_json()["goal"]
    assert goal["currentAmount"] == 400
    assert goal["remaining"] == 600
    assert goal["percentageComplete"] == 40.0
    assert goal["targetDate"] == "2030-01-01T00:00:00Z"


def test_contribute_rejects_non_positive_amount(auth_client):
    goal_id = _create(auth_client).get_json()["goal"]["id"]
    assert auth_client.post(f"/api/goals/{goal_id}/contribute", json={"amount": 0}).status_code == 400


def test_update_goal(auth_client):
    goal_id = _create(auth_client).get_json()["goal"]["id"]
    response = auth_client.patch(
        f"/api/goals/{goal_id}",
        json={"currentAmount": 0, "targetAmount": 500, "name": "Vacation", "description": "Lisbon"},
    )
    goal = response.get_json()["goal"]
    assert (goal["name"], goal["targetAmount"], goal["description"]) == ("Vacation", 500, "Lisbon")

    negative = auth_client.patch(f"/api/goals/{goal_id}", json={"currentAmount": -1})
    assert negative.status_code == 400
    assert negative.get_json()["message"] == "currentAmount must not be negative"


def test_goal_list_and_delete(auth_client, database):
    first = _create(auth_client).get_json()["goal"]["id"]
    _create(auth_client, name="Car")
    assert [g["name"] for g in auth_client.get("/api/goals").get_json()["goals"]] == ["Emergency Fund", "Car"]

    assert auth_client.delete(f"/api/goals/{first}").get_json() == {"success": True}
    assert database["savings_goals"].count_documents({}) == 1
    assert auth_client.patch(f"/api/goals/{first}", json={"name": "x"}).status_code == 404
