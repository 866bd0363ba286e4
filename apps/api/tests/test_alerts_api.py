"""
API tests for supervisor alerts.
"""
from conftest import auth_headers
from services.alert_service import check_milestone


def _team(make_user):
    supervisor = make_user(role="supervisor")
    agent = make_user(supervisor=supervisor)
    return supervisor, agent


def test_agents_cannot_list_alerts(client, make_user):
    agent = make_user()
    assert client.get("/v1/alerts", headers=auth_headers(agent)).status_code == 403


def test_supervisor_sees_own_alerts_only(client, db_session, make_user):
    supervisor, agent = _team(make_user)
    other_supervisor, other_agent = _team(make_user)
    mine = check_milestone(db_session, agent.id, "coaching_plan_completed", {"plan_id": 1})
    check_milestone(db_session, other_agent.id, "coaching_plan_completed", {"plan_id": 2})

    response = client.get("/v1/alerts", headers=auth_headers(supervisor))

    assert response.status_code == 200
    alerts = response.json()
    assert [a["id"] for a in alerts] == [mine.id]
    assert alerts[0]["metadata"] == {"milestone_type": "coaching_plan_completed", "plan_id": 1}
    assert alerts[0]["status"] == "pending"
    assert client.get("/v1/alerts/pending-count", headers=auth_headers(supervisor)).json() == {"pending": 1}


def test_manager_sees_everything(client, db_session, make_user):
    _, agent = _team(make_user)
    _, other_agent = _team(make_user)
    manager = make_user(role="manager")
    check_milestone(db_session, agent.id, "coaching_plan_completed")
    check_milestone(db_session, other_agent.id, "coaching_plan_completed")

    assert len(client.get("/v1/alerts", headers=auth_headers(manager)).json()) == 2


def test_acknowledge_then_resolve(client, db_session, make_user):
    supervisor, agent = _team(make_user)
    alert = check_milestone(db_session, agent.id, "coaching_plan_completed")

    acknowledged = client.post(f"/v1/alerts/{alert.id}/acknowledge", headers=auth_headers(supervisor))
    assert acknowledged.status_code == 200
    assert acknowledged.json()["status"] == "acknowledged"
    assert acknowledged.json()["acknowledged_at"] is not None

    resolved = client.post(f"/v1/alerts/{alert.id}/resolve", headers=auth_headers(supervisor))
    assert resolved.json()["status"] == "resolved"

    filtered = client.get("/v1/alerts?status=pending", headers=auth_headers(supervisor))
    assert filtered.json() == []


def test_illegal_transition_is_conflict(client, db_session, make_user):
    supervisor, agent = _team(make_user)
    alert = check_milestone(db_session, agent.id, "coaching_plan_completed")

    response = client.post(f"/v1/alerts/{alert.id}/resolve", headers=auth_headers(supervisor))

    assert response.status_code == 409
    assert response.json()["error_code"] == "INVALID_TRANSITION"


def test_cannot_acknowledge_someone_elses_alert(client, db_session, make_user):
    _, agent = _team(make_user)
    other_supervisor = make_user(role="supervisor")
    alert = check_milestone(db_session, agent.id, "coaching_plan_completed")

    response = client.post(f"/v1/alerts/{alert.id}/acknowledge", headers=auth_headers(other_supervisor))

    assert response.status_code == 403


def test_unknown_alert(client, make_user):
    supervisor = make_user(role="supervisor")
    assert client.post("/v1/alerts/999/acknowledge", headers=auth_headers(supervisor)).status_code == 404
