"""
Authentication and role checks.

Every data endpoint requires a bearer token; supervisor-only endpoints
reject lower roles, and cross-user reads follow the team hierarchy.
"""
from datetime import timedelta

import pytest

from conftest import auth_headers
from core.auth import can_access_user_data
from core.exceptions import (
    AccessDeniedError,
    BadRequestError,
    BuddyPairConflictError,
    ConflictError,
    ForbiddenError,
    InvalidOperationError,
    ResourceNotFoundError,
    to_api_exception,
)
from core.security import create_access_token

PROTECTED = [
    ("get", "/v1/users/me"),
    ("get", "/v1/scenarios"),
    ("get", "/v1/simulations"),
    ("get", "/v1/coaching/analysis"),
    ("get", "/v1/coaching/buddies/me"),
    ("get", "/v1/feedback/inbox"),
    ("get", "/v1/alerts"),
    ("get", "/v1/team/members"),
]


@pytest.mark.parametrize("method,path", PROTECTED)
def test_missing_token_is_401(client, method, path):
    response = getattr(client, method)(path)
    assert response.status_code == 401


def test_invalid_token_is_401(client):
    response = client.get("/v1/users/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


def test_expired_token_is_401(client, make_user):
    agent = make_user()
    token = create_access_token({"sub": str(agent.id)}, expires_delta=timedelta(minutes=-1))

    response = client.get("/v1/users/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401


def test_token_for_deleted_user_is_401(client):
    token = create_access_token({"sub": "999"})
    response = client.get("/v1/users/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


def test_valid_token(client, make_user):
    agent = make_user(name="Ana")

    response = client.get("/v1/users/me", headers=auth_headers(agent))

    assert response.status_code == 200
    assert response.json()["name"] == "Ana"


@pytest.mark.parametrize("role,expected", [
    ("agent", 403),
    ("analyst", 403),
    ("coordinator", 403),
    ("supervisor", 200),
    ("manager", 200),
    ("admin", 200),
])
def test_alerts_require_supervisor_or_above(client, make_user, role, expected):
    user = make_user(role=role)
    assert client.get("/v1/alerts", headers=auth_headers(user)).status_code == expected


class TestCanAccessUserData:
    def test_self(self, db_session, make_user):
        agent = make_user()
        assert can_access_user_data(db_session, agent, agent.id)

    def test_agents_and_analysts_only_see_themselves(self, db_session, make_user, make_team_assignment):
        agent = make_user()
        analyst = make_user(role="analyst")
        teammate = make_user()
        for user in (agent, analyst, teammate):
            make_team_assignment(user, team_name="Equipo A")

        assert not can_access_user_data(db_session, agent, teammate.id)
        assert not can_access_user_data(db_session, analyst, teammate.id)

    def test_admin_and_manager_see_everyone(self, db_session, make_user):
        target = make_user()
        assert can_access_user_data(db_session, make_user(role="admin"), target.id)
        assert can_access_user_data(db_session, make_user(role="manager"), target.id)

    def test_supervisor_sees_reports_and_team(self, db_session, make_user, make_team_assignment):
        supervisor = make_user(role="supervisor")
        report = make_user(supervisor=supervisor)
        teammate = make_user()
        stranger = make_user()
        make_team_assignment(supervisor, team_name="Equipo A")
        make_team_assignment(teammate, team_name="Equipo A")
        make_team_assignment(stranger, team_name="Equipo B")

        assert can_access_user_data(db_session, supervisor, report.id)
        assert can_access_user_data(db_session, supervisor, teammate.id)
        assert not can_access_user_data(db_session, supervisor, stranger.id)

    def test_coordinator_sees_area(self, db_session, make_user, make_team_assignment):
        coordinator = make_user(role="coordinator")
        same_area = make_user()
        other_area = make_user()
        make_team_assignment(coordinator, team_name="Equipo A", area="Norte")
        make_team_assignment(same_area, team_name="Equipo B", area="Norte")
        make_team_assignment(other_area, team_name="Equipo C", area="Sur")

        assert can_access_user_data(db_session, coordinator, same_area.id)
        assert not can_access_user_data(db_session, coordinator, other_area.id)

    def test_coordinator_without_area_sees_nobody(self, db_session, make_user, make_team_assignment):
        coordinator = make_user(role="coordinator")
        target = make_user()
        make_team_assignment(coordinator, area=None)
        make_team_assignment(target, area=None)

        assert not can_access_user_data(db_session, coordinator, target.id)


class TestErrorBodies:
    def test_unauthenticated_body_carries_error_code(self, client):
        response = client.get("/v1/users/me")

        assert response.status_code == 401
        assert response.json() == {"detail": "Not authenticated", "error_code": "UNAUTHORIZED"}
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_role_check_body_carries_error_code(self, client, make_user):
        response = client.get("/v1/alerts", headers=auth_headers(make_user()))

        assert response.status_code == 403
        assert response.json()["error_code"] == "FORBIDDEN"

    def test_cross_user_read_body_carries_error_code(self, client, make_user):
        agent = make_user()
        other = make_user()

        response = client.get(f"/v1/users/{other.id}/stats", headers=auth_headers(agent))

        assert response.status_code == 403
        assert response.json() == {
            "detail": "You do not have access to this user's data",
            "error_code": "FORBIDDEN",
        }

    def test_validation_body_carries_error_code(self, client, make_user):
        response = client.post("/v1/simulations", json={}, headers=auth_headers(make_user()))

        assert response.status_code == 422
        body = response.json()
        assert body["error_code"] == "VALIDATION_ERROR"
        assert isinstance(body["detail"], list)


@pytest.mark.parametrize("domain_error,expected_cls,status_code", [
    (InvalidOperationError("Cannot pair with yourself"), BadRequestError, 400),
    (AccessDeniedError("Not yours"), ForbiddenError, 403),
    (BuddyPairConflictError("Already paired"), ConflictError, 409),
])
def test_domain_errors_map_to_typed_http_errors(domain_error, expected_cls, status_code):
    api_error = to_api_exception(domain_error)

    assert isinstance(api_error, expected_cls)
    assert api_error.status_code == status_code
    assert api_error.error_code == domain_error.error_code
    assert api_error.detail == domain_error.detail


def test_not_found_keeps_its_error_code():
    api_error = to_api_exception(ResourceNotFoundError("Scenario not found"))

    assert api_error.status_code == 404
    assert api_error.error_code == "NOT_FOUND"
