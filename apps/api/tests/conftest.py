"""
Pytest configuration and fixtures

Every test gets a fresh in-memory SQLite schema (created before, dropped
after). Redis is patched out so cache and rate limiting degrade to no-ops,
and the LLM dependency is replaced by a mock.
"""
import os
import sys
import fnmatch
from datetime import datetime, timedelta
from itertools import count
from uuid import uuid4

# Must be set before anything imports core.config
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["OPENAI_API_KEY"] = ""
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-testing-at-least-32-chars")
os.environ.setdefault("LOG_FORMAT", "text")

# Add the parent directory to the path so we can import from services
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest  # noqa: E402
from unittest.mock import MagicMock, patch  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from core.database import Base, SessionLocal, engine, get_db  # noqa: E402
from core.security import create_access_token  # noqa: E402
from models import Scenario, Simulation, TeamAssignment, User  # noqa: E402
from services.llm_client import LLMClient, LLMError, get_llm_client  # noqa: E402

BASE_TIME = datetime(2026, 3, 2, 9, 0, 0)


class FakeRedis:
    """In-memory stand-in for the handful of redis commands the app uses."""

    def __init__(self):
        self.store = {}
        self.expiry = {}

    def ping(self):
        return True

    def get(self, key):
        return self.store.get(key)

    def setex(self, key, ttl, value):
        self.store[key] = value
        self.expiry[key] = ttl
        return True

    def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
            self.expiry.pop(key, None)
        return removed

    def scan_iter(self, match="*"):
        return [k for k in list(self.store) if fnmatch.fnmatch(k, match)]

    def incr(self, key):
        self.store[key] = int(self.store.get(key, 0)) + 1
        return self.store[key]

    def expire(self, key, seconds):
        self.expiry[key] = seconds
        return True

    def ttl(self, key):
        return self.expiry.get(key, -1)


@pytest.fixture(autouse=True)
def _no_redis():
    """Redis is unavailable unless a test installs FakeRedis itself."""
    with patch("core.cache.get_redis_client", return_value=None), \
            patch("core.rate_limit.get_redis_client", return_value=None):
        yield


@pytest.fixture
def fake_redis():
    redis_client = FakeRedis()
    with patch("core.cache.get_redis_client", return_value=redis_client), \
            patch("core.rate_limit.get_redis_client", return_value=redis_client):
        yield redis_client


@pytest.fixture(scope="function")
def db_session():
    """Fresh schema per test; dropped afterwards so nothing leaks between tests."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def fake_llm():
    """
    LLM double. By default the client replies with a fixed line and every
    JSON call fails, so evaluation and plan text use their fallbacks.
    """
    llm = MagicMock(spec=LLMClient)
    llm.is_available = True
    llm.chat.return_value = "Gracias, ¿me puede ayudar con eso?"
    llm.chat_json.side_effect = LLMError("offline")
    return llm


@pytest.fixture
def post_completion_task():
    with patch("routers.simulations.run_post_completion_task") as task:
        yield task


@pytest.fixture
def client(db_session, fake_llm, post_completion_task):
    from main import app

    def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_llm_client] = lambda: fake_llm
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def auth_headers(user: User) -> dict:
    token = create_access_token({"sub": str(user.id)})
    return {"Authorization": f"Bearer {token}"}


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------

@pytest.fixture
def make_user(db_session):
    def _make_user(role="agent", name=None, supervisor=None, department="Banca", **kwargs):
        user = User(
            external_id=f"ext_{uuid4().hex}",
            name=name or f"Test {role.title()}",
            email=f"test_{uuid4().hex[:8]}@example.com",
            role=role,
            department=department,
            supervisor_id=supervisor.id if supervisor else None,
            badges=[],
            **kwargs,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def make_team_assignment(db_session):
    def _assign(user, team_name="Equipo A", area=None, supervisor=None, department="Banca"):
        assignment = TeamAssignment(
            user_id=user.id,
            team_name=team_name,
            department=department,
            area=area,
            supervisor_id=supervisor.id if supervisor else None,
        )
        db_session.add(assignment)
        db_session.commit()
        return assignment

    return _assign


@pytest.fixture
def make_scenario(db_session):
    def _make_scenario(category="informative", complexity=2, is_active=True, criteria=None, title=None):
        scenario = Scenario(
            title=title or f"{category} scenario {uuid4().hex[:6]}",
            description="Cliente llama con una consulta.",
            category=category,
            complexity=complexity,
            estimated_duration=10,
            system_prompt="Eres un cliente bancario.",
            client_profile={"emotion": "neutral", "initial_context": "Consulta general"},
            evaluation_criteria=criteria or {"empathy": 20, "clarity": 20, "protocol": 20, "resolution": 20},
            is_active=is_active,
        )
        db_session.add(scenario)
        db_session.commit()
        db_session.refresh(scenario)
        return scenario

    return _make_scenario


@pytest.fixture
def make_simulation(db_session, make_scenario):
    """
    Each call completes one minute after the previous one, so creation
    order is chronological order.
    """
    clock = count(1)
    default_scenario = {}

    def _make_simulation(
        user,
        category_scores=None,
        overall_score=None,
        scenario=None,
        is_practice_mode=False,
        status="completed",
    ):
        if scenario is None:
            if "scenario" not in default_scenario:
                default_scenario["scenario"] = make_scenario()
            scenario = default_scenario["scenario"]

        if overall_score is None and category_scores:
            overall_score = round(sum(category_scores.values()) / len(category_scores))

        completed_at = BASE_TIME + timedelta(minutes=next(clock))
        simulation = Simulation(
            user_id=user.id,
            scenario_id=scenario.id,
            is_practice_mode=is_practice_mode,
            status=status,
            started_at=completed_at - timedelta(minutes=5),
            completed_at=completed_at if status == "completed" else None,
            overall_score=overall_score,
            category_scores=category_scores,
        )
        db_session.add(simulation)
        db_session.commit()
        db_session.refresh(simulation)
        return simulation

    return _make_simulation


def scores(empathy=75, clarity=75, protocol=75, resolution=75, confidence=75) -> dict:
    return {
        "empathy": empathy,
        "clarity": clarity,
        "protocol": protocol,
        "resolution": resolution,
        "confidence": confidence,
    }
