"""Health endpoints."""
from unittest.mock import patch


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_health_reports_database_outage(client):
    with patch("main.check_db_connection", return_value=False):
        response = client.get("/health")

    assert response.status_code == 503
    assert response.json() == {"status": "unhealthy", "database": "unavailable"}


def test_detailed_health_degraded_without_redis(client):
    response = client.get("/health/detailed")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "degraded"
    assert body["checks"]["database"]["status"] == "healthy"
    assert body["checks"]["redis"]["status"] == "unavailable"
    assert body["checks"]["llm"]["status"] == "unconfigured"


def test_detailed_health_with_redis(client, fake_redis):
    body = client.get("/health/detailed").json()

    assert body["status"] == "healthy"
    assert body["checks"]["redis"]["status"] == "healthy"


def test_ping(client):
    assert client.get("/ping").json() == {"pong": True}


def test_process_time_header(client):
    assert "X-Process-Time" in client.get("/ping").headers
