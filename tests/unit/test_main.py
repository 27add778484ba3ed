"""
Main Application Unit Tests

Tests for application startup and the health endpoint with mocked infrastructure.
Runs without Postgres - the startup database probe is mocked.
"""

from unittest.mock import AsyncMock, patch

from fastapi.testclient import TestClient

from chimera_sync.core import database
from chimera_sync.main import app


def test_health_check():
    """
    Verify /health reports liveness and the last observed store state.

    TestClient triggers the lifespan handler, so the DB probe must be mocked.
    """
    with patch("chimera_sync.core.database.connect_with_retry", new_callable=AsyncMock) as probe:
        with TestClient(app) as client:
            database.db_state.connected = False
            database.db_state.error = "connection refused"

            response = client.get("/health")

            assert response.status_code == 200
            data = response.json()
            assert data["ok"] is True
            assert data["db"] is False
            assert data["dbError"] == "connection refused"
            assert "timestamp" in data

        probe.assert_called_once()

    database.db_state.error = None


def test_health_check_connected():
    with patch("chimera_sync.core.database.connect_with_retry", new_callable=AsyncMock):
        with TestClient(app) as client:
            database.db_state.connected = True
            database.db_state.error = None

            data = client.get("/health").json()

    assert data["db"] is True
    assert data["dbError"] is None
    database.db_state.connected = False


def test_cors_preflight():
    with patch("chimera_sync.core.database.connect_with_retry", new_callable=AsyncMock):
        with TestClient(app) as client:
            response = client.options(
                "/notes",
                headers={
                    "Origin": "http://localhost:5173",
                    "Access-Control-Request-Method": "POST",
                },
            )

    assert response.status_code == 200
    assert "access-control-allow-origin" in response.headers
