"""Unit tests for the health checks."""

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from src.core.database import get_db
from src.main import app


@pytest.fixture
def mock_session():
    return AsyncMock()


@pytest.fixture
def client(mock_session):
    async def override_get_db():
        yield mock_session

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestHealth:
    """Tests for liveness and readiness."""

    def test_liveness(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    def test_ready_when_database_answers(self, client, mock_session):
        response = client.get("/health/ready")

        assert response.status_code == 200
        assert response.json() == {"status": "ready", "database": "ok"}
        mock_session.execute.assert_awaited_once()

    def test_unavailable_when_database_fails(self, client, mock_session):
        mock_session.execute.side_effect = ConnectionRefusedError("connection refused")

        response = client.get("/health/ready")

        assert response.status_code == 503
        assert response.json()["status"] == "unavailable"

    def test_root_lists_docs_outside_production(self, client):
        response = client.get("/")

        assert response.json()["docs"] == "/docs"
