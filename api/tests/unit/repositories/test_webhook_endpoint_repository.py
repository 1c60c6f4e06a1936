"""
Unit tests for WebhookEndpointRepository.

Statements are captured from a mock session and compiled for PostgreSQL,
so scoping and atomic health updates are checked on the actual SQL.
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from sqlalchemy.dialects import postgresql

from src.repositories.webhook_endpoints import WebhookEndpointRepository
from tests.helpers.factories import make_endpoint

NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)


def compiled(statement) -> tuple[str, dict]:
    """Compile a statement for PostgreSQL and return (sql, params)."""
    result = statement.compile(dialect=postgresql.dialect())
    return str(result), result.params


@pytest.fixture
def mock_session():
    """Create a mock database session."""
    session = AsyncMock()
    session.add = MagicMock()
    session.begin_nested = MagicMock()
    return session


@pytest.fixture
def workspace_id():
    return uuid4()


@pytest.fixture
def repo(mock_session, workspace_id):
    return WebhookEndpointRepository(mock_session, workspace_id)


def executed(mock_session, index: int = 0):
    return mock_session.execute.call_args_list[index].args[0]


class TestCreateEndpoint:
    """Tests for endpoint creation."""

    async def test_generates_secret_and_scopes_to_workspace(self, repo, mock_session, workspace_id):
        endpoint = await repo.create_endpoint(
            url="https://receiver.example.com",
            events=["message.created"],
        )

        mock_session.add.assert_called_once_with(endpoint)
        mock_session.flush.assert_awaited()
        assert endpoint.workspace_id == workspace_id
        assert endpoint.is_active is True
        assert endpoint.failure_count == 0
        assert len(endpoint.secret) >= 64

    async def test_each_endpoint_gets_a_distinct_secret(self, repo):
        first = await repo.create_endpoint(url="https://a.example.com", events=["a"])
        second = await repo.create_endpoint(url="https://b.example.com", events=["a"])

        assert first.secret != second.secret


class TestScopedReads:
    """Tests for workspace scoping of lookups and listings."""

    async def test_get_endpoint_filters_by_workspace(self, repo, mock_session, workspace_id):
        result = MagicMock()
        result.scalar_one_or_none.return_value = None
        mock_session.execute.return_value = result
        endpoint_id = uuid4()

        assert await repo.get_endpoint(endpoint_id) is None

        sql, params = compiled(executed(mock_session))
        assert "webhook_endpoints.workspace_id" in sql
        assert workspace_id in params.values()
        assert endpoint_id in params.values()

    async def test_list_endpoints_applies_filters_and_paging(self, repo, mock_session, workspace_id):
        page = MagicMock()
        page.scalars.return_value.all.return_value = [make_endpoint(workspace_id=workspace_id)]
        count = MagicMock()
        count.scalar.return_value = 1
        mock_session.execute.side_effect = [page, count]

        items, total = await repo.list_endpoints(
            is_active=True, event="message.created", limit=5, offset=10
        )

        assert total == 1
        assert len(items) == 1

        sql, params = compiled(executed(mock_session, 0))
        assert "webhook_endpoints.workspace_id" in sql
        assert "webhook_endpoints.is_active IS true" in sql
        assert "@>" in sql
        assert "ORDER BY webhook_endpoints.created_at DESC" in sql
        assert workspace_id in params.values()

        count_sql, _ = compiled(executed(mock_session, 1))
        assert "count(" in count_sql
        assert "webhook_endpoints.workspace_id" in count_sql
        assert "@>" in count_sql

    async def test_list_active_subscribed_filters_events(self, repo, mock_session, workspace_id):
        subscribed = make_endpoint(workspace_id=workspace_id, events=["a", "b"])
        result = MagicMock()
        result.scalars.return_value.all.return_value = [subscribed]
        mock_session.execute.return_value = result

        endpoints = await repo.list_active_subscribed("b")

        assert endpoints == [subscribed]
        assert mock_session.execute.await_count == 1
        sql, params = compiled(executed(mock_session))
        assert "webhook_endpoints.is_active IS true" in sql
        assert "webhook_endpoints.workspace_id" in sql
        assert "webhook_endpoints.events @>" in sql
        assert "ORDER BY webhook_endpoints.created_at" in sql
        assert workspace_id in params.values()
        assert ["b"] in params.values()


class TestUpdateEndpoint:
    """Tests for partial updates."""

    async def test_only_given_fields_change(self, repo):
        endpoint = make_endpoint(events=["a"], url="https://old.example.com")

        await repo.update_endpoint(endpoint, events=["b", "c"])

        assert endpoint.events == ["b", "c"]
        assert endpoint.url == "https://old.example.com"
        assert endpoint.is_active is True

    async def test_secret_is_never_rewritten(self, repo):
        endpoint = make_endpoint(secret="original")

        await repo.update_endpoint(
            endpoint, url="https://new.example.com", events=["x"], is_active=False
        )

        assert endpoint.secret == "original"


class TestDeleteEndpoint:
    """Tests for the delete cascade."""

    async def test_deliveries_are_deleted_before_endpoint(self, repo, mock_session):
        endpoint = make_endpoint()
        result = MagicMock()
        result.rowcount = 4
        mock_session.execute.return_value = result

        calls = []
        mock_session.execute.side_effect = lambda *a, **k: calls.append("deliveries") or result
        mock_session.delete.side_effect = lambda *a, **k: calls.append("endpoint")

        removed = await repo.delete_endpoint(endpoint)

        assert removed == 4
        assert calls == ["deliveries", "endpoint"]
        mock_session.begin_nested.assert_called_once()

        sql, params = compiled(executed(mock_session))
        assert sql.startswith("DELETE FROM webhook_deliveries")
        assert endpoint.id in params.values()


class TestHealthUpdates:
    """Tests for atomic failure_count updates."""

    async def test_record_success_resets_count(self, repo, mock_session, workspace_id):
        endpoint_id = uuid4()

        await repo.record_success(endpoint_id, at=NOW)

        sql, params = compiled(executed(mock_session))
        assert sql.startswith("UPDATE webhook_endpoints SET")
        assert params["failure_count"] == 0
        assert params["last_triggered_at"] == NOW
        assert workspace_id in params.values()

    async def test_record_failure_increments_in_sql(self, repo, mock_session):
        await repo.record_failure(uuid4(), at=NOW)

        sql, params = compiled(executed(mock_session))
        assert "failure_count=(webhook_endpoints.failure_count +" in sql
        assert params["last_triggered_at"] == NOW

    async def test_increment_does_not_touch_last_triggered(self, repo, mock_session):
        await repo.increment_failure_count(uuid4())

        sql, _ = compiled(executed(mock_session))
        assert "failure_count=(webhook_endpoints.failure_count +" in sql
        assert "last_triggered_at" not in sql

    async def test_deactivate_if_failing_checks_threshold(self, repo, mock_session):
        result = MagicMock()
        result.rowcount = 1
        mock_session.execute.return_value = result

        assert await repo.deactivate_if_failing(uuid4(), threshold=5) is True

        sql, params = compiled(executed(mock_session))
        assert "webhook_endpoints.failure_count >=" in sql
        assert 5 in params.values()
        assert params["is_active"] is False

    async def test_deactivate_if_failing_reports_no_change(self, repo, mock_session):
        result = MagicMock()
        result.rowcount = 0
        mock_session.execute.return_value = result

        assert await repo.deactivate_if_failing(uuid4(), threshold=5) is False
