"""Unit tests for WebhookDeliveryRepository."""

from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from sqlalchemy.dialects import postgresql

from src.models.enums import DeliveryStatusFilter
from src.repositories.webhook_deliveries import WebhookDeliveryRepository
from tests.helpers.factories import make_delivery


def compiled_sql(statement) -> str:
    return str(statement.compile(dialect=postgresql.dialect()))


@pytest.fixture
def mock_session():
    """Create a mock database session."""
    session = AsyncMock()
    session.add = MagicMock()

    page = MagicMock()
    page.scalars.return_value.all.return_value = []
    count = MagicMock()
    count.scalar.return_value = 0
    session.execute.side_effect = [page, count]
    return session


class TestAppend:
    async def test_append_adds_and_flushes(self, mock_session):
        record = make_delivery(uuid4())

        result = await WebhookDeliveryRepository(mock_session).append(record)

        assert result is record
        mock_session.add.assert_called_once_with(record)
        mock_session.flush.assert_awaited_once()


class TestListForEndpoint:
    """Tests for delivery history filters."""

    async def test_newest_first_with_paging(self, mock_session):
        endpoint_id = uuid4()

        items, total = await WebhookDeliveryRepository(mock_session).list_deliveries(
            endpoint_id, limit=20, offset=40
        )

        assert items == []
        assert total == 0
        sql = compiled_sql(mock_session.execute.call_args_list[0].args[0])
        assert "webhook_deliveries.endpoint_id" in sql
        assert "ORDER BY webhook_deliveries.created_at DESC" in sql
        assert "LIMIT" in sql and "OFFSET" in sql

    async def test_succeeded_filter(self, mock_session):
        await WebhookDeliveryRepository(mock_session).list_deliveries(
            uuid4(), status=DeliveryStatusFilter.SUCCEEDED
        )

        sql = compiled_sql(mock_session.execute.call_args_list[0].args[0])
        assert "webhook_deliveries.response_code IS NOT NULL" in sql
        assert "webhook_deliveries.response_code <" in sql

    async def test_failed_filter_includes_network_errors(self, mock_session):
        await WebhookDeliveryRepository(mock_session).list_deliveries(
            uuid4(), status=DeliveryStatusFilter.FAILED
        )

        sql = compiled_sql(mock_session.execute.call_args_list[0].args[0])
        assert "webhook_deliveries.response_code IS NULL" in sql
        assert "webhook_deliveries.response_code >=" in sql

    async def test_event_filter_applies_to_count(self, mock_session):
        await WebhookDeliveryRepository(mock_session).list_deliveries(
            uuid4(), event="message.created"
        )

        count_sql = compiled_sql(mock_session.execute.call_args_list[1].args[0])
        assert "count(" in count_sql
        assert "webhook_deliveries.event" in count_sql
