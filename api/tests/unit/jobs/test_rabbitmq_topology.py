"""Tests for RabbitMQ queue declarations and publishing helpers."""

import json
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.jobs.rabbitmq import declare_work_queue, publish_delayed_message, publish_message

RABBITMQ = "src.jobs.rabbitmq"


@pytest.fixture
def channel():
    channel = MagicMock()
    channel.declare_exchange = AsyncMock(return_value=MagicMock())
    dlq = MagicMock()
    dlq.bind = AsyncMock()
    channel.declare_queue = AsyncMock(return_value=dlq)
    channel.default_exchange.publish = AsyncMock()
    return channel


@pytest.fixture
def pooled_channel(channel):
    @asynccontextmanager
    async def acquire():
        yield channel

    manager = MagicMock()
    manager.init_pools = AsyncMock()
    manager.get_channel = acquire

    with patch(f"{RABBITMQ}.rabbitmq", manager):
        yield channel


def declared_queues(channel) -> dict[str, dict]:
    return {
        call.args[0]: call.kwargs.get("arguments") or {}
        for call in channel.declare_queue.await_args_list
    }


class TestDeclareWorkQueue:
    """Test work queue topology."""

    async def test_declares_dead_letter_exchange_and_poison_queue(self, channel):
        await declare_work_queue(channel, "webhook-deliveries")

        channel.declare_exchange.assert_awaited_once()
        assert channel.declare_exchange.await_args.args[0] == "webhook-deliveries-dlx"

        queues = declared_queues(channel)
        assert "webhook-deliveries-poison" in queues
        assert queues["webhook-deliveries"] == {
            "x-dead-letter-exchange": "webhook-deliveries-dlx",
            "x-dead-letter-routing-key": "webhook-deliveries",
        }


class TestPublishing:
    """Test immediate and delayed publishing."""

    async def test_publish_message_routes_to_queue(self, pooled_channel):
        await publish_message("webhook-deliveries", {"attempt": 1})

        publish = pooled_channel.default_exchange.publish
        publish.assert_awaited_once()
        message = publish.await_args.args[0]
        assert json.loads(message.body) == {"attempt": 1}
        assert publish.await_args.kwargs["routing_key"] == "webhook-deliveries"

    async def test_delayed_message_parks_in_ttl_queue(self, pooled_channel):
        await publish_delayed_message("webhook-deliveries", {"attempt": 2}, delay_seconds=30)

        queues = declared_queues(pooled_channel)
        assert queues["webhook-deliveries-retry-30s"] == {
            "x-message-ttl": 30000,
            "x-dead-letter-exchange": "",
            "x-dead-letter-routing-key": "webhook-deliveries",
        }
        publish = pooled_channel.default_exchange.publish
        assert publish.await_args.kwargs["routing_key"] == "webhook-deliveries-retry-30s"

    async def test_zero_delay_publishes_directly(self, pooled_channel):
        await publish_delayed_message("webhook-deliveries", {"attempt": 2}, delay_seconds=0)

        queues = declared_queues(pooled_channel)
        assert not any("-retry-" in name for name in queues)
        publish = pooled_channel.default_exchange.publish
        assert publish.await_args.kwargs["routing_key"] == "webhook-deliveries"
