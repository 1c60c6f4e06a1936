"""
Unit tests for WebhookDispatcher and dispatch_event.
"""

from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest

from src.services.outbound.dispatcher import WebhookDispatcher, dispatch_event
from tests.helpers.factories import InMemoryEndpointStore, make_endpoint

DISPATCHER = "src.services.outbound.dispatcher"


class RecordingQueue:
    def __init__(self):
        self.enqueued = []

    async def enqueue(self, task, delay_seconds: float = 0) -> None:
        self.enqueued.append((task, delay_seconds))


@pytest.fixture
def workspace():
    return uuid4()


@pytest.fixture
def endpoints(workspace):
    return {
        "single": make_endpoint(workspace_id=workspace, events=["message.created"]),
        "multi": make_endpoint(workspace_id=workspace, events=["message.created", "comment.created"]),
        "other_event": make_endpoint(workspace_id=workspace, events=["comment.created"]),
        "other_workspace": make_endpoint(workspace_id=uuid4(), events=["message.created"]),
        "inactive": make_endpoint(workspace_id=workspace, events=["message.created"], is_active=False),
    }


@pytest.fixture
def store(endpoints):
    store = InMemoryEndpointStore(*endpoints.values())
    with patch(f"{DISPATCHER}.WebhookEndpointRepository", side_effect=store.endpoint_repository):
        yield store


# ==================== DISPATCH ====================


class TestDispatch:
    """Tests for fan-out to subscribed endpoints."""

    async def test_enqueues_one_task_per_subscribed_active_endpoint(
        self, store, endpoints, workspace
    ):
        queue = RecordingQueue()
        dispatcher = WebhookDispatcher(AsyncMock(), queue)

        queued = await dispatcher.dispatch("message.created", {"id": 7}, workspace)

        assert queued == 2
        targets = {task.endpoint_id for task, _ in queue.enqueued}
        assert targets == {endpoints["single"].id, endpoints["multi"].id}

    async def test_tasks_are_first_attempts_without_delay(self, store, workspace):
        queue = RecordingQueue()
        dispatcher = WebhookDispatcher(AsyncMock(), queue)

        await dispatcher.dispatch("message.created", {"id": 7}, workspace)

        for task, delay in queue.enqueued:
            assert task.attempt == 1
            assert delay == 0
            assert task.event == "message.created"
            assert task.payload == {"id": 7}
            assert task.workspace_id == workspace

    async def test_no_subscribers_enqueues_nothing(self, store, workspace):
        queue = RecordingQueue()
        dispatcher = WebhookDispatcher(AsyncMock(), queue)

        queued = await dispatcher.dispatch("reaction.created", {}, workspace)

        assert queued == 0
        assert queue.enqueued == []

    async def test_unknown_workspace_enqueues_nothing(self, store):
        queue = RecordingQueue()
        dispatcher = WebhookDispatcher(AsyncMock(), queue)

        assert await dispatcher.dispatch("message.created", {}, uuid4()) == 0

    async def test_event_match_is_exact(self, store, workspace):
        queue = RecordingQueue()
        dispatcher = WebhookDispatcher(AsyncMock(), queue)

        assert await dispatcher.dispatch("message", {}, workspace) == 0
        assert await dispatcher.dispatch("Message.Created", {}, workspace) == 0


# ==================== DISPATCH_EVENT ====================


class TestDispatchEvent:
    """Tests for the session-owning convenience wrapper."""

    async def test_opens_session_and_uses_given_queue(self, store, workspace):
        session = MagicMock()

        @asynccontextmanager
        async def fake_db_context():
            yield session

        queue = RecordingQueue()
        with patch(f"{DISPATCHER}.get_db_context", fake_db_context):
            queued = await dispatch_event("comment.created", {"id": 1}, workspace, queue=queue)

        assert queued == 2
        assert len(queue.enqueued) == 2

    async def test_defaults_to_rabbitmq_queue(self, store, workspace):
        @asynccontextmanager
        async def fake_db_context():
            yield MagicMock()

        rabbit = AsyncMock()
        with patch(f"{DISPATCHER}.get_db_context", fake_db_context), patch(
            f"{DISPATCHER}.RabbitMQDeliveryQueue", return_value=rabbit
        ):
            queued = await dispatch_event("message.created", {}, workspace)

        assert queued == 2
        assert rabbit.enqueue.await_count == 2
