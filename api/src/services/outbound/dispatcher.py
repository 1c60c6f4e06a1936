"""
Outbound Webhook Dispatcher

Fans an event out to every active endpoint in a workspace that subscribes
to it. Dispatching only enqueues; delivery happens on the worker pool.
"""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.database import get_db_context
from src.repositories.webhook_endpoints import WebhookEndpointRepository
from src.services.outbound.queue import DeliveryQueue, RabbitMQDeliveryQueue
from src.services.outbound.tasks import DeliveryTask

logger = logging.getLogger(__name__)


class WebhookDispatcher:
    """
    Turns (event, payload, workspace) into one DeliveryTask per subscriber.

    Example:
        dispatcher = WebhookDispatcher(db, RabbitMQDeliveryQueue())
        queued = await dispatcher.dispatch("message.created", {...}, workspace_id)
    """

    def __init__(self, session: AsyncSession, queue: DeliveryQueue):
        self.session = session
        self.queue = queue

    async def dispatch(self, event: str, payload: Any, workspace_id: UUID) -> int:
        """
        Enqueue a first attempt for every matching endpoint.

        Returns:
            Number of tasks enqueued
        """
        repo = WebhookEndpointRepository(self.session, workspace_id)
        endpoints = await repo.list_active_subscribed(event)

        for endpoint in endpoints:
            await self.queue.enqueue(
                DeliveryTask(
                    endpoint_id=endpoint.id,
                    workspace_id=workspace_id,
                    event=event,
                    payload=payload,
                )
            )

        logger.info(
            f"Dispatched {event} to {len(endpoints)} endpoint(s)",
            extra={
                "event": event,
                "workspace_id": str(workspace_id),
                "deliveries_queued": len(endpoints),
            },
        )
        return len(endpoints)


async def dispatch_event(
    event: str,
    payload: Any,
    workspace_id: UUID,
    queue: DeliveryQueue | None = None,
) -> int:
    """
    Dispatch from code that has no session of its own (event sources).

    Uses the RabbitMQ delivery queue unless another queue is given.
    """
    async with get_db_context() as db:
        dispatcher = WebhookDispatcher(db, queue or RabbitMQDeliveryQueue())
        return await dispatcher.dispatch(event, payload, workspace_id)
