"""
Webhook Delivery Consumer

Processes outbound webhook delivery tasks from RabbitMQ.

Each message is one attempt. Retries come back through the same queue
after their backoff delay (see publish_delayed_message), so a consumer
never sleeps on a retry.
"""

import logging
from typing import Any

from src.config import get_settings
from src.core.database import get_db_context
from src.jobs.rabbitmq import BaseConsumer
from src.services.outbound.queue import RabbitMQDeliveryQueue
from src.services.outbound.tasks import DeliveryTask
from src.services.outbound.worker import DeliveryWorker

logger = logging.getLogger(__name__)


class WebhookDeliveryConsumer(BaseConsumer):
    """
    Consumer for the webhook delivery queue.

    Message format:
    {
        "endpoint_id": "uuid",
        "workspace_id": "uuid",
        "event": "message.created",
        "payload": {...},
        "attempt": 1
    }
    """

    def __init__(self):
        settings = get_settings()
        super().__init__(
            queue_name=settings.delivery_queue,
            prefetch_count=settings.delivery_concurrency,
        )
        self._retry_queue = RabbitMQDeliveryQueue(settings.delivery_queue)

    async def process_message(self, body: dict[str, Any]) -> None:
        """Run one delivery attempt. Invalid messages raise and are dead-lettered."""
        task = DeliveryTask.from_message(body)

        logger.debug(
            f"Processing webhook delivery attempt {task.attempt}",
            extra={"endpoint_id": str(task.endpoint_id), "event": task.event},
        )

        async with get_db_context() as db:
            worker = DeliveryWorker(db, self._retry_queue)
            await worker.run(task)
