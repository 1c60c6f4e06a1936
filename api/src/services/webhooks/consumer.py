"""
Inbound event consumers.

The gateway hands verified, normalized events to an InboundEventConsumer
after the HTTP response has been sent. The default consumer publishes them
to RabbitMQ for the inbox service to pick up.
"""

import logging
from abc import ABC, abstractmethod

from src.config import get_settings
from src.jobs.rabbitmq import publish_message
from src.services.webhooks.protocol import InboundEvent

logger = logging.getLogger(__name__)


class InboundEventConsumer(ABC):
    """Receiver of verified, normalized inbound events."""

    @abstractmethod
    async def consume(self, events: list[InboundEvent]) -> None:
        """Take ownership of a batch of events from one webhook request."""
        pass


class QueueInboundEventConsumer(InboundEventConsumer):
    """Publishes each event as its own message on the inbound events queue."""

    def __init__(self, queue_name: str | None = None):
        self.queue_name = queue_name or get_settings().inbound_events_queue

    async def consume(self, events: list[InboundEvent]) -> None:
        for event in events:
            await publish_message(self.queue_name, event.to_message())

        logger.debug(
            f"Published {len(events)} inbound event(s) to {self.queue_name}",
            extra={"queue": self.queue_name, "count": len(events)},
        )


def get_inbound_consumer() -> InboundEventConsumer:
    """FastAPI dependency returning the configured inbound consumer."""
    return QueueInboundEventConsumer()
