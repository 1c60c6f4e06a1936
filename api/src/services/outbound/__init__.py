"""
Outbound webhook services.

This package provides:
- WebhookDispatcher: fan-out of events to subscribed endpoints
- DeliveryWorker: signed delivery attempts with retry and health tracking
- Delivery queues (RabbitMQ and in-process) and the typed DeliveryTask
"""

from src.services.outbound.clock import Clock, system_clock
from src.services.outbound.dispatcher import WebhookDispatcher, dispatch_event
from src.services.outbound.queue import (
    DeliveryQueue,
    LocalDeliveryQueue,
    RabbitMQDeliveryQueue,
)
from src.services.outbound.tasks import DeliveryTask
from src.services.outbound.worker import (
    DeliveryOutcome,
    DeliveryWorker,
    NetworkError,
    Responded,
)

__all__ = [
    "Clock",
    "system_clock",
    "WebhookDispatcher",
    "dispatch_event",
    "DeliveryQueue",
    "LocalDeliveryQueue",
    "RabbitMQDeliveryQueue",
    "DeliveryTask",
    "DeliveryOutcome",
    "DeliveryWorker",
    "NetworkError",
    "Responded",
]
