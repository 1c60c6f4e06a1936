"""
Hookline Models

ORM models (database tables):
    from src.models import WebhookEndpoint
    from src.models.orm.webhooks import WebhookEndpoint  # Granular access

Pydantic contracts (API request/response):
    from src.models.contracts.webhooks import WebhookEndpointCreate

Enums:
    from src.models.enums import Platform
"""

from src.models.enums import DeliveryStatusFilter, Permission, Platform
from src.models.orm import Base, WebhookDelivery, WebhookEndpoint

__all__ = [
    "Base",
    "WebhookEndpoint",
    "WebhookDelivery",
    "Platform",
    "Permission",
    "DeliveryStatusFilter",
]
