# Data access layer - PostgreSQL repositories
from src.repositories.base import BaseRepository
from src.repositories.webhook_deliveries import WebhookDeliveryRepository
from src.repositories.webhook_endpoints import WebhookEndpointRepository
from src.repositories.workspace_scoped import WorkspaceScopedRepository

__all__ = [
    "BaseRepository",
    "WebhookDeliveryRepository",
    "WebhookEndpointRepository",
    "WorkspaceScopedRepository",
]
