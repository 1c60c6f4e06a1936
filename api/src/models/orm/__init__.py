"""
SQLAlchemy ORM Models for Hookline

Pure database models using SQLAlchemy 2.0 declarative style.
For API schemas (Create/Update/Response), see src.models.contracts.
"""

from src.models.orm.base import Base
from src.models.orm.webhooks import WebhookDelivery, WebhookEndpoint

__all__ = [
    "Base",
    "WebhookEndpoint",
    "WebhookDelivery",
]
