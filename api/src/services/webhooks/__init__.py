"""
Inbound webhook services.

This package provides:
- Signature helpers (HMAC verification, CRC answers, outbound signing)
- PlatformAdapter protocol and built-in adapters (Facebook, Instagram,
  WhatsApp, Twitter)
- Adapter registry, gateway and inbound event consumers
"""

from src.services.webhooks.protocol import (
    Deliver,
    HandleResult,
    InboundEvent,
    PlatformAdapter,
    Rejected,
    ValidationResponse,
    WebhookRequest,
)

__all__ = [
    "PlatformAdapter",
    "WebhookRequest",
    "InboundEvent",
    "HandleResult",
    "ValidationResponse",
    "Deliver",
    "Rejected",
]
