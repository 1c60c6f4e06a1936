"""
Outbound delivery envelope.

Wire format, byte for byte what gets signed and sent:

    {"event":"<name>","timestamp":"<ISO-8601>","data":<payload>}

Headers:
    Content-Type: application/json
    X-Webhook-Signature: <hex HMAC-SHA256 of the body with the endpoint secret>
    X-Webhook-Event: <name>
    X-Webhook-Delivery: <uuid, unique per attempt>
"""

import json
from datetime import datetime
from typing import Any
from uuid import UUID

from src.services.webhooks.signatures import sign_hmac_sha256

SIGNATURE_HEADER = "X-Webhook-Signature"
EVENT_HEADER = "X-Webhook-Event"
DELIVERY_HEADER = "X-Webhook-Delivery"
USER_AGENT = "Hookline-Webhooks/1.0"


def build_envelope(event: str, payload: Any, timestamp: datetime) -> bytes:
    """Serialize the envelope as compact UTF-8 JSON in fixed key order."""
    envelope = {
        "event": event,
        "timestamp": timestamp.isoformat(),
        "data": payload,
    }
    return json.dumps(envelope, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def build_headers(body: bytes, secret: str, event: str, delivery_id: UUID) -> dict[str, str]:
    """Headers for one attempt, including the body signature."""
    return {
        "Content-Type": "application/json",
        "User-Agent": USER_AGENT,
        SIGNATURE_HEADER: sign_hmac_sha256(body, secret),
        EVENT_HEADER: event,
        DELIVERY_HEADER: str(delivery_id),
    }
