"""
Inbound webhook adapter protocol.

Defines the base class and result types for platform adapters.
Adapters answer subscription handshakes, verify signatures and normalize
platform payloads into vendor-neutral InboundEvents.
"""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from starlette.requests import Request

from src.config import Settings, get_settings
from src.core.exceptions import MalformedPayloadError


@dataclass
class WebhookRequest:
    """
    Wrapper around incoming webhook request.

    Keeps the raw body bytes untouched: signatures are computed over them,
    never over re-serialized JSON.
    """

    method: str
    path: str
    headers: dict[str, str]
    query_params: dict[str, str]
    body: bytes
    client_ip: str | None = None

    _json_cache: Any = field(default=None, repr=False)

    @classmethod
    async def from_starlette(cls, request: Request) -> "WebhookRequest":
        """Create WebhookRequest from a Starlette/FastAPI request."""
        body = await request.body()
        headers = {k.lower(): v for k, v in request.headers.items()}
        query_params = dict(request.query_params)
        client_ip = request.client.host if request.client else None

        return cls(
            method=request.method,
            path=request.url.path,
            headers=headers,
            query_params=query_params,
            body=body,
            client_ip=client_ip,
        )

    @property
    def json_body(self) -> Any:
        """Parse body as JSON. Returns None if empty or not valid JSON."""
        if self._json_cache is not None:
            return self._json_cache

        if not self.body:
            return None

        try:
            self._json_cache = json.loads(self.body)
            return self._json_cache
        except (json.JSONDecodeError, UnicodeDecodeError):
            return None

    def query(self, *names: str) -> str | None:
        """First present query parameter among several spellings."""
        for name in names:
            value = self.query_params.get(name)
            if value is not None:
                return value
        return None


@dataclass
class InboundEvent:
    """
    Vendor-neutral event handed to the inbound consumer.

    `data` is the platform's own object for this event, untouched; deciding
    whether it is a comment or a DM is the consumer's business.
    """

    platform: str
    event_type: str
    account_id: str | None
    data: Any
    occurred_at: datetime | None = None

    def to_message(self) -> dict[str, Any]:
        """Serialize for the inbound events queue."""
        return {
            "platform": self.platform,
            "event_type": self.event_type,
            "account_id": self.account_id,
            "occurred_at": self.occurred_at.isoformat() if self.occurred_at else None,
            "data": self.data,
        }


@dataclass
class ValidationResponse:
    """
    Adapter says: respond to the platform with this response.

    Used for subscription handshakes (hub.challenge, CRC).
    """

    status_code: int = 200
    body: Any = None
    headers: dict[str, str] | None = None
    content_type: str = "text/plain"


@dataclass
class Deliver:
    """
    Adapter says: the request is authentic, hand these events off.
    """

    events: list[InboundEvent]

    raw_headers: dict[str, str] | None = None
    """Original request headers (for logging)."""


@dataclass
class Rejected:
    """
    Adapter says: reject this request.

    Messages are generic on purpose; they never say which check failed.
    """

    message: str = "Request rejected"
    status_code: int = 400


# Union type for handle_request return
HandleResult = ValidationResponse | Deliver | Rejected

INVALID_SIGNATURE = "Invalid webhook signature"


class PlatformAdapter(ABC):
    """
    Base class for inbound platform adapters.

    GET requests are subscription handshakes, POST requests carry events.
    Adapters read their secrets from Settings at request time so rotating
    a secret only needs a settings reload.
    """

    # ==================== ADAPTER METADATA ====================
    # Override these in subclasses

    name: str = "base"
    """Unique adapter name (the {platform} path segment)."""

    display_name: str = "Base Adapter"
    """Human-readable name."""

    signature_header: str = ""
    """Lowercased header carrying the event signature."""

    def __init__(self, settings: Settings | None = None):
        self._settings = settings

    @property
    def settings(self) -> Settings:
        return self._settings or get_settings()

    # ==================== ABSTRACT METHODS ====================

    @abstractmethod
    async def handle_verification(self, request: WebhookRequest) -> ValidationResponse | Rejected:
        """Answer a platform-initiated subscription or liveness check (GET)."""
        pass

    @abstractmethod
    def verify_signature(self, request: WebhookRequest) -> bool:
        """Check the event signature over the raw body."""
        pass

    @abstractmethod
    def normalize(self, payload: dict[str, Any]) -> list[InboundEvent]:
        """
        Map a verified payload to InboundEvents.

        Raises:
            MalformedPayloadError: If the payload does not have the platform's shape
        """
        pass

    # ==================== TEMPLATE ====================

    async def handle_request(self, request: WebhookRequest) -> HandleResult:
        """
        Process incoming webhook request.

        Returns:
            - ValidationResponse: handshake answer for GET
            - Deliver: verified and normalized events for POST
            - Rejected: verification failed; body was never parsed

        Raises:
            MalformedPayloadError: Verified body that is not a JSON object
                of the expected shape
        """
        if request.method == "GET":
            return await self.handle_verification(request)

        if not self.verify_signature(request):
            return Rejected(message=INVALID_SIGNATURE, status_code=403)

        payload = request.json_body
        if not isinstance(payload, dict):
            raise MalformedPayloadError(self.name, "Body is not a JSON object")

        return Deliver(
            events=self.normalize(payload),
            raw_headers=request.headers,
        )

    # ==================== HELPER METHODS ====================

    @staticmethod
    def parse_timestamp(value: Any) -> datetime | None:
        """Parse an epoch timestamp in seconds or milliseconds."""
        if value is None or isinstance(value, bool):
            return None
        try:
            ts = float(value)
        except (TypeError, ValueError):
            return None
        # Anything past year ~5000 in seconds is really milliseconds
        if ts > 1e11:
            ts /= 1000
        return datetime.fromtimestamp(ts, tz=timezone.utc)
