"""
Webhook contract models for Hookline.

Defines request/response models for outbound endpoint management,
the delivery audit log, and the inbound receiver envelopes.

WebhookEndpointResponse deliberately has no secret field: it is the only
shape used for list/show/update, so the secret cannot leak through them.
"""

import re
from datetime import datetime
from typing import Any
from urllib.parse import urlparse
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

MAX_URL_LENGTH = 2048
MAX_EVENT_NAME_LENGTH = 100
# Event names travel in the X-Webhook-Event header
EVENT_NAME_PATTERN = re.compile(r"[\x21-\x7e]+")


def _validate_url(v: str) -> str:
    parsed = urlparse(v)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError("url must be an absolute http(s) URL")
    return v


def _validate_events(v: list[str]) -> list[str]:
    cleaned: list[str] = []
    for event in v:
        event = event.strip()
        if not event:
            raise ValueError("event names must not be empty")
        if len(event) > MAX_EVENT_NAME_LENGTH:
            raise ValueError(f"event names must be at most {MAX_EVENT_NAME_LENGTH} characters")
        if not EVENT_NAME_PATTERN.fullmatch(event):
            raise ValueError("event names must be printable ASCII without spaces")
        if event not in cleaned:
            cleaned.append(event)
    return cleaned


# ==================== ENDPOINT REQUEST MODELS ====================


class WebhookEndpointCreate(BaseModel):
    """
    Request model for registering an endpoint.
    POST /api/v1/workspaces/{workspace_id}/webhook-endpoints
    """

    url: str = Field(
        ...,
        max_length=MAX_URL_LENGTH,
        description="Destination URL receiving signed POSTs",
    )
    events: list[str] = Field(
        ...,
        min_length=1,
        description="Event names this endpoint subscribes to",
    )
    is_active: bool = Field(
        default=True,
        description="Whether deliveries are sent to this endpoint",
    )

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Require an absolute http(s) URL."""
        return _validate_url(v)

    @field_validator("events")
    @classmethod
    def validate_events(cls, v: list[str]) -> list[str]:
        """Trim, bound and de-duplicate event names."""
        return _validate_events(v)


class WebhookEndpointUpdate(BaseModel):
    """
    Request model for updating an endpoint. Omitted fields are left unchanged.
    PATCH /api/v1/workspaces/{workspace_id}/webhook-endpoints/{endpoint_id}
    """

    url: str | None = Field(
        default=None,
        max_length=MAX_URL_LENGTH,
        description="Destination URL",
    )
    events: list[str] | None = Field(
        default=None,
        min_length=1,
        description="Replacement list of subscribed event names",
    )
    is_active: bool | None = Field(
        default=None,
        description="Whether deliveries are sent to this endpoint",
    )

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str | None) -> str | None:
        """Require an absolute http(s) URL."""
        return _validate_url(v) if v is not None else v

    @field_validator("events")
    @classmethod
    def validate_events(cls, v: list[str] | None) -> list[str] | None:
        """Trim, bound and de-duplicate event names."""
        return _validate_events(v) if v is not None else v


# ==================== ENDPOINT RESPONSE MODELS ====================


class WebhookEndpointResponse(BaseModel):
    """
    Response model for a single endpoint (list, show, update).
    """

    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(..., description="Endpoint ID")
    workspace_id: UUID = Field(..., description="Owning workspace")
    url: str = Field(..., description="Destination URL")
    events: list[str] = Field(..., description="Subscribed event names")
    is_active: bool = Field(..., description="Whether deliveries are sent")
    failure_count: int = Field(..., description="Failed attempts since the last success")
    last_triggered_at: datetime | None = Field(
        default=None,
        description="When the last delivery attempt was made",
    )
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")


class WebhookEndpointCreatedResponse(WebhookEndpointResponse):
    """
    Response model for a newly created endpoint.

    The signing secret is returned here and nowhere else; receivers need it
    to verify X-Webhook-Signature.
    """

    secret: str = Field(..., description="Signing secret, shown once")


class WebhookEndpointListResponse(BaseModel):
    """
    Response model for listing endpoints.
    GET /api/v1/workspaces/{workspace_id}/webhook-endpoints
    """

    items: list[WebhookEndpointResponse] = Field(..., description="Page of endpoints")
    total: int = Field(..., description="Total endpoints matching the filters")
    limit: int = Field(..., description="Page size")
    offset: int = Field(..., description="Items skipped")


# ==================== DELIVERY RESPONSE MODELS ====================


class WebhookDeliveryResponse(BaseModel):
    """
    Response model for one delivery attempt.
    """

    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(..., description="Delivery ID (sent as X-Webhook-Delivery)")
    endpoint_id: UUID = Field(..., description="Endpoint ID")
    event: str = Field(..., description="Event name")
    payload: Any = Field(default=None, description="Event data that was sent")
    attempt: int = Field(..., description="Attempt number, starting at 1")
    response_code: int | None = Field(
        default=None,
        description="HTTP status from the receiver (null on network error)",
    )
    response_body: str | None = Field(
        default=None,
        description="Truncated response body, or the network error message",
    )
    duration_ms: int = Field(..., description="Attempt duration in milliseconds")
    delivered_at: datetime | None = Field(
        default=None,
        description="When a response was received (null on network error)",
    )
    created_at: datetime = Field(..., description="Creation timestamp")
    succeeded: bool = Field(..., description="Whether the receiver answered below 400")


class WebhookDeliveryListResponse(BaseModel):
    """
    Response model for listing an endpoint's deliveries.
    GET /api/v1/workspaces/{workspace_id}/webhook-endpoints/{endpoint_id}/deliveries
    """

    items: list[WebhookDeliveryResponse] = Field(..., description="Page of deliveries")
    total: int = Field(..., description="Total deliveries matching the filters")
    limit: int = Field(..., description="Page size")
    offset: int = Field(..., description="Items skipped")


# ==================== INBOUND RECEIVER MODELS ====================


class WebhookAcceptedResponse(BaseModel):
    """
    Response model for an accepted inbound webhook.
    POST /api/v1/webhooks/{platform}
    """

    success: bool = Field(default=True)
    processed: int = Field(..., description="Number of normalized events handed off")


class WebhookErrorResponse(BaseModel):
    """
    Response model for a rejected or failed inbound webhook.
    """

    success: bool = Field(default=False)
    error: str = Field(..., description="Generic error message")


class CrcResponse(BaseModel):
    """
    Response model for a Twitter CRC challenge.
    GET /api/v1/webhooks/twitter?crc_token=...
    """

    response_token: str = Field(..., description="sha256=<base64 HMAC of crc_token>")
