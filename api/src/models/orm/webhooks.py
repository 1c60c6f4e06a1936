"""
Webhook ORM models.

Represents tenant-registered outbound endpoints and the append-only
audit trail of delivery attempts made against them.
"""

from datetime import datetime, timezone
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models.orm.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WebhookEndpoint(Base):
    """
    Outbound webhook destination registered by a workspace.

    The secret is generated once at creation and never changes; API
    contracts must never serialize it outside the creation response.
    """

    __tablename__ = "webhook_endpoints"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)

    # Scope: the owning workspace (workspaces live in another service, no FK)
    workspace_id: Mapped[UUID] = mapped_column(nullable=False)

    url: Mapped[str] = mapped_column(String(2048), nullable=False)
    secret: Mapped[str] = mapped_column(String(255), nullable=False)
    events: Mapped[list[str]] = mapped_column(JSONB, default=list, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Health
    failure_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_triggered_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=None
    )

    # Audit
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=text("NOW()")
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        server_default=text("NOW()"),
    )

    # Deletion goes through WebhookEndpointRepository.delete_endpoint, which
    # removes deliveries explicitly; passive_deletes avoids loading them.
    deliveries: Mapped[list["WebhookDelivery"]] = relationship(
        back_populates="endpoint",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("ix_webhook_endpoints_workspace_id", "workspace_id"),
        Index("ix_webhook_endpoints_workspace_active", "workspace_id", "is_active"),
        Index("ix_webhook_endpoints_events", "events", postgresql_using="gin"),
    )

    def subscribes_to(self, event: str) -> bool:
        """Check whether this endpoint subscribed to an event name."""
        return event in (self.events or [])


class WebhookDelivery(Base):
    """
    One delivery attempt against an endpoint.

    Written exactly once per attempt and never updated. A retried delivery
    therefore has one row per attempt, distinguished by attempt number.
    The id doubles as the X-Webhook-Delivery header value.
    """

    __tablename__ = "webhook_deliveries"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    endpoint_id: Mapped[UUID] = mapped_column(
        ForeignKey("webhook_endpoints.id", ondelete="CASCADE"), nullable=False
    )

    event: Mapped[str] = mapped_column(String(100), nullable=False)
    payload: Mapped[Any] = mapped_column(JSONB, nullable=True)
    attempt: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    # Outcome (response_code NULL = network error, body holds the message)
    response_code: Mapped[int | None] = mapped_column(Integer, default=None)
    response_body: Mapped[str | None] = mapped_column(Text, default=None)
    duration_ms: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    delivered_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=None
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=text("NOW()")
    )

    endpoint: Mapped["WebhookEndpoint"] = relationship(back_populates="deliveries")

    __table_args__ = (
        Index("ix_webhook_deliveries_endpoint_created", "endpoint_id", "created_at"),
        Index("ix_webhook_deliveries_event", "event"),
    )

    @property
    def succeeded(self) -> bool:
        """A delivery succeeded if the receiver answered below 400."""
        return self.response_code is not None and self.response_code < 400
