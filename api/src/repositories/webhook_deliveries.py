"""
Webhook Delivery Repository

Append-only audit log of outbound delivery attempts. Rows are inserted
once per attempt and only ever removed together with their endpoint.
"""

from typing import Sequence
from uuid import UUID

from sqlalchemy import func, select

from src.models.enums import DeliveryStatusFilter
from src.models.orm.webhooks import WebhookDelivery
from src.repositories.base import BaseRepository


class WebhookDeliveryRepository(BaseRepository[WebhookDelivery]):
    """Repository for delivery attempt records."""

    model = WebhookDelivery

    async def append(self, record: WebhookDelivery) -> WebhookDelivery:
        """Persist one attempt record."""
        return await self.create(record)

    async def list_deliveries(
        self,
        endpoint_id: UUID,
        event: str | None = None,
        status: DeliveryStatusFilter | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[Sequence[WebhookDelivery], int]:
        """
        List attempts for an endpoint, newest first.

        Callers must resolve the endpoint through a workspace-scoped
        repository before calling this.

        Args:
            endpoint_id: Endpoint whose history to read
            event: Only attempts for this event name
            status: Only succeeded (<400) or failed (>=400 / network error) attempts
            limit: Max results
            offset: Skip results

        Returns:
            Tuple of (page of deliveries, total matching)
        """
        conditions = [WebhookDelivery.endpoint_id == endpoint_id]

        if event:
            conditions.append(WebhookDelivery.event == event)

        if status == DeliveryStatusFilter.SUCCEEDED:
            conditions.append(WebhookDelivery.response_code.is_not(None))
            conditions.append(WebhookDelivery.response_code < 400)
        elif status == DeliveryStatusFilter.FAILED:
            conditions.append(
                WebhookDelivery.response_code.is_(None)
                | (WebhookDelivery.response_code >= 400)
            )

        result = await self.session.execute(
            select(WebhookDelivery)
            .where(*conditions)
            .order_by(WebhookDelivery.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        items = result.scalars().all()

        count_result = await self.session.execute(
            select(func.count(WebhookDelivery.id)).where(*conditions)
        )
        total = count_result.scalar() or 0

        return items, total
