"""
Webhook Endpoint Repository

Workspace-scoped persistence for outbound webhook endpoints:
- CRUD for the management API (secret generated once, never rewritten)
- Dispatch lookup of active endpoints
- Atomic health counter updates for delivery workers
"""

from datetime import datetime
from typing import Sequence
from uuid import UUID

from sqlalchemy import delete, func, select, update

from src.core.security import generate_secret
from src.models.orm.webhooks import WebhookDelivery, WebhookEndpoint
from src.repositories.workspace_scoped import WorkspaceScopedRepository


class WebhookEndpointRepository(WorkspaceScopedRepository[WebhookEndpoint]):
    """Repository for a workspace's webhook endpoints."""

    model = WebhookEndpoint

    # ==================== CRUD ====================

    async def create_endpoint(
        self,
        url: str,
        events: list[str],
        is_active: bool = True,
    ) -> WebhookEndpoint:
        """Register an endpoint with a freshly generated signing secret."""
        endpoint = WebhookEndpoint(
            workspace_id=self.workspace_id,
            url=url,
            events=list(events),
            is_active=is_active,
            secret=generate_secret(),
            failure_count=0,
        )
        return await self.create(endpoint)

    async def get_endpoint(self, endpoint_id: UUID) -> WebhookEndpoint | None:
        """Get an endpoint in this workspace. Other workspaces' endpoints return None."""
        return await self.get_scoped(endpoint_id)

    async def list_endpoints(
        self,
        is_active: bool | None = None,
        event: str | None = None,
        limit: int = 15,
        offset: int = 0,
    ) -> tuple[Sequence[WebhookEndpoint], int]:
        """
        List endpoints in this workspace, newest first.

        Args:
            is_active: Only endpoints with this active flag
            event: Only endpoints subscribed to this event name
            limit: Max results
            offset: Skip results

        Returns:
            Tuple of (page of endpoints, total matching)
        """
        stmt = self.filter_strict(select(WebhookEndpoint))
        count_stmt = select(func.count(WebhookEndpoint.id)).where(
            WebhookEndpoint.workspace_id == self.workspace_id
        )

        if is_active is not None:
            stmt = stmt.where(WebhookEndpoint.is_active.is_(is_active))
            count_stmt = count_stmt.where(WebhookEndpoint.is_active.is_(is_active))

        if event:
            stmt = stmt.where(WebhookEndpoint.events.contains([event]))
            count_stmt = count_stmt.where(WebhookEndpoint.events.contains([event]))

        stmt = stmt.order_by(WebhookEndpoint.created_at.desc()).limit(limit).offset(offset)

        result = await self.session.execute(stmt)
        items = result.scalars().all()

        count_result = await self.session.execute(count_stmt)
        total = count_result.scalar() or 0

        return items, total

    async def update_endpoint(
        self,
        endpoint: WebhookEndpoint,
        url: str | None = None,
        events: list[str] | None = None,
        is_active: bool | None = None,
    ) -> WebhookEndpoint:
        """Apply a partial update. The secret is not an updatable field."""
        if url is not None:
            endpoint.url = url
        if events is not None:
            endpoint.events = list(events)
        if is_active is not None:
            endpoint.is_active = is_active

        await self.session.flush()
        await self.session.refresh(endpoint)
        return endpoint

    async def delete_endpoint(self, endpoint: WebhookEndpoint) -> int:
        """
        Delete an endpoint and its delivery history.

        Deliveries go first, then the endpoint, inside one savepoint so a
        failure leaves both in place.

        Returns:
            Number of delivery records removed
        """
        async with self.session.begin_nested():
            result = await self.session.execute(
                delete(WebhookDelivery).where(WebhookDelivery.endpoint_id == endpoint.id)
            )
            await self.session.delete(endpoint)
            await self.session.flush()
        return result.rowcount or 0

    # ==================== DISPATCH ====================

    async def list_active_subscribed(self, event: str) -> list[WebhookEndpoint]:
        """Get active endpoints in this workspace subscribed to an event."""
        result = await self.session.execute(
            self.filter_strict(select(WebhookEndpoint))
            .where(WebhookEndpoint.is_active.is_(True))
            .where(WebhookEndpoint.events.contains([event]))
            .order_by(WebhookEndpoint.created_at)
        )
        return list(result.scalars().all())

    # ==================== HEALTH ====================
    # Workers race on these rows, so every change is a single UPDATE
    # evaluated by the database rather than a read-modify-write.

    async def record_success(self, endpoint_id: UUID, at: datetime) -> None:
        """Reset failure_count and stamp last_triggered_at."""
        await self._update_health(endpoint_id, failure_count=0, last_triggered_at=at)

    async def record_failure(self, endpoint_id: UUID, at: datetime) -> None:
        """Bump failure_count and stamp last_triggered_at."""
        await self._update_health(
            endpoint_id,
            failure_count=WebhookEndpoint.failure_count + 1,
            last_triggered_at=at,
        )

    async def _update_health(self, endpoint_id: UUID, **values) -> None:
        await self.session.execute(
            update(WebhookEndpoint)
            .where(WebhookEndpoint.id == endpoint_id)
            .where(WebhookEndpoint.workspace_id == self.workspace_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )

    async def increment_failure_count(self, endpoint_id: UUID) -> None:
        """Bump failure_count by one without touching anything else."""
        await self._update_health(endpoint_id, failure_count=WebhookEndpoint.failure_count + 1)

    async def deactivate_if_failing(self, endpoint_id: UUID, threshold: int) -> bool:
        """
        Deactivate the endpoint if its failure_count reached the threshold.

        Returns:
            True if this call deactivated the endpoint
        """
        result = await self.session.execute(
            update(WebhookEndpoint)
            .where(WebhookEndpoint.id == endpoint_id)
            .where(WebhookEndpoint.workspace_id == self.workspace_id)
            .where(WebhookEndpoint.is_active.is_(True))
            .where(WebhookEndpoint.failure_count >= threshold)
            .values(is_active=False)
            .execution_options(synchronize_session=False)
        )
        return bool(result.rowcount)
