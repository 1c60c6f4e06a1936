"""
Webhook Endpoints Router

Workspace-scoped management of outbound webhook endpoints and their
delivery history. Every route requires the settings.webhooks.manage
permission on the workspace in the path.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from src.core.auth import WebhookContext
from src.models.contracts.webhooks import (
    WebhookDeliveryListResponse,
    WebhookDeliveryResponse,
    WebhookEndpointCreate,
    WebhookEndpointCreatedResponse,
    WebhookEndpointListResponse,
    WebhookEndpointResponse,
    WebhookEndpointUpdate,
)
from src.models.enums import DeliveryStatusFilter
from src.models.orm.webhooks import WebhookEndpoint
from src.repositories.webhook_deliveries import WebhookDeliveryRepository
from src.repositories.webhook_endpoints import WebhookEndpointRepository
from src.services.outbound.queue import RabbitMQDeliveryQueue
from src.services.outbound.worker import DeliveryWorker

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/workspaces/{workspace_id}/webhook-endpoints",
    tags=["Webhook Endpoints"],
)


async def _get_endpoint_or_404(
    repo: WebhookEndpointRepository,
    endpoint_id: UUID,
) -> WebhookEndpoint:
    """Resolve an endpoint in the current workspace, or raise 404."""
    endpoint = await repo.get_endpoint(endpoint_id)
    if not endpoint:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Webhook endpoint not found",
        )
    return endpoint


# =============================================================================
# Endpoints
# =============================================================================


@router.get(
    "",
    response_model=WebhookEndpointListResponse,
    summary="List webhook endpoints",
    description="List the workspace's outbound webhook endpoints, newest first.",
)
async def list_endpoints(
    ctx: WebhookContext,
    is_active: bool | None = Query(None, description="Filter by active flag"),
    event: str | None = Query(None, max_length=100, description="Filter by subscribed event"),
    limit: int = Query(15, ge=1, le=100, description="Max results"),
    offset: int = Query(0, ge=0, description="Skip results"),
) -> WebhookEndpointListResponse:
    """List endpoints. The signing secret is never included."""
    repo = WebhookEndpointRepository(ctx.db, ctx.workspace_id)
    endpoints, total = await repo.list_endpoints(
        is_active=is_active,
        event=event,
        limit=limit,
        offset=offset,
    )

    return WebhookEndpointListResponse(
        items=[WebhookEndpointResponse.model_validate(e) for e in endpoints],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.post(
    "",
    response_model=WebhookEndpointCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create webhook endpoint",
    description="Register an endpoint. The response carries the signing secret; it is not shown again.",
)
async def create_endpoint(
    request: WebhookEndpointCreate,
    ctx: WebhookContext,
) -> WebhookEndpointCreatedResponse:
    """Register a new endpoint with a generated signing secret."""
    repo = WebhookEndpointRepository(ctx.db, ctx.workspace_id)
    endpoint = await repo.create_endpoint(
        url=request.url,
        events=request.events,
        is_active=request.is_active,
    )

    logger.info(
        f"Created webhook endpoint {endpoint.id}",
        extra={
            "endpoint_id": str(endpoint.id),
            "workspace_id": str(ctx.workspace_id),
            "user_id": ctx.user_id,
            "events": endpoint.events,
        },
    )

    return WebhookEndpointCreatedResponse.model_validate(endpoint)


@router.get(
    "/{endpoint_id}",
    response_model=WebhookEndpointResponse,
    summary="Get webhook endpoint",
)
async def get_endpoint(
    endpoint_id: UUID,
    ctx: WebhookContext,
) -> WebhookEndpointResponse:
    """Get an endpoint by ID."""
    repo = WebhookEndpointRepository(ctx.db, ctx.workspace_id)
    endpoint = await _get_endpoint_or_404(repo, endpoint_id)
    return WebhookEndpointResponse.model_validate(endpoint)


@router.patch(
    "/{endpoint_id}",
    response_model=WebhookEndpointResponse,
    summary="Update webhook endpoint",
    description="Change the URL, subscribed events or active flag. The secret cannot be changed.",
)
async def update_endpoint(
    endpoint_id: UUID,
    request: WebhookEndpointUpdate,
    ctx: WebhookContext,
) -> WebhookEndpointResponse:
    """Apply a partial update."""
    repo = WebhookEndpointRepository(ctx.db, ctx.workspace_id)
    endpoint = await _get_endpoint_or_404(repo, endpoint_id)

    endpoint = await repo.update_endpoint(
        endpoint,
        url=request.url,
        events=request.events,
        is_active=request.is_active,
    )

    logger.info(
        f"Updated webhook endpoint {endpoint_id}",
        extra={
            "endpoint_id": str(endpoint_id),
            "workspace_id": str(ctx.workspace_id),
            "fields": sorted(request.model_dump(exclude_none=True)),
        },
    )

    return WebhookEndpointResponse.model_validate(endpoint)


@router.delete(
    "/{endpoint_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete webhook endpoint",
    description="Delete an endpoint together with its delivery history.",
)
async def delete_endpoint(
    endpoint_id: UUID,
    ctx: WebhookContext,
) -> None:
    """Delete an endpoint and its deliveries in one transaction."""
    repo = WebhookEndpointRepository(ctx.db, ctx.workspace_id)
    endpoint = await _get_endpoint_or_404(repo, endpoint_id)

    removed = await repo.delete_endpoint(endpoint)

    logger.info(
        f"Deleted webhook endpoint {endpoint_id} and {removed} delivery record(s)",
        extra={
            "endpoint_id": str(endpoint_id),
            "workspace_id": str(ctx.workspace_id),
            "user_id": ctx.user_id,
        },
    )


# =============================================================================
# Deliveries
# =============================================================================


@router.get(
    "/{endpoint_id}/deliveries",
    response_model=WebhookDeliveryListResponse,
    summary="List webhook deliveries",
    description="Delivery attempts for an endpoint, newest first.",
)
async def list_deliveries(
    endpoint_id: UUID,
    ctx: WebhookContext,
    event: str | None = Query(None, max_length=100, description="Filter by event name"),
    status_filter: DeliveryStatusFilter | None = Query(
        None, alias="status", description="Filter by outcome"
    ),
    limit: int = Query(20, ge=1, le=100, description="Max results"),
    offset: int = Query(0, ge=0, description="Skip results"),
) -> WebhookDeliveryListResponse:
    """List an endpoint's delivery attempts."""
    repo = WebhookEndpointRepository(ctx.db, ctx.workspace_id)
    endpoint = await _get_endpoint_or_404(repo, endpoint_id)

    deliveries, total = await WebhookDeliveryRepository(ctx.db).list_deliveries(
        endpoint.id,
        event=event,
        status=status_filter,
        limit=limit,
        offset=offset,
    )

    return WebhookDeliveryListResponse(
        items=[WebhookDeliveryResponse.model_validate(d) for d in deliveries],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.post(
    "/{endpoint_id}/test",
    response_model=WebhookDeliveryResponse,
    summary="Send test delivery",
    description="Send one signed \"test\" event synchronously and return the recorded attempt. Never retried.",
)
async def test_endpoint(
    endpoint_id: UUID,
    ctx: WebhookContext,
) -> WebhookDeliveryResponse:
    """Deliver a test event to the endpoint and return the attempt record."""
    repo = WebhookEndpointRepository(ctx.db, ctx.workspace_id)
    endpoint = await _get_endpoint_or_404(repo, endpoint_id)

    worker = DeliveryWorker(ctx.db, RabbitMQDeliveryQueue())
    record = await worker.send_test(endpoint)

    return WebhookDeliveryResponse.model_validate(record)
