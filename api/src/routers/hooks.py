"""
Hooks Router

Public webhook receiver endpoints for social platforms.
These endpoints do NOT require authentication - they are called by the platforms.

Security is handled by adapter-specific validation:
1. Subscription handshakes (hub.verify_token, Twitter CRC)
2. HMAC signatures over the raw request body

Verified events are handed to the inbound consumer after the response is
sent, so the platform never waits on downstream processing.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, Request, Response, status
from fastapi.responses import JSONResponse

from src.core.exceptions import MalformedPayloadError
from src.models.contracts.webhooks import WebhookAcceptedResponse, WebhookErrorResponse
from src.services.webhooks.consumer import InboundEventConsumer, get_inbound_consumer
from src.services.webhooks.gateway import InboundWebhookGateway
from src.services.webhooks.protocol import (
    Deliver,
    InboundEvent,
    Rejected,
    ValidationResponse,
    WebhookRequest,
)
from src.services.webhooks.registry import get_adapter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/webhooks", tags=["Webhooks"])

gateway = InboundWebhookGateway()

PROCESSING_FAILED = "Webhook processing failed"


def _get_client_ip(request: Request) -> str | None:
    """Extract client IP from request, handling proxies."""
    # Check X-Forwarded-For header (set by reverse proxies)
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        # Take the first IP in the chain
        return forwarded.split(",")[0].strip()

    # Fall back to direct client IP
    if request.client:
        return request.client.host

    return None


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(
        content=WebhookErrorResponse(error=message).model_dump(),
        status_code=status_code,
    )


async def _consume_events(
    consumer: InboundEventConsumer,
    platform: str,
    events: list[InboundEvent],
) -> None:
    """Background hand-off. The platform already has its 200, so failures are only logged."""
    try:
        await consumer.consume(events)
    except Exception as e:
        logger.error(
            f"Failed to hand off {len(events)} {platform} event(s): {e}",
            extra={"platform": platform, "count": len(events)},
            exc_info=True,
        )


@router.api_route(
    "/{platform}",
    methods=["GET", "POST"],
    summary="Platform webhook receiver",
    description="Public endpoint for platform subscription checks (GET) and events (POST).",
    include_in_schema=False,  # Don't expose in API docs
)
async def receive_webhook(
    platform: str,
    request: Request,
    background_tasks: BackgroundTasks,
    consumer: Annotated[InboundEventConsumer, Depends(get_inbound_consumer)],
) -> Response:
    """
    Receive a webhook from a social platform.

    Processing flow:
    1. Look up the adapter for {platform}
    2. GET: answer the subscription handshake
    3. POST: verify the signature over the raw body, then parse and normalize
    4. Schedule the hand-off of normalized events
    5. Return 200 {success, processed}
    """
    adapter = get_adapter(platform)
    if adapter is None:
        return _error("Unknown platform", status.HTTP_404_NOT_FOUND)

    webhook_request = await WebhookRequest.from_starlette(request)
    webhook_request.client_ip = _get_client_ip(request)

    try:
        result = await gateway.process(adapter, webhook_request)
    except MalformedPayloadError:
        # Already logged by the gateway
        return _error(PROCESSING_FAILED, status.HTTP_500_INTERNAL_SERVER_ERROR)
    except Exception as e:
        logger.error(
            f"Error processing {platform} webhook: {e}",
            extra={"platform": platform},
            exc_info=True,
        )
        # Return 500 but don't expose internal error details
        return _error(PROCESSING_FAILED, status.HTTP_500_INTERNAL_SERVER_ERROR)

    # Handle result types
    if isinstance(result, ValidationResponse):
        return Response(
            content=result.body,
            status_code=result.status_code,
            media_type=result.content_type,
            headers=result.headers or {},
        )

    if isinstance(result, Rejected):
        return _error(result.message, result.status_code)

    if isinstance(result, Deliver):
        if result.events:
            background_tasks.add_task(_consume_events, consumer, adapter.name, result.events)
        return JSONResponse(
            content=WebhookAcceptedResponse(processed=len(result.events)).model_dump(),
            status_code=status.HTTP_200_OK,
        )

    # Unknown result type
    logger.error(f"Unknown result type from gateway: {type(result)}")
    return _error(PROCESSING_FAILED, status.HTTP_500_INTERNAL_SERVER_ERROR)
