"""
Inbound Webhook Gateway

Runs a platform webhook request through its adapter and logs the outcome.
Everything here is bounded by the request body: one HMAC, one JSON parse,
no outbound calls. Hand-off to the inbound consumer happens in the router,
after the response.
"""

import logging

from src.core.exceptions import MalformedPayloadError
from src.services.webhooks.protocol import (
    Deliver,
    HandleResult,
    PlatformAdapter,
    Rejected,
    ValidationResponse,
    WebhookRequest,
)

logger = logging.getLogger(__name__)


class InboundWebhookGateway:
    """
    Processes inbound platform webhooks.

    Verification failures are logged as warnings (security signal, no
    secret material); malformed payloads propagate as MalformedPayloadError
    for the caller to turn into a 500.
    """

    async def process(
        self,
        adapter: PlatformAdapter,
        request: WebhookRequest,
    ) -> HandleResult:
        """
        Process a webhook request for one platform.

        Returns:
            ValidationResponse, Deliver or Rejected from the adapter

        Raises:
            MalformedPayloadError: Signature was valid but the body was not
        """
        log_extra = {
            "platform": adapter.name,
            "method": request.method,
            "path": request.path,
            "source_ip": request.client_ip,
            "content_length": len(request.body),
        }

        try:
            result = await adapter.handle_request(request)
        except MalformedPayloadError:
            logger.error(
                f"Malformed {adapter.display_name} webhook payload after signature verification",
                extra=log_extra,
                exc_info=True,
            )
            raise

        if isinstance(result, Rejected):
            logger.warning(
                f"{adapter.display_name} webhook rejected",
                extra={
                    **log_extra,
                    "status_code": result.status_code,
                    "signature_present": adapter.signature_header in request.headers,
                },
            )
        elif isinstance(result, Deliver):
            event_types = sorted({event.event_type for event in result.events})
            logger.info(
                f"{adapter.display_name} webhook verified: {len(result.events)} event(s)",
                extra={**log_extra, "event_types": event_types},
            )
        elif isinstance(result, ValidationResponse):
            logger.info(
                f"{adapter.display_name} webhook handshake answered",
                extra=log_extra,
            )

        return result
