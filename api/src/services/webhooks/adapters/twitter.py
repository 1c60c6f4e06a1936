"""
Twitter (X) Account Activity webhook adapter.

- GET ?crc_token=... must be answered with an HMAC of the token
- POST with X-Twitter-Webhooks-Signature: sha256=<base64 HMAC of the raw body>
"""

import logging
from typing import Any

from src.core.exceptions import MalformedPayloadError
from src.models.contracts.webhooks import CrcResponse
from src.services.webhooks.protocol import (
    InboundEvent,
    PlatformAdapter,
    Rejected,
    ValidationResponse,
    WebhookRequest,
)
from src.services.webhooks.signatures import (
    crc_response_token,
    verify_base64_hmac_sha256,
)

logger = logging.getLogger(__name__)

EVENTS_SUFFIX = "_events"


class TwitterAdapter(PlatformAdapter):
    """Twitter Account Activity API webhooks."""

    name = "twitter"
    display_name = "Twitter"
    signature_header = "x-twitter-webhooks-signature"

    async def handle_verification(self, request: WebhookRequest) -> ValidationResponse | Rejected:
        crc_token = request.query_params.get("crc_token")
        if not crc_token:
            return Rejected(message="Missing crc_token", status_code=400)

        secret = self.settings.twitter_consumer_secret
        if not secret:
            logger.error(
                "Twitter consumer secret is not configured; cannot answer CRC",
                extra={"platform": self.name},
            )
            return Rejected(message="Invalid webhook signature", status_code=403)

        return ValidationResponse(
            status_code=200,
            body=CrcResponse(response_token=crc_response_token(crc_token, secret)).model_dump_json(),
            content_type="application/json",
        )

    def verify_signature(self, request: WebhookRequest) -> bool:
        secret = self.settings.twitter_consumer_secret
        if not secret:
            logger.error(
                "Twitter consumer secret is not configured; rejecting webhook",
                extra={"platform": self.name},
            )
            return False

        return verify_base64_hmac_sha256(
            request.body,
            secret,
            request.headers.get(self.signature_header),
        )

    def normalize(self, payload: dict[str, Any]) -> list[InboundEvent]:
        """
        One event per item of every "<kind>_events" list.

        tweet_create_events becomes event_type "tweet_create",
        direct_message_events becomes "direct_message", and so on.
        """
        for_user_id = payload.get("for_user_id")
        account_id = str(for_user_id) if for_user_id is not None else None

        events: list[InboundEvent] = []
        for key, items in payload.items():
            if not key.endswith(EVENTS_SUFFIX):
                continue
            if not isinstance(items, list):
                raise MalformedPayloadError(self.name, f"'{key}' is not a list")

            event_type = key[: -len(EVENTS_SUFFIX)]
            for item in items:
                occurred_at = None
                if isinstance(item, dict):
                    occurred_at = self.parse_timestamp(
                        item.get("created_timestamp") or item.get("timestamp_ms")
                    )
                events.append(
                    InboundEvent(
                        platform=self.name,
                        event_type=event_type,
                        account_id=account_id,
                        data=item,
                        occurred_at=occurred_at,
                    )
                )

        return events
