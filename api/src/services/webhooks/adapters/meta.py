"""
Meta-family webhook adapters (Facebook, Instagram, WhatsApp).

All three use the same Graph webhook protocol:
- GET  ?hub.mode=subscribe&hub.verify_token=...&hub.challenge=...
- POST with X-Hub-Signature-256: sha256=<hex HMAC of the raw body>

PHP-style proxies rewrite the dots to underscores, so both spellings of
the hub parameters are accepted.
"""

import logging
from typing import Any

from src.core.exceptions import MalformedPayloadError
from src.services.webhooks.protocol import (
    InboundEvent,
    PlatformAdapter,
    Rejected,
    ValidationResponse,
    WebhookRequest,
)
from src.services.webhooks.signatures import (
    SHA256_PREFIX,
    tokens_match,
    verify_hmac_sha256,
)

logger = logging.getLogger(__name__)


class MetaAdapter(PlatformAdapter):
    """
    Shared Graph webhook handling.

    Subclasses name the settings holding their app secret and verify token.
    """

    signature_header = "x-hub-signature-256"

    secret_setting: str = ""
    verify_token_setting: str = ""

    def _setting(self, name: str) -> str | None:
        return getattr(self.settings, name, None)

    async def handle_verification(self, request: WebhookRequest) -> ValidationResponse | Rejected:
        mode = request.query("hub.mode", "hub_mode")
        token = request.query("hub.verify_token", "hub_verify_token")
        challenge = request.query("hub.challenge", "hub_challenge")

        expected = self._setting(self.verify_token_setting)
        if not expected:
            logger.error(
                f"{self.display_name} verify token is not configured",
                extra={"platform": self.name, "setting": self.verify_token_setting},
            )
            return Rejected(message="Invalid verification token", status_code=403)

        if mode != "subscribe" or not tokens_match(expected, token) or challenge is None:
            return Rejected(message="Invalid verification token", status_code=403)

        logger.info(f"{self.display_name} webhook subscription verified")
        return ValidationResponse(status_code=200, body=challenge, content_type="text/plain")

    def verify_signature(self, request: WebhookRequest) -> bool:
        secret = self._setting(self.secret_setting)
        if not secret:
            logger.error(
                f"{self.display_name} app secret is not configured; rejecting webhook",
                extra={"platform": self.name, "setting": self.secret_setting},
            )
            return False

        return verify_hmac_sha256(
            request.body,
            secret,
            request.headers.get(self.signature_header),
            prefix=SHA256_PREFIX,
        )

    def normalize(self, payload: dict[str, Any]) -> list[InboundEvent]:
        """
        One event per entry[].changes[] item and per entry[].messaging[] item.

        Changes keep their Graph field name as event_type (feed, comments,
        mentions, messages, ...); Messenger-style messaging items become
        "messages".
        """
        entries = payload.get("entry", [])
        if not isinstance(entries, list):
            raise MalformedPayloadError(self.name, "'entry' is not a list")

        events: list[InboundEvent] = []
        for entry in entries:
            if not isinstance(entry, dict):
                raise MalformedPayloadError(self.name, "entry item is not an object")

            account_id = entry.get("id")
            account_id = str(account_id) if account_id is not None else None
            occurred_at = self.parse_timestamp(entry.get("time"))

            for change in self._items(entry, "changes"):
                events.append(
                    InboundEvent(
                        platform=self.name,
                        event_type=str(change.get("field") or "unknown"),
                        account_id=account_id,
                        data=change.get("value"),
                        occurred_at=occurred_at,
                    )
                )

            for message in self._items(entry, "messaging"):
                events.append(
                    InboundEvent(
                        platform=self.name,
                        event_type="messages",
                        account_id=account_id,
                        data=message,
                        occurred_at=self.parse_timestamp(message.get("timestamp")) or occurred_at,
                    )
                )

        return events

    def _items(self, entry: dict[str, Any], key: str) -> list[dict[str, Any]]:
        items = entry.get(key, [])
        if not isinstance(items, list) or not all(isinstance(i, dict) for i in items):
            raise MalformedPayloadError(self.name, f"'{key}' is not a list of objects")
        return items


class FacebookAdapter(MetaAdapter):
    """Facebook Page webhooks."""

    name = "facebook"
    display_name = "Facebook"
    secret_setting = "facebook_app_secret"
    verify_token_setting = "facebook_verify_token"


class InstagramAdapter(MetaAdapter):
    """Instagram webhooks, delivered through the same Facebook app."""

    name = "instagram"
    display_name = "Instagram"
    secret_setting = "facebook_app_secret"
    verify_token_setting = "facebook_verify_token"


class WhatsAppAdapter(MetaAdapter):
    """WhatsApp Business Account webhooks."""

    name = "whatsapp"
    display_name = "WhatsApp"
    secret_setting = "whatsapp_app_secret"
    verify_token_setting = "whatsapp_verify_token"
