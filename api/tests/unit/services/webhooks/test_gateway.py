"""Unit tests for the inbound webhook gateway and adapter registry."""

import hashlib
import hmac
import logging

import pytest

from src.core.exceptions import MalformedPayloadError
from src.services.webhooks.adapters.meta import FacebookAdapter
from src.services.webhooks.gateway import InboundWebhookGateway
from src.services.webhooks.protocol import Deliver, Rejected, WebhookRequest
from src.services.webhooks.registry import AdapterRegistry, get_adapter


def make_request(body: bytes, signature: str | None = None) -> WebhookRequest:
    headers = {}
    if signature is not None:
        headers["x-hub-signature-256"] = signature
    return WebhookRequest(
        method="POST",
        path="/api/v1/webhooks/facebook",
        headers=headers,
        query_params={},
        body=body,
    )


class TestAdapterRegistry:
    """Tests for platform adapter lookup."""

    def test_builtin_platforms_are_registered(self):
        assert AdapterRegistry().platforms() == ["facebook", "instagram", "twitter", "whatsapp"]

    def test_unknown_platform_returns_none(self):
        assert get_adapter("myspace") is None

    def test_instances_are_cached(self):
        registry = AdapterRegistry()
        assert registry.get("twitter") is registry.get("twitter")


class TestInboundWebhookGateway:
    """Tests for gateway logging and error propagation."""

    async def test_rejection_is_logged_as_warning_without_secrets(self, caplog):
        gateway = InboundWebhookGateway()

        with caplog.at_level(logging.WARNING, logger="src.services.webhooks.gateway"):
            result = await gateway.process(FacebookAdapter(), make_request(b"{}", "sha256=00"))

        assert isinstance(result, Rejected)
        records = [r for r in caplog.records if r.name == "src.services.webhooks.gateway"]
        assert len(records) == 1
        assert records[0].levelno == logging.WARNING
        assert records[0].platform == "facebook"
        assert records[0].path == "/api/v1/webhooks/facebook"
        assert records[0].signature_present is True
        assert "facebook-app-secret" not in caplog.text

    async def test_malformed_payload_is_logged_and_reraised(self, caplog):
        body = b"not json"
        digest = hmac.new(b"facebook-app-secret", body, hashlib.sha256).hexdigest()
        gateway = InboundWebhookGateway()

        with caplog.at_level(logging.ERROR, logger="src.services.webhooks.gateway"):
            with pytest.raises(MalformedPayloadError):
                await gateway.process(FacebookAdapter(), make_request(body, f"sha256={digest}"))

        errors = [r for r in caplog.records if r.levelno == logging.ERROR]
        assert errors
        assert errors[0].exc_info is not None

    async def test_deliver_passes_through(self):
        body = b'{"object":"page","entry":[]}'
        digest = hmac.new(b"facebook-app-secret", body, hashlib.sha256).hexdigest()

        result = await InboundWebhookGateway().process(
            FacebookAdapter(), make_request(body, f"sha256={digest}")
        )

        assert isinstance(result, Deliver)
