"""
Contract tests for webhook endpoint management
Tests request/response validation and secret exposure
"""

import pytest
from pydantic import ValidationError

from src.models.contracts.webhooks import (
    WebhookDeliveryResponse,
    WebhookEndpointCreate,
    WebhookEndpointCreatedResponse,
    WebhookEndpointResponse,
    WebhookEndpointUpdate,
)
from tests.helpers.factories import make_delivery, make_endpoint


class TestWebhookEndpointCreate:
    """Test WebhookEndpointCreate validation"""

    def test_valid_request(self):
        request = WebhookEndpointCreate(
            url="https://receiver.example.com/hooks",
            events=["message.created"],
        )

        assert request.is_active is True

    @pytest.mark.parametrize(
        "url",
        ["receiver.example.com/hooks", "ftp://receiver.example.com", "https://", ""],
    )
    def test_invalid_url(self, url):
        with pytest.raises(ValidationError):
            WebhookEndpointCreate(url=url, events=["message.created"])

    def test_url_too_long(self):
        with pytest.raises(ValidationError):
            WebhookEndpointCreate(
                url="https://example.com/" + "a" * 2048,
                events=["message.created"],
            )

    def test_events_required(self):
        with pytest.raises(ValidationError):
            WebhookEndpointCreate(url="https://example.com", events=[])

    def test_events_trimmed_and_deduplicated(self):
        request = WebhookEndpointCreate(
            url="https://example.com",
            events=[" message.created", "message.created", "comment.created "],
        )

        assert request.events == ["message.created", "comment.created"]

    def test_blank_event_rejected(self):
        with pytest.raises(ValidationError):
            WebhookEndpointCreate(url="https://example.com", events=["   "])

    def test_long_event_name_rejected(self):
        with pytest.raises(ValidationError):
            WebhookEndpointCreate(url="https://example.com", events=["e" * 101])

    @pytest.mark.parametrize("event", ["commande.créée", "message created", "tab\tevent"])
    def test_event_names_must_be_header_safe(self, event):
        with pytest.raises(ValidationError):
            WebhookEndpointCreate(url="https://example.com", events=[event])


class TestWebhookEndpointUpdate:
    """Test WebhookEndpointUpdate validation"""

    def test_empty_update_is_valid(self):
        update = WebhookEndpointUpdate()

        assert update.model_dump(exclude_unset=True) == {}

    def test_invalid_url_rejected(self):
        with pytest.raises(ValidationError):
            WebhookEndpointUpdate(url="not a url")

    def test_empty_events_rejected(self):
        with pytest.raises(ValidationError):
            WebhookEndpointUpdate(events=[])


class TestEndpointResponses:
    """Test the secret is only exposed at creation"""

    def test_response_has_no_secret(self):
        endpoint = make_endpoint()

        data = WebhookEndpointResponse.model_validate(endpoint).model_dump()

        assert "secret" not in data
        assert data["id"] == endpoint.id

    def test_created_response_includes_secret(self):
        endpoint = make_endpoint(secret="shown-once")

        data = WebhookEndpointCreatedResponse.model_validate(endpoint).model_dump()

        assert data["secret"] == "shown-once"


class TestWebhookDeliveryResponse:
    """Test delivery serialization"""

    def test_success_flag(self):
        delivery = make_delivery(make_endpoint().id, response_code=201)

        assert WebhookDeliveryResponse.model_validate(delivery).succeeded is True

    def test_network_error_delivery(self):
        delivery = make_delivery(make_endpoint().id, response_code=None)

        response = WebhookDeliveryResponse.model_validate(delivery)

        assert response.succeeded is False
        assert response.response_code is None
        assert response.delivered_at is None
