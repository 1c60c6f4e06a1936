"""
Webhook Delivery Worker

Executes one delivery attempt per task:

1. Build and sign the envelope
2. POST it with a timeout
3. Classify the outcome (Responded | NetworkError)
4. Append one WebhookDelivery record
5. Atomically update endpoint health
6. Re-enqueue with backoff, or run the permanent-failure handler

Attempt n is followed by attempt n+1 after backoff[n-1] seconds, up to
delivery_max_attempts in total.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any
from uuid import uuid4

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import Settings, get_settings
from src.models.orm.webhooks import WebhookDelivery, WebhookEndpoint
from src.repositories.webhook_deliveries import WebhookDeliveryRepository
from src.repositories.webhook_endpoints import WebhookEndpointRepository
from src.services.outbound.clock import Clock, system_clock
from src.services.outbound.envelope import build_envelope, build_headers
from src.services.outbound.queue import DeliveryQueue
from src.services.outbound.tasks import DeliveryTask

logger = logging.getLogger(__name__)

TEST_EVENT = "test"


# ==================== OUTCOMES ====================


@dataclass(frozen=True)
class Responded:
    """The receiver answered, with any status code."""

    status_code: int
    body: str

    @property
    def succeeded(self) -> bool:
        return self.status_code < 400


@dataclass(frozen=True)
class NetworkError:
    """No response: DNS, connect, TLS, timeout or protocol failure."""

    message: str

    @property
    def succeeded(self) -> bool:
        return False


DeliveryOutcome = Responded | NetworkError


# ==================== WORKER ====================


class DeliveryWorker:
    """
    Delivers webhook tasks for one database session.

    Args:
        session: Session used for the audit log and health updates
        queue: Where retries are enqueued
        settings: Defaults to the cached application settings
        clock: Time source (inject a fake in tests)
        transport: Optional httpx transport (e.g. httpx.MockTransport)
    """

    def __init__(
        self,
        session: AsyncSession,
        queue: DeliveryQueue,
        settings: Settings | None = None,
        clock: Clock | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.session = session
        self.queue = queue
        self.settings = settings or get_settings()
        self.clock = clock or system_clock
        self.transport = transport
        self.deliveries = WebhookDeliveryRepository(session)

    def backoff_for(self, attempt: int) -> int:
        """Delay in seconds between attempt `attempt` and the next one."""
        delays = self.settings.delivery_backoff or [0]
        return delays[min(attempt, len(delays)) - 1]

    async def run(self, task: DeliveryTask) -> WebhookDelivery | None:
        """
        Execute one queued attempt and schedule what comes next.

        Returns:
            The attempt's record, or None if the endpoint is gone or inactive
        """
        endpoints = WebhookEndpointRepository(self.session, task.workspace_id)
        endpoint = await endpoints.get_endpoint(task.endpoint_id)

        log_extra = {
            "endpoint_id": str(task.endpoint_id),
            "workspace_id": str(task.workspace_id),
            "event": task.event,
            "attempt": task.attempt,
        }

        if endpoint is None:
            logger.info("Dropping webhook delivery: endpoint no longer exists", extra=log_extra)
            return None

        if not endpoint.is_active:
            logger.info("Dropping webhook delivery: endpoint is inactive", extra=log_extra)
            return None

        record = await self.attempt(
            endpoints,
            endpoint,
            task.event,
            task.payload,
            attempt=task.attempt,
            timeout=self.settings.delivery_timeout_seconds,
        )
        # Record and health must be durable before a retry can observe them
        await self.session.commit()

        if record.succeeded:
            return record

        if task.attempt < self.settings.delivery_max_attempts:
            delay = self.backoff_for(task.attempt)
            logger.warning(
                f"Webhook delivery attempt {task.attempt} failed, retrying in {delay}s",
                extra={**log_extra, "response_code": record.response_code, "delay_seconds": delay},
            )
            await self.queue.enqueue(task.next_attempt(), delay_seconds=delay)
        else:
            await self.handle_permanent_failure(endpoints, endpoint, task, record)
            await self.session.commit()

        return record

    async def send_test(self, endpoint: WebhookEndpoint) -> WebhookDelivery:
        """
        Send a single, never-retried "test" delivery with the longer timeout.

        The caller owns the transaction.
        """
        endpoints = WebhookEndpointRepository(self.session, endpoint.workspace_id)
        payload = {
            "message": "This is a test webhook delivery",
            "endpoint_id": str(endpoint.id),
        }
        return await self.attempt(
            endpoints,
            endpoint,
            TEST_EVENT,
            payload,
            attempt=1,
            timeout=self.settings.test_delivery_timeout_seconds,
        )

    async def attempt(
        self,
        endpoints: WebhookEndpointRepository,
        endpoint: WebhookEndpoint,
        event: str,
        payload: Any,
        attempt: int,
        timeout: float,
    ) -> WebhookDelivery:
        """
        Make exactly one HTTP attempt and record it.

        Always produces one WebhookDelivery, whatever happened on the wire.
        """
        delivery_id = uuid4()
        body = build_envelope(event, payload, self.clock.now())
        headers = build_headers(body, endpoint.secret, event, delivery_id)

        started = self.clock.monotonic()
        outcome = await self._send(endpoint.url, body, headers, timeout)
        duration_ms = max(0, int((self.clock.monotonic() - started) * 1000))
        completed_at = self.clock.now()

        if isinstance(outcome, Responded):
            response_code: int | None = outcome.status_code
            response_body: str | None = outcome.body
            delivered_at = completed_at
        else:
            response_code = None
            response_body = outcome.message
            delivered_at = None

        record = await self.deliveries.append(
            WebhookDelivery(
                id=delivery_id,
                endpoint_id=endpoint.id,
                event=event,
                payload=payload,
                attempt=attempt,
                response_code=response_code,
                response_body=response_body,
                duration_ms=duration_ms,
                delivered_at=delivered_at,
                created_at=completed_at,
            )
        )

        if outcome.succeeded:
            await endpoints.record_success(endpoint.id, at=completed_at)
        else:
            await endpoints.record_failure(endpoint.id, at=completed_at)

        logger.info(
            f"Webhook delivery attempt {attempt} to {endpoint.url}: "
            f"{response_code if response_code is not None else 'network error'}",
            extra={
                "endpoint_id": str(endpoint.id),
                "delivery_id": str(delivery_id),
                "event": event,
                "attempt": attempt,
                "response_code": response_code,
                "duration_ms": duration_ms,
            },
        )
        return record

    async def _send(
        self,
        url: str,
        body: bytes,
        headers: dict[str, str],
        timeout: float,
    ) -> DeliveryOutcome:
        """POST the body and classify what came back."""
        task_timeout = max(self.settings.delivery_task_timeout_seconds, timeout)

        try:
            async with httpx.AsyncClient(
                timeout=timeout,
                transport=self.transport,
                follow_redirects=False,
            ) as client:
                return await asyncio.wait_for(
                    self._post(client, url, body, headers),
                    timeout=task_timeout,
                )
        except asyncio.TimeoutError:
            return NetworkError(message=f"Delivery timed out after {task_timeout:g}s")
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            return NetworkError(message=str(e) or type(e).__name__)
        except UnicodeEncodeError as e:
            # Header values must be ASCII on the wire
            return NetworkError(message=f"Request could not be encoded: {e.reason}")

    async def _post(
        self,
        client: httpx.AsyncClient,
        url: str,
        body: bytes,
        headers: dict[str, str],
    ) -> Responded:
        """Send the request, reading at most the stored prefix of the response."""
        limit = self.settings.delivery_response_body_limit
        chunks: list[str] = []
        size = 0
        async with client.stream("POST", url, content=body, headers=headers) as response:
            async for chunk in response.aiter_text():
                chunks.append(chunk)
                size += len(chunk)
                if size >= limit:
                    break
        return Responded(status_code=response.status_code, body="".join(chunks)[:limit])

    async def handle_permanent_failure(
        self,
        endpoints: WebhookEndpointRepository,
        endpoint: WebhookEndpoint,
        task: DeliveryTask,
        record: WebhookDelivery,
    ) -> None:
        """
        Retries are exhausted: log, count the exhaustion itself as one more
        failure, and apply the optional auto-disable threshold.
        """
        logger.error(
            f"Webhook delivery to {endpoint.url} failed permanently after {task.attempt} attempts",
            extra={
                "endpoint_id": str(endpoint.id),
                "workspace_id": str(task.workspace_id),
                "event": task.event,
                "attempts": task.attempt,
                "last_response_code": record.response_code,
            },
        )
        await endpoints.increment_failure_count(endpoint.id)

        threshold = self.settings.endpoint_auto_disable_threshold
        if threshold > 0 and await endpoints.deactivate_if_failing(endpoint.id, threshold):
            logger.warning(
                f"Deactivated webhook endpoint {endpoint.id} after reaching {threshold} failures",
                extra={"endpoint_id": str(endpoint.id), "threshold": threshold},
            )
