"""
Delivery task queues.

DeliveryQueue is what the dispatcher and the worker enqueue onto:
- RabbitMQDeliveryQueue: production; consumed by the worker process
- LocalDeliveryQueue: in-process pool of asyncio workers sharing one
  asyncio.Queue, with delays driven by an injectable Clock
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Callable

from src.config import get_settings
from src.jobs.rabbitmq import publish_delayed_message, publish_message
from src.services.outbound.clock import Clock, system_clock
from src.services.outbound.tasks import DeliveryTask

logger = logging.getLogger(__name__)

TaskHandler = Callable[[DeliveryTask], Awaitable[object]]


class DeliveryQueue(ABC):
    """Destination for delivery tasks. Enqueueing never waits for delivery."""

    @abstractmethod
    async def enqueue(self, task: DeliveryTask, delay_seconds: float = 0) -> None:
        """Schedule a task to run after an optional delay."""
        pass


class RabbitMQDeliveryQueue(DeliveryQueue):
    """Publishes tasks to the delivery work queue."""

    def __init__(self, queue_name: str | None = None):
        self.queue_name = queue_name or get_settings().delivery_queue

    async def enqueue(self, task: DeliveryTask, delay_seconds: float = 0) -> None:
        message = task.to_message()
        if delay_seconds > 0:
            await publish_delayed_message(self.queue_name, message, int(delay_seconds))
        else:
            await publish_message(self.queue_name, message)


class LocalDeliveryQueue(DeliveryQueue):
    """
    In-process worker pool.

    Usage:
        queue = LocalDeliveryQueue(concurrency=4)
        queue.start(handler)
        await queue.enqueue(task)
        await queue.join()
        await queue.stop()
    """

    def __init__(self, concurrency: int = 4, clock: Clock | None = None):
        self.concurrency = concurrency
        self.clock = clock or system_clock
        self._queue: asyncio.Queue[DeliveryTask] = asyncio.Queue()
        self._workers: list[asyncio.Task] = []
        self._timers: set[asyncio.Task] = set()

    async def enqueue(self, task: DeliveryTask, delay_seconds: float = 0) -> None:
        if delay_seconds > 0:
            timer = asyncio.create_task(self._enqueue_later(task, delay_seconds))
            self._timers.add(timer)
            timer.add_done_callback(self._timers.discard)
        else:
            self._queue.put_nowait(task)

    async def _enqueue_later(self, task: DeliveryTask, delay_seconds: float) -> None:
        await self.clock.sleep(delay_seconds)
        self._queue.put_nowait(task)

    def start(self, handler: TaskHandler) -> None:
        """Spawn the worker tasks."""
        if self._workers:
            return
        self._workers = [
            asyncio.create_task(self._work(handler, n)) for n in range(self.concurrency)
        ]

    async def _work(self, handler: TaskHandler, worker_number: int) -> None:
        while True:
            task = await self._queue.get()
            try:
                await handler(task)
            except Exception as e:
                logger.error(
                    f"Local delivery worker {worker_number} failed: {e}",
                    extra={
                        "endpoint_id": str(task.endpoint_id),
                        "event": task.event,
                        "attempt": task.attempt,
                    },
                    exc_info=True,
                )
            finally:
                self._queue.task_done()

    async def join(self) -> None:
        """Wait until no task is queued, running or waiting out a delay."""
        while True:
            if self._timers:
                await asyncio.gather(*list(self._timers))
            await self._queue.join()
            if not self._timers and self._queue.empty():
                return

    async def stop(self) -> None:
        """Cancel workers and pending delayed tasks."""
        for task in [*self._workers, *self._timers]:
            task.cancel()
        await asyncio.gather(*self._workers, *self._timers, return_exceptions=True)
        self._workers = []
        self._timers.clear()
