"""
Hookline delivery worker.

Runs the webhook delivery consumer until SIGINT/SIGTERM. Replicas share
the work queue, so the worker scales by adding containers.
"""

import asyncio
import logging
import signal
import sys

from src.config import get_settings
from src.core.database import close_db, init_db
from src.jobs.consumers.webhook_delivery import WebhookDeliveryConsumer
from src.jobs.rabbitmq import BaseConsumer, rabbitmq

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
for noisy in ("aiormq", "aio_pika", "httpx"):
    logging.getLogger(noisy).setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


class Worker:
    """Owns the delivery consumer and the connections it needs."""

    def __init__(self, consumer: BaseConsumer | None = None):
        self.consumer = consumer or WebhookDeliveryConsumer()
        self._stopped = asyncio.Event()

    async def start(self) -> None:
        """Connect, start consuming and block until stop() completes."""
        await init_db()
        await self.consumer.start()
        logger.info(
            f"Delivery worker consuming {self.consumer.queue_name} "
            f"({get_settings().environment})"
        )
        await self._stopped.wait()

    async def stop(self) -> None:
        """Let in-flight deliveries finish, then release connections."""
        try:
            await self.consumer.stop()
        finally:
            await rabbitmq.close()
            await close_db()
            self._stopped.set()
        logger.info("Delivery worker stopped")


async def main() -> None:
    worker = Worker()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, lambda: asyncio.create_task(worker.stop()))

    try:
        await worker.start()
    except Exception as e:
        logger.error(f"Delivery worker failed: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
