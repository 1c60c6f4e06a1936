"""
RabbitMQ Consumer Infrastructure

Provides the base consumer class, connection management and publishing
helpers for background jobs.

Queue topology for a work queue named Q:
- Q: durable, dead-letters rejected messages to exchange Q-dlx
- Q-poison: durable, bound to Q-dlx; holds messages whose processing raised
- Q-retry-<N>s: durable, per-message TTL of N seconds, dead-letters back
  into Q through the default exchange (delayed re-delivery)
"""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from typing import Any

import aio_pika
from aio_pika import IncomingMessage
from aio_pika.abc import AbstractChannel, AbstractRobustChannel, AbstractRobustConnection
from aio_pika.pool import Pool

from src.config import get_settings

logger = logging.getLogger(__name__)


class RabbitMQConnection:
    """
    Manages RabbitMQ connection pool.

    Uses connection pooling for efficient resource usage across consumers
    and publishers.
    """

    _instance: "RabbitMQConnection | None" = None
    _connection_pool: Pool | None = None
    _channel_pool: Pool | None = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def get_connection(self):
        """Get a connection context manager from the pool."""
        if self._connection_pool is None:
            raise RuntimeError("Connection pool not initialized. Call init_pools() first.")
        return self._connection_pool.acquire()

    def get_channel(self):
        """Get a channel context manager from the pool."""
        if self._channel_pool is None:
            raise RuntimeError("Channel pool not initialized. Call init_pools() first.")
        return self._channel_pool.acquire()

    async def init_pools(self) -> None:
        """Initialize connection and channel pools. Must be called before using the connection."""
        if self._connection_pool is not None:
            return  # Already initialized
        await self._init_pools()

    async def _init_pools(self) -> None:
        """Initialize connection and channel pools."""
        settings = get_settings()

        async def get_connection() -> AbstractRobustConnection:
            return await aio_pika.connect_robust(settings.rabbitmq_url)

        async def get_channel() -> AbstractRobustChannel:
            assert self._connection_pool is not None
            async with self._connection_pool.acquire() as connection:
                return await connection.channel()

        # Each consumer holds a connection; 1 delivery consumer + publishers + headroom
        self._connection_pool = Pool(get_connection, max_size=4)
        self._channel_pool = Pool(get_channel, max_size=10)

        logger.info("RabbitMQ connection pools initialized")

    async def close(self) -> None:
        """Close all connections."""
        if self._channel_pool:
            await self._channel_pool.close()
        if self._connection_pool:
            await self._connection_pool.close()
        self._channel_pool = None
        self._connection_pool = None
        logger.info("RabbitMQ connections closed")


# Global connection manager
rabbitmq = RabbitMQConnection()


async def declare_work_queue(channel: AbstractChannel, queue_name: str) -> aio_pika.abc.AbstractQueue:
    """
    Declare a work queue together with its dead letter exchange and poison queue.

    Publishers and consumers both call this so the arguments always match.
    """
    dead_letter_exchange = f"{queue_name}-dlx"

    dlx = await channel.declare_exchange(
        dead_letter_exchange,
        aio_pika.ExchangeType.DIRECT,
        durable=True,
    )

    dlq = await channel.declare_queue(
        f"{queue_name}-poison",
        durable=True,
    )
    await dlq.bind(dlx, routing_key=queue_name)

    return await channel.declare_queue(
        queue_name,
        durable=True,
        arguments={
            "x-dead-letter-exchange": dead_letter_exchange,
            "x-dead-letter-routing-key": queue_name,
        },
    )


class BaseConsumer(ABC):
    """
    Base class for RabbitMQ consumers.

    Provides:
    - Automatic connection and channel management
    - Message acknowledgment handling
    - Error handling with dead letter queue support
    - Graceful shutdown
    """

    def __init__(
        self,
        queue_name: str,
        prefetch_count: int = 1,
    ):
        """
        Initialize consumer.

        Args:
            queue_name: Name of the queue to consume from
            prefetch_count: Number of messages processed concurrently (QoS)
        """
        self.queue_name = queue_name
        self.prefetch_count = prefetch_count

        self._channel: AbstractRobustChannel | None = None
        self._queue: aio_pika.abc.AbstractQueue | None = None
        self._connection_ctx = None
        self._running = False
        self._tasks: set[asyncio.Task] = set()

    async def start(self) -> None:
        """Start consuming messages."""
        self._running = True

        # Initialize pools and get a dedicated connection for this consumer
        await rabbitmq.init_pools()
        # Store the context manager so it stays open
        self._connection_ctx = rabbitmq.get_connection()
        connection = await self._connection_ctx.__aenter__()
        channel = await connection.channel()
        self._channel = channel
        await channel.set_qos(prefetch_count=self.prefetch_count)

        self._queue = await declare_work_queue(channel, self.queue_name)

        logger.info(f"Consumer started for queue: {self.queue_name}")

        await self._queue.consume(self._on_message)

    async def stop(self) -> None:
        """Stop consuming messages, letting in-flight messages finish."""
        self._running = False
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        if self._channel:
            await self._channel.close()
        if self._connection_ctx:
            await self._connection_ctx.__aexit__(None, None, None)
        logger.info(f"Consumer stopped for queue: {self.queue_name}")

    async def _on_message(self, message: IncomingMessage) -> None:
        """
        Handle incoming message.

        Spawns a task to process each message concurrently, allowing
        multiple messages to be processed in parallel up to prefetch_count.
        """
        task = asyncio.create_task(self._process_message_with_ack(message))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _process_message_with_ack(self, message: IncomingMessage) -> None:
        """
        Process a message with proper acknowledgment handling.

        This runs as a separate task to enable concurrent message processing.
        """
        async with message.process(requeue=False):
            try:
                body = json.loads(message.body.decode())

                logger.debug(
                    f"Processing message from {self.queue_name}",
                    extra={"message_id": message.message_id},
                )

                await self.process_message(body)

            except Exception as e:
                logger.error(
                    f"Error processing message from {self.queue_name}: {e}",
                    extra={
                        "message_id": message.message_id,
                        "error": str(e),
                        "error_type": type(e).__name__,
                    },
                    exc_info=True,
                )
                # Message will be moved to DLQ due to requeue=False
                raise

    @abstractmethod
    async def process_message(self, body: dict[str, Any]) -> None:
        """
        Process a message from the queue.

        Must be implemented by subclasses.

        Args:
            body: Parsed message body
        """
        pass


async def publish_message(
    queue_name: str,
    message: dict[str, Any],
    priority: int = 0,
) -> None:
    """
    Publish a message to a queue.

    Args:
        queue_name: Target queue name
        message: Message body (will be JSON encoded)
        priority: Message priority (0-9, higher = more important)
    """
    await rabbitmq.init_pools()
    async with rabbitmq.get_channel() as channel:
        await declare_work_queue(channel, queue_name)

        await channel.default_exchange.publish(
            aio_pika.Message(
                body=json.dumps(message).encode(),
                content_type="application/json",
                delivery_mode=aio_pika.DeliveryMode.PERSISTENT,
                priority=priority,
            ),
            routing_key=queue_name,
        )

        logger.debug(f"Published message to {queue_name}")


async def publish_delayed_message(
    queue_name: str,
    message: dict[str, Any],
    delay_seconds: int,
) -> None:
    """
    Publish a message that reaches a queue only after a delay.

    The message parks in a TTL queue with no consumers; when the TTL
    expires RabbitMQ dead-letters it into the target queue. One parking
    queue exists per distinct delay so messages never block each other.

    Args:
        queue_name: Target queue name
        message: Message body (will be JSON encoded)
        delay_seconds: Seconds before the message becomes consumable
    """
    if delay_seconds <= 0:
        await publish_message(queue_name, message)
        return

    await rabbitmq.init_pools()
    async with rabbitmq.get_channel() as channel:
        await declare_work_queue(channel, queue_name)

        retry_queue = f"{queue_name}-retry-{delay_seconds}s"
        await channel.declare_queue(
            retry_queue,
            durable=True,
            arguments={
                "x-message-ttl": delay_seconds * 1000,
                "x-dead-letter-exchange": "",
                "x-dead-letter-routing-key": queue_name,
            },
        )

        await channel.default_exchange.publish(
            aio_pika.Message(
                body=json.dumps(message).encode(),
                content_type="application/json",
                delivery_mode=aio_pika.DeliveryMode.PERSISTENT,
            ),
            routing_key=retry_queue,
        )

        logger.debug(f"Published message to {retry_queue} (delay {delay_seconds}s)")
