"""Redis Streams consumer with consumer groups, used for sync triggers and cache invalidation."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Callable, Coroutine, Optional

import redis.asyncio as aioredis

logger = logging.getLogger(__name__)


EventHandler = Callable[[str, dict[str, Any]], Coroutine[Any, Any, None]]


class EventConsumer:
    """
    Consume events from Redis Streams using consumer groups.

    Example:
        consumer = EventConsumer(
            redis_url="redis://localhost:6379",
            stream_name="reservation-events",
            group_name="reservation-sync",
            consumer_name="sync-worker-1",
        )

        async def handle_sync_requested(event_type: str, payload: dict):
            await runner.trigger()

        consumer.register_handler("sync.requested", handle_sync_requested)
        await consumer.start()
    """

    def __init__(
        self,
        redis_url: str,
        stream_name: str,
        group_name: str,
        consumer_name: str,
        *,
        block_ms: int = 5000,
        count: int = 10,
    ) -> None:
        """
        Args:
            redis_url: Redis connection URL
            stream_name: Name of the Redis Stream to consume
            group_name: Consumer group name (all workers in same group share load)
            consumer_name: Unique name for this consumer instance
            block_ms: Time to block waiting for new messages (milliseconds)
            count: Maximum number of messages to read per batch
        """
        self._redis_url = redis_url
        self._stream_name = stream_name
        self._group_name = group_name
        self._consumer_name = consumer_name
        self._block_ms = block_ms
        self._count = count
        self._handlers: dict[str, EventHandler] = {}
        self._client: Optional[aioredis.Redis] = None
        self._running = False

    def register_handler(self, event_type: str, handler: EventHandler) -> None:
        """Register a handler for a specific event type."""
        self._handlers[event_type] = handler
        logger.info("Registered handler for event type: %s", event_type)

    async def _ensure_consumer_group(self) -> None:
        try:
            await self._client.xgroup_create(
                name=self._stream_name,
                groupname=self._group_name,
                id="0",
                mkstream=True,
            )
            logger.info("Created consumer group '%s' for stream '%s'", self._group_name, self._stream_name)
        except aioredis.ResponseError as e:
            # Group already exists
            if "BUSYGROUP" not in str(e):
                raise

    async def _process_message(self, message_id: bytes, data: dict[bytes, bytes]) -> None:
        """Process a single message and acknowledge it.

        Handler failures leave the message pending so it is picked up again by
        ``_read_pending_messages`` on the next start.
        """
        try:
            event_type = data.get(b"event_type", b"").decode("utf-8")
            payload = json.loads(data.get(b"payload", b"{}").decode("utf-8"))

            handler = self._handlers.get(event_type)
            if handler:
                logger.debug("Processing %s: %s", event_type, message_id.decode())
                await handler(event_type, payload)
            else:
                logger.debug("No handler for event type: %s", event_type)

            await self._client.xack(
                self._stream_name,
                self._group_name,
                message_id,
            )
        except Exception:
            logger.error("Error processing message %s", message_id, exc_info=True)

    async def _read_pending_messages(self) -> None:
        """Reprocess messages delivered to this consumer but never acknowledged."""
        try:
            pending = await self._client.xpending_range(
                name=self._stream_name,
                groupname=self._group_name,
                min="-",
                max="+",
                count=self._count,
                consumername=self._consumer_name,
            )
        except aioredis.RedisError:
            logger.error("Error reading pending messages", exc_info=True)
            return

        if pending:
            logger.info("Found %d pending messages to process", len(pending))

        for entry in pending:
            message_id = entry["message_id"]
            messages = await self._client.xrange(
                self._stream_name,
                min=message_id,
                max=message_id,
            )
            if messages:
                _, data = messages[0]
                await self._process_message(message_id, data)

    async def start(self) -> None:
        """Start consuming events (blocking call)."""
        if self._running:
            logger.warning("Consumer already running")
            return

        self._running = True
        self._client = aioredis.Redis.from_url(self._redis_url)

        try:
            await self._ensure_consumer_group()
            logger.info("Consumer '%s' started on stream '%s'", self._consumer_name, self._stream_name)

            await self._read_pending_messages()

            while self._running:
                try:
                    messages = await self._client.xreadgroup(
                        groupname=self._group_name,
                        consumername=self._consumer_name,
                        streams={self._stream_name: ">"},
                        count=self._count,
                        block=self._block_ms,
                    )

                    if not messages:
                        continue

                    for _stream, stream_messages in messages:
                        for message_id, data in stream_messages:
                            await self._process_message(message_id, data)

                except asyncio.CancelledError:
                    logger.info("Consumer task cancelled")
                    break
                except aioredis.RedisError:
                    logger.error("Error in consumer loop", exc_info=True)
                    await asyncio.sleep(1)  # Backoff on error

        finally:
            self._running = False
            if self._client:
                await self._client.aclose()
            logger.info("Consumer '%s' stopped", self._consumer_name)

    async def stop(self) -> None:
        """Stop consuming events."""
        self._running = False
        logger.info("Stopping consumer...")


async def cleanup_consumer(
    consumer: Optional[EventConsumer],
    task: Optional[asyncio.Task],
    log: logging.Logger,
    *,
    timeout: float = 5.0,
) -> None:
    """Stop a consumer and wait for its task, cancelling it after ``timeout``."""
    if consumer is not None:
        try:
            await consumer.stop()
        except Exception as exc:
            log.warning("Error stopping consumer: %s", exc)

    if task is None or task.done():
        return

    try:
        await asyncio.wait_for(asyncio.shield(task), timeout=timeout)
    except asyncio.TimeoutError:
        log.warning("Consumer task did not stop in %.1fs, cancelling", timeout)
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
