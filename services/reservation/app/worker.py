"""Standalone sync worker: runs the batch pipeline every SYNC_INTERVAL_SECONDS.

Run from the service directory with ``python -m app.worker``.
"""

import asyncio
import os
import signal

from app.consumers import build_sync_requested_handler
from app.core.database import analytics_engine, analytics_metadata
from app.core.errors import PipelineStalled
from app.models import analytics as analytics_models  # noqa: F401
from app.sync.runner import SyncRunner, build_pipeline
from app.sync.scheduler import AsyncioScheduler
from shared import EventConsumer, cleanup_consumer, create_publisher, load_service_config
from shared.logging import configure_logging, get_logger

configure_logging("reservation-sync")
logger = get_logger(__name__)


async def run_forever(stop: asyncio.Event) -> None:
    config = load_service_config("reservation")
    await asyncio.to_thread(analytics_metadata.create_all, bind=analytics_engine)

    scheduler = AsyncioScheduler(asyncio.get_running_loop())
    publisher = create_publisher(config.redis.url, config.redis.stream)
    runner = SyncRunner(build_pipeline(config.sync, scheduler, publisher=publisher))

    consumer = None
    consumer_task = None
    if config.redis.url:
        consumer = EventConsumer(
            redis_url=config.redis.url,
            stream_name=config.redis.stream,
            group_name="reservation-sync",
            consumer_name=os.getenv("CONSUMER_NAME", "sync-worker-1"),
        )
        consumer.register_handler("sync.requested", build_sync_requested_handler(runner))
        consumer_task = asyncio.create_task(consumer.start())

    try:
        while not stop.is_set():
            try:
                await runner.trigger()
                await scheduler.drain()
            except PipelineStalled:
                logger.error("sync_cycle_stalled")

            try:
                await asyncio.wait_for(stop.wait(), timeout=config.sync.interval_seconds)
            except asyncio.TimeoutError:
                pass
    finally:
        scheduler.cancel_all()
        await cleanup_consumer(consumer, consumer_task, logger)
        if publisher is not None:
            publisher.close()
        logger.info("sync_worker_stopped")


def main() -> None:
    async def _main() -> None:
        stop = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, stop.set)
        await run_forever(stop)

    asyncio.run(_main())


if __name__ == "__main__":
    main()
