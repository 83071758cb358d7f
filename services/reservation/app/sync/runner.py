from __future__ import annotations

import asyncio
from typing import Optional

from shared import Clock, EventPublisher, SyncConfig, SystemClock
from shared.logging import get_logger

from app.core.database import SessionLocal, analytics_engine
from app.sync.pipeline import BatchResult, BatchSyncPipeline
from app.sync.scheduler import AsyncioScheduler
from app.sync.sinks import SqlHistorySink
from app.sync.sources import SqlReservationSource

logger = get_logger(__name__)


def build_pipeline(
    config: SyncConfig,
    scheduler: AsyncioScheduler,
    *,
    clock: Optional[Clock] = None,
    publisher: Optional[EventPublisher] = None,
) -> BatchSyncPipeline:
    clock = clock or SystemClock()
    return BatchSyncPipeline(
        source=SqlReservationSource(SessionLocal, clock),
        sink=SqlHistorySink(analytics_engine),
        scheduler=scheduler,
        clock=clock,
        limit=config.batch_limit,
        retry_delay_seconds=config.retry_delay_seconds,
        max_attempts=config.max_attempts,
        publisher=publisher,
    )


class SyncRunner:
    """Owns one pipeline per process and refuses to start it twice concurrently."""

    def __init__(self, pipeline: BatchSyncPipeline) -> None:
        self._pipeline = pipeline
        self._starting = False

    @property
    def pipeline(self) -> BatchSyncPipeline:
        return self._pipeline

    async def trigger(self) -> Optional[BatchResult]:
        """Start the pipeline unless a run is already underway; ``None`` means skipped."""
        if self._starting or self._pipeline.in_progress:
            logger.info("sync_already_running", state=self._pipeline.state)
            return None
        # Reservado antes do await: o pipeline só marca in_progress dentro da thread
        self._starting = True
        try:
            return await asyncio.to_thread(self._pipeline.start)
        finally:
            self._starting = False
