"""Cursor-paginated migration of completed reservations into the analytics store.

Each batch is one invocation of ``BatchSyncPipeline.run_batch``: fetch a page,
transform it, upsert it into the sink, and only then delete it from the
source. A batch never loops into the next one; it asks the scheduler to run
the next batch (or a retry of itself) instead.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, List, Mapping, Optional, Protocol, Sequence

from shared import Clock, EventPublisher
from shared.logging import get_logger

from app.core.errors import PipelineStalled
from app.sync.transform import transform_record

logger = get_logger(__name__)


class SyncState:
    IDLE = "idle"
    FETCHING = "fetching"
    TRANSFORMING = "transforming"
    UPSERTING = "upserting"
    DELETING = "deleting"
    RESCHEDULED = "rescheduled"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class Page:
    records: List[Mapping[str, Any]] = field(default_factory=list)
    next_cursor: Optional[str] = None
    is_done: bool = True


@dataclass(frozen=True)
class BatchResult:
    state: str
    cursor: Optional[str]
    next_cursor: Optional[str] = None
    migrated: int = 0
    attempt: int = 1


class ReservationSource(Protocol):
    def fetch_page(self, cursor: Optional[str], limit: int) -> Page: ...

    def delete(self, ids: Sequence[str]) -> int:
        """Remove migrated records; ids already gone are not an error."""


class HistorySink(Protocol):
    def upsert(self, rows: Sequence[Mapping[str, Any]]) -> int:
        """Insert or replace rows keyed by ``id``."""


class Scheduler(Protocol):
    def run_after(self, delay_seconds: float, callback: Callable[..., Any], *args: Any) -> None: ...


class BatchSyncPipeline:
    def __init__(
        self,
        source: ReservationSource,
        sink: HistorySink,
        scheduler: Scheduler,
        clock: Clock,
        *,
        limit: int = 5000,
        retry_delay_seconds: float = 5.0,
        max_attempts: int = 5,
        publisher: Optional[EventPublisher] = None,
    ) -> None:
        if limit < 1:
            raise ValueError("limit deve ser maior que zero")
        if max_attempts < 1:
            raise ValueError("max_attempts deve ser maior que zero")
        self._source = source
        self._sink = sink
        self._scheduler = scheduler
        self._clock = clock
        self._limit = limit
        self._retry_delay_seconds = retry_delay_seconds
        self._max_attempts = max_attempts
        self._publisher = publisher
        self._state = SyncState.IDLE
        self._in_progress = False

    @property
    def state(self) -> str:
        return self._state

    @property
    def in_progress(self) -> bool:
        """True from ``start`` until a batch reaches DONE or the pipeline stalls."""
        return self._in_progress

    def start(self) -> BatchResult:
        self._in_progress = True
        return self.run_batch(None)

    def run_batch(self, cursor: Optional[str] = None, attempt: int = 1) -> BatchResult:
        self._in_progress = True
        log = logger.bind(cursor=cursor, attempt=attempt)

        try:
            self._state = SyncState.FETCHING
            page = self._source.fetch_page(cursor, self._limit)

            if not page.records:
                self._finish()
                log.info("sync_done", migrated=0)
                return BatchResult(SyncState.DONE, cursor, attempt=attempt)

            self._state = SyncState.TRANSFORMING
            migrated_at = self._clock.now()
            rows = [transform_record(record, migrated_at) for record in page.records]

            self._state = SyncState.UPSERTING
            self._sink.upsert(rows)

            self._state = SyncState.DELETING
            self._source.delete([row["id"] for row in rows])
        except Exception as exc:
            return self._fail(cursor, attempt, exc)

        if page.is_done:
            self._finish()
            log.info("sync_done", migrated=len(rows))
            return BatchResult(SyncState.DONE, cursor, page.next_cursor, len(rows), attempt)

        self._scheduler.run_after(0, self.run_batch, page.next_cursor)
        self._state = SyncState.RESCHEDULED
        log.info("sync_batch_migrated", migrated=len(rows), next_cursor=page.next_cursor)
        return BatchResult(SyncState.RESCHEDULED, cursor, page.next_cursor, len(rows), attempt)

    def _finish(self) -> None:
        self._state = SyncState.DONE
        self._in_progress = False

    def _fail(self, cursor: Optional[str], attempt: int, exc: Exception) -> BatchResult:
        failed_stage = self._state
        self._state = SyncState.FAILED

        if attempt >= self._max_attempts:
            self._in_progress = False
            logger.error(
                "sync_stalled",
                cursor=cursor,
                attempts=attempt,
                stage=failed_stage,
                error=repr(exc),
            )
            if self._publisher is not None:
                self._publisher.publish(
                    "sync.stalled",
                    {"cursor": cursor, "attempts": attempt, "stage": failed_stage, "error": repr(exc)},
                )
            raise PipelineStalled(cursor, attempt, exc) from exc

        logger.warning(
            "sync_batch_failed",
            cursor=cursor,
            attempt=attempt,
            stage=failed_stage,
            retry_in_seconds=self._retry_delay_seconds,
            error=repr(exc),
        )
        self._scheduler.run_after(self._retry_delay_seconds, self.run_batch, cursor, attempt + 1)
        return BatchResult(SyncState.FAILED, cursor, attempt=attempt)
