from unittest.mock import MagicMock

import pytest

from app.core.errors import PipelineStalled
from app.sync.pipeline import BatchSyncPipeline, Page, SyncState
from reservation_testkit import YESTERDAY, at


def _record(index: int) -> dict:
    start = at(YESTERDAY, "10:00") + (index - 1) * 3600
    return {
        "id": f"r-{index:02d}",
        "staff_id": "staff-1",
        "start_time_unix": start,
        "end_time_unix": start + 1800,
        "status": "completed",
        "menus": [{"name": "Corte", "price": 4000}],
    }


class FakeSource:
    """Keyset pagination over ids, like the SQL source."""

    def __init__(self, records, *, fetch_failures=0, delete_failures=0):
        self.records = {record["id"]: record for record in records}
        self.fetch_failures = fetch_failures
        self.delete_failures = delete_failures
        self.cursors = []
        self.deleted = []

    def fetch_page(self, cursor, limit):
        self.cursors.append(cursor)
        if self.fetch_failures:
            self.fetch_failures -= 1
            raise ConnectionError("source offline")
        candidates = [self.records[key] for key in sorted(self.records) if cursor is None or key > cursor]
        page = candidates[:limit]
        next_cursor = page[-1]["id"] if page else cursor
        return Page(records=page, next_cursor=next_cursor, is_done=len(candidates) <= limit)

    def delete(self, ids):
        if self.delete_failures:
            self.delete_failures -= 1
            raise ConnectionError("delete failed")
        removed = [key for key in ids if key in self.records]
        for key in removed:
            del self.records[key]
        self.deleted.extend(removed)
        return len(removed)


class FakeSink:
    def __init__(self, *, failures=0):
        self.rows = {}
        self.calls = 0
        self.failures = failures

    def upsert(self, rows):
        self.calls += 1
        if self.failures:
            self.failures -= 1
            raise ConnectionError("sink offline")
        for row in rows:
            self.rows[row["id"]] = row
        return len(rows)


class ManualScheduler:
    def __init__(self):
        self.queue = []

    def run_after(self, delay_seconds, callback, *args):
        self.queue.append((delay_seconds, callback, args))

    def run_next(self):
        _, callback, args = self.queue.pop(0)
        return callback(*args)

    def run_all(self):
        results = []
        while self.queue:
            results.append(self.run_next())
        return results


def _pipeline(source, sink, scheduler, frozen_clock, **kwargs):
    kwargs.setdefault("limit", 2)
    kwargs.setdefault("retry_delay_seconds", 1.5)
    kwargs.setdefault("max_attempts", 3)
    return BatchSyncPipeline(source, sink, scheduler, frozen_clock, **kwargs)


def test_empty_source_finishes_without_scheduling(frozen_clock):
    source, sink, scheduler = FakeSource([]), FakeSink(), ManualScheduler()
    pipeline = _pipeline(source, sink, scheduler, frozen_clock)

    result = pipeline.start()

    assert result.state == SyncState.DONE
    assert result.migrated == 0
    assert scheduler.queue == []
    assert sink.calls == 0
    assert pipeline.state == SyncState.DONE
    assert pipeline.in_progress is False


def test_single_page_finishes_in_one_batch(frozen_clock):
    source, sink, scheduler = FakeSource([_record(1)]), FakeSink(), ManualScheduler()

    result = _pipeline(source, sink, scheduler, frozen_clock).start()

    assert result.state == SyncState.DONE
    assert result.migrated == 1
    assert scheduler.queue == []
    assert source.deleted == ["r-01"]


def test_each_page_schedules_the_next(frozen_clock):
    source = FakeSource([_record(index) for index in range(1, 6)])
    sink, scheduler = FakeSink(), ManualScheduler()
    pipeline = _pipeline(source, sink, scheduler, frozen_clock)

    first = pipeline.start()

    assert first.state == SyncState.RESCHEDULED
    assert first.next_cursor == "r-02"
    assert pipeline.in_progress is True
    assert [(delay, args) for delay, _, args in scheduler.queue] == [(0, ("r-02",))]

    results = scheduler.run_all()

    assert [result.state for result in results] == [SyncState.RESCHEDULED, SyncState.DONE]
    assert source.cursors == [None, "r-02", "r-04"]
    assert sorted(sink.rows) == ["r-01", "r-02", "r-03", "r-04", "r-05"]
    assert source.records == {}
    assert pipeline.in_progress is False


def test_rows_are_transformed_before_upsert(frozen_clock):
    source, sink, scheduler = FakeSource([_record(1)]), FakeSink(), ManualScheduler()

    _pipeline(source, sink, scheduler, frozen_clock).start()

    row = sink.rows["r-01"]
    assert row["start_time"] == "2026-03-01T01:00:00+00:00"
    assert row["duration_minutes"] == 30
    assert row["menus"] == '[{"name": "Corte", "price": 4000}]'
    assert row["migrated_at"] == frozen_clock.now().isoformat()
    assert "start_time_unix" not in row


def test_failed_batch_retries_same_cursor(frozen_clock):
    source = FakeSource([_record(index) for index in range(1, 5)])
    sink, scheduler = FakeSink(), ManualScheduler()
    pipeline = _pipeline(source, sink, scheduler, frozen_clock)

    pipeline.start()
    sink.failures = 1

    failed = scheduler.run_next()

    assert failed.state == SyncState.FAILED
    assert pipeline.state == SyncState.FAILED
    assert [(delay, args) for delay, _, args in scheduler.queue] == [(1.5, ("r-02", 2))]
    assert sorted(source.records) == ["r-03", "r-04"]

    retried = scheduler.run_next()

    assert retried.state == SyncState.DONE
    assert retried.attempt == 2
    assert source.cursors == [None, "r-02", "r-02"]
    assert sorted(sink.rows) == ["r-01", "r-02", "r-03", "r-04"]


def test_retry_after_delete_failure_is_idempotent(frozen_clock):
    source = FakeSource([_record(1), _record(2)], delete_failures=1)
    sink, scheduler = FakeSink(), ManualScheduler()

    first = _pipeline(source, sink, scheduler, frozen_clock).start()
    assert first.state == SyncState.FAILED

    retried = scheduler.run_next()

    assert retried.state == SyncState.DONE
    assert sink.calls == 2
    assert sorted(sink.rows) == ["r-01", "r-02"]
    assert source.deleted == ["r-01", "r-02"]


def test_exhausted_retries_stall_and_publish(frozen_clock):
    source = FakeSource([_record(1)], fetch_failures=10)
    sink, scheduler = FakeSink(), ManualScheduler()
    publisher = MagicMock()
    pipeline = _pipeline(source, sink, scheduler, frozen_clock, publisher=publisher)

    assert pipeline.start().state == SyncState.FAILED
    assert scheduler.run_next().state == SyncState.FAILED

    with pytest.raises(PipelineStalled) as exc:
        scheduler.run_next()

    assert exc.value.attempts == 3
    assert exc.value.cursor is None
    assert isinstance(exc.value.last_error, ConnectionError)
    assert scheduler.queue == []
    assert pipeline.in_progress is False
    assert pipeline.state == SyncState.FAILED

    event_type, payload = publisher.publish.call_args.args
    assert event_type == "sync.stalled"
    assert payload["attempts"] == 3
    assert payload["stage"] == SyncState.FETCHING
    assert "r-01" in source.records


def test_single_attempt_stalls_immediately(frozen_clock):
    source = FakeSource([_record(1)], fetch_failures=1)
    pipeline = _pipeline(source, FakeSink(), ManualScheduler(), frozen_clock, max_attempts=1)

    with pytest.raises(PipelineStalled):
        pipeline.start()


@pytest.mark.parametrize("kwargs", [{"limit": 0}, {"max_attempts": 0}])
def test_invalid_settings(frozen_clock, kwargs):
    with pytest.raises(ValueError):
        _pipeline(FakeSource([]), FakeSink(), ManualScheduler(), frozen_clock, **kwargs)
