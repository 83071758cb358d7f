from __future__ import annotations

from typing import Callable, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from shared import Clock, unix_now

from app.models.reservation import Reservation, ReservationEvent, ReservationStatus
from app.sync.cursor import decode_cursor, encode_cursor
from app.sync.pipeline import Page

_DELETE_CHUNK = 500


def _row_to_record(row: Reservation) -> dict:
    return {column.key: getattr(row, column.key) for column in Reservation.__table__.columns}


class SqlReservationSource:
    """Completed reservations that already started, read in id order."""

    def __init__(self, session_factory: Callable[[], Session], clock: Clock) -> None:
        self._session_factory = session_factory
        self._clock = clock

    def fetch_page(self, cursor: Optional[str], limit: int) -> Page:
        last_id = decode_cursor(cursor)
        stmt = (
            select(Reservation)
            .where(
                Reservation.status == ReservationStatus.COMPLETED,
                Reservation.start_time_unix < unix_now(self._clock),
            )
            .order_by(Reservation.id)
            .limit(limit + 1)
        )
        if last_id is not None:
            stmt = stmt.where(Reservation.id > last_id)

        with self._session_factory() as db:
            rows = db.execute(stmt).scalars().all()
            has_more = len(rows) > limit
            rows = rows[:limit]
            records = [_row_to_record(row) for row in rows]

        next_cursor = encode_cursor(records[-1]["id"]) if records else cursor
        return Page(records=records, next_cursor=next_cursor, is_done=not has_more)

    def delete(self, ids: Sequence[str]) -> int:
        uuids: List[UUID] = [value if isinstance(value, UUID) else UUID(str(value)) for value in ids]
        removed = 0
        with self._session_factory() as db:
            for offset in range(0, len(uuids), _DELETE_CHUNK):
                chunk = uuids[offset : offset + _DELETE_CHUNK]
                db.execute(delete(ReservationEvent).where(ReservationEvent.reservation_id.in_(chunk)))
                result = db.execute(delete(Reservation).where(Reservation.id.in_(chunk)))
                removed += result.rowcount or 0
            db.commit()
        return removed
