"""Read side of the scheduling core.

``AvailabilityCalculator`` and ``ReservationConflictChecker`` only depend on
the ``ScheduleReader`` protocol; ``SqlScheduleReader`` is the SQLAlchemy
implementation used by the service, and tests can pass in-memory readers.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date
from typing import List, Optional, Protocol
from uuid import UUID

import redis
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.reservation import RecordState, Reservation, ReservationStatus
from app.models.reservation_config import ReservationConfig
from app.models.schedule import ExceptionSchedule, StaffSchedule, StaffWeekSchedule, WeekSchedule
from shared import ReservationPolicy, build_policy
from shared.cache import get_cache_ttl, get_cached_policy, set_cached_policy


@dataclass(frozen=True)
class OpeningHours:
    is_open: bool
    open_time: Optional[str] = None
    close_time: Optional[str] = None


@dataclass(frozen=True)
class DateException:
    type: str
    open_time: Optional[str] = None
    close_time: Optional[str] = None


@dataclass(frozen=True)
class StaffDayOverride:
    type: str
    is_all_day: bool
    start_unix: Optional[int] = None
    end_unix: Optional[int] = None


@dataclass(frozen=True)
class BookedInterval:
    reservation_id: UUID
    staff_id: UUID
    start_unix: int
    end_unix: int
    status: str = ReservationStatus.CONFIRMED

    def to_dict(self) -> dict:
        data = asdict(self)
        data["reservation_id"] = str(self.reservation_id)
        data["staff_id"] = str(self.staff_id)
        return data


class ScheduleReader(Protocol):
    def get_policy(self, tenant_id: UUID, org_id: UUID) -> Optional[ReservationPolicy]: ...

    def get_week_schedule(self, tenant_id: UUID, org_id: UUID, day_key: str) -> Optional[OpeningHours]: ...

    def get_exception(self, tenant_id: UUID, org_id: UUID, day: date) -> Optional[DateException]: ...

    def get_staff_week_schedule(
        self, tenant_id: UUID, org_id: UUID, staff_id: UUID, day_key: str
    ) -> Optional[OpeningHours]: ...

    def get_staff_overrides(
        self, tenant_id: UUID, org_id: UUID, staff_id: UUID, day: date
    ) -> List[StaffDayOverride]: ...

    def list_active_reservations(
        self,
        tenant_id: UUID,
        org_id: UUID,
        start_unix: int,
        end_unix: int,
        *,
        exclude_reservation_id: Optional[UUID] = None,
    ) -> List[BookedInterval]:
        """Reservations overlapping ``[start_unix, end_unix)`` that still hold a seat."""


class SqlScheduleReader:
    def __init__(self, db: Session, cache: Optional[redis.Redis] = None) -> None:
        self._db = db
        self._cache = cache

    def get_policy(self, tenant_id: UUID, org_id: UUID) -> Optional[ReservationPolicy]:
        cached = get_cached_policy(self._cache, org_id)
        if cached and cached.get("tenant_id") == str(tenant_id):
            return build_policy(cached)

        config = self._db.execute(
            select(ReservationConfig).where(
                ReservationConfig.tenant_id == tenant_id,
                ReservationConfig.org_id == org_id,
            )
        ).scalar_one_or_none()
        if config is None:
            return None

        policy = policy_from_config(config)
        set_cached_policy(
            self._cache,
            org_id,
            {**policy.to_dict(), "tenant_id": str(tenant_id)},
            ttl=get_cache_ttl("policy", 300),
        )
        return policy

    def lock_policy(self, tenant_id: UUID, org_id: UUID) -> Optional[ReservationPolicy]:
        """Lock the org's config row for the rest of the transaction.

        Every create/reschedule takes this lock before checking conflicts, so
        check-and-insert is serialized per org.
        """
        config = self._db.execute(
            select(ReservationConfig)
            .where(
                ReservationConfig.tenant_id == tenant_id,
                ReservationConfig.org_id == org_id,
            )
            .with_for_update()
        ).scalar_one_or_none()
        return policy_from_config(config) if config is not None else None

    def get_week_schedule(self, tenant_id: UUID, org_id: UUID, day_key: str) -> Optional[OpeningHours]:
        row = self._db.execute(
            select(WeekSchedule).where(
                WeekSchedule.tenant_id == tenant_id,
                WeekSchedule.org_id == org_id,
                WeekSchedule.day_of_week == day_key,
            )
        ).scalar_one_or_none()
        if row is None:
            return None
        return OpeningHours(is_open=row.is_open, open_time=row.open_time, close_time=row.close_time)

    def get_exception(self, tenant_id: UUID, org_id: UUID, day: date) -> Optional[DateException]:
        row = self._db.execute(
            select(ExceptionSchedule)
            .where(
                ExceptionSchedule.tenant_id == tenant_id,
                ExceptionSchedule.org_id == org_id,
                ExceptionSchedule.date == day,
                ExceptionSchedule.record_state == RecordState.ACTIVE,
            )
            .order_by(ExceptionSchedule.created_at.desc())
        ).scalars().first()
        if row is None:
            return None
        return DateException(type=row.type, open_time=row.open_time, close_time=row.close_time)

    def get_staff_week_schedule(
        self, tenant_id: UUID, org_id: UUID, staff_id: UUID, day_key: str
    ) -> Optional[OpeningHours]:
        row = self._db.execute(
            select(StaffWeekSchedule).where(
                StaffWeekSchedule.tenant_id == tenant_id,
                StaffWeekSchedule.org_id == org_id,
                StaffWeekSchedule.staff_id == staff_id,
                StaffWeekSchedule.day_of_week == day_key,
            )
        ).scalar_one_or_none()
        if row is None:
            return None
        return OpeningHours(is_open=row.is_open, open_time=row.open_time, close_time=row.close_time)

    def get_staff_overrides(
        self, tenant_id: UUID, org_id: UUID, staff_id: UUID, day: date
    ) -> List[StaffDayOverride]:
        rows = self._db.execute(
            select(StaffSchedule).where(
                StaffSchedule.tenant_id == tenant_id,
                StaffSchedule.org_id == org_id,
                StaffSchedule.staff_id == staff_id,
                StaffSchedule.date == day,
                StaffSchedule.record_state == RecordState.ACTIVE,
            )
        ).scalars().all()
        return [
            StaffDayOverride(
                type=row.type,
                is_all_day=row.is_all_day,
                start_unix=row.start_time_unix,
                end_unix=row.end_time_unix,
            )
            for row in rows
        ]

    def list_active_reservations(
        self,
        tenant_id: UUID,
        org_id: UUID,
        start_unix: int,
        end_unix: int,
        *,
        exclude_reservation_id: Optional[UUID] = None,
    ) -> List[BookedInterval]:
        stmt = select(Reservation).where(
            Reservation.tenant_id == tenant_id,
            Reservation.org_id == org_id,
            Reservation.record_state == RecordState.ACTIVE,
            Reservation.status.in_(ReservationStatus.BLOCKING),
            Reservation.start_time_unix < end_unix,
            Reservation.end_time_unix > start_unix,
        )
        if exclude_reservation_id:
            stmt = stmt.where(Reservation.id != exclude_reservation_id)

        rows = self._db.execute(stmt.order_by(Reservation.start_time_unix)).scalars().all()
        return [
            BookedInterval(
                reservation_id=row.id,
                staff_id=row.staff_id,
                start_unix=row.start_time_unix,
                end_unix=row.end_time_unix,
                status=row.status,
            )
            for row in rows
        ]


def policy_from_config(config: ReservationConfig) -> ReservationPolicy:
    return build_policy(
        {
            "timezone": config.timezone,
            "reservation_interval_minutes": config.reservation_interval_minutes,
            "reservation_limit_days": config.reservation_limit_days,
            "available_cancel_days": config.available_cancel_days,
            "available_sheet": config.available_sheet,
            "today_first_later_minutes": config.today_first_later_minutes,
        }
    )
