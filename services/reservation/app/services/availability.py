from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Iterable, List, Optional, Tuple
from uuid import UUID

from shared import (
    Clock,
    ReservationPolicy,
    ensure_timezone,
    format_hour,
    local_date_of,
    minutes_since_midnight,
    parse_hour,
    unix_at,
    unix_now,
    weekday_key,
)
from shared.logging import get_logger

from app.core.errors import ConfigurationError
from app.models.schedule import ExceptionType, StaffScheduleType
from app.services.intervals import Interval, overlaps, peak_concurrency
from app.services.schedule_reader import BookedInterval, ScheduleReader, StaffDayOverride

logger = get_logger(__name__)


@dataclass(frozen=True)
class TimeSlot:
    start_unix: int
    end_unix: int
    start_time: str
    end_time: str

    def model_dump(self) -> dict:
        return {
            "start_time_unix": self.start_unix,
            "end_time_unix": self.end_unix,
            "start_time": self.start_time,
            "end_time": self.end_time,
        }


def _hours_window(open_time: Optional[str], close_time: Optional[str]) -> Optional[Tuple[int, int]]:
    if not open_time or not close_time:
        return None
    try:
        opens, closes = parse_hour(open_time), parse_hour(close_time)
    except ValueError as exc:
        raise ConfigurationError(str(exc)) from exc
    if closes <= opens:
        return None
    return opens, closes


def _local_label(unix_seconds: int, tz_name: str) -> str:
    instant = datetime.fromtimestamp(unix_seconds, tz=timezone.utc)
    return format_hour(minutes_since_midnight(instant, tz_name))


class AvailabilityCalculator:
    """Bookable start times for one org (and optionally one staff member) on a date."""

    def __init__(self, reader: ScheduleReader, clock: Clock) -> None:
        self._reader = reader
        self._clock = clock

    def compute_available_slots(
        self,
        tenant_id: UUID,
        org_id: UUID,
        day: date,
        duration_minutes: int,
        staff_id: Optional[UUID] = None,
    ) -> List[TimeSlot]:
        policy = self._require_policy(tenant_id, org_id)
        if duration_minutes is None or duration_minutes <= 0:
            raise ConfigurationError("A duração do atendimento deve ser maior que zero.")

        today = self._today(policy)
        if day < today or day > today + timedelta(days=policy.reservation_limit_days):
            return []

        org_window = self._org_window(tenant_id, org_id, day, policy)
        if org_window is None:
            return []
        window_start, window_end = org_window
        anchor = window_start

        blocked: List[Interval] = []
        if staff_id is not None:
            staff_window = self._staff_window(tenant_id, org_id, staff_id, day, policy, org_window, blocked)
            if staff_window is None:
                return []
            window_start, window_end = staff_window

        earliest = window_start
        if day == today:
            earliest = max(earliest, unix_now(self._clock) + policy.today_first_later_minutes * 60)

        bookings = self._reader.list_active_reservations(tenant_id, org_id, window_start, window_end)
        org_intervals = [(item.start_unix, item.end_unix) for item in bookings]
        if staff_id is not None:
            blocked.extend(_staff_intervals(bookings, staff_id))

        step = policy.reservation_interval_minutes * 60
        duration = duration_minutes * 60
        slots: List[TimeSlot] = []

        start = anchor
        while start + duration <= window_end:
            end = start + duration
            if start >= earliest and self._is_free(start, end, blocked, org_intervals, policy):
                slots.append(
                    TimeSlot(
                        start_unix=start,
                        end_unix=end,
                        start_time=_local_label(start, policy.timezone),
                        end_time=_local_label(end, policy.timezone),
                    )
                )
            start += step

        logger.debug(
            "availability_computed",
            org_id=str(org_id),
            staff_id=str(staff_id) if staff_id else None,
            date=day.isoformat(),
            slots=len(slots),
        )
        return slots

    def ensure_bookable(
        self,
        tenant_id: UUID,
        org_id: UUID,
        staff_id: UUID,
        start_unix: int,
        end_unix: int,
        policy: Optional[ReservationPolicy] = None,
    ) -> None:
        """Raise ``ConfigurationError`` unless ``[start_unix, end_unix)`` is a start this calculator offers.

        Applies the same horizon, lead time, opening hours, exception, staff shift
        and interval grid as ``compute_available_slots``; seat and staff conflicts
        are left to ``ReservationConflictChecker``.
        """
        if policy is None:
            policy = self._require_policy(tenant_id, org_id)
        if end_unix <= start_unix:
            raise ConfigurationError("O horário final deve ser maior que o inicial.")

        now_unix = unix_now(self._clock)
        today = self._today(policy)
        day = local_date_of(start_unix, policy.timezone)

        if start_unix < now_unix or day < today:
            raise ConfigurationError("Reservas devem ser feitas para horários futuros.")
        if day > today + timedelta(days=policy.reservation_limit_days):
            raise ConfigurationError(
                f"Reservas só podem ser feitas com até {policy.reservation_limit_days} dias de antecedência."
            )
        if day == today and start_unix < now_unix + policy.today_first_later_minutes * 60:
            raise ConfigurationError(
                f"Reservas para hoje exigem {policy.today_first_later_minutes} minutos de antecedência."
            )

        org_window = self._org_window(tenant_id, org_id, day, policy)
        if org_window is None:
            raise ConfigurationError("O salão não atende nesta data.")
        if start_unix < org_window[0] or end_unix > org_window[1]:
            raise ConfigurationError("Horário fora do expediente do salão.")
        if (start_unix - org_window[0]) % (policy.reservation_interval_minutes * 60):
            raise ConfigurationError(
                f"O horário inicial deve respeitar intervalos de {policy.reservation_interval_minutes} minutos."
            )

        blocked: List[Interval] = []
        staff_window = self._staff_window(tenant_id, org_id, staff_id, day, policy, org_window, blocked)
        if (
            staff_window is None
            or start_unix < staff_window[0]
            or end_unix > staff_window[1]
            or any(overlaps(start_unix, end_unix, b_start, b_end) for b_start, b_end in blocked)
        ):
            raise ConfigurationError("O profissional não atende neste horário.")

    def _require_policy(self, tenant_id: UUID, org_id: UUID) -> ReservationPolicy:
        policy = self._reader.get_policy(tenant_id, org_id)
        if policy is None:
            raise ConfigurationError(f"Configuração de reservas ausente para o org {org_id}.")
        return policy

    def _today(self, policy: ReservationPolicy) -> date:
        return ensure_timezone(self._clock.now(), policy.timezone).date()

    def _org_window(
        self, tenant_id: UUID, org_id: UUID, day: date, policy: ReservationPolicy
    ) -> Optional[Interval]:
        # Exceção da data prevalece sobre o horário semanal, inclusive em dia fechado
        exception = self._reader.get_exception(tenant_id, org_id, day)
        if exception is not None and exception.type == ExceptionType.HOLIDAY:
            return None
        if exception is not None and exception.type == ExceptionType.SPECIAL_HOURS:
            hours = _hours_window(exception.open_time, exception.close_time)
        else:
            week = self._reader.get_week_schedule(tenant_id, org_id, weekday_key(day))
            if week is None or not week.is_open:
                return None
            hours = _hours_window(week.open_time, week.close_time)

        if hours is None:
            return None
        return unix_at(day, hours[0], policy.timezone), unix_at(day, hours[1], policy.timezone)

    def _staff_window(
        self,
        tenant_id: UUID,
        org_id: UUID,
        staff_id: UUID,
        day: date,
        policy: ReservationPolicy,
        org_window: Interval,
        blocked: List[Interval],
    ) -> Optional[Interval]:
        """Narrow the org window to the staff member's shift; collect partial absences into ``blocked``."""
        window_start, window_end = org_window
        overrides = self._reader.get_staff_overrides(tenant_id, org_id, staff_id, day)

        if any(item.type == StaffScheduleType.ABSENT and item.is_all_day for item in overrides):
            return None

        working = [item for item in overrides if item.type == StaffScheduleType.WORKING]
        if working:
            # Escala avulsa do dia substitui a escala semanal do profissional
            partial = [item for item in working if not item.is_all_day and _has_range(item)]
            if partial:
                window_start = max(window_start, min(item.start_unix for item in partial))
                window_end = min(window_end, max(item.end_unix for item in partial))
        else:
            shift = self._reader.get_staff_week_schedule(tenant_id, org_id, staff_id, weekday_key(day))
            if shift is not None:
                if not shift.is_open:
                    return None
                hours = _hours_window(shift.open_time, shift.close_time)
                if hours is not None:
                    window_start = max(window_start, unix_at(day, hours[0], policy.timezone))
                    window_end = min(window_end, unix_at(day, hours[1], policy.timezone))

        for item in overrides:
            if item.type == StaffScheduleType.ABSENT and not item.is_all_day and _has_range(item):
                blocked.append((item.start_unix, item.end_unix))

        if window_end <= window_start:
            return None
        return window_start, window_end

    @staticmethod
    def _is_free(
        start: int,
        end: int,
        blocked: Iterable[Interval],
        org_intervals: List[Interval],
        policy: ReservationPolicy,
    ) -> bool:
        if any(overlaps(start, end, b_start, b_end) for b_start, b_end in blocked):
            return False
        return peak_concurrency(org_intervals, start, end) < policy.available_sheet


def _has_range(item: StaffDayOverride) -> bool:
    return item.start_unix is not None and item.end_unix is not None


def _staff_intervals(bookings: Iterable[BookedInterval], staff_id: UUID) -> List[Interval]:
    return [(item.start_unix, item.end_unix) for item in bookings if item.staff_id == staff_id]
