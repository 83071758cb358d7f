from datetime import date, datetime, timezone
from typing import List, Optional, Sequence
from uuid import UUID

import redis
from sqlalchemy import select
from sqlalchemy.orm import Session

from shared import (
    Clock,
    EventPublisher,
    ReservationPolicy,
    SystemClock,
    local_date_of,
    unix_at,
    validate_cancellation_window,
)
from shared.cache import invalidate_availability_cache

from app.core.errors import ConfigurationError, ConflictError
from app.models.menu import Menu
from app.models.reservation import (
    RecordState,
    Reservation,
    ReservationEvent,
    ReservationStatus,
)
from app.schemas.reservation_schema import (
    ReservationCreate,
    ReservationReschedule,
    ReservationStatusUpdate,
)
from app.services.availability import AvailabilityCalculator
from app.services.conflicts import ReservationConflictChecker
from app.services.schedule_reader import SqlScheduleReader


def publish_event(
    publisher: Optional[EventPublisher],
    event_type: str,
    payload: dict,
    *,
    tenant_id: UUID,
    org_id: UUID,
) -> None:
    if not publisher:
        return
    publisher.publish(
        event_type,
        payload,
        metadata={"tenant_id": str(tenant_id), "org_id": str(org_id)},
    )


def _record_event(db: Session, reservation: Reservation, event_type: str, payload: dict) -> None:
    db.add(
        ReservationEvent(
            reservation_id=reservation.id,
            tenant_id=reservation.tenant_id,
            event_type=event_type,
            payload=payload,
        )
    )


def _invalidate_day(cache: Optional[redis.Redis], reservation: Reservation, policy: ReservationPolicy) -> None:
    day = local_date_of(reservation.start_time_unix, policy.timezone)
    invalidate_availability_cache(cache, reservation.org_id, day.isoformat())


def _lock_policy(db: Session, tenant_id: UUID, org_id: UUID) -> ReservationPolicy:
    policy = SqlScheduleReader(db).lock_policy(tenant_id, org_id)
    if policy is None:
        raise ConfigurationError(f"Configuração de reservas ausente para o org {org_id}.")
    return policy


def _check_bookable(
    db: Session,
    policy: ReservationPolicy,
    clock: Optional[Clock],
    tenant_id: UUID,
    org_id: UUID,
    staff_id: UUID,
    start_unix: int,
    end_unix: int,
) -> None:
    calculator = AvailabilityCalculator(SqlScheduleReader(db), clock or SystemClock())
    try:
        calculator.ensure_bookable(tenant_id, org_id, staff_id, start_unix, end_unix, policy=policy)
    except ConfigurationError:
        db.rollback()
        raise


def _check_conflicts(
    db: Session,
    tenant_id: UUID,
    org_id: UUID,
    staff_id: UUID,
    start_unix: int,
    end_unix: int,
    exclude_reservation_id: Optional[UUID] = None,
) -> None:
    checker = ReservationConflictChecker(SqlScheduleReader(db))
    try:
        checker.validate(tenant_id, org_id, staff_id, start_unix, end_unix, exclude_reservation_id)
    except (ConflictError, ConfigurationError):
        # Libera o lock do config antes de responder
        db.rollback()
        raise


def get_menus(db: Session, tenant_id: UUID, org_id: UUID, menu_ids: Sequence[UUID]) -> List[Menu]:
    if not menu_ids:
        return []
    rows = db.execute(
        select(Menu).where(
            Menu.tenant_id == tenant_id,
            Menu.org_id == org_id,
            Menu.id.in_(list(menu_ids)),
            Menu.record_state == RecordState.ACTIVE,
        )
    ).scalars().all()
    by_id = {row.id: row for row in rows}
    return [by_id[menu_id] for menu_id in menu_ids if menu_id in by_id]


def menus_duration(menus: Sequence[Menu]) -> int:
    return sum(menu.effective_duration for menu in menus)


def create_reservation(
    db: Session,
    payload: ReservationCreate,
    menus: Sequence[Menu] = (),
    publisher: Optional[EventPublisher] = None,
    cache: Optional[redis.Redis] = None,
    clock: Optional[Clock] = None,
) -> Reservation:
    """Check the bookable window and conflicts, then insert, inside one transaction holding the org config lock."""
    policy = _lock_policy(db, payload.tenant_id, payload.org_id)

    end_time_unix = payload.end_time_unix
    if end_time_unix is None:
        end_time_unix = payload.start_time_unix + menus_duration(menus) * 60

    _check_bookable(
        db,
        policy,
        clock,
        payload.tenant_id,
        payload.org_id,
        payload.staff_id,
        payload.start_time_unix,
        end_time_unix,
    )
    _check_conflicts(
        db,
        payload.tenant_id,
        payload.org_id,
        payload.staff_id,
        payload.start_time_unix,
        end_time_unix,
    )

    reservation = Reservation(
        tenant_id=payload.tenant_id,
        org_id=payload.org_id,
        staff_id=payload.staff_id,
        customer_id=payload.customer_id,
        customer_name=payload.customer_name,
        staff_name=payload.staff_name,
        menus=[
            {
                "menu_id": str(menu.id),
                "name": menu.name,
                "price": menu.price,
                "duration_minutes": menu.effective_duration,
            }
            for menu in menus
        ],
        start_time_unix=payload.start_time_unix,
        end_time_unix=end_time_unix,
        status=payload.status,
        payment_method=payload.payment_method,
        total_price=sum(menu.price for menu in menus),
        notes=payload.notes,
    )
    db.add(reservation)
    db.flush()

    event_payload = {
        "reservation_id": str(reservation.id),
        "staff_id": str(reservation.staff_id),
        "status": reservation.status,
        "start_time_unix": reservation.start_time_unix,
        "end_time_unix": reservation.end_time_unix,
    }
    _record_event(db, reservation, "reservation.created", event_payload)
    db.commit()
    db.refresh(reservation)

    _invalidate_day(cache, reservation, policy)
    publish_event(
        publisher,
        "reservation.created",
        event_payload,
        tenant_id=reservation.tenant_id,
        org_id=reservation.org_id,
    )
    return reservation


def list_reservations(
    db: Session,
    tenant_id: UUID,
    org_id: Optional[UUID] = None,
    staff_id: Optional[UUID] = None,
    status: Optional[str] = None,
    day: Optional[date] = None,
    tz_name: str = "UTC",
    include_archived: bool = False,
) -> List[Reservation]:
    query = db.query(Reservation).filter(Reservation.tenant_id == tenant_id)
    if org_id:
        query = query.filter(Reservation.org_id == org_id)
    if staff_id:
        query = query.filter(Reservation.staff_id == staff_id)
    if status:
        query = query.filter(Reservation.status == status)
    if not include_archived:
        query = query.filter(Reservation.record_state == RecordState.ACTIVE)
    if day:
        day_start = unix_at(day, 0, tz_name)
        day_end = unix_at(day, 24 * 60, tz_name)
        query = query.filter(
            Reservation.start_time_unix < day_end,
            Reservation.end_time_unix > day_start,
        )
    return query.order_by(Reservation.start_time_unix.asc()).all()


def get_reservation(db: Session, reservation_id: UUID) -> Optional[Reservation]:
    return (
        db.query(Reservation)
        .filter(Reservation.id == reservation_id)
        .filter(Reservation.record_state != RecordState.PURGED)
        .first()
    )


def update_status(
    db: Session,
    reservation: Reservation,
    payload: ReservationStatusUpdate,
    publisher: Optional[EventPublisher] = None,
    cache: Optional[redis.Redis] = None,
    policy: Optional[ReservationPolicy] = None,
) -> Reservation:
    previous = reservation.status
    reservation.transition_status(payload.status)
    if payload.payment_status:
        reservation.payment_status = payload.payment_status

    event_payload = {
        "reservation_id": str(reservation.id),
        "from": previous,
        "to": reservation.status,
    }
    _record_event(db, reservation, "reservation.status_changed", event_payload)
    db.commit()
    db.refresh(reservation)

    if policy is not None:
        _invalidate_day(cache, reservation, policy)
    publish_event(
        publisher,
        "reservation.status_changed",
        event_payload,
        tenant_id=reservation.tenant_id,
        org_id=reservation.org_id,
    )
    return reservation


def reschedule_reservation(
    db: Session,
    reservation: Reservation,
    payload: ReservationReschedule,
    publisher: Optional[EventPublisher] = None,
    cache: Optional[redis.Redis] = None,
    clock: Optional[Clock] = None,
) -> Reservation:
    policy = _lock_policy(db, reservation.tenant_id, reservation.org_id)
    staff_id = payload.staff_id or reservation.staff_id

    _check_bookable(
        db,
        policy,
        clock,
        reservation.tenant_id,
        reservation.org_id,
        staff_id,
        payload.start_time_unix,
        payload.end_time_unix,
    )
    _check_conflicts(
        db,
        reservation.tenant_id,
        reservation.org_id,
        staff_id,
        payload.start_time_unix,
        payload.end_time_unix,
        exclude_reservation_id=reservation.id,
    )

    previous_day = local_date_of(reservation.start_time_unix, policy.timezone)
    event_payload = {
        "reservation_id": str(reservation.id),
        "previous": {
            "staff_id": str(reservation.staff_id),
            "start_time_unix": reservation.start_time_unix,
            "end_time_unix": reservation.end_time_unix,
        },
        "staff_id": str(staff_id),
        "start_time_unix": payload.start_time_unix,
        "end_time_unix": payload.end_time_unix,
    }

    reservation.staff_id = staff_id
    reservation.start_time_unix = payload.start_time_unix
    reservation.end_time_unix = payload.end_time_unix
    _record_event(db, reservation, "reservation.rescheduled", event_payload)
    db.commit()
    db.refresh(reservation)

    invalidate_availability_cache(cache, reservation.org_id, previous_day.isoformat())
    _invalidate_day(cache, reservation, policy)
    publish_event(
        publisher,
        "reservation.rescheduled",
        event_payload,
        tenant_id=reservation.tenant_id,
        org_id=reservation.org_id,
    )
    return reservation


def cancel_reservation(
    db: Session,
    reservation: Reservation,
    canceled_by: UUID,
    reason: Optional[str],
    policy: ReservationPolicy,
    *,
    now: datetime,
    enforce_window: bool = True,
    publisher: Optional[EventPublisher] = None,
    cache: Optional[redis.Redis] = None,
) -> Reservation:
    if enforce_window:
        validate_cancellation_window(reservation.start_time_unix, policy, now)

    reservation.transition_status(ReservationStatus.CANCELED)
    reservation.canceled_at = datetime.now(timezone.utc)
    reservation.canceled_by = canceled_by
    reservation.cancellation_reason = reason

    _record_event(
        db,
        reservation,
        "reservation.canceled",
        {"reason": reason, "canceled_by": str(canceled_by)},
    )
    db.commit()
    db.refresh(reservation)

    _invalidate_day(cache, reservation, policy)
    publish_event(
        publisher,
        "reservation.canceled",
        {
            "reservation_id": str(reservation.id),
            "reason": reason,
        },
        tenant_id=reservation.tenant_id,
        org_id=reservation.org_id,
    )
    return reservation


_RECORD_STATE_EVENTS = {
    RecordState.ARCHIVED: "reservation.archived",
    RecordState.ACTIVE: "reservation.restored",
    RecordState.PURGED: "reservation.purged",
}


def change_record_state(
    db: Session,
    reservation: Reservation,
    target: str,
    publisher: Optional[EventPublisher] = None,
    cache: Optional[redis.Redis] = None,
    policy: Optional[ReservationPolicy] = None,
) -> Reservation:
    """Archive, restore or purge. Purge removes the row and its audit trail."""
    if target == RecordState.ACTIVE and reservation.status in ReservationStatus.BLOCKING:
        # Reserva restaurada volta a ocupar horário e cadeira
        _lock_policy(db, reservation.tenant_id, reservation.org_id)
        _check_conflicts(
            db,
            reservation.tenant_id,
            reservation.org_id,
            reservation.staff_id,
            reservation.start_time_unix,
            reservation.end_time_unix,
            exclude_reservation_id=reservation.id,
        )

    reservation.transition_record_state(target)
    event_type = _RECORD_STATE_EVENTS[target]
    event_payload = {"reservation_id": str(reservation.id), "record_state": target}
    tenant_id, org_id = reservation.tenant_id, reservation.org_id
    start_unix = reservation.start_time_unix

    if target == RecordState.PURGED:
        db.query(ReservationEvent).filter(ReservationEvent.reservation_id == reservation.id).delete(
            synchronize_session=False
        )
        db.delete(reservation)
    else:
        _record_event(db, reservation, event_type, event_payload)
    db.commit()
    if target != RecordState.PURGED:
        db.refresh(reservation)

    if policy is not None:
        day = local_date_of(start_unix, policy.timezone)
        invalidate_availability_cache(cache, org_id, day.isoformat())
    publish_event(publisher, event_type, event_payload, tenant_id=tenant_id, org_id=org_id)
    return reservation
