"""Consumer for staff directory events - handles deletion cascades."""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Set
from uuid import UUID

import redis
from sqlalchemy.orm import Session

from shared import EventPublisher
from shared.cache import invalidate_availability_cache

from app.core.database import SessionLocal
from app.models.reservation import RecordState, Reservation, ReservationEvent, ReservationStatus
from app.models.schedule import StaffSchedule, StaffWeekSchedule
from app.routers.crud import publish_event

logger = logging.getLogger(__name__)

_CANCEL_REASON = "Profissional removido"


async def handle_staff_deleted(
    event_type: str,
    payload: Dict[str, Any],
    *,
    publisher: Optional[EventPublisher] = None,
    cache: Optional[redis.Redis] = None,
) -> None:
    """
    Handler para evento staff.deleted.
    Cancela reservas futuras do profissional, arquiva suas escalas e
    invalida a disponibilidade em cache dos orgs afetados.
    """
    staff_id = payload.get("staff_id")
    tenant_id = payload.get("tenant_id")

    if not staff_id or not tenant_id:
        logger.warning("Evento staff.deleted sem staff_id ou tenant_id")
        return

    staff_id = UUID(str(staff_id))
    tenant_id = UUID(str(tenant_id))
    now = datetime.now(timezone.utc)

    db: Session = SessionLocal()
    try:
        reservations = (
            db.query(Reservation)
            .filter(Reservation.tenant_id == tenant_id)
            .filter(Reservation.staff_id == staff_id)
            .filter(Reservation.status.in_([ReservationStatus.PENDING, ReservationStatus.CONFIRMED]))
            .filter(Reservation.start_time_unix >= int(now.timestamp()))
            .all()
        )
        for reservation in reservations:
            reservation.transition_status(ReservationStatus.CANCELED)
            reservation.cancellation_reason = _CANCEL_REASON
            reservation.canceled_at = now
            db.add(
                ReservationEvent(
                    reservation_id=reservation.id,
                    tenant_id=reservation.tenant_id,
                    event_type="reservation.canceled",
                    payload={"reason": _CANCEL_REASON, "canceled_by": None},
                )
            )

        # Escalas do profissional valem para qualquer data: o org inteiro sai do cache
        affected_orgs: Set[UUID] = {reservation.org_id for reservation in reservations}
        affected_orgs.update(
            org_id
            for (org_id,) in db.query(StaffSchedule.org_id)
            .filter(StaffSchedule.tenant_id == tenant_id)
            .filter(StaffSchedule.staff_id == staff_id)
            .distinct()
        )
        affected_orgs.update(
            org_id
            for (org_id,) in db.query(StaffWeekSchedule.org_id)
            .filter(StaffWeekSchedule.tenant_id == tenant_id)
            .filter(StaffWeekSchedule.staff_id == staff_id)
            .distinct()
        )

        (
            db.query(StaffSchedule)
            .filter(StaffSchedule.tenant_id == tenant_id)
            .filter(StaffSchedule.staff_id == staff_id)
            .filter(StaffSchedule.record_state == RecordState.ACTIVE)
            .update({StaffSchedule.record_state: RecordState.ARCHIVED}, synchronize_session=False)
        )
        (
            db.query(StaffWeekSchedule)
            .filter(StaffWeekSchedule.tenant_id == tenant_id)
            .filter(StaffWeekSchedule.staff_id == staff_id)
            .delete(synchronize_session=False)
        )

        canceled = [(reservation.id, reservation.org_id) for reservation in reservations]
        db.commit()
        logger.info("Canceladas %d reservas do staff_id=%s", len(canceled), staff_id)
    except Exception:
        db.rollback()
        logger.error("Erro ao processar staff.deleted para staff_id=%s", staff_id, exc_info=True)
        raise
    finally:
        db.close()

    for org_id in affected_orgs:
        invalidate_availability_cache(cache, org_id)
    for reservation_id, org_id in canceled:
        publish_event(
            publisher,
            "reservation.canceled",
            {"reservation_id": str(reservation_id), "reason": _CANCEL_REASON},
            tenant_id=tenant_id,
            org_id=org_id,
        )
