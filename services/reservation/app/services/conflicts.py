from __future__ import annotations

from typing import Optional
from uuid import UUID

from shared.logging import get_logger

from app.core.errors import ConfigurationError, ConflictError
from app.services.intervals import peak_concurrency
from app.services.schedule_reader import ScheduleReader

logger = get_logger(__name__)


class ReservationConflictChecker:
    """Rejects an interval that collides with the staff's bookings or exhausts seat capacity.

    Callers must run ``validate`` and the following insert/update inside the
    same transaction, after locking the org's reservation config row.
    """

    def __init__(self, reader: ScheduleReader) -> None:
        self._reader = reader

    def validate(
        self,
        tenant_id: UUID,
        org_id: UUID,
        staff_id: UUID,
        start_unix: int,
        end_unix: int,
        exclude_reservation_id: Optional[UUID] = None,
    ) -> None:
        if start_unix >= end_unix:
            raise ConfigurationError("O início da reserva deve ser anterior ao fim.")

        policy = self._reader.get_policy(tenant_id, org_id)
        if policy is None:
            raise ConfigurationError(f"Configuração de reservas ausente para o org {org_id}.")

        existing = self._reader.list_active_reservations(
            tenant_id,
            org_id,
            start_unix,
            end_unix,
            exclude_reservation_id=exclude_reservation_id,
        )

        same_staff = [item for item in existing if item.staff_id == staff_id]
        if same_staff:
            logger.info(
                "reservation_conflict",
                reason="staff_overlap",
                org_id=str(org_id),
                staff_id=str(staff_id),
                conflicts=len(same_staff),
            )
            raise ConflictError(
                "O profissional já possui uma reserva neste horário.",
                [item.to_dict() for item in same_staff],
            )

        peak = peak_concurrency(((item.start_unix, item.end_unix) for item in existing), start_unix, end_unix)
        if peak + 1 > policy.available_sheet:
            logger.info(
                "reservation_conflict",
                reason="capacity",
                org_id=str(org_id),
                peak=peak,
                available_sheet=policy.available_sheet,
            )
            raise ConflictError(
                "Não há cadeiras disponíveis neste horário.",
                [item.to_dict() for item in existing],
            )
