from typing import Optional
from uuid import UUID

import redis
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from shared import EventPublisher

from app.core.auth_dependencies import TokenPayload, get_current_token, require_admin
from app.core.database import get_db
from app.schemas.config_schema import ReservationConfigRead, ReservationConfigUpsert
from . import schedule_crud
from .deps import get_cache, get_publisher

router = APIRouter(prefix="/orgs/{org_id}/reservation-config", tags=["Reservation config"])


@router.put("", response_model=ReservationConfigRead)
def upsert_reservation_config(
    payload: ReservationConfigUpsert,
    org_id: UUID,
    db: Session = Depends(get_db),
    current_token: TokenPayload = Depends(require_admin),
    publisher: Optional[EventPublisher] = Depends(get_publisher),
    cache: Optional[redis.Redis] = Depends(get_cache),
):
    return schedule_crud.upsert_reservation_config(
        db, current_token.tenant_id, org_id, payload, publisher=publisher, cache=cache
    )


@router.get("", response_model=ReservationConfigRead)
def get_reservation_config(
    org_id: UUID,
    db: Session = Depends(get_db),
    current_token: TokenPayload = Depends(get_current_token),
):
    row = schedule_crud.get_reservation_config(db, current_token.tenant_id, org_id)
    if not row:
        raise HTTPException(404, "Configuração de reservas não encontrada")
    return row
