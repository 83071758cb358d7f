from datetime import date
from typing import List, Optional
from uuid import UUID

import redis
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import Response
from sqlalchemy.orm import Session

from shared import Clock, EventPublisher, build_policy, can_cancel_reservation

from app.core.auth_dependencies import TokenPayload, ensure_same_tenant, get_current_token, oauth2_scheme
from app.core.database import get_db
from app.models.reservation import RecordState, Reservation, ReservationStatus
from app.schemas.reservation_schema import (
    ReservationCancel,
    ReservationConflictResponse,
    ReservationCreate,
    ReservationRead,
    ReservationReschedule,
    ReservationStatusUpdate,
    ReservationWithPolicy,
)
from app.services.schedule_reader import SqlScheduleReader
from app.services.staff_validator import validar_staff_existe
from shared.logging import get_logger
from . import crud
from .deps import get_cache, get_clock, get_publisher

router = APIRouter(prefix="/reservations", tags=["Reservations"])
logger = get_logger(__name__)


def _policy_for(db: Session, reservation: Reservation, cache: Optional[redis.Redis]):
    policy = SqlScheduleReader(db, cache).get_policy(reservation.tenant_id, reservation.org_id)
    return policy or build_policy({})


def _load_for_token(db: Session, reservation_id: UUID, token: TokenPayload) -> Reservation:
    reservation = crud.get_reservation(db, reservation_id)
    if not reservation:
        raise HTTPException(status_code=404, detail="Reserva não encontrada")
    ensure_same_tenant(token, reservation.tenant_id)
    if token.role == "customer" and reservation.customer_id != token.sub:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Você só pode acessar suas próprias reservas.",
        )
    return reservation


def _require_staff_role(token: TokenPayload) -> None:
    if token.role == "customer":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Apenas a equipe do salão pode executar esta ação.",
        )


@router.post(
    "/",
    response_model=ReservationRead,
    status_code=201,
    responses={409: {"model": ReservationConflictResponse}},
)
async def create_reservation(
    payload: ReservationCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_token: TokenPayload = Depends(get_current_token),
    raw_token: str = Depends(oauth2_scheme),
    publisher: Optional[EventPublisher] = Depends(get_publisher),
    cache: Optional[redis.Redis] = Depends(get_cache),
    clock: Clock = Depends(get_clock),
):
    ensure_same_tenant(current_token, payload.tenant_id)

    # Cliente só reserva para si mesmo
    if current_token.role == "customer" and payload.customer_id != current_token.sub:
        raise HTTPException(
            status_code=403,
            detail="Cliente só pode criar reservas para si mesmo.",
        )

    await validar_staff_existe(
        getattr(request.app.state, "staff_service_url", None),
        str(payload.org_id),
        str(payload.staff_id),
        auth_token=raw_token,
    )

    menus = crud.get_menus(db, payload.tenant_id, payload.org_id, payload.menu_ids)
    if len(menus) != len(set(payload.menu_ids)):
        raise HTTPException(404, "Menu não encontrado para este org")

    reservation = crud.create_reservation(db, payload, menus, publisher=publisher, cache=cache, clock=clock)
    logger.info(
        "reservation_created",
        reservation_id=str(reservation.id),
        org_id=str(reservation.org_id),
        staff_id=str(reservation.staff_id),
    )
    return reservation


@router.get("/", response_model=List[ReservationWithPolicy])
def list_reservations(
    tenant_id: UUID = Query(...),
    org_id: Optional[UUID] = Query(None),
    staff_id: Optional[UUID] = Query(None),
    day: Optional[date] = Query(None, alias="date"),
    status_param: Optional[str] = Query(None, alias="status"),
    include_archived: bool = Query(False),
    db: Session = Depends(get_db),
    current_token: TokenPayload = Depends(get_current_token),
    cache: Optional[redis.Redis] = Depends(get_cache),
    clock: Clock = Depends(get_clock),
):
    ensure_same_tenant(current_token, tenant_id)

    if status_param and status_param not in ReservationStatus.ALL:
        raise HTTPException(400, "Status inválido")

    if day and not org_id:
        raise HTTPException(400, "Filtrar por data exige org_id")

    reader = SqlScheduleReader(db, cache)
    policy = (reader.get_policy(tenant_id, org_id) if org_id else None) or build_policy({})

    reservations = crud.list_reservations(
        db,
        tenant_id,
        org_id=org_id,
        staff_id=staff_id,
        status=status_param,
        day=day,
        tz_name=policy.timezone,
        include_archived=include_archived and current_token.role == "admin",
    )
    if current_token.role == "customer":
        reservations = [item for item in reservations if item.customer_id == current_token.sub]

    now = clock.now()
    return [
        ReservationWithPolicy(
            **ReservationRead.model_validate(item).model_dump(),
            can_cancel=item.status in (ReservationStatus.PENDING, ReservationStatus.CONFIRMED)
            and can_cancel_reservation(item.start_time_unix, policy, now),
        )
        for item in reservations
    ]


@router.get("/{reservation_id}", response_model=ReservationRead)
def get_reservation(
    reservation_id: UUID,
    db: Session = Depends(get_db),
    current_token: TokenPayload = Depends(get_current_token),
):
    return _load_for_token(db, reservation_id, current_token)


@router.patch("/{reservation_id}/status", response_model=ReservationRead)
def update_status(
    reservation_id: UUID,
    payload: ReservationStatusUpdate,
    db: Session = Depends(get_db),
    current_token: TokenPayload = Depends(get_current_token),
    publisher: Optional[EventPublisher] = Depends(get_publisher),
    cache: Optional[redis.Redis] = Depends(get_cache),
):
    _require_staff_role(current_token)
    reservation = _load_for_token(db, reservation_id, current_token)
    if payload.status == ReservationStatus.CANCELED:
        raise HTTPException(400, "Use PATCH /reservations/{id}/cancel para cancelar")
    policy = _policy_for(db, reservation, cache)
    return crud.update_status(db, reservation, payload, publisher=publisher, cache=cache, policy=policy)


@router.patch(
    "/{reservation_id}/reschedule",
    response_model=ReservationRead,
    responses={409: {"model": ReservationConflictResponse}},
)
def reschedule_reservation(
    reservation_id: UUID,
    payload: ReservationReschedule,
    db: Session = Depends(get_db),
    current_token: TokenPayload = Depends(get_current_token),
    publisher: Optional[EventPublisher] = Depends(get_publisher),
    cache: Optional[redis.Redis] = Depends(get_cache),
    clock: Clock = Depends(get_clock),
):
    reservation = _load_for_token(db, reservation_id, current_token)
    if reservation.status not in (ReservationStatus.PENDING, ReservationStatus.CONFIRMED):
        raise HTTPException(400, "Somente reservas pendentes ou confirmadas podem ser remarcadas")
    if reservation.record_state != RecordState.ACTIVE:
        raise HTTPException(400, "Reservas arquivadas não podem ser remarcadas")
    return crud.reschedule_reservation(
        db, reservation, payload, publisher=publisher, cache=cache, clock=clock
    )


@router.patch("/{reservation_id}/cancel", response_model=ReservationRead)
def cancel_reservation(
    reservation_id: UUID,
    payload: ReservationCancel,
    db: Session = Depends(get_db),
    current_token: TokenPayload = Depends(get_current_token),
    publisher: Optional[EventPublisher] = Depends(get_publisher),
    cache: Optional[redis.Redis] = Depends(get_cache),
    clock: Clock = Depends(get_clock),
):
    reservation = _load_for_token(db, reservation_id, current_token)
    policy = _policy_for(db, reservation, cache)
    return crud.cancel_reservation(
        db,
        reservation,
        current_token.sub,
        payload.reason,
        policy,
        now=clock.now(),
        # Admin pode cancelar fora da janela
        enforce_window=current_token.role != "admin",
        publisher=publisher,
        cache=cache,
    )


@router.delete("/{reservation_id}", status_code=204)
def archive_reservation(
    reservation_id: UUID,
    purge: bool = Query(False, description="Remove fisicamente uma reserva já arquivada."),
    db: Session = Depends(get_db),
    current_token: TokenPayload = Depends(get_current_token),
    publisher: Optional[EventPublisher] = Depends(get_publisher),
    cache: Optional[redis.Redis] = Depends(get_cache),
):
    _require_staff_role(current_token)
    reservation = _load_for_token(db, reservation_id, current_token)
    if purge and current_token.role != "admin":
        raise HTTPException(403, "Apenas administradores podem remover reservas definitivamente.")
    policy = _policy_for(db, reservation, cache)
    target = RecordState.PURGED if purge else RecordState.ARCHIVED
    crud.change_record_state(db, reservation, target, publisher=publisher, cache=cache, policy=policy)
    return Response(status_code=204)


@router.post("/{reservation_id}/restore", response_model=ReservationRead)
def restore_reservation(
    reservation_id: UUID,
    db: Session = Depends(get_db),
    current_token: TokenPayload = Depends(get_current_token),
    publisher: Optional[EventPublisher] = Depends(get_publisher),
    cache: Optional[redis.Redis] = Depends(get_cache),
):
    _require_staff_role(current_token)
    reservation = _load_for_token(db, reservation_id, current_token)
    policy = _policy_for(db, reservation, cache)
    return crud.change_record_state(
        db, reservation, RecordState.ACTIVE, publisher=publisher, cache=cache, policy=policy
    )
