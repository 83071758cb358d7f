from datetime import date
from typing import List, Optional
from uuid import UUID

import redis
from fastapi import APIRouter, Depends, HTTPException, Path, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from shared import EventPublisher

from app.core.auth_dependencies import TokenPayload, get_current_token, require_admin
from app.core.database import get_db
from app.schemas.schedule_schema import (
    ExceptionScheduleCreate,
    ExceptionScheduleRead,
    StaffScheduleCreate,
    StaffScheduleRead,
    StaffWeekScheduleRead,
    WeekScheduleRead,
    WeekScheduleUpsert,
    validate_day_key,
)
from . import schedule_crud
from .deps import get_cache, get_publisher

router = APIRouter(prefix="/orgs/{org_id}", tags=["Schedules"])


def _day_key(day: str) -> str:
    try:
        return validate_day_key(day)
    except ValueError as exc:
        raise HTTPException(400, str(exc)) from exc


@router.put("/week-schedule/{day}", response_model=WeekScheduleRead)
def upsert_week_schedule(
    payload: WeekScheduleUpsert,
    org_id: UUID,
    day: str = Path(..., description="monday ... sunday"),
    db: Session = Depends(get_db),
    current_token: TokenPayload = Depends(require_admin),
    publisher: Optional[EventPublisher] = Depends(get_publisher),
    cache: Optional[redis.Redis] = Depends(get_cache),
):
    return schedule_crud.upsert_week_schedule(
        db, current_token.tenant_id, org_id, _day_key(day), payload, publisher=publisher, cache=cache
    )


@router.get("/week-schedule", response_model=List[WeekScheduleRead])
def list_week_schedule(
    org_id: UUID,
    db: Session = Depends(get_db),
    current_token: TokenPayload = Depends(get_current_token),
):
    return schedule_crud.list_week_schedule(db, current_token.tenant_id, org_id)


@router.post("/exceptions", response_model=ExceptionScheduleRead, status_code=201)
def create_exception(
    payload: ExceptionScheduleCreate,
    org_id: UUID,
    db: Session = Depends(get_db),
    current_token: TokenPayload = Depends(require_admin),
    publisher: Optional[EventPublisher] = Depends(get_publisher),
    cache: Optional[redis.Redis] = Depends(get_cache),
):
    return schedule_crud.create_exception(
        db, current_token.tenant_id, org_id, payload, publisher=publisher, cache=cache
    )


@router.get("/exceptions", response_model=List[ExceptionScheduleRead])
def list_exceptions(
    org_id: UUID,
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    include_archived: bool = Query(False),
    db: Session = Depends(get_db),
    current_token: TokenPayload = Depends(get_current_token),
):
    return schedule_crud.list_exceptions(
        db,
        current_token.tenant_id,
        org_id,
        start_date=start_date,
        end_date=end_date,
        include_archived=include_archived,
    )


@router.delete("/exceptions/{exception_id}", status_code=204)
def archive_exception(
    org_id: UUID,
    exception_id: UUID,
    db: Session = Depends(get_db),
    current_token: TokenPayload = Depends(require_admin),
    publisher: Optional[EventPublisher] = Depends(get_publisher),
    cache: Optional[redis.Redis] = Depends(get_cache),
):
    row = schedule_crud.get_exception(db, current_token.tenant_id, exception_id)
    if not row or row.org_id != org_id:
        raise HTTPException(404, "Exceção não encontrada")
    schedule_crud.archive_exception(db, row, publisher=publisher, cache=cache)
    return Response(status_code=204)


@router.put("/staff/{staff_id}/week-schedule/{day}", response_model=StaffWeekScheduleRead)
def upsert_staff_week_schedule(
    payload: WeekScheduleUpsert,
    org_id: UUID,
    staff_id: UUID,
    day: str,
    db: Session = Depends(get_db),
    current_token: TokenPayload = Depends(require_admin),
    publisher: Optional[EventPublisher] = Depends(get_publisher),
    cache: Optional[redis.Redis] = Depends(get_cache),
):
    return schedule_crud.upsert_staff_week_schedule(
        db,
        current_token.tenant_id,
        org_id,
        staff_id,
        _day_key(day),
        payload,
        publisher=publisher,
        cache=cache,
    )


@router.post("/staff/{staff_id}/schedules", response_model=StaffScheduleRead, status_code=201)
def create_staff_schedule(
    payload: StaffScheduleCreate,
    org_id: UUID,
    staff_id: UUID,
    db: Session = Depends(get_db),
    current_token: TokenPayload = Depends(require_admin),
    publisher: Optional[EventPublisher] = Depends(get_publisher),
    cache: Optional[redis.Redis] = Depends(get_cache),
):
    return schedule_crud.create_staff_schedule(
        db, current_token.tenant_id, org_id, staff_id, payload, publisher=publisher, cache=cache
    )


@router.get("/staff/{staff_id}/schedules", response_model=List[StaffScheduleRead])
def list_staff_schedules(
    org_id: UUID,
    staff_id: UUID,
    db: Session = Depends(get_db),
    current_token: TokenPayload = Depends(get_current_token),
):
    return schedule_crud.list_staff_schedules(db, current_token.tenant_id, org_id, staff_id)
