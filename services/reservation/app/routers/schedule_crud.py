from datetime import date
from typing import List, Optional
from uuid import UUID

import redis
from sqlalchemy.orm import Session

from shared import EventPublisher
from shared.cache import invalidate_availability_cache, invalidate_policy_cache

from app.models.menu import Menu
from app.models.reservation import RecordState, ensure_transition
from app.models.reservation_config import ReservationConfig
from app.models.schedule import ExceptionSchedule, StaffSchedule, StaffWeekSchedule, WeekSchedule
from app.routers.crud import publish_event
from app.schemas.config_schema import ReservationConfigUpsert
from app.schemas.menu_schema import MenuCreate
from app.schemas.schedule_schema import ExceptionScheduleCreate, StaffScheduleCreate, WeekScheduleUpsert


def _schedule_changed(
    publisher: Optional[EventPublisher],
    cache: Optional[redis.Redis],
    tenant_id: UUID,
    org_id: UUID,
    kind: str,
    day: Optional[date] = None,
    **extra,
) -> None:
    invalidate_availability_cache(cache, org_id, day.isoformat() if day else None)
    payload = {"org_id": str(org_id), "kind": kind, **extra}
    if day:
        payload["date"] = day.isoformat()
    publish_event(publisher, "schedule.updated", payload, tenant_id=tenant_id, org_id=org_id)


def upsert_week_schedule(
    db: Session,
    tenant_id: UUID,
    org_id: UUID,
    day_key: str,
    payload: WeekScheduleUpsert,
    publisher: Optional[EventPublisher] = None,
    cache: Optional[redis.Redis] = None,
) -> WeekSchedule:
    row = (
        db.query(WeekSchedule)
        .filter(WeekSchedule.tenant_id == tenant_id)
        .filter(WeekSchedule.org_id == org_id)
        .filter(WeekSchedule.day_of_week == day_key)
        .first()
    )
    if row is None:
        row = WeekSchedule(tenant_id=tenant_id, org_id=org_id, day_of_week=day_key)
        db.add(row)

    for field, value in payload.model_dump().items():
        setattr(row, field, value)

    db.commit()
    db.refresh(row)
    _schedule_changed(publisher, cache, tenant_id, org_id, "week_schedule", day_of_week=day_key)
    return row


def list_week_schedule(db: Session, tenant_id: UUID, org_id: UUID) -> List[WeekSchedule]:
    return (
        db.query(WeekSchedule)
        .filter(WeekSchedule.tenant_id == tenant_id)
        .filter(WeekSchedule.org_id == org_id)
        .all()
    )


def create_exception(
    db: Session,
    tenant_id: UUID,
    org_id: UUID,
    payload: ExceptionScheduleCreate,
    publisher: Optional[EventPublisher] = None,
    cache: Optional[redis.Redis] = None,
) -> ExceptionSchedule:
    row = ExceptionSchedule(tenant_id=tenant_id, org_id=org_id, **payload.model_dump())
    db.add(row)
    db.commit()
    db.refresh(row)
    _schedule_changed(publisher, cache, tenant_id, org_id, "exception", payload.date)
    return row


def list_exceptions(
    db: Session,
    tenant_id: UUID,
    org_id: UUID,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    include_archived: bool = False,
) -> List[ExceptionSchedule]:
    query = (
        db.query(ExceptionSchedule)
        .filter(ExceptionSchedule.tenant_id == tenant_id)
        .filter(ExceptionSchedule.org_id == org_id)
    )
    if not include_archived:
        query = query.filter(ExceptionSchedule.record_state == RecordState.ACTIVE)
    if start_date:
        query = query.filter(ExceptionSchedule.date >= start_date)
    if end_date:
        query = query.filter(ExceptionSchedule.date <= end_date)
    return query.order_by(ExceptionSchedule.date.asc()).all()


def get_exception(db: Session, tenant_id: UUID, exception_id: UUID) -> Optional[ExceptionSchedule]:
    return (
        db.query(ExceptionSchedule)
        .filter(ExceptionSchedule.tenant_id == tenant_id)
        .filter(ExceptionSchedule.id == exception_id)
        .first()
    )


def archive_exception(
    db: Session,
    row: ExceptionSchedule,
    publisher: Optional[EventPublisher] = None,
    cache: Optional[redis.Redis] = None,
) -> ExceptionSchedule:
    ensure_transition("record_state", RecordState.TRANSITIONS, row.record_state, RecordState.ARCHIVED)
    row.record_state = RecordState.ARCHIVED
    db.commit()
    db.refresh(row)
    _schedule_changed(publisher, cache, row.tenant_id, row.org_id, "exception_archived", row.date)
    return row


def upsert_staff_week_schedule(
    db: Session,
    tenant_id: UUID,
    org_id: UUID,
    staff_id: UUID,
    day_key: str,
    payload: WeekScheduleUpsert,
    publisher: Optional[EventPublisher] = None,
    cache: Optional[redis.Redis] = None,
) -> StaffWeekSchedule:
    row = (
        db.query(StaffWeekSchedule)
        .filter(StaffWeekSchedule.tenant_id == tenant_id)
        .filter(StaffWeekSchedule.org_id == org_id)
        .filter(StaffWeekSchedule.staff_id == staff_id)
        .filter(StaffWeekSchedule.day_of_week == day_key)
        .first()
    )
    if row is None:
        row = StaffWeekSchedule(tenant_id=tenant_id, org_id=org_id, staff_id=staff_id, day_of_week=day_key)
        db.add(row)

    for field, value in payload.model_dump().items():
        setattr(row, field, value)

    db.commit()
    db.refresh(row)
    _schedule_changed(
        publisher,
        cache,
        tenant_id,
        org_id,
        "staff_week_schedule",
        staff_id=str(staff_id),
        day_of_week=day_key,
    )
    return row


def create_staff_schedule(
    db: Session,
    tenant_id: UUID,
    org_id: UUID,
    staff_id: UUID,
    payload: StaffScheduleCreate,
    publisher: Optional[EventPublisher] = None,
    cache: Optional[redis.Redis] = None,
) -> StaffSchedule:
    row = StaffSchedule(tenant_id=tenant_id, org_id=org_id, staff_id=staff_id, **payload.model_dump())
    db.add(row)
    db.commit()
    db.refresh(row)
    _schedule_changed(publisher, cache, tenant_id, org_id, "staff_schedule", payload.date, staff_id=str(staff_id))
    return row


def list_staff_schedules(
    db: Session,
    tenant_id: UUID,
    org_id: UUID,
    staff_id: UUID,
) -> List[StaffSchedule]:
    return (
        db.query(StaffSchedule)
        .filter(StaffSchedule.tenant_id == tenant_id)
        .filter(StaffSchedule.org_id == org_id)
        .filter(StaffSchedule.staff_id == staff_id)
        .filter(StaffSchedule.record_state == RecordState.ACTIVE)
        .order_by(StaffSchedule.date.asc())
        .all()
    )


def get_reservation_config(db: Session, tenant_id: UUID, org_id: UUID) -> Optional[ReservationConfig]:
    return (
        db.query(ReservationConfig)
        .filter(ReservationConfig.tenant_id == tenant_id)
        .filter(ReservationConfig.org_id == org_id)
        .first()
    )


def upsert_reservation_config(
    db: Session,
    tenant_id: UUID,
    org_id: UUID,
    payload: ReservationConfigUpsert,
    publisher: Optional[EventPublisher] = None,
    cache: Optional[redis.Redis] = None,
) -> ReservationConfig:
    row = get_reservation_config(db, tenant_id, org_id)
    if row is None:
        row = ReservationConfig(tenant_id=tenant_id, org_id=org_id)
        db.add(row)

    for field, value in payload.model_dump().items():
        setattr(row, field, value)

    db.commit()
    db.refresh(row)
    invalidate_policy_cache(cache, org_id)
    _schedule_changed(publisher, cache, tenant_id, org_id, "reservation_config")
    return row


def create_menu(
    db: Session,
    tenant_id: UUID,
    org_id: UUID,
    payload: MenuCreate,
) -> Menu:
    menu = Menu(tenant_id=tenant_id, org_id=org_id, **payload.model_dump())
    db.add(menu)
    db.commit()
    db.refresh(menu)
    return menu


def list_menus(db: Session, tenant_id: UUID, org_id: UUID) -> List[Menu]:
    return (
        db.query(Menu)
        .filter(Menu.tenant_id == tenant_id)
        .filter(Menu.org_id == org_id)
        .filter(Menu.record_state == RecordState.ACTIVE)
        .order_by(Menu.name.asc())
        .all()
    )
