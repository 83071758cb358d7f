from datetime import date
from typing import List, Optional
from uuid import UUID

import redis
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from shared import Clock, local_date_of, unix_now
from shared.cache import get_cache_ttl, get_cached_availability, set_cached_availability

from app.core.auth_dependencies import TokenPayload, get_current_token
from app.core.database import get_db
from app.schemas.availability_schema import AvailabilityResponse
from app.services.availability import AvailabilityCalculator
from app.services.schedule_reader import SqlScheduleReader
from . import crud
from .deps import get_cache, get_clock

router = APIRouter(prefix="/orgs/{org_id}/availability", tags=["Availability"])


@router.get("", response_model=AvailabilityResponse)
def get_availability(
    org_id: UUID,
    day: date = Query(..., alias="date", description="Data local do salão (YYYY-MM-DD)."),
    duration_minutes: Optional[int] = Query(None, ge=1),
    staff_id: Optional[UUID] = Query(None),
    menu_ids: Optional[List[UUID]] = Query(None),
    db: Session = Depends(get_db),
    current_token: TokenPayload = Depends(get_current_token),
    cache: Optional[redis.Redis] = Depends(get_cache),
    clock: Clock = Depends(get_clock),
):
    tenant_id = current_token.tenant_id

    if duration_minutes is None:
        if not menu_ids:
            raise HTTPException(400, "Informe duration_minutes ou menu_ids")
        menus = crud.get_menus(db, tenant_id, org_id, menu_ids)
        if len(menus) != len(set(menu_ids)):
            raise HTTPException(404, "Menu não encontrado para este org")
        duration_minutes = crud.menus_duration(menus)

    reader = SqlScheduleReader(db, cache)
    policy = reader.get_policy(tenant_id, org_id)
    # Slots de hoje dependem do relógio (antecedência mínima)
    cacheable = policy is not None and day != local_date_of(unix_now(clock), policy.timezone)

    date_str = day.isoformat()
    if cacheable:
        cached = get_cached_availability(cache, org_id, date_str, staff_id, duration_minutes)
        if cached and cached.get("tenant_id") == str(tenant_id):
            return AvailabilityResponse(**cached["response"])

    calculator = AvailabilityCalculator(reader, clock)
    slots = calculator.compute_available_slots(tenant_id, org_id, day, duration_minutes, staff_id)

    response = AvailabilityResponse(
        org_id=org_id,
        staff_id=staff_id,
        date=day,
        duration_minutes=duration_minutes,
        slots=[slot.model_dump() for slot in slots],
    )
    if cacheable:
        set_cached_availability(
            cache,
            org_id,
            date_str,
            staff_id,
            duration_minutes,
            {"tenant_id": str(tenant_id), "response": response.model_dump(mode="json")},
            ttl=get_cache_ttl("availability", 60),
        )
    return response
