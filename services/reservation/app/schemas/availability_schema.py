from datetime import date
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel


class TimeSlotRead(BaseModel):
    start_time_unix: int
    end_time_unix: int
    start_time: str
    end_time: str


class AvailabilityResponse(BaseModel):
    org_id: UUID
    staff_id: Optional[UUID] = None
    date: date
    duration_minutes: int
    slots: List[TimeSlotRead]


class SyncTriggerResponse(BaseModel):
    accepted: bool
    state: str
