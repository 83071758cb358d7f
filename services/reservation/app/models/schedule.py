import uuid
from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    Date,
    DateTime,
    Index,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.sql import func
from app.core.database import Base
from app.models.reservation import RecordState


class ExceptionType:
    HOLIDAY = "holiday"
    SPECIAL_HOURS = "special_hours"

    ALL = {HOLIDAY, SPECIAL_HOURS}


class StaffScheduleType:
    ABSENT = "absent"
    WORKING = "working"

    ALL = {ABSENT, WORKING}


class WeekSchedule(Base):
    __tablename__ = "week_schedules"
    __table_args__ = (
        UniqueConstraint("tenant_id", "org_id", "day_of_week", name="uq_week_schedules_org_day"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, nullable=False, index=True)
    org_id = Column(Uuid, nullable=False, index=True)
    day_of_week = Column(String(16), nullable=False)
    is_open = Column(Boolean, nullable=False, default=True)
    open_time = Column(String(5), nullable=True)
    close_time = Column(String(5), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class ExceptionSchedule(Base):
    __tablename__ = "exception_schedules"
    __table_args__ = (
        Index("ix_exception_schedules_org_date", "tenant_id", "org_id", "date"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, nullable=False, index=True)
    org_id = Column(Uuid, nullable=False, index=True)
    date = Column(Date, nullable=False)
    type = Column(String(32), nullable=False, default=ExceptionType.HOLIDAY)
    open_time = Column(String(5), nullable=True)
    close_time = Column(String(5), nullable=True)
    notes = Column(Text, nullable=True)
    record_state = Column(String(16), nullable=False, default=RecordState.ACTIVE)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class StaffWeekSchedule(Base):
    __tablename__ = "staff_week_schedules"
    __table_args__ = (
        UniqueConstraint(
            "tenant_id", "org_id", "staff_id", "day_of_week", name="uq_staff_week_schedules_staff_day"
        ),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, nullable=False, index=True)
    org_id = Column(Uuid, nullable=False, index=True)
    staff_id = Column(Uuid, nullable=False, index=True)
    day_of_week = Column(String(16), nullable=False)
    is_open = Column(Boolean, nullable=False, default=True)
    open_time = Column(String(5), nullable=True)
    close_time = Column(String(5), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class StaffSchedule(Base):
    __tablename__ = "staff_schedules"
    __table_args__ = (
        Index("ix_staff_schedules_staff_date", "tenant_id", "staff_id", "date"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, nullable=False, index=True)
    org_id = Column(Uuid, nullable=False, index=True)
    staff_id = Column(Uuid, nullable=False)
    date = Column(Date, nullable=False)
    type = Column(String(16), nullable=False, default=StaffScheduleType.ABSENT)
    is_all_day = Column(Boolean, nullable=False, default=True)
    start_time_unix = Column(BigInteger, nullable=True)
    end_time_unix = Column(BigInteger, nullable=True)
    notes = Column(Text, nullable=True)
    record_state = Column(String(16), nullable=False, default=RecordState.ACTIVE)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
