import uuid
from sqlalchemy import Column, DateTime, Integer, String, UniqueConstraint, Uuid
from sqlalchemy.sql import func
from app.core.database import Base


class ReservationConfig(Base):
    __tablename__ = "reservation_configs"
    __table_args__ = (
        UniqueConstraint("tenant_id", "org_id", name="uq_reservation_configs_org"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, nullable=False, index=True)
    org_id = Column(Uuid, nullable=False, index=True)
    timezone = Column(String(64), nullable=False, default="Asia/Tokyo")
    reservation_interval_minutes = Column(Integer, nullable=False, default=30)
    reservation_limit_days = Column(Integer, nullable=False, default=30)
    available_cancel_days = Column(Integer, nullable=False, default=1)
    available_sheet = Column(Integer, nullable=False, default=3)
    today_first_later_minutes = Column(Integer, nullable=False, default=30)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
