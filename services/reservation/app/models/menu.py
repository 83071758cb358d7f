import uuid
from sqlalchemy import Column, DateTime, Integer, String, Text, Uuid
from sqlalchemy.sql import func
from app.core.database import Base
from app.models.reservation import RecordState


class Menu(Base):
    __tablename__ = "menus"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, nullable=False, index=True)
    org_id = Column(Uuid, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    unit_price = Column(Integer, nullable=False, default=0)
    sale_price = Column(Integer, nullable=True)
    time_to_min = Column(Integer, nullable=False)
    ensure_time_to_min = Column(Integer, nullable=True)
    record_state = Column(String(16), nullable=False, default=RecordState.ACTIVE)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    @property
    def effective_duration(self) -> int:
        # Duração com folga reservada pelo salão, quando definida
        return self.ensure_time_to_min or self.time_to_min

    @property
    def price(self) -> int:
        return self.sale_price if self.sale_price is not None else self.unit_price
