from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from app.models.reservation import PaymentMethod, PaymentStatus, ReservationStatus


class ReservationMenuItem(BaseModel):
    menu_id: UUID
    name: Optional[str] = None
    price: Optional[int] = Field(default=None, ge=0)
    duration_minutes: Optional[int] = Field(default=None, ge=1)


class ReservationBase(BaseModel):
    tenant_id: UUID
    org_id: UUID
    staff_id: UUID
    customer_id: Optional[UUID] = None
    customer_name: Optional[str] = Field(default=None, max_length=255)
    staff_name: Optional[str] = Field(default=None, max_length=255)
    start_time_unix: int = Field(ge=0, description="Início em segundos unix.", examples=[1767225600])
    end_time_unix: Optional[int] = Field(
        default=None,
        ge=0,
        description="Fim em segundos unix; quando omitido é derivado da duração dos menus.",
    )
    menu_ids: List[UUID] = Field(default_factory=list)
    payment_method: str = Field(default=PaymentMethod.CASH)
    notes: Optional[str] = None

    @field_validator("payment_method")
    @classmethod
    def validar_pagamento(cls, value):
        if value not in PaymentMethod.ALL:
            raise ValueError("Forma de pagamento inválida")
        return value

    @model_validator(mode="after")
    def validar_intervalo(self):
        if self.end_time_unix is None and not self.menu_ids:
            raise ValueError("Informe end_time_unix ou ao menos um menu")
        if self.end_time_unix is not None and self.end_time_unix <= self.start_time_unix:
            raise ValueError("end_time_unix deve ser maior que start_time_unix")
        return self


class ReservationCreate(ReservationBase):
    status: str = Field(default=ReservationStatus.PENDING)

    @field_validator("status")
    @classmethod
    def validar_status(cls, value):
        if value not in (ReservationStatus.PENDING, ReservationStatus.CONFIRMED):
            raise ValueError("Reservas novas devem ser pending ou confirmed")
        return value


class ReservationStatusUpdate(BaseModel):
    status: str
    payment_status: Optional[str] = None

    @field_validator("status")
    @classmethod
    def validar_status(cls, value):
        if value not in ReservationStatus.ALL:
            raise ValueError("Status inválido")
        return value

    @field_validator("payment_status")
    @classmethod
    def validar_pagamento(cls, value):
        if value is not None and value not in PaymentStatus.ALL:
            raise ValueError("Status de pagamento inválido")
        return value


class ReservationReschedule(BaseModel):
    start_time_unix: int = Field(ge=0)
    end_time_unix: int = Field(ge=0)
    staff_id: Optional[UUID] = None

    @field_validator("end_time_unix")
    @classmethod
    def validar_intervalo(cls, end_time_unix, info):
        start = info.data.get("start_time_unix")
        if start is not None and end_time_unix <= start:
            raise ValueError("end_time_unix deve ser maior que start_time_unix")
        return end_time_unix


class ReservationCancel(BaseModel):
    reason: Optional[str] = None


class ReservationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tenant_id: UUID
    org_id: UUID
    staff_id: UUID
    customer_id: Optional[UUID]
    customer_name: Optional[str]
    staff_name: Optional[str]
    menus: List[Dict[str, Any]]
    start_time_unix: int
    end_time_unix: int
    status: str
    payment_method: str
    payment_status: str
    total_price: int
    notes: Optional[str]
    record_state: str
    cancellation_reason: Optional[str] = None
    canceled_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ReservationWithPolicy(ReservationRead):
    can_cancel: bool


class ReservationConflict(BaseModel):
    reservation_id: UUID
    staff_id: UUID
    start_unix: int
    end_unix: int
    status: str


class ReservationConflictResponse(BaseModel):
    success: bool = False
    error: str = "conflict"
    message: str
    conflicts: List[ReservationConflict]
