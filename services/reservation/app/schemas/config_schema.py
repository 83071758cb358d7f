from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from shared import ALLOWED_INTERVALS, resolve_zone


class ReservationConfigUpsert(BaseModel):
    timezone: str = Field(default="Asia/Tokyo", description="Fuso IANA do salão.", examples=["Asia/Tokyo"])
    reservation_interval_minutes: int = Field(default=30, description="Passo entre horários oferecidos.")
    reservation_limit_days: int = Field(default=30, ge=0, le=365)
    available_cancel_days: int = Field(default=1, ge=0, le=365)
    available_sheet: int = Field(default=3, ge=1, description="Número de cadeiras atendendo ao mesmo tempo.")
    today_first_later_minutes: int = Field(default=30, ge=0, le=24 * 60)

    @field_validator("reservation_interval_minutes")
    @classmethod
    def validar_intervalo(cls, value):
        if value not in ALLOWED_INTERVALS:
            raise ValueError(f"Intervalo deve ser um de {ALLOWED_INTERVALS}")
        return value

    @field_validator("timezone")
    @classmethod
    def validar_timezone(cls, value):
        if resolve_zone(value).key != value:
            raise ValueError("Timezone inválido")
        return value


class ReservationConfigRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tenant_id: UUID
    org_id: UUID
    timezone: str
    reservation_interval_minutes: int
    reservation_limit_days: int
    available_cancel_days: int
    available_sheet: int
    today_first_later_minutes: int
