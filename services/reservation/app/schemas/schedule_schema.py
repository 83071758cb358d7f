from datetime import date, datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from shared import WEEKDAY_KEYS, parse_hour
from app.models.schedule import ExceptionType, StaffScheduleType


def _validar_horario(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    parse_hour(value)
    return value


def _validar_janela(open_time: Optional[str], close_time: Optional[str]) -> None:
    if open_time and close_time and parse_hour(close_time) <= parse_hour(open_time):
        raise ValueError("close_time deve ser maior que open_time")


class WeekScheduleUpsert(BaseModel):
    is_open: bool = Field(default=True, description="Indica se o salão abre neste dia.")
    open_time: Optional[str] = Field(default=None, description="Abertura (HH:MM).", examples=["09:00"])
    close_time: Optional[str] = Field(default=None, description="Fechamento (HH:MM).", examples=["18:00"])

    @field_validator("open_time", "close_time")
    @classmethod
    def validar_horario(cls, value):
        return _validar_horario(value)

    @model_validator(mode="after")
    def validar_janela(self):
        if self.is_open and (not self.open_time or not self.close_time):
            raise ValueError("Dias abertos exigem open_time e close_time")
        _validar_janela(self.open_time, self.close_time)
        return self


class WeekScheduleRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tenant_id: UUID
    org_id: UUID
    day_of_week: str
    is_open: bool
    open_time: Optional[str]
    close_time: Optional[str]


class StaffWeekScheduleRead(WeekScheduleRead):
    staff_id: UUID


class ExceptionScheduleCreate(BaseModel):
    date: date
    type: str = Field(default=ExceptionType.HOLIDAY, description="holiday ou special_hours.")
    open_time: Optional[str] = None
    close_time: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("open_time", "close_time")
    @classmethod
    def validar_horario(cls, value):
        return _validar_horario(value)

    @field_validator("type")
    @classmethod
    def validar_tipo(cls, value):
        if value not in ExceptionType.ALL:
            raise ValueError("Tipo de exceção inválido")
        return value

    @model_validator(mode="after")
    def validar_horario_especial(self):
        if self.type == ExceptionType.SPECIAL_HOURS and (not self.open_time or not self.close_time):
            raise ValueError("special_hours exige open_time e close_time")
        _validar_janela(self.open_time, self.close_time)
        return self


class ExceptionScheduleRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tenant_id: UUID
    org_id: UUID
    date: date
    type: str
    open_time: Optional[str]
    close_time: Optional[str]
    notes: Optional[str]
    record_state: str


class StaffScheduleCreate(BaseModel):
    date: date
    type: str = Field(default=StaffScheduleType.ABSENT, description="absent ou working.")
    is_all_day: bool = True
    start_time_unix: Optional[int] = Field(default=None, ge=0)
    end_time_unix: Optional[int] = Field(default=None, ge=0)
    notes: Optional[str] = None

    @field_validator("type")
    @classmethod
    def validar_tipo(cls, value):
        if value not in StaffScheduleType.ALL:
            raise ValueError("Tipo de escala inválido")
        return value

    @model_validator(mode="after")
    def validar_intervalo(self):
        if self.is_all_day:
            return self
        if self.start_time_unix is None or self.end_time_unix is None:
            raise ValueError("Escalas parciais exigem start_time_unix e end_time_unix")
        if self.end_time_unix <= self.start_time_unix:
            raise ValueError("end_time_unix deve ser maior que start_time_unix")
        return self


class StaffScheduleRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tenant_id: UUID
    org_id: UUID
    staff_id: UUID
    date: date
    type: str
    is_all_day: bool
    start_time_unix: Optional[int]
    end_time_unix: Optional[int]
    notes: Optional[str]
    record_state: str
    created_at: Optional[datetime] = None


def validate_day_key(day: str) -> str:
    key = day.lower()
    if key not in WEEKDAY_KEYS:
        raise ValueError(f"Dia da semana inválido: {day}")
    return key
