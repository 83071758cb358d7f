from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator


class MenuCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255, examples=["Corte + escova"])
    description: Optional[str] = None
    unit_price: int = Field(ge=0)
    sale_price: Optional[int] = Field(default=None, ge=0)
    time_to_min: int = Field(ge=1, description="Duração do atendimento em minutos.")
    ensure_time_to_min: Optional[int] = Field(
        default=None,
        ge=1,
        description="Duração bloqueada na agenda, incluindo folga.",
    )

    @model_validator(mode="after")
    def validar_folga(self):
        if self.ensure_time_to_min is not None and self.ensure_time_to_min < self.time_to_min:
            raise ValueError("ensure_time_to_min não pode ser menor que time_to_min")
        return self


class MenuRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tenant_id: UUID
    org_id: UUID
    name: str
    description: Optional[str]
    unit_price: int
    sale_price: Optional[int]
    time_to_min: int
    ensure_time_to_min: Optional[int]
    effective_duration: int
