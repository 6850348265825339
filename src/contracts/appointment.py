"""Appointment Contract - Models for booked visits and business hours."""

import re
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

_HHMM = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


class AppointmentStatus(str, Enum):
    """Status possíveis de um agendamento."""

    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    CANCELED = "canceled"
    COMPLETED = "completed"
    NO_SHOW = "no_show"


# Only these statuses block a slot on the calendar
ACTIVE_STATUSES: frozenset[AppointmentStatus] = frozenset(
    {AppointmentStatus.SCHEDULED, AppointmentStatus.CONFIRMED}
)


class Appointment(BaseModel):
    """Schema de agendamento (leitura do DB)."""

    id: str = Field(
        ...,
        description="ID único do agendamento",
    )
    company_id: str = Field(
        ...,
        description="ID da empresa",
    )
    start_at: datetime = Field(
        ...,
        description="Data e hora de início",
    )
    duration_minutes: int = Field(
        ...,
        ge=0,
        description="Duração em minutos",
    )
    status: AppointmentStatus = Field(
        ...,
        description="Status atual",
    )

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": "550e8400-e29b-41d4-a716-446655440000",
                "company_id": "660e8400-e29b-41d4-a716-446655440001",
                "start_at": "2025-03-10T14:00:00-03:00",
                "duration_minutes": 90,
                "status": "scheduled",
            }
        },
    )

    @property
    def is_active(self) -> bool:
        """Whether this appointment blocks calendar slots."""
        return self.status in ACTIVE_STATUSES


def minutes_of_day(value: str) -> int:
    """Convert an ``HH:MM`` label to minutes since midnight."""
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


class BusinessHours(BaseModel):
    """Horário de funcionamento de uma empresa para um dia da semana."""

    day_of_week: int = Field(
        ...,
        ge=0,
        le=6,
        description="Dia da semana (0 = domingo)",
    )
    open_time: str = Field(..., description="Abertura HH:MM")
    close_time: str = Field(..., description="Fechamento HH:MM")
    break_start: str | None = Field(None, description="Início do intervalo HH:MM")
    break_end: str | None = Field(None, description="Fim do intervalo HH:MM")
    is_open: bool = Field(True, description="Se abre neste dia")

    model_config = ConfigDict(from_attributes=True)

    @field_validator("open_time", "close_time", "break_start", "break_end")
    @classmethod
    def validate_hhmm(cls, v: str | None) -> str | None:
        """Accept ``HH:MM`` (a trailing ``:SS`` from Postgres ``time`` is dropped)."""
        if v is None:
            return v
        v = v.strip()[:5]
        if not _HHMM.match(v):
            raise ValueError("Horário deve estar no formato HH:MM")
        return v

    @model_validator(mode="after")
    def validate_break(self) -> "BusinessHours":
        """A break only counts when both ends are present."""
        if (self.break_start is None) != (self.break_end is None):
            self.break_start = None
            self.break_end = None
        return self

    @property
    def open_minutes(self) -> int:
        return minutes_of_day(self.open_time)

    @property
    def close_minutes(self) -> int:
        return minutes_of_day(self.close_time)

    @property
    def break_window(self) -> tuple[int, int] | None:
        if self.break_start is None or self.break_end is None:
            return None
        return minutes_of_day(self.break_start), minutes_of_day(self.break_end)


class OccupiedSlotsResponse(BaseModel):
    """Resposta da consulta de horários ocupados no mês."""

    success: bool = True
    slotsByDate: dict[str, list[str]] = Field(default_factory=dict)


class AvailableSlotsResponse(BaseModel):
    """Resposta da consulta de horários livres em um dia."""

    success: bool = True
    slots: list[str] = Field(default_factory=list)
    businessHours: BusinessHours | None = None
    message: str | None = None
