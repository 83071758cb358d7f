"""Shared helpers for org reservation policy and timezone handling."""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Mapping

from fastapi import HTTPException, status
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


ALLOWED_INTERVALS = (5, 10, 15, 20, 30, 60)

WEEKDAY_KEYS = [
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
]


@dataclass(frozen=True)
class ReservationPolicy:
    timezone: str
    reservation_interval_minutes: int
    reservation_limit_days: int
    available_cancel_days: int
    available_sheet: int
    today_first_later_minutes: int

    def to_dict(self) -> dict:
        return asdict(self)


_DEFAULT_TIMEZONE = os.getenv("DEFAULT_TIMEZONE", "Asia/Tokyo")
_DEFAULT_INTERVAL = int(os.getenv("DEFAULT_RESERVATION_INTERVAL", "30"))
_DEFAULT_LIMIT_DAYS = int(os.getenv("DEFAULT_RESERVATION_LIMIT_DAYS", "30"))
_DEFAULT_CANCEL_DAYS = int(os.getenv("DEFAULT_AVAILABLE_CANCEL_DAYS", "1"))
_DEFAULT_AVAILABLE_SHEET = int(os.getenv("DEFAULT_AVAILABLE_SHEET", "3"))
_DEFAULT_TODAY_FIRST_LATER = int(os.getenv("DEFAULT_TODAY_FIRST_LATER_MINUTES", "30"))


def default_policy_values() -> dict:
    return {
        "timezone": _DEFAULT_TIMEZONE,
        "reservation_interval_minutes": _DEFAULT_INTERVAL,
        "reservation_limit_days": _DEFAULT_LIMIT_DAYS,
        "available_cancel_days": _DEFAULT_CANCEL_DAYS,
        "available_sheet": _DEFAULT_AVAILABLE_SHEET,
        "today_first_later_minutes": _DEFAULT_TODAY_FIRST_LATER,
    }


def build_policy(payload: Mapping[str, Any]) -> ReservationPolicy:
    """Monta a política a partir de um dicionário ou linha, completando com os padrões."""
    defaults = default_policy_values()

    def pick(key: str):
        value = payload.get(key)
        return defaults[key] if value is None else value

    return ReservationPolicy(
        timezone=str(pick("timezone")),
        reservation_interval_minutes=int(pick("reservation_interval_minutes")),
        reservation_limit_days=int(pick("reservation_limit_days")),
        available_cancel_days=int(pick("available_cancel_days")),
        available_sheet=int(pick("available_sheet")),
        today_first_later_minutes=int(pick("today_first_later_minutes")),
    )


def resolve_zone(tz_name: str) -> ZoneInfo:
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        return ZoneInfo("UTC")


def ensure_timezone(dt: datetime, tz_name: str) -> datetime:
    zone = resolve_zone(tz_name)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(zone)


def parse_hour(value: str) -> int:
    """Converte "HH:MM" em minutos desde a meia-noite."""
    try:
        parsed = time.fromisoformat(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Horário inválido: {value!r}") from exc
    return parsed.hour * 60 + parsed.minute


def format_hour(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def minutes_since_midnight(dt: datetime, tz_name: str) -> int:
    localized = ensure_timezone(dt, tz_name)
    return localized.hour * 60 + localized.minute


def local_day_start(day: date, tz_name: str) -> datetime:
    return datetime.combine(day, time.min, tzinfo=resolve_zone(tz_name))


def unix_at(day: date, minutes: int, tz_name: str) -> int:
    """Instante unix (segundos) de ``minutes`` após a meia-noite local de ``day``."""
    return int((local_day_start(day, tz_name) + timedelta(minutes=minutes)).timestamp())


def local_date_of(unix_seconds: int, tz_name: str) -> date:
    return datetime.fromtimestamp(unix_seconds, tz=resolve_zone(tz_name)).date()


def weekday_key(day: date) -> str:
    return WEEKDAY_KEYS[day.weekday()]


def can_cancel_reservation(start_unix: int, policy: ReservationPolicy, now: datetime) -> bool:
    """True se ainda faltam ``available_cancel_days`` dias (ou mais) para o início."""
    if policy.available_cancel_days <= 0:
        return True
    start_day = local_date_of(start_unix, policy.timezone)
    today = ensure_timezone(now, policy.timezone).date()
    return (start_day - today).days >= policy.available_cancel_days


def validate_cancellation_window(start_unix: int, policy: ReservationPolicy, now: datetime) -> None:
    if not can_cancel_reservation(start_unix, policy, now):
        raise HTTPException(
            status.HTTP_400_BAD_REQUEST,
            f"Cancelamento permitido somente até {policy.available_cancel_days} dia(s) antes da reserva.",
        )
