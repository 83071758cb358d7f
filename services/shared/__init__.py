"""Shared utilities used across microservices."""

from .config import ServiceConfig, SyncConfig, load_service_config
from .clock import Clock, FrozenClock, SystemClock, unix_now
from .messaging import EventPublisher, create_publisher
from .event_consumer import EventConsumer, cleanup_consumer
from .organization import (
    ALLOWED_INTERVALS,
    WEEKDAY_KEYS,
    ReservationPolicy,
    build_policy,
    can_cancel_reservation,
    default_policy_values,
    ensure_timezone,
    format_hour,
    local_date_of,
    minutes_since_midnight,
    parse_hour,
    resolve_zone,
    unix_at,
    validate_cancellation_window,
    weekday_key,
)
from .cors import configure_cors, get_cors_origins

__all__ = [
    "ServiceConfig",
    "SyncConfig",
    "load_service_config",
    "Clock",
    "FrozenClock",
    "SystemClock",
    "unix_now",
    "EventPublisher",
    "create_publisher",
    "EventConsumer",
    "cleanup_consumer",
    "ALLOWED_INTERVALS",
    "WEEKDAY_KEYS",
    "ReservationPolicy",
    "build_policy",
    "can_cancel_reservation",
    "default_policy_values",
    "ensure_timezone",
    "format_hour",
    "local_date_of",
    "minutes_since_midnight",
    "parse_hour",
    "resolve_zone",
    "unix_at",
    "validate_cancellation_window",
    "weekday_key",
    "configure_cors",
    "get_cors_origins",
]
