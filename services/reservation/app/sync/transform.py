"""Row shaping for the analytics sink."""

from __future__ import annotations

import json
import re
from datetime import datetime, timezone
from typing import Any, Mapping
from uuid import UUID

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_UNIX_SUFFIX = "_unix"


def to_snake_case(key: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", key.lstrip("_")).lower()


def unix_to_iso(value: int) -> str:
    return datetime.fromtimestamp(int(value), tz=timezone.utc).isoformat()


def datetime_to_iso(value: datetime) -> str:
    # SQLite devolve datetimes sem fuso; gravados sempre em UTC
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def _convert(value: Any) -> Any:
    if isinstance(value, datetime):
        return datetime_to_iso(value)
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, (list, dict)):
        return json.dumps(value, default=str, ensure_ascii=False, sort_keys=True)
    return value


def transform_record(record: Mapping[str, Any], migrated_at: datetime) -> dict:
    """Map one operational reservation to a ``reservations_history`` row.

    Keys become snake_case, ``*_unix`` instants become ISO-8601 UTC strings
    under the name without the suffix, nested lists/dicts are stored as JSON
    text, and ``migrated_at`` stamps the batch.
    """
    row: dict = {}
    for key, value in record.items():
        name = to_snake_case(key)
        if name.endswith(_UNIX_SUFFIX):
            row[name[: -len(_UNIX_SUFFIX)]] = unix_to_iso(value) if value is not None else None
        else:
            row[name] = _convert(value)

    start = record.get("start_time_unix", record.get("startTimeUnix"))
    end = record.get("end_time_unix", record.get("endTimeUnix"))
    if start is not None and end is not None:
        row["duration_minutes"] = (int(end) - int(start)) // 60

    row["migrated_at"] = datetime_to_iso(migrated_at)
    return row
