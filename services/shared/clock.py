"""Time sources injected into scheduling code."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime:
        """Current instant, timezone-aware."""


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FrozenClock:
    """Clock fixed at a given instant; ``advance`` moves it forward."""

    def __init__(self, instant: datetime) -> None:
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=timezone.utc)
        self._instant = instant

    def now(self) -> datetime:
        return self._instant

    def advance(self, **kwargs) -> None:
        self._instant = self._instant + timedelta(**kwargs)


def unix_now(clock: Clock) -> int:
    return int(clock.now().timestamp())
