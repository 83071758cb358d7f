from typing import Optional

import redis
from fastapi import Request

from shared import Clock, EventPublisher, SystemClock


def get_publisher(request: Request) -> Optional[EventPublisher]:
    return getattr(request.app.state, "event_publisher", None)


def get_cache(request: Request) -> Optional[redis.Redis]:
    return getattr(request.app.state, "cache", None)


def get_clock(request: Request) -> Clock:
    return getattr(request.app.state, "clock", None) or SystemClock()
