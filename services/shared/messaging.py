"""Event publisher for reservation and sync events, backed by Redis Streams."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

import redis

logger = logging.getLogger(__name__)


class EventPublisher:
    """Publish domain events to a Redis Stream.

    Publishing is best effort: a Redis failure is logged and reported through
    the return value, never raised into the request or the sync batch that
    emitted the event.
    """

    def __init__(self, redis_url: str, stream_name: str, *, maxlen: Optional[int] = 1000) -> None:
        self._stream_name = stream_name
        self._maxlen = maxlen
        self._client = redis.Redis.from_url(redis_url)

    @property
    def stream_name(self) -> str:
        return self._stream_name

    def publish(
        self,
        event_type: str,
        payload: Dict[str, Any],
        *,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """Send an event to the configured stream.

        Parameters
        ----------
        event_type:
            Canonical name, e.g. ``reservation.created`` or ``sync.stalled``.
        payload:
            Serialisable body (will be JSON dumped).
        metadata:
            Optional envelope metadata (tenant id, org id, correlation).
        """

        event = {
            "event_type": event_type,
            "payload": json.dumps(payload, default=str),
        }
        if metadata:
            event["metadata"] = json.dumps(metadata, default=str)

        try:
            self._client.xadd(
                self._stream_name,
                event,
                maxlen=self._maxlen,
                approximate=bool(self._maxlen),
            )
        except redis.RedisError:
            logger.exception("Failed to publish event '%s' to stream '%s'", event_type, self._stream_name)
            return False
        return True

    def close(self) -> None:
        self._client.close()


def create_publisher(redis_url: Optional[str], stream_name: str) -> Optional[EventPublisher]:
    """Return a publisher, or None when Redis is not configured."""
    if not isinstance(redis_url, str) or not redis_url.strip():
        return None
    return EventPublisher(redis_url, stream_name)
