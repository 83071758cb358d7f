"""Initialize consumers package."""

from .staff_consumer import handle_staff_deleted
from .sync_consumer import build_sync_requested_handler

__all__ = [
    "build_sync_requested_handler",
    "handle_staff_deleted",
]
