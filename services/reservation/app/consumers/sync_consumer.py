"""Consumer for sync triggers published by other services or operators."""

import logging
from typing import Any

from app.core.errors import PipelineStalled
from app.sync.runner import SyncRunner

logger = logging.getLogger(__name__)


def build_sync_requested_handler(runner: SyncRunner):
    """Handler for ``sync.requested``; one run at a time per process."""

    async def handle_sync_requested(event_type: str, payload: dict[str, Any]) -> None:
        requested_by = payload.get("requested_by")
        logger.info("[SYNC_REQUESTED] requested_by=%s", requested_by)
        try:
            result = await runner.trigger()
        except PipelineStalled:
            # O pipeline já registrou e publicou sync.stalled; a mensagem é reconhecida
            logger.error("[SYNC_REQUESTED] pipeline stalled on first batch")
            return
        if result is None:
            logger.info("[SYNC_REQUESTED] sync already running, request ignored")

    return handle_sync_requested
