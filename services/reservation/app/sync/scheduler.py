from __future__ import annotations

import asyncio
from typing import Any, Callable, Optional, Set

from shared.logging import get_logger

from app.core.errors import PipelineStalled

logger = get_logger(__name__)


class AsyncioScheduler:
    """Runs blocking callbacks in a worker thread after a delay on the given loop.

    ``run_after`` may be called from any thread, including the worker threads
    that run previously scheduled callbacks.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop
        self._tasks: Set[asyncio.Task] = set()

    def run_after(self, delay_seconds: float, callback: Callable[..., Any], *args: Any) -> None:
        self._loop.call_soon_threadsafe(self._spawn, delay_seconds, callback, args)

    def _spawn(self, delay_seconds: float, callback: Callable[..., Any], args: tuple) -> None:
        task = self._loop.create_task(self._run(delay_seconds, callback, args))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(self, delay_seconds: float, callback: Callable[..., Any], args: tuple) -> None:
        if delay_seconds > 0:
            await asyncio.sleep(delay_seconds)
        try:
            await asyncio.to_thread(callback, *args)
        except PipelineStalled:
            # Já registrado e publicado pelo pipeline
            logger.error("scheduled_sync_abandoned")
        except Exception:
            logger.exception("scheduled_task_failed")

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self, timeout: Optional[float] = None) -> None:
        """Wait until no scheduled callback is pending, including ones scheduled meanwhile."""

        async def _wait_all() -> None:
            while self._tasks:
                await asyncio.gather(*list(self._tasks), return_exceptions=True)
                # Callbacks agendados a partir de threads chegam via call_soon_threadsafe
                await asyncio.sleep(0)

        await asyncio.wait_for(_wait_all(), timeout=timeout)

    def cancel_all(self) -> None:
        for task in list(self._tasks):
            task.cancel()
