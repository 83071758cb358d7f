"""Domain errors raised by the scheduling core and the sync pipeline."""

from __future__ import annotations

from typing import Any, Optional, Sequence


class ReservationError(Exception):
    """Base class for reservation domain errors."""


class ConfigurationError(ReservationError):
    """Org configuration is missing or the request falls outside it. Not retried."""


class ConflictError(ReservationError):
    """Requested interval collides with existing reservations or seat capacity."""

    def __init__(self, message: str, conflicts: Optional[Sequence[Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.conflicts = list(conflicts or [])


class InvalidTransitionError(ReservationError):
    def __init__(self, entity: str, current: str, target: str) -> None:
        super().__init__(f"Transição inválida de {entity}: {current} -> {target}")
        self.entity = entity
        self.current = current
        self.target = target


class PipelineStalled(ReservationError):
    """A sync batch kept failing after every allowed attempt."""

    def __init__(self, cursor: Optional[str], attempts: int, last_error: BaseException) -> None:
        super().__init__(
            f"Sync batch at cursor {cursor!r} failed {attempts} time(s): {last_error!r}"
        )
        self.cursor = cursor
        self.attempts = attempts
        self.last_error = last_error
