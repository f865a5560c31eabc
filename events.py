"""
events.py - Progress and lifecycle notifications emitted by a run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Optional

if TYPE_CHECKING:
    from typing_engine import RunState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Progress:
    current: int
    total: int
    percentage: float

    @classmethod
    def at(cls, current: int, total: int) -> "Progress":
        percentage = 100.0 * current / total if total else 100.0
        return cls(current, total, percentage)


class EngineListener:
    """Observer for a typing engine. Override what you need."""

    def on_progress(self, progress: Progress) -> None:
        pass

    def on_state_changed(self, old: "RunState", new: "RunState") -> None:
        pass

    def on_completed(self) -> None:
        pass

    def on_stopped(self) -> None:
        pass

    def on_error(self, message: str) -> None:
        pass


ProgressCB = Callable[[Progress], None]
DoneCB = Callable[[], None]
ErrorCB = Callable[[str], None]


class CallbackListener(EngineListener):
    """Adapts plain callables to the listener interface."""

    def __init__(
        self,
        on_progress: Optional[ProgressCB] = None,
        on_completed: Optional[DoneCB] = None,
        on_stopped: Optional[DoneCB] = None,
        on_error: Optional[ErrorCB] = None,
    ) -> None:
        self._on_progress = on_progress
        self._on_completed = on_completed
        self._on_stopped = on_stopped
        self._on_error = on_error

    def on_progress(self, progress: Progress) -> None:
        if self._on_progress:
            self._on_progress(progress)

    def on_completed(self) -> None:
        if self._on_completed:
            self._on_completed()

    def on_stopped(self) -> None:
        if self._on_stopped:
            self._on_stopped()

    def on_error(self, message: str) -> None:
        if self._on_error:
            self._on_error(message)


def notify(listener: EngineListener, method: str, *args: object) -> None:
    """Call ``listener.<method>(*args)``; a failing listener never breaks a run."""
    try:
        getattr(listener, method)(*args)
    except Exception:
        logger.exception("Listener %s.%s raised", type(listener).__name__, method)
