"""Error taxonomy for the task registry."""

from __future__ import annotations

from typing import Any


class ChronotaskError(Exception):
    """Base class for every error raised by chronotask."""


class Conflict(ChronotaskError):
    """An insert targeted an instant that already holds a task."""

    def __init__(self, when: Any) -> None:
        self.when = when
        super().__init__(f"A task is already scheduled at {when}")


class NotFound(ChronotaskError):
    """No task exists at the requested instant."""

    def __init__(self, when: Any) -> None:
        self.when = when
        super().__init__(f"No task found at {when}")


class PersistenceFailure(ChronotaskError):
    """Saving or loading a snapshot failed (I/O or decode)."""


class SchedulerClosed(ChronotaskError):
    """The timer worker has been shut down and accepts no new timers."""
