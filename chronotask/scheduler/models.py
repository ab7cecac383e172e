"""Task, TimerHandle and Snapshot data models."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import NamedTuple

from chronotask.config import settings

# A wall-clock datetime (naive = local time) or a raw epoch-millisecond timestamp.
Instant = datetime | int

ONE_SHOT = "one_shot"
RECURRING = "recurring"


class Task(NamedTuple):
    """A task description keyed by its execution instant.

    Unpacks as ``(when, description)`` so query results read like plain pairs.
    """

    when: Instant
    description: str

    def __str__(self) -> str:
        return f"[{format_instant(self.when)}] -> {self.description}"


# Durable form of a TaskStore: its entries in ascending order, no timer state.
Snapshot = tuple[Task, ...]


@dataclass(frozen=True)
class TimerHandle:
    """One armed firing owned by a TaskExecutor.

    Attributes:
        job_id: Unique identifier of the underlying scheduler job (UUID hex).
        when: The scheduled instant the handle belongs to. For recurring
            timers this is the initial instant.
        kind: Either ``"one_shot"`` or ``"recurring"``.
        description: The task description passed to the action.
        period: Seconds between fires (recurring only).
    """

    job_id: str
    when: datetime
    kind: str
    description: str = ""
    period: float | None = None

    @property
    def is_one_shot(self) -> bool:
        return self.kind == ONE_SHOT

    @property
    def is_recurring(self) -> bool:
        return self.kind == RECURRING


def make_job_id() -> str:
    """Generate a new timer job ID."""
    return uuid.uuid4().hex


def format_instant(when: Instant) -> str:
    """Render an instant for log lines; raw timestamps are shown as-is."""
    if isinstance(when, datetime):
        return when.strftime(settings.time_format)
    return str(when)


def seconds_until(when: datetime, now: datetime) -> float:
    """Return ``max(0, when - now)`` in seconds.

    A naive datetime is taken as local wall-clock time when compared against
    an aware one.
    """
    if (when.tzinfo is None) != (now.tzinfo is None):
        when = when.astimezone()
        now = now.astimezone()
    return max((when - now).total_seconds(), 0.0)
