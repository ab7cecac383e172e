"""chronotask — an in-process, time-ordered task registry."""

from chronotask.errors import (
    ChronotaskError,
    Conflict,
    NotFound,
    PersistenceFailure,
    SchedulerClosed,
)
from chronotask.scheduler import (
    PersistenceGateway,
    Snapshot,
    Task,
    TaskExecutor,
    TaskStore,
    TimerHandle,
)

__all__ = [
    "ChronotaskError",
    "Conflict",
    "NotFound",
    "PersistenceFailure",
    "SchedulerClosed",
    "Task",
    "TimerHandle",
    "Snapshot",
    "TaskStore",
    "TaskExecutor",
    "PersistenceGateway",
]
