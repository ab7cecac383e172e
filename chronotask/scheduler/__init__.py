"""Time-ordered task registry — store, timers, execution, and persistence."""

from chronotask.scheduler.executor import TaskExecutor
from chronotask.scheduler.models import Snapshot, Task, TimerHandle
from chronotask.scheduler.persistence import PersistenceGateway
from chronotask.scheduler.store import TaskStore
from chronotask.scheduler.timers import TimerWorker

__all__ = [
    "Task",
    "TimerHandle",
    "Snapshot",
    "TaskStore",
    "TimerWorker",
    "TaskExecutor",
    "PersistenceGateway",
]
