"""TaskExecutor — fires task actions at their scheduled instants."""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import TYPE_CHECKING

from chronotask.scheduler.models import Instant, Task, TimerHandle, format_instant, seconds_until
from chronotask.scheduler.store import TaskStore
from chronotask.scheduler.timers import TimerWorker

if TYPE_CHECKING:
    from collections.abc import Callable

    Action = Callable[[str, datetime], None]
    Clock = Callable[[], datetime]

logger = logging.getLogger(__name__)


def log_action(description: str, fired_at: datetime) -> None:
    """Default action: report the fire and do nothing else."""
    logger.info("Task fired: %s at %s", description, format_instant(fired_at))


class TaskExecutor:
    """Owns a TaskStore and one TimerWorker, and bridges the two.

    One-shot tasks live in the store and are removed from it when they fire.
    Recurring tasks are tracked only as armed timers; they never enter the
    store and are never persisted.

    Args:
        store: The TaskStore to schedule from (a new empty one by default).
        action: Called as ``action(description, fired_at)`` when no per-task
            action is given, and for every timer re-armed by :meth:`rearm`.
        clock: Returns the current instant; used to compute delays and to
            stamp fires. Defaults to the local wall clock.
        timezone: IANA timezone for the worker (default from settings).
    """

    def __init__(
        self,
        store: TaskStore | None = None,
        *,
        action: Action | None = None,
        clock: Clock | None = None,
        timezone: str | None = None,
    ) -> None:
        self._store = store if store is not None else TaskStore()
        self._default_action = action or log_action
        self._clock = clock or datetime.now
        self._worker = TimerWorker(timezone=timezone)
        self._lock = threading.Lock()
        self._one_shots: dict[datetime, TimerHandle] = {}
        self._recurring: dict[str, TimerHandle] = {}

    @property
    def store(self) -> TaskStore:
        return self._store

    @property
    def running(self) -> bool:
        return self._worker.running

    # -- Lifecycle -------------------------------------------------------------

    def start(self) -> None:
        """Start firing timers, including any armed before this call."""
        self._worker.start()

    def shutdown(self) -> None:
        """Stop the worker; pending timers are abandoned without firing."""
        self._worker.shutdown()
        with self._lock:
            self._one_shots.clear()
            self._recurring.clear()

    def __enter__(self) -> TaskExecutor:
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()

    # -- Scheduling ------------------------------------------------------------

    def schedule_one_shot(
        self,
        when: datetime,
        description: str,
        action: Action | None = None,
    ) -> TimerHandle:
        """Store the task and arm a timer for it.

        Raises ``Conflict`` (and arms nothing) if *when* is already occupied.
        """
        with self._lock:
            self._store.insert(when, description)
            try:
                return self._arm_one_shot(when, description, action or self._default_action)
            except Exception:
                self._store.discard(when)
                raise

    def schedule_recurring(
        self,
        initial_when: datetime,
        description: str,
        period: float,
        action: Action | None = None,
    ) -> TimerHandle:
        """Fire *action* every *period* seconds starting at *initial_when*.

        The task is not inserted into the store.
        """
        action = action or self._default_action
        delay = seconds_until(initial_when, self._clock())

        def fire() -> None:
            self._invoke(action, description)

        handle = self._worker.arm_periodic(
            delay, period, fire, when=initial_when, description=description
        )
        with self._lock:
            self._recurring[handle.job_id] = handle
        logger.info(
            "Recurring task added: [%s] -> %s (every %ss)",
            format_instant(initial_when),
            description,
            period,
        )
        return handle

    def cancel(self, when: datetime) -> int:
        """Cancel every timer armed for *when*; returns how many were cancelled.

        The one-shot entry, if any, stays in the store.
        """
        with self._lock:
            handles = [h for h in self._recurring.values() if h.when == when]
            for handle in handles:
                del self._recurring[handle.job_id]
            one_shot = self._one_shots.pop(when, None)
            if one_shot is not None:
                handles.append(one_shot)

        cancelled = sum(1 for handle in handles if self._worker.cancel(handle))
        if cancelled:
            logger.info("Cancelled %d timer(s) at %s", cancelled, format_instant(when))
        else:
            logger.info("No timer armed at %s", format_instant(when))
        return cancelled

    def cancel_handle(self, handle: TimerHandle) -> bool:
        with self._lock:
            if handle.is_recurring:
                self._recurring.pop(handle.job_id, None)
            elif self._one_shots.get(handle.when) == handle:
                del self._one_shots[handle.when]
        return self._worker.cancel(handle)

    def remove_task(self, when: datetime) -> str:
        """Remove a one-shot task from the store and cancel its timer.

        Raises ``NotFound`` if nothing is stored at *when*.
        """
        description = self._store.remove(when)
        with self._lock:
            handle = self._one_shots.pop(when, None)
        if handle is not None:
            self._worker.cancel(handle)
        return description

    # -- Reload support --------------------------------------------------------

    def rearm(self, action: Action | None = None) -> int:
        """Arm timers for stored tasks that are still in the future.

        Entries already past stay in the store untouched; they are reported
        but never fired. Returns the number of timers armed.
        """
        action = action or self._default_action
        now = self._clock()
        armed = 0
        stale = 0
        for task in self._store.snapshot():
            if not isinstance(task.when, datetime):
                continue
            if seconds_until(task.when, now) <= 0:
                stale += 1
                continue
            with self._lock:
                if task.when in self._one_shots:
                    continue
                self._arm_one_shot(task.when, task.description, action)
            armed += 1

        logger.info("Re-armed %d task timer(s)", armed)
        if stale:
            logger.warning(
                "%d stale task(s) left in the store; call prune_stale() to drop them", stale
            )
        return armed

    def stale_tasks(self) -> list[Task]:
        """Stored tasks whose instant has already passed."""
        return self._store.before(self._clock())

    def prune_stale(self) -> list[Task]:
        """Drop stored tasks whose instant has already passed."""
        return self._store.prune_before(self._clock())

    # -- Queries ---------------------------------------------------------------

    def next_task(self) -> Task | None:
        return self._store.next()

    def tasks_in_range(
        self,
        start: Instant,
        end: Instant,
        inclusive_start: bool = True,
        inclusive_end: bool = False,
    ) -> list[Task]:
        return self._store.range(start, end, inclusive_start, inclusive_end)

    def all_tasks(self) -> list[Task]:
        return self._store.all()

    def pending_timers(self) -> list[TimerHandle]:
        """Armed timers, one-shot and recurring, ordered by instant."""
        with self._lock:
            handles = [*self._one_shots.values(), *self._recurring.values()]
        return sorted(handles, key=lambda h: h.when)

    def recurring_tasks(self) -> list[TimerHandle]:
        with self._lock:
            return sorted(self._recurring.values(), key=lambda h: h.when)

    # -- Internal --------------------------------------------------------------

    def _arm_one_shot(self, when: datetime, description: str, action: Action) -> TimerHandle:
        """Arm and register a one-shot timer. Caller holds ``self._lock``."""
        delay = seconds_until(when, self._clock())
        armed: list[TimerHandle] = []

        def fire() -> None:
            try:
                self._invoke(action, description)
            finally:
                with self._lock:
                    current = self._one_shots.get(when)
                    # A newer task at the same instant keeps its entry.
                    if current is None or current == armed[0]:
                        self._one_shots.pop(when, None)
                        self._store.discard(when)

        handle = self._worker.arm(delay, fire, when=when, description=description)
        armed.append(handle)
        self._one_shots[when] = handle
        return handle

    def _invoke(self, action: Action, description: str) -> None:
        """Run an action on the worker thread; failures are logged, not raised."""
        fired_at = self._clock()
        logger.info("Executing task: %s at %s", description, format_instant(fired_at))
        try:
            action(description, fired_at)
        except Exception:
            logger.exception("Task action failed: %s", description)
