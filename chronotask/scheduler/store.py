"""TaskStore — ordered, conflict-checked task mapping keyed by instant."""

from __future__ import annotations

import bisect
import logging
import threading
from typing import TYPE_CHECKING

from chronotask.errors import Conflict, NotFound
from chronotask.scheduler.models import Instant, Snapshot, Task, format_instant

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

logger = logging.getLogger(__name__)


class TaskStore:
    """Keeps ``when -> description`` entries sorted by instant.

    At most one task may exist per exact instant. Every public method holds
    an internal re-entrant lock, so the firing worker's removals never tear
    an enumeration running on another thread.

    Keys must be mutually comparable: all datetimes (all naive or all aware)
    or all raw integer timestamps. A key that cannot be ordered against the
    existing ones raises ``TypeError`` and leaves the store unchanged.
    """

    def __init__(self, tasks: Iterable[tuple[Instant, str]] = ()) -> None:
        self._lock = threading.RLock()
        self._keys: list[Instant] = []
        self._descriptions: dict[Instant, str] = {}
        for when, description in tasks:
            self._put(when, description)

    @classmethod
    def from_snapshot(cls, snapshot: Snapshot) -> TaskStore:
        """Rehydrate a store from a snapshot produced by :meth:`snapshot`."""
        store = cls(snapshot)
        logger.debug("Rehydrated TaskStore with %d task(s)", len(store))
        return store

    # -- Internal helpers ------------------------------------------------------

    def _put(self, when: Instant, description: str) -> None:
        if when in self._descriptions:
            raise Conflict(when)
        index = bisect.bisect_left(self._keys, when)
        self._keys.insert(index, when)
        self._descriptions[when] = description

    def _pop(self, when: Instant) -> str:
        description = self._descriptions.pop(when)
        index = bisect.bisect_left(self._keys, when)
        del self._keys[index]
        return description

    def _slice(self, lo: int, hi: int) -> list[Task]:
        return [Task(key, self._descriptions[key]) for key in self._keys[lo:hi]]

    # -- Mutation --------------------------------------------------------------

    def insert(self, when: Instant, description: str) -> Task:
        """Add a task. Raises ``Conflict`` if *when* is already occupied."""
        with self._lock:
            try:
                self._put(when, description)
            except Conflict:
                logger.warning(
                    "Conflict: a task is already scheduled at %s", format_instant(when)
                )
                raise
        task = Task(when, description)
        logger.info("Task added: %s", task)
        return task

    def remove(self, when: Instant) -> str:
        """Remove and return the description at *when*. Raises ``NotFound``."""
        with self._lock:
            if when not in self._descriptions:
                logger.warning("No task found at %s", format_instant(when))
                raise NotFound(when)
            description = self._pop(when)
        logger.info("Task removed: %s", Task(when, description))
        return description

    def discard(self, when: Instant) -> str | None:
        """Remove the task at *when* if present; a missing key is a no-op."""
        with self._lock:
            if when not in self._descriptions:
                return None
            description = self._pop(when)
        logger.info("Task removed: %s", Task(when, description))
        return description

    def prune_before(self, cutoff: Instant) -> list[Task]:
        """Drop every task strictly earlier than *cutoff* and return them."""
        with self._lock:
            hi = bisect.bisect_left(self._keys, cutoff)
            pruned = self._slice(0, hi)
            for task in pruned:
                del self._descriptions[task.when]
            del self._keys[:hi]
        if pruned:
            logger.info(
                "Pruned %d task(s) before %s", len(pruned), format_instant(cutoff)
            )
        return pruned

    # -- Queries ---------------------------------------------------------------

    def get(self, when: Instant) -> str | None:
        with self._lock:
            return self._descriptions.get(when)

    def next(self) -> Task | None:
        """Return the task with the smallest instant, or None when empty."""
        with self._lock:
            task = Task(self._keys[0], self._descriptions[self._keys[0]]) if self._keys else None
        if task is None:
            logger.info("No tasks available.")
        else:
            logger.info("Next task: %s", task)
        return task

    def range(
        self,
        start: Instant,
        end: Instant,
        inclusive_start: bool = True,
        inclusive_end: bool = False,
    ) -> list[Task]:
        """Return the tasks between *start* and *end* in ascending order.

        Each bound's inclusivity is chosen independently; the default is the
        half-open interval ``[start, end)``. ``start > end`` yields ``[]``.
        """
        open_mark = "[" if inclusive_start else "("
        close_mark = "]" if inclusive_end else ")"
        label = f"{open_mark}{format_instant(start)}, {format_instant(end)}{close_mark}"

        with self._lock:
            if start > end:
                tasks: list[Task] = []
            else:
                lo_search = bisect.bisect_left if inclusive_start else bisect.bisect_right
                hi_search = bisect.bisect_right if inclusive_end else bisect.bisect_left
                lo = lo_search(self._keys, start)
                hi = hi_search(self._keys, end)
                tasks = self._slice(lo, hi) if lo < hi else []

        if not tasks:
            logger.info("No tasks found in the range %s.", label)
        else:
            logger.info("Tasks in range %s: %s", label, "; ".join(str(t) for t in tasks))
        return tasks

    def before(self, cutoff: Instant) -> list[Task]:
        """Return the tasks strictly earlier than *cutoff* without removing them."""
        with self._lock:
            return self._slice(0, bisect.bisect_left(self._keys, cutoff))

    def all(self) -> list[Task]:
        """Return every task in ascending order."""
        with self._lock:
            tasks = self._slice(0, len(self._keys))
        if not tasks:
            logger.info("No tasks scheduled.")
        else:
            logger.info("All scheduled tasks: %s", "; ".join(str(t) for t in tasks))
        return tasks

    def snapshot(self) -> Snapshot:
        """Return an immutable, ordered copy of the mapping."""
        with self._lock:
            return tuple(self._slice(0, len(self._keys)))

    # -- Container protocol ----------------------------------------------------

    def __len__(self) -> int:
        with self._lock:
            return len(self._keys)

    def __contains__(self, when: object) -> bool:
        with self._lock:
            return when in self._descriptions

    def __iter__(self) -> Iterator[Task]:
        return iter(self.snapshot())

    def __repr__(self) -> str:
        return f"TaskStore({len(self)} task(s))"
