"""Shared test fixtures."""

import time
from datetime import datetime

import pytest

from chronotask.scheduler.executor import TaskExecutor
from chronotask.scheduler.store import TaskStore

T0 = datetime(2026, 1, 1, 9, 0, 0)


class FakeClock:
    """Callable clock pinned to a settable instant."""

    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> TaskStore:
    return TaskStore()


@pytest.fixture
def executor(store: TaskStore, clock: FakeClock):
    """A started executor on a fake clock; shut down after the test."""
    ex = TaskExecutor(store, clock=clock, timezone="UTC")
    ex.start()
    yield ex
    ex.shutdown()


@pytest.fixture
def wait_until():
    """Poll *predicate* until it is true or *timeout* seconds pass."""

    def _wait(predicate, timeout: float = 5.0) -> bool:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if predicate():
                return True
            time.sleep(0.01)
        return predicate()

    return _wait
