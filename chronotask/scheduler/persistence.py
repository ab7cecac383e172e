"""PersistenceGateway — aiosqlite snapshots of a TaskStore."""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from typing import TYPE_CHECKING

import aiosqlite

from chronotask.config import settings
from chronotask.errors import ChronotaskError, PersistenceFailure
from chronotask.scheduler.executor import TaskExecutor
from chronotask.scheduler.models import Instant, Snapshot, Task
from chronotask.scheduler.store import TaskStore

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from chronotask.scheduler.executor import Action, Clock

logger = logging.getLogger(__name__)

# Stored in PRAGMA user_version; bump when the table layout changes.
SNAPSHOT_VERSION = 1

_KIND_DATETIME = "datetime"
_KIND_TIMESTAMP = "timestamp"

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS tasks (
    position INTEGER PRIMARY KEY,
    kind TEXT NOT NULL,
    instant TEXT NOT NULL,
    description TEXT NOT NULL
)
"""


def encode_instant(when: Instant) -> tuple[str, str]:
    """Serialize an instant to a ``(kind, text)`` pair."""
    if isinstance(when, datetime):
        return _KIND_DATETIME, when.isoformat()
    if isinstance(when, int) and not isinstance(when, bool):
        return _KIND_TIMESTAMP, str(when)
    msg = f"Unsupported instant type: {type(when).__name__}"
    raise ValueError(msg)


def decode_instant(kind: str, text: str) -> Instant:
    """Inverse of :func:`encode_instant`."""
    if kind == _KIND_DATETIME:
        return datetime.fromisoformat(text)
    if kind == _KIND_TIMESTAMP:
        return int(text)
    msg = f"Unknown instant kind: {kind!r}"
    raise ValueError(msg)


class PersistenceGateway:
    """Saves and loads the durable part of a TaskStore.

    Only the ordered ``when -> description`` mapping is written; timer state
    never is. Pass an explicit *db_path* for test isolation
    (e.g. ``tmp_path / "tasks.db"``).
    """

    def __init__(self, db_path: Path | None = None) -> None:
        self._db_path = db_path or settings.snapshot_path

    @property
    def path(self) -> Path:
        return self._db_path

    # -- Save ------------------------------------------------------------------

    async def save(self, store: TaskStore) -> int:
        """Replace the stored snapshot with *store*'s entries.

        Rows are encoded before the file is opened and written in a single
        transaction, so a failure leaves the previous snapshot intact.
        Returns the number of tasks written.
        """
        try:
            rows = [
                (position, *encode_instant(task.when), task.description)
                for position, task in enumerate(store.snapshot())
            ]
        except ValueError as exc:
            raise PersistenceFailure(f"Cannot encode snapshot: {exc}") from exc

        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.execute(_CREATE_TABLE)
                try:
                    await db.execute("DELETE FROM tasks")
                    await db.executemany(
                        "INSERT INTO tasks (position, kind, instant, description)"
                        " VALUES (?, ?, ?, ?)",
                        rows,
                    )
                    await db.execute(f"PRAGMA user_version = {SNAPSHOT_VERSION}")
                    await db.commit()
                except BaseException:
                    await db.rollback()
                    raise
        except (OSError, sqlite3.Error) as exc:
            raise PersistenceFailure(f"Cannot write snapshot {self._db_path}: {exc}") from exc

        logger.info("Task store saved to %s (%d task(s))", self._db_path, len(rows))
        return len(rows)

    # -- Load ------------------------------------------------------------------

    async def read_snapshot(self) -> Snapshot:
        """Decode the stored snapshot without building a store."""
        if not self._db_path.exists():
            raise PersistenceFailure(f"No snapshot at {self._db_path}")

        uri = f"{self._db_path.resolve().as_uri()}?mode=ro"
        try:
            async with aiosqlite.connect(uri, uri=True) as db:
                cursor = await db.execute("PRAGMA user_version")
                (version,) = await cursor.fetchone()
                if version != SNAPSHOT_VERSION:
                    msg = f"Unsupported snapshot version {version} in {self._db_path}"
                    raise PersistenceFailure(msg)
                cursor = await db.execute(
                    "SELECT kind, instant, description FROM tasks ORDER BY position"
                )
                rows = await cursor.fetchall()
        except (OSError, sqlite3.Error) as exc:
            raise PersistenceFailure(f"Cannot read snapshot {self._db_path}: {exc}") from exc

        try:
            return tuple(
                Task(decode_instant(kind, text), description) for kind, text, description in rows
            )
        except (TypeError, ValueError) as exc:
            raise PersistenceFailure(f"Corrupt snapshot {self._db_path}: {exc}") from exc

    async def load(self, on_load: Callable[[TaskStore], None] | None = None) -> TaskStore:
        """Rebuild a TaskStore from the stored snapshot.

        *on_load* runs on the new store before it is returned; use it to
        attach runtime state such as timers. On any failure no store is
        returned.
        """
        snapshot = await self.read_snapshot()
        try:
            store = TaskStore.from_snapshot(snapshot)
        except (ChronotaskError, TypeError) as exc:
            raise PersistenceFailure(f"Corrupt snapshot {self._db_path}: {exc}") from exc

        logger.info("Task store loaded from %s (%d task(s))", self._db_path, len(store))
        if on_load is not None:
            on_load(store)
        return store

    async def load_executor(
        self,
        *,
        action: Action | None = None,
        clock: Clock | None = None,
        timezone: str | None = None,
        start: bool = True,
    ) -> TaskExecutor:
        """Load the store and wrap it in a fresh TaskExecutor.

        Still-future tasks are re-armed. Tasks whose instant already passed
        stay in the store unfired until the caller prunes them.
        """
        rebuilt: list[TaskExecutor] = []

        def attach_executor(store: TaskStore) -> None:
            executor = TaskExecutor(store, action=action, clock=clock, timezone=timezone)
            executor.rearm()
            if start:
                executor.start()
            rebuilt.append(executor)

        await self.load(on_load=attach_executor)
        return rebuilt[0]
