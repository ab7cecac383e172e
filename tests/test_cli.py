"""Tests for the snapshot inspection CLI."""

import argparse
import asyncio
import logging
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from chronotask.cli import main, parse_instant
from chronotask.scheduler.models import Task
from chronotask.scheduler.persistence import PersistenceGateway
from chronotask.scheduler.store import TaskStore

T1 = datetime(2026, 1, 1, 9, 0, 0)
T2 = T1 + timedelta(hours=1)
T3 = T1 + timedelta(hours=2)


@pytest.fixture
def db(tmp_path: Path) -> Path:
    path = tmp_path / "tasks.db"
    store = TaskStore([(T1, "Morning meeting"), (T2, "Prepare slides"), (T3, "Submit report")])
    asyncio.run(PersistenceGateway(db_path=path).save(store))
    return path


# -- parse_instant -------------------------------------------------------------


def test_parse_instant_iso() -> None:
    assert parse_instant("2026-01-01T09:00:00") == T1


def test_parse_instant_raw_timestamp() -> None:
    assert parse_instant("1672503000000") == 1672503000000


def test_parse_instant_rejects_garbage() -> None:
    with pytest.raises(argparse.ArgumentTypeError):
        parse_instant("tomorrow-ish")


# -- Commands ------------------------------------------------------------------


def test_list(db: Path, capsys: pytest.CaptureFixture) -> None:
    assert main(["--db", str(db), "list"]) == 0
    out = capsys.readouterr().out.splitlines()
    assert out == [
        "[2026-01-01 09:00:00] -> Morning meeting",
        "[2026-01-01 10:00:00] -> Prepare slides",
        "[2026-01-01 11:00:00] -> Submit report",
    ]


def test_next(db: Path, capsys: pytest.CaptureFixture) -> None:
    assert main(["--db", str(db), "next"]) == 0
    assert capsys.readouterr().out.strip() == "[2026-01-01 09:00:00] -> Morning meeting"


def test_range_half_open(db: Path, capsys: pytest.CaptureFixture) -> None:
    assert main(["--db", str(db), "range", T1.isoformat(), T3.isoformat()]) == 0
    assert len(capsys.readouterr().out.splitlines()) == 2


def test_range_inclusive_end(db: Path, capsys: pytest.CaptureFixture) -> None:
    argv = ["--db", str(db), "range", T1.isoformat(), T3.isoformat(), "--inclusive-end"]
    assert main(argv) == 0
    assert len(capsys.readouterr().out.splitlines()) == 3


def test_range_empty(db: Path, capsys: pytest.CaptureFixture) -> None:
    argv = ["--db", str(db), "range", T3.isoformat(), T1.isoformat()]
    assert main(argv) == 0
    assert "No tasks found in range." in capsys.readouterr().out


def test_range_wrong_key_kind(db: Path, capsys: pytest.CaptureFixture) -> None:
    assert main(["--db", str(db), "range", "1", "2"]) == 2
    assert "ERROR" in capsys.readouterr().err


def test_prune_saves_result(db: Path, capsys: pytest.CaptureFixture) -> None:
    assert main(["--db", str(db), "prune", "--before", T2.isoformat()]) == 0
    assert "Pruned 1 task(s), 2 remaining." in capsys.readouterr().out

    store = asyncio.run(PersistenceGateway(db_path=db).load())
    assert store.all() == [Task(T2, "Prepare slides"), Task(T3, "Submit report")]


def test_missing_snapshot(tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
    assert main(["--db", str(tmp_path / "absent.db"), "list"]) == 1
    assert "No snapshot" in capsys.readouterr().err


def test_list_empty(tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
    path = tmp_path / "empty.db"
    asyncio.run(PersistenceGateway(db_path=path).save(TaskStore()))

    assert main(["--db", str(path), "list"]) == 0
    assert "No tasks scheduled." in capsys.readouterr().out


# -- Logging -------------------------------------------------------------------


def test_listing_does_not_repeat_tasks_in_log(
    db: Path, capsys: pytest.CaptureFixture, caplog: pytest.LogCaptureFixture
) -> None:
    caplog.set_level(logging.INFO)
    assert main(["--db", str(db), "list"]) == 0

    assert len(capsys.readouterr().out.splitlines()) == 3
    assert "Morning meeting" not in caplog.text
    assert logging.getLogger("chronotask.scheduler.store").level == logging.NOTSET


def test_log_level_is_case_insensitive(db: Path) -> None:
    assert main(["--db", str(db), "--log-level", "debug", "next"]) == 0


def test_unknown_log_level_is_rejected(db: Path, capsys: pytest.CaptureFixture) -> None:
    with pytest.raises(SystemExit) as exc_info:
        main(["--db", str(db), "--log-level", "LOUD", "list"])

    assert exc_info.value.code == 2
    assert "invalid choice" in capsys.readouterr().err


def test_unknown_configured_log_level(
    db: Path, capsys: pytest.CaptureFixture, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr("chronotask.logging_setup.settings.log_level", "LOUD")

    assert main(["--db", str(db), "list"]) == 2
    assert "Unknown log level 'LOUD'" in capsys.readouterr().err
