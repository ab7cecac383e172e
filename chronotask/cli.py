"""Inspect and prune a saved task snapshot.

Usage examples:
    # Every stored task, ascending
    python -m chronotask list

    # The earliest task
    python -m chronotask next

    # Tasks in [start, end)
    python -m chronotask range 2026-01-01T09:00:00 2026-01-01T18:00:00

    # Same window, end included
    python -m chronotask range 2026-01-01T09:00:00 2026-01-01T18:00:00 --inclusive-end

    # Drop tasks that are already past and save the result
    python -m chronotask --db data/other.db prune
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from datetime import datetime
from pathlib import Path

from chronotask.errors import PersistenceFailure
from chronotask.logging_setup import LOG_LEVELS, configure_logging
from chronotask.scheduler.models import Instant
from chronotask.scheduler.persistence import PersistenceGateway


def parse_instant(text: str) -> Instant:
    """Accept an ISO 8601 datetime or a raw integer timestamp."""
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text)
    except ValueError as exc:
        msg = f"not an ISO 8601 datetime or integer timestamp: {text!r}"
        raise argparse.ArgumentTypeError(msg) from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="chronotask", description="Inspect a task snapshot")
    parser.add_argument("--db", type=Path, help="Snapshot path (default: settings.snapshot_path)")
    parser.add_argument(
        "--log-level", type=str.upper, choices=LOG_LEVELS, help="Override LOG_LEVEL"
    )

    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("list", help="Show every stored task")
    commands.add_parser("next", help="Show the earliest task")

    range_cmd = commands.add_parser("range", help="Show tasks between two instants")
    range_cmd.add_argument("start", type=parse_instant)
    range_cmd.add_argument("end", type=parse_instant)
    range_cmd.add_argument("--exclusive-start", action="store_true", help="Exclude start")
    range_cmd.add_argument("--inclusive-end", action="store_true", help="Include end")

    prune_cmd = commands.add_parser("prune", help="Drop tasks earlier than a cutoff and save")
    prune_cmd.add_argument(
        "--before", type=parse_instant, default=None, help="Cutoff (default: now)"
    )
    return parser


async def run(args: argparse.Namespace) -> int:
    gateway = PersistenceGateway(db_path=args.db)
    store = await gateway.load()

    if args.command == "list":
        tasks = store.all()
        if not tasks:
            print("No tasks scheduled.")
        for task in tasks:
            print(task)
    elif args.command == "next":
        task = store.next()
        print(task if task is not None else "No tasks available.")
    elif args.command == "range":
        tasks = store.range(
            args.start,
            args.end,
            inclusive_start=not args.exclusive_start,
            inclusive_end=args.inclusive_end,
        )
        if not tasks:
            print("No tasks found in range.")
        for task in tasks:
            print(task)
    elif args.command == "prune":
        cutoff = args.before if args.before is not None else datetime.now()
        pruned = store.prune_before(cutoff)
        await gateway.save(store)
        print(f"Pruned {len(pruned)} task(s), {len(store)} remaining.")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        configure_logging(args.log_level)
    except ValueError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 2

    # Tasks are printed; the store's own report lines would repeat them.
    store_logger = logging.getLogger("chronotask.scheduler.store")
    previous_level = store_logger.level
    store_logger.setLevel(logging.WARNING)
    try:
        return asyncio.run(run(args))
    except PersistenceFailure as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    except TypeError as exc:
        # Instants of a different kind than the stored keys (datetime vs timestamp).
        print(f"ERROR: {exc}", file=sys.stderr)
        return 2
    finally:
        store_logger.setLevel(previous_level)
