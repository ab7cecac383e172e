"""Process-wide logging configuration."""

import logging

from chronotask.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def resolve_level(level: str) -> int:
    """Map a level name to its numeric value; raises ValueError if unknown."""
    name = level.strip().upper()
    if name not in LOG_LEVELS:
        msg = f"Unknown log level {level!r}; expected one of {', '.join(LOG_LEVELS)}"
        raise ValueError(msg)
    return logging.getLevelName(name)


def configure_logging(level: str | None = None) -> None:
    """Install the root handler. Explicit *level* overrides ``settings.log_level``."""
    logging.basicConfig(
        format=LOG_FORMAT,
        level=resolve_level(level or settings.log_level),
    )
    # APScheduler logs every job submission at INFO.
    logging.getLogger("apscheduler").setLevel(logging.WARNING)
