"""TimerWorker — single-worker APScheduler facility for arming timers."""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta
from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo

from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from chronotask.config import settings
from chronotask.errors import SchedulerClosed
from chronotask.scheduler.models import ONE_SHOT, RECURRING, TimerHandle, make_job_id

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)


class TimerWorker:
    """Arms one-shot and periodic callbacks on one background worker thread.

    The APScheduler instance gets a single-thread pool as its only executor,
    so fires are serialized: two callbacks never run at the same time.
    Timers armed before :meth:`start` are held and fire once it runs.

    Args:
        timezone: IANA timezone string (default from settings).
    """

    def __init__(self, timezone: str | None = None) -> None:
        self._timezone = ZoneInfo(timezone or settings.scheduler_timezone)
        self._scheduler = BackgroundScheduler(
            timezone=self._timezone,
            executors={"default": ThreadPoolExecutor(max_workers=1)},
            job_defaults={"misfire_grace_time": None, "coalesce": False, "max_instances": 1},
        )
        self._lock = threading.Lock()
        self._closed = False

    @property
    def running(self) -> bool:
        return self._scheduler.running

    @property
    def closed(self) -> bool:
        return self._closed

    # -- Lifecycle -------------------------------------------------------------

    def start(self) -> None:
        with self._lock:
            if self._closed:
                raise SchedulerClosed("Timer worker has been shut down")
            if not self._scheduler.running:
                self._scheduler.start()
                logger.info("Timer worker started (tz=%s)", self._timezone)

    def shutdown(self) -> None:
        """Stop accepting timers and abandon the pending ones without firing."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            pending = len(self._scheduler.get_jobs())
            if self._scheduler.running:
                self._scheduler.shutdown(wait=False)
            else:
                self._scheduler.remove_all_jobs()
        logger.info("Timer worker stopped (%d pending timer(s) abandoned)", pending)

    # -- Arming ----------------------------------------------------------------

    def arm(
        self,
        delay: float,
        callback: Callable[[], None],
        *,
        when: datetime,
        description: str = "",
    ) -> TimerHandle:
        """Fire *callback* once, *delay* seconds from now."""
        handle = TimerHandle(job_id=make_job_id(), when=when, kind=ONE_SHOT, description=description)
        run_at = self._now() + timedelta(seconds=max(delay, 0.0))
        self._add_job(callback, DateTrigger(run_date=run_at, timezone=self._timezone), handle)
        logger.debug("Armed one-shot timer %s in %.3fs", handle.job_id, delay)
        return handle

    def arm_periodic(
        self,
        initial_delay: float,
        period: float,
        callback: Callable[[], None],
        *,
        when: datetime,
        description: str = "",
    ) -> TimerHandle:
        """Fire *callback* every *period* seconds, the first time after *initial_delay*."""
        if period <= 0:
            msg = f"Recurring period must be positive, got {period}"
            raise ValueError(msg)
        handle = TimerHandle(
            job_id=make_job_id(),
            when=when,
            kind=RECURRING,
            description=description,
            period=period,
        )
        first_run = self._now() + timedelta(seconds=max(initial_delay, 0.0))
        trigger = IntervalTrigger(seconds=period, start_date=first_run, timezone=self._timezone)
        # Pin the first fire: the trigger would otherwise skip a start date
        # that is already a few microseconds in the past.
        self._add_job(callback, trigger, handle, next_run_time=first_run)
        logger.debug(
            "Armed recurring timer %s in %.3fs every %ss", handle.job_id, initial_delay, period
        )
        return handle

    def cancel(self, handle: TimerHandle) -> bool:
        """Drop a pending timer. Returns False if it already fired or was cancelled."""
        try:
            self._scheduler.remove_job(handle.job_id)
        except JobLookupError:
            logger.debug("Timer %s not found (may already have fired)", handle.job_id)
            return False
        logger.debug("Cancelled timer %s", handle.job_id)
        return True

    def is_pending(self, handle: TimerHandle) -> bool:
        return self._scheduler.get_job(handle.job_id) is not None

    # -- Internal --------------------------------------------------------------

    def _now(self) -> datetime:
        return datetime.now(self._timezone)

    def _add_job(self, callback, trigger, handle: TimerHandle, **kwargs) -> None:
        with self._lock:
            if self._closed:
                raise SchedulerClosed("Timer worker has been shut down")
            self._scheduler.add_job(
                callback,
                trigger=trigger,
                id=handle.job_id,
                name=handle.description or handle.kind,
                **kwargs,
            )
