"""
Background scheduling for the notification worker.

Ticks run as one-shot APScheduler date jobs; each tick schedules the next one,
so a failed tick can be retried after the backoff delay instead of the normal
interval.
"""
import enum
import logging
import threading
from datetime import datetime, timedelta, timezone

from apscheduler.schedulers.background import BackgroundScheduler

logger = logging.getLogger(__name__)


class SchedulerState(str, enum.Enum):
    RUNNING = "running"
    BACKOFF = "backoff"
    STOPPED = "stopped"


class NotificationScheduler:
    JOB_NAME = "payment-notifications"

    def __init__(
        self,
        worker,
        interval: timedelta = timedelta(hours=1),
        backoff: timedelta = timedelta(minutes=5),
        scheduler=None,
        clock=None,
    ):
        self._worker = worker
        self.interval = interval
        self.backoff = backoff
        self._scheduler = scheduler or BackgroundScheduler(timezone=timezone.utc)
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._stop_event = threading.Event()
        # serializes ticks, scheduled or on demand
        self._tick_lock = threading.Lock()
        # stop check and add_job happen as one step
        self._schedule_lock = threading.Lock()
        self._started = False
        self._state = SchedulerState.RUNNING

    @property
    def state(self) -> SchedulerState:
        if self._stop_event.is_set():
            return SchedulerState.STOPPED
        return self._state

    def start(self):
        with self._schedule_lock:
            if self._started and not self._stop_event.is_set():
                logger.warning("Notification scheduler already started")
                return
            self._started = True
            self._stop_event.clear()
            self._state = SchedulerState.RUNNING
            self._schedule_next(timedelta(0))
        if not self._scheduler.running:
            self._scheduler.start()
        logger.info("Notification scheduler started")

    def stop(self, wait=True):
        """Cancel pending ticks; an in-flight tick finishes when ``wait`` is set."""
        with self._schedule_lock:
            self._stop_event.set()
            self._started = False
        if self._scheduler.running:
            self._scheduler.shutdown(wait=wait)
        logger.info("Notification scheduler stopped")

    def run_now(self):
        """Run one tick immediately, after any tick in progress. Returns the worker's counts."""
        with self._tick_lock:
            return self._worker.run_once()

    def run_tick(self):
        """Run one tick and schedule the next. Returns the delay used, or None."""
        if self._stop_event.is_set():
            return None

        with self._tick_lock:
            self._state = SchedulerState.RUNNING
            try:
                created, removed = self._worker.run_once()
            except Exception:
                logger.exception(
                    f"Error in notification worker, retrying in {self.backoff}"
                )
                self._state = SchedulerState.BACKOFF
                delay = self.backoff
            else:
                logger.debug(f"Tick finished: {created} created, {removed} removed")
                delay = self.interval

        with self._schedule_lock:
            if self._stop_event.is_set():
                return None
            self._schedule_next(delay)
        return delay

    def _schedule_next(self, delay):
        self._scheduler.add_job(
            self.run_tick,
            "date",
            run_date=self._clock() + delay,
            name=self.JOB_NAME,
            misfire_grace_time=None,
        )
