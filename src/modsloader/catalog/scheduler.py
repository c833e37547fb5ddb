"""
Triggers for reconciliation passes: once at startup, then at fixed local hours.
"""

import threading
from datetime import datetime, timedelta
from typing import Callable, Iterable, List, Optional

from modsloader.log_utils import logger


def validate_hours(hours: Iterable[int]) -> List[int]:
    """
    Sort and deduplicate sync hours.

    Raises:
        ValueError: If `hours` is empty or contains a value outside 0-23.
    """
    valid_hours = sorted(set(hours))
    if not valid_hours:
        raise ValueError("At least one sync hour is required")
    if valid_hours[0] < 0 or valid_hours[-1] > 23:
        raise ValueError(f"Sync hours must be between 0 and 23: {valid_hours}")
    return valid_hours


def next_run_after(now: datetime, hours: Iterable[int]) -> datetime:
    """Return the first top-of-hour time strictly after `now` whose hour is in `hours`."""
    valid_hours = validate_hours(hours)

    base = now.replace(minute=0, second=0, microsecond=0)
    for day in range(2):
        day_start = base.replace(hour=0) + timedelta(days=day)
        for hour in valid_hours:
            candidate = day_start + timedelta(hours=hour)
            if candidate > now:
                return candidate
    # Unreachable: the first hour of the next day is always after `now`.
    raise ValueError("Could not compute next run time")


class PassScheduler:
    """
    Runs `run_pass` at startup and at every configured hour on worker threads.

    Overlapping runs are not prevented here; the reconciler skips a pass that
    finds another one in flight.
    """

    def __init__(
        self,
        run_pass: Callable[[], object],
        hours: Iterable[int],
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.run_pass = run_pass
        self.hours = validate_hours(hours)
        self._clock = clock
        self._stop = threading.Event()
        self._timer_thread: Optional[threading.Thread] = None
        self._workers: List[threading.Thread] = []
        self._workers_lock = threading.Lock()

    def trigger(self, reason: str) -> threading.Thread:
        """Start a pass on a new worker thread."""
        logger.info(f"Starting {reason} reconciliation pass")
        worker = threading.Thread(
            target=self._run_safely, name=f"pass-{reason}", daemon=True
        )
        with self._workers_lock:
            self._workers = [t for t in self._workers if t.is_alive()]
            self._workers.append(worker)
        worker.start()
        return worker

    def _run_safely(self) -> None:
        try:
            self.run_pass()
        except Exception as e:
            logger.error(f"Reconciliation pass crashed: {e}", exc_info=True)

    def start(self, run_at_startup: bool = True) -> None:
        if self._timer_thread is not None:
            return
        self._stop.clear()
        if run_at_startup:
            self.trigger("startup")
        self._timer_thread = threading.Thread(
            target=self._timer_loop, name="pass-scheduler", daemon=True
        )
        self._timer_thread.start()
        logger.info(f"Scheduled passes at {', '.join(f'{h:02d}:00' for h in self.hours)}")

    def _timer_loop(self) -> None:
        while not self._stop.is_set():
            now = self._clock()
            next_run = next_run_after(now, self.hours)
            logger.debug(f"Next reconciliation pass at {next_run.isoformat()}")
            if self._stop.wait(max((next_run - now).total_seconds(), 0)):
                break
            self.trigger("scheduled")

    def stop(self, timeout: float = 5.0) -> None:
        """Stop scheduling and wait briefly for running passes."""
        self._stop.set()
        if self._timer_thread is not None:
            self._timer_thread.join(timeout=timeout)
            self._timer_thread = None
        with self._workers_lock:
            workers = list(self._workers)
        for worker in workers:
            worker.join(timeout=timeout)
        logger.info("Pass scheduler stopped")

    def wait(self) -> None:
        """Block until `stop()` is called."""
        self._stop.wait()
