"""RecurringTask — a background thread that runs a callable on an interval."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable

_logger = logging.getLogger(__name__)


class RecurringTask:
    """Runs *action* every *interval_ms* milliseconds on a daemon thread.

    Runs are scheduled against fixed deadlines on the monotonic clock, so the
    time a run takes does not stretch the period.  A run that overruns one or
    more deadlines causes those ticks to be skipped, not queued.

    Runs are single-flight: :meth:`run_once` takes a non-blocking lock, so a
    run that would overlap the previous one (e.g. a forced run racing the
    timer) is dropped rather than queued.  The interval is re-read after
    every run, so changing it affects the next deadline but not a wait
    already in progress.

    Parameters
    ----------
    name:
        Thread name, also used in log messages.
    action:
        Zero-argument callable executed on every run.
    interval_ms:
        Period between the starts of consecutive timer runs.
    """

    def __init__(self, name: str, action: Callable[[], None], interval_ms: float) -> None:
        self.name = name
        self._action = action
        self.interval = interval_ms
        self._run_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._stop_event.set()
        self._thread: threading.Thread | None = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def interval(self) -> float:
        """Interval in milliseconds."""
        return self._interval_ms

    @interval.setter
    def interval(self, value: float) -> None:
        if value <= 0:
            raise ValueError(f"{self.name}: interval must be positive, got {value!r}")
        self._interval_ms = float(value)

    @property
    def is_running(self) -> bool:
        return not self._stop_event.is_set()

    def start(self) -> None:
        """Start the background thread.  No-op if already running."""
        if self.is_running:
            return
        # Each thread gets its own event so a loop cancelled from inside its
        # own run can never be revived by a later start().
        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self._run, args=(self._stop_event,), daemon=True, name=self.name
        )
        self._thread.start()

    def stop(self) -> None:
        """Stop scheduling runs and wait for an in-flight timer run to finish."""
        self.wait(self.cancel())

    def cancel(self) -> threading.Thread | None:
        """Stop scheduling runs without waiting.

        Returns the thread that may still be finishing a run, to be passed to
        :meth:`wait`.
        """
        self._stop_event.set()
        thread, self._thread = self._thread, None
        return thread

    @staticmethod
    def wait(thread: threading.Thread | None) -> None:
        """Join *thread*, unless it is the calling thread."""
        if thread is not None and thread is not threading.current_thread():
            thread.join()

    def run_once(self) -> bool:
        """Run the action now on the calling thread.

        Returns False if the task is stopped, or if the previous run is still
        in progress and this one was dropped.
        """
        if not self._run_lock.acquire(blocking=False):
            _logger.debug("%s: previous run still in progress, dropping", self.name)
            return False
        try:
            if self._stop_event.is_set():
                return False
            self._action()
        finally:
            self._run_lock.release()
        return True

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _run(self, stop_event: threading.Event) -> None:
        deadline = time.monotonic() + self._interval_ms / 1000.0
        while not stop_event.wait(max(0.0, deadline - time.monotonic())):
            self.run_once()
            interval = self._interval_ms / 1000.0
            deadline += interval
            now = time.monotonic()
            if deadline <= now:
                missed = int((now - deadline) // interval) + 1
                _logger.debug("%s: run overran, skipping %d tick(s)", self.name, missed)
                deadline += missed * interval
