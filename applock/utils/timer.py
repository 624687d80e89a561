"""Cancellable repeating timer."""

from __future__ import annotations

import threading
from typing import Callable

from loguru import logger


class RepeatingTimer:
    """Invoke a callback every *interval* seconds on a daemon thread.

    Cancelling stops the thread, so a cancelled timer causes no further
    wakeups. A timer cannot be restarted once cancelled; create a new one.
    """

    def __init__(self, interval: float, callback: Callable[[], None]) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.interval = interval
        self._callback = callback
        self._stopped = threading.Event()
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        """Whether the timer has been started and not cancelled."""
        return self._thread is not None and not self._stopped.is_set()

    def start(self) -> None:
        """Start ticking. No-op if already started or cancelled."""
        with self._lock:
            if self._thread is not None or self._stopped.is_set():
                return
            self._thread = threading.Thread(
                target=self._run, name="applock-refresh", daemon=True
            )
            self._thread.start()

    def cancel(self) -> None:
        """Stop ticking. Safe to call repeatedly."""
        self._stopped.set()

    def _run(self) -> None:
        while not self._stopped.wait(self.interval):
            try:
                self._callback()
            except Exception:  # pylint: disable=broad-exception-caught
                logger.exception("Repeating timer callback failed")
