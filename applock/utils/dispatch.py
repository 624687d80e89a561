"""Serialized execution contexts for AppLock.

A :class:`SerialQueue` runs submitted callables one at a time, in submission
order, on a single worker thread. The controller uses one as its home context
so that every state mutation happens on one thread, and the state store uses
another so that disk writes never block the controller and are never
reordered.
"""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, Callable

from loguru import logger


class SerialQueue:
    """FIFO single-threaded executor.

    Attributes:
        name: Label used for the worker thread and in log messages.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._thread_ident: int | None = None
        self._closed = False
        self._executor = ThreadPoolExecutor(
            max_workers=1,
            thread_name_prefix=name,
            initializer=self._bind_thread,
        )

    def _bind_thread(self) -> None:
        self._thread_ident = threading.get_ident()

    @property
    def closed(self) -> bool:
        """Whether the queue has been shut down."""
        return self._closed

    def is_current(self) -> bool:
        """Check if the caller is running on this queue's worker thread."""
        return self._thread_ident == threading.get_ident()

    def submit(self, fn: Callable[..., Any], *args: Any) -> None:
        """Enqueue *fn* without waiting for it.

        Exceptions raised by *fn* are logged, not propagated. Work submitted
        after shutdown is dropped.
        """

        def _run() -> None:
            try:
                fn(*args)
            except Exception:  # pylint: disable=broad-exception-caught
                logger.exception("Unhandled error on {} queue", self.name)

        try:
            self._executor.submit(_run)
        except RuntimeError:
            logger.debug("Dropping work submitted to closed {} queue", self.name)

    def flush(self, timeout: float | None = None) -> bool:
        """Wait until everything submitted so far has run.

        Returns:
            True if the queue drained, False on timeout or if closed.
        """
        if self.is_current():
            return True
        try:
            self._executor.submit(lambda: None).result(timeout=timeout)
        except RuntimeError:
            return False
        except FutureTimeoutError:
            return False
        return True

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting work; optionally wait for queued work to finish."""
        self._closed = True
        self._executor.shutdown(wait=wait and not self.is_current())
