"""
Restartable background timer.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable

logger = logging.getLogger(__name__)


class PeriodicTicker:
    """
    Invokes a callback once per interval on its own thread until stopped.

    stop() wakes the waiting thread immediately and joins it, so no callback
    runs after stop() returns. A stopped ticker can be started again.

    Usage:
        ticker = PeriodicTicker(adapter.tick, interval=1.0)
        ticker.start()
        ...
        ticker.stop()
    """

    def __init__(self, callback: Callable[[], None], interval: float = 1.0) -> None:
        if interval <= 0:
            raise ValueError(f"Ticker interval must be positive, got {interval}")
        self._callback = callback
        self._interval = interval
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def is_running(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive()

    def start(self) -> None:
        """Start ticking. Does nothing if the ticker is already running."""
        with self._lock:
            if self._thread is not None and self._thread.is_alive():
                return
            stop_event = threading.Event()
            self._stop_event = stop_event
            self._thread = threading.Thread(
                target=self._run, args=(stop_event,), name="periodic-ticker", daemon=True
            )
            self._thread.start()

    def stop(self) -> None:
        """Stop ticking and wait until the background thread has ended."""
        with self._lock:
            thread = self._thread
            self._thread = None
            self._stop_event.set()

        if thread is None or thread is threading.current_thread():
            # Called from inside the callback: the loop exits after it returns
            return
        thread.join()

    def _run(self, stop_event: threading.Event) -> None:
        # Event.wait returns True as soon as stop() sets the event
        while not stop_event.wait(self._interval):
            try:
                self._callback()
            except Exception as e:
                logger.exception(f"Ticker callback failed: {e}")

    def __enter__(self) -> PeriodicTicker:
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()
