"""
Background cleanup task owned by a single rate limiter.
"""

import threading
from typing import Callable, Optional

from loguru import logger


class CleanupTask:
    """
    Runs `callback` every `interval` seconds on a daemon thread.

    The thread waits on an Event, so stop() wakes it immediately and joins
    it. A failing callback is logged and the loop keeps running.
    """

    def __init__(self, callback: Callable[[], int], interval: float, name: str = "cleanup"):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.callback = callback
        self.interval = interval
        self.name = name
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.runs = 0

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.is_running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._loop, name=f"opsgate-{self.name}", daemon=True
        )
        self._thread.start()
        logger.debug("Started cleanup task '{}' every {}s", self.name, self.interval)

    def stop(self, timeout: float = 5.0) -> None:
        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=timeout)
        self._thread = None

    def run_once(self) -> int:
        """Run the callback now, logging instead of raising on failure."""
        try:
            removed = self.callback()
        except Exception as e:
            logger.warning("Cleanup task '{}' failed: {}", self.name, e)
            return 0
        self.runs += 1
        if removed:
            logger.debug("Cleanup task '{}' removed {} expired entries", self.name, removed)
        return removed

    def _loop(self) -> None:
        while not self._stop_event.wait(self.interval):
            self.run_once()
