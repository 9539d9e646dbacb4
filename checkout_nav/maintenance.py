"""Background sweeps for the session and validation stores."""
from __future__ import annotations

import logging
import threading
from typing import Callable

logger = logging.getLogger(__name__)


class PeriodicSweeper:
    """Run `task` every `interval` seconds on a daemon thread until stopped.

    A failing sweep is logged and the loop keeps going.
    """

    def __init__(self, name: str, task: Callable[[], int], interval: float):
        if interval <= 0:
            raise ValueError("Sweep interval must be positive")
        self.name = name
        self.task = task
        self.interval = interval
        self.runs = 0
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> threading.Thread:
        if self._thread is not None and self._thread.is_alive():
            return self._thread

        def _loop():
            logger.info("Starting %s sweeper (every %.0fs)", self.name, self.interval)
            while not self._stop.wait(self.interval):
                self.run_once()
            logger.info("Stopped %s sweeper", self.name)

        self._stop.clear()
        self._thread = threading.Thread(target=_loop, name=f"sweep-{self.name}", daemon=True)
        self._thread.start()
        return self._thread

    def run_once(self) -> int:
        try:
            removed = self.task()
        except Exception:
            logger.exception("%s sweep failed", self.name)
            return 0
        self.runs += 1
        logger.debug("%s sweep removed %d entries", self.name, removed)
        return removed

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
