"""Periodic progress reporting for a running search."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from treefind.models import ProgressSnapshot

LOGGER = logging.getLogger(__name__)

SnapshotSource = Callable[[], ProgressSnapshot]
SnapshotCallback = Callable[[ProgressSnapshot], None]


class ProgressMonitor:
    """Invokes ``callback`` with a fresh snapshot on a fixed schedule.

    The first tick fires after ``delay`` seconds, later ticks every
    ``interval`` seconds. :meth:`stop` joins the timer thread, so no callback
    runs once it has returned.
    """

    def __init__(
        self,
        source: SnapshotSource,
        callback: SnapshotCallback,
        *,
        delay: float = 2.0,
        interval: float = 5.0,
    ) -> None:
        self.source = source
        self.callback = callback
        self.delay = delay
        self.interval = interval
        self.ticks = 0
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self._thread is not None:
            raise RuntimeError("Progress monitor already started")
        self._thread = threading.Thread(target=self._run, name="ProgressMonitor", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join()

    def _run(self) -> None:
        wait = self.delay
        while not self._stop.wait(wait):
            try:
                self.callback(self.source())
            except Exception:
                LOGGER.exception("Progress callback failed")
            self.ticks += 1
            wait = self.interval
