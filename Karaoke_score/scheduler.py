import logging
import threading
import time
from typing import Callable

logger = logging.getLogger(__name__)


class PeriodicTask:
    """Calls fn every `interval` seconds on its own daemon thread until cancelled.

    Deadlines are fixed-rate on time.monotonic; a tick that overruns skips the
    missed slots instead of firing a burst. A tick in flight when cancel() is
    called runs to completion, and cancel() does not return until it has, so
    no tick starts after cancellation. Exceptions raised by fn are logged and
    the loop keeps going.
    """

    def __init__(self, name: str, interval: float, fn: Callable[[], None]):
        if interval <= 0:
            raise ValueError(f"interval must be positive (got {interval})")
        self.name = name
        self.interval = interval
        self.fn = fn
        self.ticks = 0
        self.errors = 0
        self._stop = threading.Event()
        # reentrant so a tick may cancel its own task
        self._gate = threading.RLock()
        self._thread: threading.Thread | None = None

    @property
    def cancelled(self) -> bool:
        return self._stop.is_set()

    def start(self):
        if self._thread is not None:
            raise RuntimeError(f"task '{self.name}' already started")
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()

    def _run(self):
        next_at = time.monotonic() + self.interval
        while True:
            if self._stop.wait(max(0.0, next_at - time.monotonic())):
                break
            with self._gate:
                if self._stop.is_set():
                    break
                self._fire()
            next_at += self.interval
            now = time.monotonic()
            if next_at < now:
                missed = int((now - next_at) // self.interval) + 1
                logger.debug("%s overran, skipping %d tick(s)", self.name, missed)
                next_at += missed * self.interval

    def _fire(self):
        try:
            self.fn()
        except Exception:
            self.errors += 1
            logger.exception("%s tick failed", self.name)
        self.ticks += 1

    def cancel(self):
        with self._gate:
            self._stop.set()

    def join(self, timeout=None):
        t = self._thread
        if t is not None and t is not threading.current_thread():
            t.join(timeout)
