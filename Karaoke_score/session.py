"""
A live scoring session: frame source -> analyzer -> scorer -> display reporter.

Three periodic tasks drive it once started: the fast scoring tick, the slower
metrics smoothing tick and the optional debug snapshot tick. The scorer is
the only writer of performance history; the reporter only reads what the
scorer publishes and owns its smoothed copy.
"""

import logging
import threading
import time
from dataclasses import replace
from typing import Callable, Iterable, Optional

from analyzer import SignalAnalyzer
from config import SessionConfig
from display import DisplayReporter
from errors import DeviceLost
from ks_types import (DebugSnapshot, FrameSource, PerformanceMetrics, ScoreListener,
                      ScorerState, SessionSummary, SILENT_SAMPLE)
from melody import MelodySequencer
from scheduler import PeriodicTask
from scorer import PerformanceScorer

logger = logging.getLogger(__name__)

JOIN_TIMEOUT = 2.0


class PerformanceSession:
    def __init__(self, source: FrameSource, cfg: Optional[SessionConfig] = None,
                 listeners: Iterable[ScoreListener] = (), clock: Callable[[], float] = time.monotonic,
                 melody: Optional[MelodySequencer] = None):
        self.cfg = cfg or SessionConfig()
        self.source = source
        self.clock = clock
        self.analyzer = SignalAnalyzer(self.cfg.analyzer)
        self.melody = melody or MelodySequencer(self.cfg.melody)
        self.scorer = PerformanceScorer(self.cfg.scoring)
        self.reporter = DisplayReporter(self.cfg.display)
        self.listeners = list(listeners)
        self.device_lost = False
        self.last_summary: Optional[SessionSummary] = None
        self._lock = threading.Lock()
        self._tasks: list[PeriodicTask] = []
        self._started_at: Optional[float] = None

    # --- read access for the UI layer ---

    @property
    def is_scoring(self) -> bool:
        return self.scorer.state is ScorerState.SCORING

    @property
    def started_at(self) -> Optional[float]:
        return self._started_at

    @property
    def song_time(self) -> float:
        if self._started_at is None:
            return 0.0
        return self.clock() - self._started_at

    @property
    def score(self) -> float:
        return self.scorer.score

    @property
    def metrics(self) -> PerformanceMetrics:
        return self.reporter.metrics

    @property
    def debug(self) -> Optional[DebugSnapshot]:
        return self.reporter.debug

    @property
    def message(self) -> str:
        return self.reporter.message(self.score, self.song_time)

    # --- lifecycle ---

    def start(self):
        """Acquire the device and begin ticking. DeviceUnavailable propagates to the caller."""
        with self._lock:
            if self._tasks:
                return
            self.source.acquire()
            self.device_lost = False
            now = self.clock()
            self._started_at = now
            self.scorer.start(now)
            self.reporter.clear()
            self._tasks = [
                PeriodicTask("scoring", self.cfg.scoring_interval, self.scoring_tick),
                PeriodicTask("metrics", self.cfg.metrics_interval, self.metrics_tick),
            ]
            if self.cfg.debug_interval is not None:
                self._tasks.append(PeriodicTask("debug", self.cfg.debug_interval, self.debug_tick))
            for t in self._tasks:
                t.start()
        logger.info("scoring session started")

    def stop(self) -> Optional[SessionSummary]:
        """Cancel every task and release the device. Safe to call at any time."""
        with self._lock:
            tasks, summary = self._shutdown()
        for t in tasks:
            t.join(JOIN_TIMEOUT)
        return summary

    def reset(self):
        self.stop()
        self.scorer.reset()
        self.reporter.clear()
        self._started_at = None

    def _shutdown(self):
        tasks, self._tasks = self._tasks, []
        for t in tasks:
            t.cancel()
        self.source.release()
        summary = self.scorer.stop(self.clock())
        if summary is not None:
            summary = replace(summary, metrics=self.reporter.metrics)
            self.last_summary = summary
            logger.info("scoring session stopped: score %.1f after %d ticks", summary.final_score, summary.ticks)
        return tasks, summary

    def _on_device_lost(self):
        self.device_lost = True
        # a concurrent stop() already owns the shutdown
        if not self._lock.acquire(blocking=False):
            return
        try:
            tasks, _ = self._shutdown()
        finally:
            self._lock.release()
        for t in tasks:
            t.join(JOIN_TIMEOUT)

    # --- ticks ---

    def _read_frame(self):
        if not self.source.is_alive:
            raise DeviceLost("input stream stopped delivering frames")
        return self.source.latest()

    def scoring_tick(self):
        try:
            frame = self._read_frame()
        except DeviceLost as e:
            logger.warning("%s, stopping session", e)
            self._on_device_lost()
            return
        song_time = self.song_time
        try:
            sample = self.analyzer.analyze(frame)
        except Exception:
            logger.exception("analysis failed, scoring this tick as silence")
            sample = SILENT_SAMPLE
        expected = self.melody.expected_at(song_time)
        result = self.scorer.tick(sample, expected, song_time)
        if result is not None:
            self._notify("on_score", result.score, song_time)

    def metrics_tick(self):
        if not self.is_scoring:
            return
        self._notify("on_metrics", self.reporter.update_metrics(self.scorer.current_metrics))

    def debug_tick(self):
        if not self.is_scoring:
            return
        self._notify("on_debug", self.reporter.update_debug(self.scorer.last_tick))

    def _notify(self, method: str, *args):
        for listener in self.listeners:
            try:
                getattr(listener, method)(*args)
            except Exception:
                logger.exception("listener %r failed in %s", listener, method)
