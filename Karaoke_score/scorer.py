import logging
import math
import threading
from collections import deque
from typing import Optional

from config import ScoringConfig
from ks_types import (AnalysisSample, ExpectedNote, PerformanceMetrics, ScorerState,
                      SessionSummary, TickResult, clamp_score)

logger = logging.getLogger(__name__)


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def pitch_score(sample: AnalysisSample, expected: Optional[ExpectedNote],
                cfg: ScoringConfig) -> tuple[float, bool, bool]:
    """Returns (score, counts_as_attempt, is_hit)."""
    if sample.is_active and sample.pitch_hz is not None and expected is not None:
        tol = expected.tolerance_hz
        d = abs(sample.pitch_hz - expected.pitch_hz)
        if d <= tol:
            return 100.0 - 30.0 * d / tol, True, True
        if d <= 2 * tol:
            return 40.0 - 20.0 * d / tol, True, False
        return 0.0, True, False
    if sample.is_active and sample.pitch_hz is None and expected is not None:
        return cfg.effort_score, True, False
    if not sample.is_active and expected is None:
        return cfg.rest_score, False, False
    return 0.0, False, False


def volume_score(readings, cfg: ScoringConfig) -> float:
    if not readings:
        return 0.0
    n = len(readings)
    mean = sum(readings) / n
    variance = sum((v - mean) ** 2 for v in readings) / n
    score = max(0.0, 100.0 - 2.0 * variance)
    if not (cfg.comfort_min < mean < cfg.comfort_max):
        score *= cfg.volume_penalty
    return score


def timing_score(sample: AnalysisSample, expected: Optional[ExpectedNote], cfg: ScoringConfig) -> float:
    # coarse proxy, not onset alignment
    if sample.is_active and expected is not None:
        return cfg.timing_on_note
    if sample.is_active:
        return cfg.timing_off_note
    return cfg.timing_silent


def window_score(scores) -> float:
    if not scores:
        return 0.0
    return clamp_score(round_half_up(sum(scores) / len(scores) * 10) / 10)


class PerformanceHistory:
    def __init__(self, volume_window: int, score_window: int, seed: Optional[float] = None):
        self.pitch_hits = 0
        self.pitch_attempts = 0
        self.volumes: deque[float] = deque(maxlen=volume_window)
        self.scores: deque[float] = deque(maxlen=score_window)
        if seed is not None:
            self.scores.append(seed)
        self.current = PerformanceMetrics(overall_score=seed or 0.0)

    @property
    def pitch_accuracy(self) -> float:
        if self.pitch_attempts == 0:
            return 0.0
        return self.pitch_hits / self.pitch_attempts * 100.0


class PerformanceScorer:
    """Idle/Scoring state machine; the only writer of PerformanceHistory."""

    def __init__(self, cfg: Optional[ScoringConfig] = None):
        self.cfg = cfg or ScoringConfig()
        self.lock = threading.Lock()
        self.state = ScorerState.IDLE
        self.history: Optional[PerformanceHistory] = None
        self.started_at: Optional[float] = None
        self.ticks = 0
        self.peak_score = 0.0
        self._score = 0.0
        self._last: Optional[TickResult] = None

    @property
    def score(self) -> float:
        return self._score

    @property
    def last_tick(self) -> Optional[TickResult]:
        return self._last

    @property
    def current_metrics(self) -> PerformanceMetrics:
        h = self.history
        return h.current if h is not None else PerformanceMetrics()

    def start(self, now: float):
        seed = self.cfg.seed_score
        with self.lock:
            self.history = PerformanceHistory(self.cfg.volume_window, self.cfg.score_window, seed=seed)
            self.started_at = now
            self.ticks = 0
            self.peak_score = seed
            self._score = seed
            self._last = None
            self.state = ScorerState.SCORING
        logger.debug("scoring started at %.3f", now)

    def stop(self, now: float) -> Optional[SessionSummary]:
        with self.lock:
            if self.state is ScorerState.IDLE:
                return None
            h = self.history
            summary = SessionSummary(
                duration_s=max(0.0, now - (self.started_at or now)),
                ticks=self.ticks,
                pitch_hits=h.pitch_hits,
                pitch_attempts=h.pitch_attempts,
                final_score=self._score,
                peak_score=self.peak_score,
                metrics=h.current.clamped(),
            )
            self.history = None
            self.state = ScorerState.IDLE
        logger.debug("scoring stopped after %d ticks", summary.ticks)
        return summary

    def reset(self):
        with self.lock:
            self.history = None
            self.started_at = None
            self.ticks = 0
            self.peak_score = 0.0
            self._score = 0.0
            self._last = None
            self.state = ScorerState.IDLE

    def tick(self, sample: AnalysisSample, expected: Optional[ExpectedNote],
             song_time: float) -> Optional[TickResult]:
        cfg = self.cfg
        with self.lock:
            if self.state is not ScorerState.SCORING:
                return None
            h = self.history

            p_score, attempt, hit = pitch_score(sample, expected, cfg)
            if attempt:
                h.pitch_attempts += 1
            if hit:
                h.pitch_hits += 1

            if sample.volume > 0:
                h.volumes.append(sample.volume)
                v_score = volume_score(h.volumes, cfg)
            else:
                v_score = 0.0

            t_score = timing_score(sample, expected, cfg)

            raw = round_half_up(p_score * cfg.pitch_weight
                                + t_score * cfg.timing_weight
                                + v_score * cfg.volume_weight)
            h.scores.append(raw)
            overall = sum(h.scores) / len(h.scores)
            h.current = PerformanceMetrics(
                pitch_accuracy=h.pitch_accuracy,
                timing_accuracy=t_score,
                volume_consistency=v_score,
                overall_score=overall,
            )

            self._score = window_score(h.scores)
            self.peak_score = max(self.peak_score, self._score)
            self.ticks += 1
            result = TickResult(
                song_time=song_time,
                sample=sample,
                expected=expected,
                pitch_score=p_score,
                timing_score=t_score,
                volume_score=v_score,
                raw_score=raw,
                score=self._score,
                metrics=h.current,
                pitch_hit=hit,
            )
            self._last = result
            return result
