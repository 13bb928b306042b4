import threading
from typing import Optional

from config import DisplayConfig
from ks_types import DebugSnapshot, PerformanceMetrics, TickResult
from melody import NOT_AVAILABLE, hz_to_note_name

MESSAGES = {
    "amazing": "Amazing!",
    "great": "Great job!",
    "good": "Good effort!",
    "keep": "Keep singing!",
}


def motivational_message(score: float, song_time: float, warmup_s: float = 10.0) -> str:
    if song_time < warmup_s or score < 60:
        return MESSAGES["keep"]
    if score >= 90:
        return MESSAGES["amazing"]
    if score >= 75:
        return MESSAGES["great"]
    return MESSAGES["good"]


def score_band(score: float) -> str:
    if score >= 75: return "green"
    if score >= 60: return "yellow"
    return "red"


def ema(prev: float, current: float, alpha: float) -> float:
    return prev * (1.0 - alpha) + current * alpha


def smooth_metrics(prev: PerformanceMetrics, current: PerformanceMetrics, alpha: float) -> PerformanceMetrics:
    return PerformanceMetrics(
        pitch_accuracy=ema(prev.pitch_accuracy, current.pitch_accuracy, alpha),
        timing_accuracy=ema(prev.timing_accuracy, current.timing_accuracy, alpha),
        volume_consistency=ema(prev.volume_consistency, current.volume_consistency, alpha),
        overall_score=ema(prev.overall_score, current.overall_score, alpha),
    )


def debug_snapshot(tick: Optional[TickResult]) -> DebugSnapshot:
    if tick is None:
        return DebugSnapshot(pitch_hz=None, volume=0.0, is_active=False, note_name=NOT_AVAILABLE, expected=None)
    s = tick.sample
    return DebugSnapshot(
        pitch_hz=s.pitch_hz,
        volume=s.volume,
        is_active=s.is_active,
        note_name=hz_to_note_name(s.pitch_hz),
        expected=tick.expected,
    )


class DisplayReporter:
    """Owns the UI-facing copies: EMA-smoothed metrics and the debug snapshot.

    Reads the scorer's published values, never writes them. The smoothed
    state is kept unclamped; `metrics` clamps on the way out.
    """

    def __init__(self, cfg: Optional[DisplayConfig] = None):
        self.cfg = cfg or DisplayConfig()
        self.lock = threading.Lock()
        self._smoothed = PerformanceMetrics()
        self._debug: Optional[DebugSnapshot] = None

    @property
    def metrics(self) -> PerformanceMetrics:
        return self._smoothed.clamped()

    @property
    def debug(self) -> Optional[DebugSnapshot]:
        return self._debug

    def update_metrics(self, current: PerformanceMetrics) -> PerformanceMetrics:
        with self.lock:
            self._smoothed = smooth_metrics(self._smoothed, current, self.cfg.alpha)
            return self._smoothed.clamped()

    def update_debug(self, tick: Optional[TickResult]) -> DebugSnapshot:
        snap = debug_snapshot(tick)
        self._debug = snap
        return snap

    def message(self, score: float, song_time: float) -> str:
        return motivational_message(score, song_time, self.cfg.warmup_s)

    def clear(self):
        with self.lock:
            self._smoothed = PerformanceMetrics()
            self._debug = None
