from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol

import numpy as np


@dataclass(frozen=True)
class AudioFrame:
    samples: np.ndarray   # mono float32, nominally in [-1, 1]
    sample_rate: int


@dataclass(frozen=True)
class AnalysisSample:
    pitch_hz: Optional[float]
    volume: float         # 0..100
    is_active: bool


SILENT_SAMPLE = AnalysisSample(pitch_hz=None, volume=0.0, is_active=False)


@dataclass(frozen=True)
class ExpectedNote:
    start_time_s: float   # seconds from song start
    duration_s: float
    pitch_hz: float
    tolerance_hz: float


@dataclass(frozen=True)
class PerformanceMetrics:
    pitch_accuracy: float = 0.0
    timing_accuracy: float = 0.0
    volume_consistency: float = 0.0
    overall_score: float = 0.0

    def clamped(self) -> "PerformanceMetrics":
        return PerformanceMetrics(
            pitch_accuracy=clamp_score(self.pitch_accuracy),
            timing_accuracy=clamp_score(self.timing_accuracy),
            volume_consistency=clamp_score(self.volume_consistency),
            overall_score=clamp_score(self.overall_score),
        )


@dataclass(frozen=True)
class TickResult:
    song_time: float
    sample: AnalysisSample
    expected: Optional[ExpectedNote]
    pitch_score: float
    timing_score: float
    volume_score: float
    raw_score: int
    score: float
    metrics: PerformanceMetrics
    pitch_hit: bool


@dataclass(frozen=True)
class DebugSnapshot:
    pitch_hz: Optional[float]
    volume: float
    is_active: bool
    note_name: str
    expected: Optional[ExpectedNote]


@dataclass(frozen=True)
class SessionSummary:
    duration_s: float
    ticks: int
    pitch_hits: int
    pitch_attempts: int
    final_score: float
    peak_score: float
    metrics: PerformanceMetrics


class ScorerState(Enum):
    IDLE = "idle"
    SCORING = "scoring"


class FrameSource(Protocol):
    def acquire(self) -> None: ...
    def release(self) -> None: ...
    def latest(self) -> Optional[AudioFrame]: ...
    @property
    def is_alive(self) -> bool: ...


class ScoreListener(Protocol):
    def on_score(self, score: float, song_time: float) -> None: ...
    def on_metrics(self, metrics: PerformanceMetrics) -> None: ...
    def on_debug(self, snapshot: DebugSnapshot) -> None: ...
    def close(self) -> None: ...


def clamp_score(v: float) -> float:
    return min(100.0, max(0.0, float(v)))
