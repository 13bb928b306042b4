from dataclasses import dataclass, field
from typing import Optional

from errors import ConfigurationError

SR = 44100
FRAME_SIZE = 2048
MASTER_GAIN = 0.8

# Count-in click / guide tone
CLICK_HZ = 1000
CLICK_MS = 35
GUIDE_TONE_MS = 250
COUNT_IN_BPM = 60

# Analyzer
VOCAL_MIN_HZ = 80.0
VOCAL_MAX_HZ = 800.0
VOLUME_SCALE = 1000.0      # rms 0.05 -> volume 50
CORRELATION_THRESHOLD = 0.2
PITCH_GATE_VOLUME = 5.0    # below this, no pitch detection at all
ACTIVITY_THRESHOLD = 8.0   # voicing flag
PEAK_PICK_RATIO = 0.9

# Placeholder melody (semitone offsets from BASE_HZ, one note per second)
BASE_HZ = 200.0
MELODY_PATTERN = (0, 2, 4, 2, 0, -2, 0)
NOTE_SECONDS = 1.0
TOLERANCE_HZ = 50.0

# Scoring
PITCH_WEIGHT = 0.5
TIMING_WEIGHT = 0.3
VOLUME_WEIGHT = 0.2
EFFORT_SCORE = 10.0
REST_SCORE = 80.0
SEED_SCORE = 50.0
VOLUME_WINDOW = 10
SCORE_WINDOW = 20
COMFORT_MIN_VOLUME = 15.0
COMFORT_MAX_VOLUME = 80.0
VOLUME_PENALTY = 0.7
TIMING_ON_NOTE = 85.0
TIMING_OFF_NOTE = 60.0
TIMING_SILENT = 90.0

# Display
SMOOTHING_ALPHA = 0.3
WARMUP_SECONDS = 10.0

# Cadences (seconds)
SCORING_INTERVAL = 0.2
METRICS_INTERVAL = 1.0
DEBUG_INTERVAL = 0.5


def _require(ok: bool, msg: str):
    if not ok:
        raise ConfigurationError(msg)


@dataclass(frozen=True)
class AnalyzerConfig:
    min_hz: float = VOCAL_MIN_HZ
    max_hz: float = VOCAL_MAX_HZ
    volume_scale: float = VOLUME_SCALE
    correlation_threshold: float = CORRELATION_THRESHOLD
    pitch_gate: float = PITCH_GATE_VOLUME
    activity_threshold: float = ACTIVITY_THRESHOLD
    peak_pick_ratio: float = PEAK_PICK_RATIO

    def __post_init__(self):
        _require(0 < self.min_hz < self.max_hz, f"vocal band must satisfy 0 < min_hz < max_hz (got {self.min_hz}..{self.max_hz})")
        _require(self.volume_scale > 0, "volume_scale must be positive")
        _require(0 <= self.correlation_threshold < 1, "correlation_threshold must be in [0, 1)")
        _require(0 <= self.pitch_gate <= 100, "pitch_gate must be in [0, 100]")
        _require(0 <= self.activity_threshold <= 100, "activity_threshold must be in [0, 100]")
        _require(self.activity_threshold > self.pitch_gate,
                 "activity_threshold must be strictly greater than pitch_gate")
        _require(0 < self.peak_pick_ratio <= 1, "peak_pick_ratio must be in (0, 1]")


@dataclass(frozen=True)
class MelodyConfig:
    base_hz: float = BASE_HZ
    pattern: tuple[Optional[int], ...] = MELODY_PATTERN
    note_seconds: float = NOTE_SECONDS
    tolerance_hz: float = TOLERANCE_HZ
    lead_in_s: float = 0.0

    def __post_init__(self):
        _require(self.base_hz > 0, "base_hz must be positive")
        _require(len(self.pattern) > 0, "melody pattern must not be empty")
        _require(self.note_seconds > 0, "note_seconds must be positive")
        _require(self.tolerance_hz > 0, "tolerance_hz must be positive")
        _require(self.lead_in_s >= 0, "lead_in_s must not be negative")


@dataclass(frozen=True)
class ScoringConfig:
    pitch_weight: float = PITCH_WEIGHT
    timing_weight: float = TIMING_WEIGHT
    volume_weight: float = VOLUME_WEIGHT
    effort_score: float = EFFORT_SCORE
    rest_score: float = REST_SCORE
    seed_score: float = SEED_SCORE
    volume_window: int = VOLUME_WINDOW
    score_window: int = SCORE_WINDOW
    comfort_min: float = COMFORT_MIN_VOLUME
    comfort_max: float = COMFORT_MAX_VOLUME
    volume_penalty: float = VOLUME_PENALTY
    timing_on_note: float = TIMING_ON_NOTE
    timing_off_note: float = TIMING_OFF_NOTE
    timing_silent: float = TIMING_SILENT

    def __post_init__(self):
        weights = (self.pitch_weight, self.timing_weight, self.volume_weight)
        _require(all(w >= 0 for w in weights), "score weights must not be negative")
        _require(abs(sum(weights) - 1.0) < 1e-9, f"score weights must sum to 1 (got {sum(weights)})")
        for name in ("effort_score", "rest_score", "seed_score",
                     "timing_on_note", "timing_off_note", "timing_silent"):
            v = getattr(self, name)
            _require(0 <= v <= 100, f"{name} must be in [0, 100] (got {v})")
        _require(self.volume_window > 0, "volume_window must be positive")
        _require(self.score_window > 0, "score_window must be positive")
        _require(0 <= self.comfort_min < self.comfort_max <= 100, "comfort band must satisfy 0 <= min < max <= 100")
        _require(0 <= self.volume_penalty <= 1, "volume_penalty must be in [0, 1]")


@dataclass(frozen=True)
class DisplayConfig:
    alpha: float = SMOOTHING_ALPHA
    warmup_s: float = WARMUP_SECONDS

    def __post_init__(self):
        _require(0 < self.alpha <= 1, "smoothing alpha must be in (0, 1]")
        _require(self.warmup_s >= 0, "warmup_s must not be negative")


@dataclass(frozen=True)
class SessionConfig:
    analyzer: AnalyzerConfig = field(default_factory=AnalyzerConfig)
    melody: MelodyConfig = field(default_factory=MelodyConfig)
    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)
    scoring_interval: float = SCORING_INTERVAL
    metrics_interval: float = METRICS_INTERVAL
    debug_interval: Optional[float] = DEBUG_INTERVAL   # None disables the debug snapshot

    def __post_init__(self):
        _require(self.scoring_interval > 0, "scoring_interval must be positive")
        _require(self.metrics_interval > 0, "metrics_interval must be positive")
        _require(self.debug_interval is None or self.debug_interval > 0, "debug_interval must be positive")
