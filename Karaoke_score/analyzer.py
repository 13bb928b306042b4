"""
Per-frame vocal analysis: RMS volume, voicing flag and fundamental frequency.

Pitch is found with an autocorrelation search restricted to the vocal band.
The correlation sum for each lag is computed in one pass through an FFT and
divided by the energy of the two overlapping segments, so the confidence
threshold does not depend on microphone gain. The first correlation peak that
comes close to the strongest one wins, which keeps a clean tone from being
reported an octave (or more) low.
"""

import logging
import math
from typing import Optional

import numpy as np

from config import AnalyzerConfig
from ks_types import AnalysisSample, AudioFrame, SILENT_SAMPLE

logger = logging.getLogger(__name__)

_EPS = 1e-12


def sanitize(samples) -> np.ndarray:
    """Flatten to float64 and zero any NaN / inf samples."""
    x = np.asarray(samples, dtype=np.float64).ravel()
    finite = np.isfinite(x)
    if not finite.all():
        logger.debug("zeroing %d non-finite samples", int(x.size - finite.sum()))
        x = np.where(finite, x, 0.0)
    return x


def rms_volume(x: np.ndarray, scale: float) -> float:
    if x.size == 0:
        return 0.0
    with np.errstate(over="ignore"):
        rms = math.sqrt(float(np.mean(x * x)))
    return min(100.0, max(0.0, rms * scale))


def lag_band(sample_rate: int, min_hz: float, max_hz: float) -> tuple[int, int]:
    """Smallest and largest candidate period (in samples) for the band."""
    return max(1, int(math.floor(sample_rate / max_hz))), int(math.ceil(sample_rate / min_hz))


def normalized_autocorrelation(x: np.ndarray, max_lag: int) -> np.ndarray:
    """r[p] = sum(x[i] * x[i+p]) / sqrt(energy(x[:n-p]) * energy(x[p:])) for p in 0..max_lag."""
    n = x.size
    size = 1 << (2 * n - 1).bit_length()
    fx = np.fft.rfft(x, size)
    acf = np.fft.irfft(fx * np.conj(fx), size)[:max_lag + 1]

    cum = np.concatenate(([0.0], np.cumsum(x * x)))
    lags = np.arange(max_lag + 1)
    head = cum[n - lags]
    tail = cum[n] - cum[lags]
    denom = np.sqrt(head * tail)
    out = np.zeros(max_lag + 1)
    ok = denom > _EPS
    out[ok] = acf[ok] / denom[ok]
    return out


def detect_pitch(x: np.ndarray, sample_rate: int, cfg: AnalyzerConfig) -> Optional[float]:
    n = x.size
    if n < 4 or sample_rate <= 0:
        return None
    lo, hi = lag_band(sample_rate, cfg.min_hz, cfg.max_hz)
    # peak test needs one lag of context on each side
    lo = max(lo, 1)
    hi = min(hi, n - 2)
    if lo > hi:
        return None

    # the correlation is scale-free, so work on a unit-peak copy
    peak = float(np.max(np.abs(x)))
    if peak <= _EPS or not math.isfinite(peak):
        return None
    x = x / peak
    x = x - x.mean()
    if float(np.max(np.abs(x))) <= _EPS:
        return None
    r = normalized_autocorrelation(x, hi + 1)

    lags = np.arange(lo, hi + 1)
    is_peak = (r[lags] > r[lags - 1]) & (r[lags] >= r[lags + 1])
    peaks = lags[is_peak]
    if peaks.size == 0:
        return None
    best = float(r[peaks].max())
    if best <= cfg.correlation_threshold:
        return None

    p = int(peaks[np.argmax(r[peaks] >= cfg.peak_pick_ratio * best)])

    # parabolic refinement around the chosen lag
    a, b, c = r[p - 1], r[p], r[p + 1]
    curve = a - 2.0 * b + c
    shift = 0.5 * (a - c) / curve if curve < 0 else 0.0
    period = p + min(0.5, max(-0.5, shift))
    hz = sample_rate / period
    return min(cfg.max_hz, max(cfg.min_hz, hz))


class SignalAnalyzer:
    def __init__(self, cfg: Optional[AnalyzerConfig] = None):
        self.cfg = cfg or AnalyzerConfig()

    def analyze(self, frame: Optional[AudioFrame]) -> AnalysisSample:
        if frame is None:
            return SILENT_SAMPLE
        x = sanitize(frame.samples)
        if x.size == 0:
            return SILENT_SAMPLE
        volume = rms_volume(x, self.cfg.volume_scale)
        pitch = detect_pitch(x, frame.sample_rate, self.cfg) if volume > self.cfg.pitch_gate else None
        return AnalysisSample(pitch_hz=pitch, volume=volume, is_active=volume > self.cfg.activity_threshold)
