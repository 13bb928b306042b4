import numpy as np
import pytest

from analyzer import SignalAnalyzer, detect_pitch, lag_band, rms_volume, sanitize
from config import AnalyzerConfig
from ks_types import AudioFrame


@pytest.mark.parametrize("freq", [80.0, 100.0, 130.8, 196.0, 220.0, 261.6, 330.0, 440.0, 523.3, 660.0, 800.0])
def test_sine_pitch_within_two_percent(sine_frame, freq):
    s = SignalAnalyzer().analyze(sine_frame(freq))
    assert s.pitch_hz is not None
    assert abs(s.pitch_hz - freq) / freq <= 0.02
    assert s.is_active


@pytest.mark.parametrize("freq", [110.0, 250.0, 475.0])
def test_sine_pitch_other_sample_rate_and_phase(sine_frame, freq):
    s = SignalAnalyzer().analyze(sine_frame(freq, sr=48000, phase=1.3))
    assert abs(s.pitch_hz - freq) / freq <= 0.02


def test_harmonic_rich_voice_reports_fundamental(sine_frame):
    base = sine_frame(220.0, amp=0.2).samples
    h2 = sine_frame(440.0, amp=0.1).samples
    h3 = sine_frame(660.0, amp=0.05).samples
    s = SignalAnalyzer().analyze(AudioFrame(samples=base + h2 + h3, sample_rate=44100))
    assert abs(s.pitch_hz - 220.0) / 220.0 <= 0.02


def test_silence(silent_frame):
    s = SignalAnalyzer().analyze(silent_frame)
    assert s.volume == 0
    assert s.pitch_hz is None
    assert s.is_active is False


def test_empty_and_missing_frames():
    a = SignalAnalyzer()
    for frame in (None, AudioFrame(samples=np.zeros(0, dtype=np.float32), sample_rate=44100)):
        s = a.analyze(frame)
        assert (s.volume, s.pitch_hz, s.is_active) == (0.0, None, False)


def test_non_finite_samples_are_zeroed(sine_frame):
    x = sine_frame(220.0).samples.copy()
    x[::7] = np.nan
    x[3] = np.inf
    x[5] = -np.inf
    s = SignalAnalyzer().analyze(AudioFrame(samples=x, sample_rate=44100))
    assert np.isfinite(s.volume)
    assert 0 <= s.volume <= 100

    all_nan = AudioFrame(samples=np.full(2048, np.nan, dtype=np.float32), sample_rate=44100)
    s = SignalAnalyzer().analyze(all_nan)
    assert (s.volume, s.pitch_hz, s.is_active) == (0.0, None, False)


def test_huge_finite_values_do_not_raise():
    x = np.full(2048, 1e200)
    x[::2] = -1e200
    s = SignalAnalyzer().analyze(AudioFrame(samples=x, sample_rate=44100))
    assert s.volume == 100.0


def test_sanitize_flattens():
    x = sanitize([[0.1, float("nan")], [0.2, 0.3]])
    assert x.shape == (4,)
    assert x[1] == 0.0


def test_volume_scaling_and_clamp():
    assert rms_volume(np.full(100, 0.05), 1000.0) == pytest.approx(50.0)
    assert rms_volume(np.full(100, 0.5), 1000.0) == 100.0
    assert rms_volume(np.zeros(0), 1000.0) == 0.0


def test_quiet_input_skips_pitch_detection(sine_frame):
    # rms ~0.0035 -> volume ~3.5, under the gate of 5
    s = SignalAnalyzer().analyze(sine_frame(220.0, amp=0.005))
    assert s.pitch_hz is None
    assert not s.is_active


def test_pitch_can_resolve_below_voicing_threshold(sine_frame):
    # volume ~7.1: above the pitch gate (5), below voicing (8)
    s = SignalAnalyzer().analyze(sine_frame(220.0, amp=0.01))
    assert s.pitch_hz is not None
    assert not s.is_active


def test_noise_has_no_confident_pitch():
    rng = np.random.default_rng(1234)
    x = rng.uniform(-0.3, 0.3, 2048)
    s = SignalAnalyzer().analyze(AudioFrame(samples=x, sample_rate=44100))
    assert s.is_active
    assert s.pitch_hz is None


def test_out_of_band_tone_is_not_reported_outside_band(sine_frame):
    s = SignalAnalyzer().analyze(sine_frame(2000.0))
    if s.pitch_hz is not None:
        assert 80.0 <= s.pitch_hz <= 800.0


def test_custom_band_is_respected(sine_frame):
    cfg = AnalyzerConfig(min_hz=150.0, max_hz=400.0)
    pitch = detect_pitch(sine_frame(300.0).samples.astype(np.float64), 44100, cfg)
    assert abs(pitch - 300.0) / 300.0 <= 0.02


def test_lag_band_default():
    assert lag_band(44100, 80.0, 800.0) == (55, 552)


def test_detect_pitch_rejects_tiny_frames():
    assert detect_pitch(np.array([0.1, -0.1]), 44100, AnalyzerConfig()) is None
    assert detect_pitch(np.ones(2048), 0, AnalyzerConfig()) is None
