import numpy as np
import pytest

from ks_types import AudioFrame


class FakeSource:
    """Stands in for the microphone: frames are set by the test."""

    def __init__(self, frame=None, fail_acquire=None):
        self.frame = frame
        self.fail_acquire = fail_acquire
        self.acquired = False
        self.alive = True
        self.acquire_calls = 0
        self.release_calls = 0

    def acquire(self):
        self.acquire_calls += 1
        if self.fail_acquire is not None:
            raise self.fail_acquire
        self.acquired = True
        self.alive = True

    def release(self):
        self.release_calls += 1
        self.acquired = False

    def latest(self):
        return self.frame

    @property
    def is_alive(self):
        return self.acquired and self.alive


class FakeClock:
    def __init__(self, t=1000.0):
        self.t = t

    def __call__(self):
        return self.t

    def advance(self, dt):
        self.t += dt


class RecordingListener:
    def __init__(self):
        self.scores = []
        self.metrics = []
        self.debug = []
        self.closed = False

    def on_score(self, score, song_time):
        self.scores.append((score, song_time))

    def on_metrics(self, metrics):
        self.metrics.append(metrics)

    def on_debug(self, snapshot):
        self.debug.append(snapshot)

    def close(self):
        self.closed = True


@pytest.fixture
def sine_frame():
    """
    Factory for a sine AudioFrame: sine_frame(freq, amp=0.3, sr=44100, n=2048).
    """
    def make(freq, amp=0.3, sr=44100, n=2048, phase=0.0):
        t = np.arange(n) / sr
        samples = (amp * np.sin(2 * np.pi * freq * t + phase)).astype(np.float32)
        return AudioFrame(samples=samples, sample_rate=sr)
    return make


@pytest.fixture
def silent_frame():
    return AudioFrame(samples=np.zeros(2048, dtype=np.float32), sample_rate=44100)


@pytest.fixture
def fake_source():
    return FakeSource()


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def listener():
    return RecordingListener()


@pytest.fixture
def make_source():
    return FakeSource
