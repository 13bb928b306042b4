import numpy as np
import simpleaudio as sa
from config import SR, MASTER_GAIN, CLICK_HZ, CLICK_MS, GUIDE_TONE_MS

def sine_click(duration_ms=CLICK_MS, freq=CLICK_HZ, sr=SR):
    n = int(sr * (duration_ms/1000.0))
    t = np.arange(n)/sr
    wave = np.sin(2*np.pi*freq*t)
    env = np.linspace(1.0, 0.0, n)
    return (wave * env * 0.6).astype(np.float32)

def guide_tone(freq: float, duration_ms=GUIDE_TONE_MS, sr=SR, fade_ms=10):
    n = int(sr * (duration_ms/1000.0))
    t = np.arange(n)/sr
    wave = np.sin(2*np.pi*freq*t)
    # short fades so the tone doesn't pop
    k = min(n // 2, int(sr * fade_ms/1000.0))
    env = np.ones(n)
    if k > 0:
        ramp = np.linspace(0.0, 1.0, k)
        env[:k] = ramp
        env[n-k:] = ramp[::-1]
    return (wave * env * 0.4).astype(np.float32)

def to_pcm16_stereo(mono: np.ndarray, gain=MASTER_GAIN) -> np.ndarray:
    stereo = np.stack([mono, mono], axis=1)
    return np.ascontiguousarray(np.clip(stereo * gain, -1.0, 1.0) * 32767).astype(np.int16)

def play_mono(mono: np.ndarray, sr=SR):
    return sa.play_buffer(to_pcm16_stereo(mono), 2, 2, sr)

CLICK = sine_click()
