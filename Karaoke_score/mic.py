import logging
import threading
import time
from typing import Optional, Union

import sounddevice as sd

from config import FRAME_SIZE
from errors import DeviceUnavailable
from ks_types import AudioFrame

logger = logging.getLogger(__name__)

# no callback for this long means the device went away
STALE_AFTER_S = 2.0


def list_input_devices() -> list[tuple[int, str, int]]:
    """(index, name, default sample rate) for every device with input channels."""
    out = []
    for idx, dev in enumerate(sd.query_devices()):
        if dev["max_input_channels"] > 0:
            out.append((idx, dev["name"], int(dev["default_samplerate"])))
    return out


class MicrophoneSource:
    """Exclusive handle on one capture device.

    Keeps only the most recent complete frame; older frames are dropped.
    Use as a context manager, or pair acquire() with release().
    """

    def __init__(self, device: Union[int, str, None] = None, frame_size: int = FRAME_SIZE,
                 sample_rate: Optional[int] = None, stale_after: float = STALE_AFTER_S):
        self.device = device
        self.frame_size = frame_size
        self.sample_rate = sample_rate
        self.stale_after = stale_after
        self.overflows = 0
        self._stream = None
        self._latest: Optional[AudioFrame] = None
        self._active_rate = 0
        self._last_frame_at = 0.0
        self._lock = threading.Lock()

    def __enter__(self):
        self.acquire()
        return self

    def __exit__(self, *exc):
        self.release()
        return False

    def acquire(self):
        with self._lock:
            if self._stream is not None:
                return
            try:
                info = sd.query_devices(self.device, "input")
            except (sd.PortAudioError, ValueError) as e:
                raise DeviceUnavailable(f"no input device available: {e}") from e
            self._active_rate = int(self.sample_rate or info["default_samplerate"])
            self._latest = None
            self._last_frame_at = time.monotonic()
            try:
                stream = sd.InputStream(
                    samplerate=self._active_rate,
                    channels=1,
                    device=self.device,
                    dtype="float32",
                    blocksize=self.frame_size,
                    callback=self._callback,
                )
            except sd.PortAudioError as e:
                raise DeviceUnavailable(f"could not open '{info['name']}': {e}") from e
            try:
                stream.start()
            except sd.PortAudioError as e:
                stream.close()
                raise DeviceUnavailable(f"could not start '{info['name']}': {e}") from e
            self._stream = stream
        logger.info("microphone open: %s @ %d Hz, %d-sample frames",
                    info["name"], self._active_rate, self.frame_size)

    def release(self):
        with self._lock:
            stream, self._stream = self._stream, None
            self._latest = None
        if stream is None:
            return
        try:
            stream.stop()
            stream.close()
        except sd.PortAudioError as e:
            logger.warning("closing input stream failed: %s", e)
        logger.info("microphone released")

    def _callback(self, indata, frames, time_info, status):
        if status:
            if status.input_overflow:
                self.overflows += 1
            logger.debug("input status: %s", status)
        self._latest = AudioFrame(samples=indata[:, 0].copy(), sample_rate=self._active_rate)
        self._last_frame_at = time.monotonic()

    def latest(self) -> Optional[AudioFrame]:
        return self._latest

    @property
    def is_alive(self) -> bool:
        s = self._stream
        if s is None or not s.active:
            return False
        return time.monotonic() - self._last_frame_at < self.stale_after
