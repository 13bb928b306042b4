import logging
import time
import serial, serial.tools.list_ports
from typing import Optional

from display import motivational_message, score_band
from ks_types import DebugSnapshot, PerformanceMetrics

logger = logging.getLogger(__name__)

BAND_BYTES = {"green": b'G', "yellow": b'Y', "red": b'R'}

def find_serial(name_like: Optional[str]) -> Optional[str]:
    if not name_like:
        return None
    s = name_like.lower()
    for p in serial.tools.list_ports.comports():
        combo = (p.device + " " + (p.description or "")).lower()
        if s in combo:
            return p.device
    if name_like.startswith("/dev/") or name_like.upper().startswith("COM"):
        return name_like
    return None

class ArduinoNotifier:
    """Lights the score band on an Arduino: one byte each time the band changes."""

    def __init__(self, port: Optional[str], baud: int = 115200):
        self.ser = None
        self.band: Optional[str] = None
        if port:
            try:
                self.ser = serial.Serial(port, baudrate=baud, timeout=0)
                time.sleep(2.0)  # board resets on open
                logger.info("Arduino connected on %s @ %d baud", port, baud)
            except serial.SerialException as e:
                logger.warning("could not open Arduino serial '%s': %s", port, e)

    def on_score(self, score: float, song_time: float):
        band = score_band(score)
        if band == self.band or not self.ser:
            return
        self.band = band
        try:
            self.ser.write(BAND_BYTES[band])
        except serial.SerialException as e:
            logger.warning("serial write failed: %s", e)

    def on_metrics(self, metrics: PerformanceMetrics):
        pass

    def on_debug(self, snapshot: DebugSnapshot):
        pass

    def close(self):
        if self.ser:
            try:
                self.ser.close()
            except serial.SerialException as e:
                logger.debug("serial close failed: %s", e)
            self.ser = None

class ConsoleNotifier:
    """Prints one status line per metrics update, plus debug lines if asked."""

    def __init__(self, show_debug: bool = False, warmup_s: float = 10.0, out=print):
        self.show_debug = show_debug
        self.warmup_s = warmup_s
        self.out = out
        self.score = 0.0
        self.song_time = 0.0

    def on_score(self, score: float, song_time: float):
        self.score = score
        self.song_time = song_time

    def on_metrics(self, m: PerformanceMetrics):
        msg = motivational_message(self.score, self.song_time, self.warmup_s)
        self.out(f"[{self.song_time:6.1f}s] score {self.score:5.1f}  "
                 f"pitch {m.pitch_accuracy:5.1f}%  timing {m.timing_accuracy:5.1f}%  "
                 f"volume {m.volume_consistency:5.1f}%  {msg}")

    def on_debug(self, snap: DebugSnapshot):
        if not self.show_debug:
            return
        pitch = f"{snap.pitch_hz:.1f}Hz" if snap.pitch_hz else "N/A"
        target = f"{snap.expected.pitch_hz:.1f}Hz" if snap.expected else "rest"
        self.out(f"    pitch {pitch:>8s} ({snap.note_name:>4s})  volume {snap.volume:5.1f}  "
                 f"active {'yes' if snap.is_active else 'no '}  target {target}")

    def close(self):
        pass
