import math
from typing import Optional

from config import MelodyConfig
from ks_types import ExpectedNote

NOTE_NAMES = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]
A4_HZ = 440.0
C4_HZ = A4_HZ * 2 ** (-9 / 12)
NOT_AVAILABLE = "N/A"


def semitones_to_hz(base_hz: float, semitones: float) -> float:
    return base_hz * 2 ** (semitones / 12)


def hz_to_note_name(freq_hz: Optional[float]) -> str:
    """440 -> 'A4', 261.6 -> 'C4'. Absent or non-positive -> 'N/A'."""
    if freq_hz is None or not math.isfinite(freq_hz) or freq_hz <= 0:
        return NOT_AVAILABLE
    from_c4 = round(12 * math.log2(freq_hz / C4_HZ))
    octave = math.floor(from_c4 / 12) + 4
    return f"{NOTE_NAMES[from_c4 % 12]}{octave}"


def hz_to_midi(freq_hz: float) -> int:
    return int(round(69 + 12 * math.log2(freq_hz / A4_HZ)))


class MelodySequencer:
    """Placeholder oracle: a repeating semitone pattern, one note per slot.

    Pure function of elapsed song time. A song-specific implementation only
    has to provide expected_at(song_time) -> ExpectedNote | None.
    """

    def __init__(self, cfg: Optional[MelodyConfig] = None):
        self.cfg = cfg or MelodyConfig()

    def expected_at(self, song_time: float) -> Optional[ExpectedNote]:
        cfg = self.cfg
        t = song_time - cfg.lead_in_s
        if not math.isfinite(t) or t < 0:
            return None
        slot = math.floor(t / cfg.note_seconds)
        offset = cfg.pattern[slot % len(cfg.pattern)]
        if offset is None:
            return None
        return ExpectedNote(
            start_time_s=cfg.lead_in_s + slot * cfg.note_seconds,
            duration_s=cfg.note_seconds,
            pitch_hz=semitones_to_hz(cfg.base_hz, offset),
            tolerance_hz=cfg.tolerance_hz,
        )

    def note_boundaries(self, until_s: float) -> list[float]:
        """Song times (seconds) at which a new expected note begins, up to until_s."""
        cfg = self.cfg
        out = []
        slot = 0
        while True:
            t = cfg.lead_in_s + slot * cfg.note_seconds
            if t >= until_s:
                return out
            if cfg.pattern[slot % len(cfg.pattern)] is not None:
                out.append(t)
            slot += 1
