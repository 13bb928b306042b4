import logging
import threading
import time
from typing import Optional

import mido

from audio import CLICK, guide_tone, play_mono
from config import COUNT_IN_BPM
from melody import MelodySequencer, hz_to_midi

logger = logging.getLogger(__name__)

GUIDE_CHANNEL = 0
GUIDE_VELOCITY = 80


def schedule_clicks(bpm: float, lead_in_s: float, start_time: float):
    sec_per_beat = 60.0 / bpm
    events = []
    i = 0
    while i * sec_per_beat < lead_in_s - 1e-9:
        events.append(("click", start_time + i * sec_per_beat))
        i += 1
    return events


def schedule_guide(melody: MelodySequencer, until_s: float, start_time: float):
    events = []
    for t in melody.note_boundaries(until_s):
        note = melody.expected_at(t)
        if note is not None:
            events.append(("note", start_time + t, note.pitch_hz))
    return events


class GuidePlayer:
    """Count-in clicks over the lead-in, then the expected melody as guide tones and/or MIDI notes."""

    def __init__(self, melody: MelodySequencer, play_click=True, play_tone=False,
                 midi_out_name: Optional[str] = None, bpm: float = COUNT_IN_BPM):
        self.melody = melody
        self.play_click = play_click
        self.play_tone = play_tone
        self.midi_out_name = midi_out_name
        self.bpm = bpm
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def stop(self):
        self._stop.set()

    def start(self, start_at: float, until_s: float):
        """start_at is the song start on the time.monotonic clock."""
        events = schedule_clicks(self.bpm, self.melody.cfg.lead_in_s, start_at)
        if self.play_tone or self.midi_out_name:
            events += schedule_guide(self.melody, until_s, start_at)
        events.sort(key=lambda x: x[1])

        port_out = None
        if self.midi_out_name:
            try:
                port_out = mido.open_output(self.midi_out_name)
                logger.info("sending guide notes to %s", self.midi_out_name)
            except (OSError, ImportError) as e:
                logger.warning("could not open MIDI out '%s': %s", self.midi_out_name, e)

        def worker():
            sounding = None
            try:
                for ev in events:
                    if self._stop.is_set(): break
                    delay = ev[1] - time.monotonic()
                    if delay > 0 and self._stop.wait(delay):
                        break
                    if ev[0] == "click" and self.play_click:
                        play_mono(CLICK)
                    elif ev[0] == "note":
                        if self.play_tone:
                            play_mono(guide_tone(ev[2]))
                        if port_out is not None:
                            note = hz_to_midi(ev[2])
                            if sounding is not None:
                                port_out.send(mido.Message('note_off', channel=GUIDE_CHANNEL, note=sounding, velocity=0))
                                sounding = None
                            port_out.send(mido.Message('note_on', channel=GUIDE_CHANNEL, note=note, velocity=GUIDE_VELOCITY))
                            sounding = note
            except Exception:
                logger.exception("guide playback failed")
            finally:
                if port_out is not None:
                    try:
                        if sounding is not None:
                            port_out.send(mido.Message('note_off', channel=GUIDE_CHANNEL, note=sounding, velocity=0))
                    except Exception as e:
                        logger.warning("could not silence guide note %d: %s", sounding, e)
                    finally:
                        port_out.close()

        self._thread = threading.Thread(target=worker, name="guide", daemon=True)
        self._thread.start()
        return start_at

    def join(self, timeout=None):
        if self._thread:
            self._thread.join(timeout)
