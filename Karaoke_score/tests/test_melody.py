import pytest

from config import MelodyConfig
from melody import MelodySequencer, hz_to_midi, hz_to_note_name


def test_default_pattern_walks_semitones():
    seq = MelodySequencer()
    expected = [200.0 * 2 ** (s / 12) for s in (0, 2, 4, 2, 0, -2, 0)]
    for i, hz in enumerate(expected):
        note = seq.expected_at(i + 0.5)
        assert note.pitch_hz == pytest.approx(hz)
        assert note.start_time_s == i
        assert note.duration_s == 1.0
        assert note.tolerance_hz == 50.0
    # pattern repeats
    assert seq.expected_at(7.2).pitch_hz == pytest.approx(200.0)
    assert seq.expected_at(9.9).pitch_hz == pytest.approx(expected[2])


def test_same_time_same_answer():
    seq = MelodySequencer()
    assert seq.expected_at(3.14) == seq.expected_at(3.14)
    assert MelodySequencer().expected_at(3.14) == seq.expected_at(3.14)


def test_no_note_before_start_or_during_lead_in():
    assert MelodySequencer().expected_at(-0.1) is None
    seq = MelodySequencer(MelodyConfig(lead_in_s=2.0))
    assert seq.expected_at(1.9) is None
    note = seq.expected_at(2.0)
    assert note.start_time_s == 2.0
    assert note.pitch_hz == pytest.approx(200.0)


def test_rests_in_pattern():
    seq = MelodySequencer(MelodyConfig(pattern=(0, None, 7)))
    assert seq.expected_at(0.5) is not None
    assert seq.expected_at(1.5) is None
    assert seq.expected_at(2.5).pitch_hz == pytest.approx(200.0 * 2 ** (7 / 12))
    assert seq.note_boundaries(4.0) == [0.0, 2.0, 3.0]


def test_note_boundaries_with_lead_in():
    seq = MelodySequencer(MelodyConfig(lead_in_s=1.5))
    assert seq.note_boundaries(4.0) == [1.5, 2.5, 3.5]


@pytest.mark.parametrize("hz, name", [
    (440.0, "A4"),
    (261.63, "C4"),
    (200.0, "G3"),
    (246.94, "B3"),
    (523.25, "C5"),
    (82.41, "E2"),
    (445.0, "A4"),
])
def test_note_names(hz, name):
    assert hz_to_note_name(hz) == name


@pytest.mark.parametrize("hz", [None, 0.0, -5.0, float("nan")])
def test_note_name_not_available(hz):
    assert hz_to_note_name(hz) == "N/A"


def test_hz_to_midi():
    assert hz_to_midi(440.0) == 69
    assert hz_to_midi(261.63) == 60
    assert hz_to_midi(200.0) == 55
