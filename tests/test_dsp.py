import numpy as np
import pytest

from singscore.dsp import cents_between, hz_to_midi, hz_to_note, min_frame_size, rms


def test_rms():
    assert rms(np.array([], dtype=np.float32)) == 0.0
    assert rms(np.ones(16, dtype=np.float32) * 0.5) == pytest.approx(0.5)


def test_midi_conversions():
    assert hz_to_midi(440.0) == pytest.approx(69.0)
    assert hz_to_midi(0.0) is None
    assert hz_to_midi(261.6256) == pytest.approx(60.0, abs=1e-4)


def test_cents_between():
    assert cents_between(880.0, 440.0) == 1200.0
    assert cents_between(440.0, 880.0) == -1200.0
    assert cents_between(466.1638, 440.0) == pytest.approx(100.0, abs=1e-3)


def test_hz_to_note():
    assert hz_to_note(440.0) == "A4"
    assert hz_to_note(261.63) == "C4"
    assert hz_to_note(None) == "-"
    assert hz_to_note(0.0) == "-"


def test_min_frame_size_holds_three_periods():
    assert min_frame_size(44100, 80.0) == 1654
    assert min_frame_size(8000, 50.0) == 480
    assert min_frame_size(48000, 60.0) > 2048
