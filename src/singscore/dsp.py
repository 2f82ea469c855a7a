import math
from typing import Optional

import numpy as np

NOTE_NAMES = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]

# Periods of the lowest pitch a window has to hold for an unbiased estimate.
MIN_PERIODS = 3


def rms(frame: np.ndarray) -> float:
    if frame.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(frame.astype(np.float64) ** 2)))


def min_frame_size(sample_rate: int, low_frequency: float) -> int:
    """Shortest window that resolves low_frequency: three of its periods."""
    max_lag = int(math.ceil(sample_rate / low_frequency))
    return max(int(math.ceil(MIN_PERIODS * sample_rate / low_frequency)), 2 * (max_lag + 1))


def hz_to_midi(hz: float) -> Optional[float]:
    if hz <= 0:
        return None
    return 69.0 + 12.0 * math.log2(hz / 440.0)


def cents_between(hz: float, reference_hz: float) -> float:
    """Signed distance from reference_hz to hz in cents. Both must be positive."""
    return 1200.0 * math.log2(hz / reference_hz)


def hz_to_note(hz: Optional[float]) -> str:
    if hz is None or hz <= 0:
        return "-"
    midi = int(round(hz_to_midi(hz)))
    return f"{NOTE_NAMES[midi % 12]}{midi // 12 - 1}"
