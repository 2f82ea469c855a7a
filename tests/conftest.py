import numpy as np
import pytest

from singscore.config import AudioConfig, ScoringConfig


def sine(freq: float, n_samples: int, sample_rate: int = 44100, amplitude: float = 0.5, phase: float = 0.0) -> np.ndarray:
    t = np.arange(n_samples, dtype=np.float64) / sample_rate
    return (amplitude * np.sin(2 * np.pi * freq * t + phase)).astype(np.float32)


@pytest.fixture
def sample_rate():
    return 44100


@pytest.fixture
def audio_config():
    return AudioConfig()


@pytest.fixture
def scoring_config():
    return ScoringConfig()
