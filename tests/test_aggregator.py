import pytest

from singscore.aggregator import PitchAggregator
from singscore.pitch import PitchEstimate


def _estimate(hz, confidence=0.9):
    return PitchEstimate(hz, confidence, 44100)


def test_reduce_is_mean_of_voiced_estimates():
    aggregator = PitchAggregator(44100)
    for hz in (218.0, 220.0, 222.0):
        aggregator.observe(_estimate(hz))
    aggregator.observe(_estimate(None, 0.1))

    assert aggregator.observed == 4
    assert aggregator.voiced_count == 3
    result = aggregator.reduce()
    assert result.hz == pytest.approx(220.0)
    assert result.confidence == pytest.approx(0.9)
    assert result.sample_rate == 44100


def test_no_voiced_estimates_reduce_to_no_pitch():
    aggregator = PitchAggregator(44100)
    aggregator.observe(_estimate(None, 0.0))
    assert aggregator.reduce().hz is None


def test_second_reduce_without_observations_is_no_pitch():
    aggregator = PitchAggregator(44100)
    aggregator.observe(_estimate(330.0))
    assert aggregator.reduce().hz == pytest.approx(330.0)
    second = aggregator.reduce()
    assert second.hz is None
    assert aggregator.observed == 0
