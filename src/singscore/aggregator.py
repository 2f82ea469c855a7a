from __future__ import annotations

from typing import List

from .pitch import PitchEstimate


class PitchAggregator:
    """Collects the estimates of one evaluation tick and reduces them to their mean."""

    def __init__(self, sample_rate: int):
        self.sample_rate = sample_rate
        self.observed = 0
        self._hz: List[float] = []
        self._confidence: List[float] = []

    @property
    def voiced_count(self) -> int:
        return len(self._hz)

    def observe(self, estimate: PitchEstimate) -> None:
        self.observed += 1
        if estimate.hz is None:
            return
        self._hz.append(estimate.hz)
        self._confidence.append(estimate.confidence)

    def reduce(self) -> PitchEstimate:
        if not self._hz:
            result = PitchEstimate(None, 0.0, self.sample_rate)
        else:
            result = PitchEstimate(
                hz=sum(self._hz) / len(self._hz),
                confidence=sum(self._confidence) / len(self._confidence),
                sample_rate=self.sample_rate,
            )
        self._hz.clear()
        self._confidence.clear()
        self.observed = 0
        return result
