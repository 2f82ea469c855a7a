from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from .aggregator import PitchAggregator
from .buffer import FrameBuffer
from .config import AudioConfig, ScoringConfig
from .pitch import PitchEstimate, PitchExtractor
from .reference import ReferenceTrack
from .scoring import ScoreSummary, ScoringEngine, Tier

logger = logging.getLogger(__name__)


class SongClock:
    """Song position driven by captured samples, nudged toward playback."""

    def __init__(self, sample_rate: int):
        self.sample_rate = sample_rate
        self.time_s = 0.0

    def advance(self, frames: int) -> None:
        self.time_s += frames / self.sample_rate

    def nudge(self, target_time_s: float) -> None:
        drift = target_time_s - self.time_s
        self.time_s += drift * 0.05


@dataclass
class TickResult:
    elapsed_s: float
    score: int
    tier: Optional[Tier]
    points: int
    detected_hz: Optional[float]
    reference_hz: Optional[float]
    error: Optional[float]
    windows: int
    voiced_windows: int


class Session:
    """One singing session: live samples in, one TickResult per evaluation tick out.

    With ``reference=None`` the session runs degraded: pitch is still tracked
    and reported but nothing is scored.
    """

    def __init__(
        self,
        audio_config: AudioConfig,
        scoring_config: ScoringConfig,
        reference: Optional[ReferenceTrack],
        reference_offset_s: float = 0.0,
    ):
        self.audio_config = audio_config
        self.scoring_config = scoring_config
        self.reference = reference
        self.reference_offset_s = reference_offset_s

        self.buffer = FrameBuffer(audio_config.frame_size, audio_config.hop_size, audio_config.buffer_capacity)
        self.extractor = PitchExtractor.from_config(audio_config)
        self.aggregator = PitchAggregator(audio_config.sample_rate)
        self.engine = ScoringEngine(scoring_config)
        self.last_estimate: Optional[PitchEstimate] = None

        self._samples_fed = 0
        self._fed_ticks = 0
        self._next_tick_s = scoring_config.evaluation_interval_s

        if reference is None:
            logger.warning("No reference track loaded: pitch is tracked but not scored")
        elif abs(reference.hop_s - audio_config.hop_s) > 1e-9:
            logger.info(
                "Reference hop (%.4fs) differs from live hop (%.4fs); lookups use the reference's own time axis",
                reference.hop_s,
                audio_config.hop_s,
            )

    @property
    def scoring_enabled(self) -> bool:
        return self.reference is not None

    @property
    def overruns(self) -> int:
        return self.buffer.overruns

    def push(self, samples: np.ndarray) -> int:
        self.buffer.extend(samples)
        processed = 0
        window = self.buffer.try_take_window()
        while window is not None:
            self.last_estimate = self.extractor.extract(window)
            self.aggregator.observe(self.last_estimate)
            processed += 1
            window = self.buffer.try_take_window()
        return processed

    def tick(self, elapsed_s: float) -> TickResult:
        windows = self.aggregator.observed
        voiced = self.aggregator.voiced_count
        detected = self.aggregator.reduce().hz

        if self.reference is None:
            return TickResult(
                elapsed_s=elapsed_s,
                score=self.engine.score,
                tier=None,
                points=0,
                detected_hz=detected,
                reference_hz=None,
                error=None,
                windows=windows,
                voiced_windows=voiced,
            )

        reference_hz = self.reference.at(elapsed_s - self.reference_offset_s)
        tier, points = self.engine.evaluate(detected, reference_hz)
        return TickResult(
            elapsed_s=elapsed_s,
            score=self.engine.score,
            tier=tier,
            points=points,
            detected_hz=detected,
            reference_hz=reference_hz,
            error=self.engine.error(detected, reference_hz),
            windows=windows,
            voiced_windows=voiced,
        )

    def feed(self, samples: np.ndarray) -> List[TickResult]:
        """Push samples and tick on the sample clock, every evaluation interval worth of audio."""
        block = np.asarray(samples, dtype=np.float32).reshape(-1)
        results: List[TickResult] = []
        offset = 0
        while offset < len(block):
            boundary = self._tick_boundary(self._fed_ticks + 1)
            take = min(len(block) - offset, boundary - self._samples_fed)
            self.push(block[offset : offset + take])
            offset += take
            self._samples_fed += take
            if self._samples_fed == boundary:
                self._fed_ticks += 1
                results.append(self.tick(boundary / self.audio_config.sample_rate))
        return results

    def push_timed(self, samples: np.ndarray, clock: SongClock) -> List[TickResult]:
        """Push a captured block, ticking whenever the clock crosses an interval boundary.

        The block is split at each boundary so windows recorded after it
        count toward the next tick, however many blocks arrive at once.
        """
        block = np.asarray(samples, dtype=np.float32).reshape(-1)
        rate = self.audio_config.sample_rate
        half_sample = 0.5 / rate
        results: List[TickResult] = []
        offset = 0
        while True:
            while clock.time_s + half_sample >= self._next_tick_s:
                results.append(self.tick(self._next_tick_s))
                self._next_tick_s += self.scoring_config.evaluation_interval_s
            if offset >= len(block):
                return results
            until_tick = max(1, int(round((self._next_tick_s - clock.time_s) * rate)))
            take = min(len(block) - offset, until_tick)
            self.push(block[offset : offset + take])
            clock.advance(take)
            offset += take

    def summary(self) -> ScoreSummary:
        summary = self.engine.summary()
        summary.overruns = self.overruns
        return summary

    def _tick_boundary(self, tick_number: int) -> int:
        interval = self.scoring_config.evaluation_interval_s * self.audio_config.sample_rate
        return max(tick_number, int(round(tick_number * interval)))
