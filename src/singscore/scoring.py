from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple

from .config import MarginUnit, ScoringConfig
from .dsp import cents_between

logger = logging.getLogger(__name__)


class Tier(str, Enum):
    PERFECT = "perfect"
    GOOD = "good"
    MISS = "miss"

    @property
    def label(self) -> str:
        return f"{self.value.capitalize()}!"


TIER_POINTS: Dict[Tier, int] = {
    Tier.PERFECT: 100,
    Tier.GOOD: 70,
    Tier.MISS: 0,
}


def pitch_error(
    detected: Optional[float],
    reference: Optional[float],
    unit: MarginUnit = MarginUnit.CENTS,
) -> Optional[float]:
    if detected is None or reference is None or detected <= 0 or reference <= 0:
        return None
    if unit == MarginUnit.HZ:
        return detected - reference
    return cents_between(detected, reference)


def evaluate(
    detected: Optional[float],
    reference: Optional[float],
    perfect_margin: float,
    good_margin: float,
    unit: MarginUnit = MarginUnit.CENTS,
) -> Tuple[Tier, int]:
    error = pitch_error(detected, reference, unit)
    if error is None:
        return Tier.MISS, TIER_POINTS[Tier.MISS]

    distance = abs(error)
    if distance <= perfect_margin:
        tier = Tier.PERFECT
    elif distance <= good_margin:
        tier = Tier.GOOD
    else:
        tier = Tier.MISS
    return tier, TIER_POINTS[tier]


@dataclass
class ScoreSummary:
    score: int
    ticks: int
    tiers: Dict[Tier, int] = field(default_factory=dict)
    overruns: int = 0

    @property
    def max_score(self) -> int:
        return self.ticks * TIER_POINTS[Tier.PERFECT]

    @property
    def percent(self) -> float:
        if self.ticks == 0:
            return 0.0
        return 100.0 * self.score / self.max_score


class ScoringEngine:
    def __init__(self, config: ScoringConfig):
        self.config = config
        self.score = 0
        self.ticks = 0
        self.last_tier: Optional[Tier] = None
        self.tier_counts: Dict[Tier, int] = {tier: 0 for tier in Tier}

    def evaluate(self, detected: Optional[float], reference: Optional[float]) -> Tuple[Tier, int]:
        tier, points = evaluate(
            detected,
            reference,
            self.config.perfect_margin,
            self.config.good_margin,
            self.config.margin_unit,
        )
        self.score += points
        self.ticks += 1
        self.last_tier = tier
        self.tier_counts[tier] += 1
        logger.debug("Tick %d: detected=%s reference=%s -> %s (+%d)", self.ticks, detected, reference, tier.value, points)
        return tier, points

    def error(self, detected: Optional[float], reference: Optional[float]) -> Optional[float]:
        return pitch_error(detected, reference, self.config.margin_unit)

    def summary(self) -> ScoreSummary:
        return ScoreSummary(score=self.score, ticks=self.ticks, tiers=dict(self.tier_counts))
