from __future__ import annotations

import json
from dataclasses import dataclass, fields
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from .dsp import min_frame_size
from .errors import ConfigError


class MarginUnit(str, Enum):
    CENTS = "cents"
    HZ = "hz"


@dataclass
class AudioConfig:
    sample_rate: int = 44100
    frame_size: int = 2048
    hop_size: int = 512
    channels: int = 1
    low_frequency: float = 80.0
    high_frequency: float = 400.0
    corr_threshold: float = 0.3
    silence_rms: float = 0.01
    buffer_capacity: Optional[int] = None

    def __post_init__(self) -> None:
        if self.sample_rate <= 0:
            raise ConfigError(f"sample_rate must be positive, got {self.sample_rate}")
        if self.frame_size <= 0:
            raise ConfigError(f"frame_size must be positive, got {self.frame_size}")
        if self.hop_size <= 0:
            raise ConfigError(f"hop_size must be positive, got {self.hop_size}")
        if self.hop_size > self.frame_size:
            raise ConfigError(f"hop_size ({self.hop_size}) cannot exceed frame_size ({self.frame_size})")
        if self.channels <= 0:
            raise ConfigError(f"channels must be positive, got {self.channels}")
        if self.low_frequency <= 0:
            raise ConfigError(f"low_frequency must be positive, got {self.low_frequency}")
        if self.low_frequency >= self.high_frequency:
            raise ConfigError(
                f"low_frequency ({self.low_frequency}) must be below high_frequency ({self.high_frequency})"
            )
        if self.high_frequency >= self.sample_rate / 2.0:
            raise ConfigError(f"high_frequency must be below Nyquist ({self.sample_rate / 2.0} Hz)")
        min_frame = min_frame_size(self.sample_rate, self.low_frequency)
        if self.frame_size < min_frame:
            raise ConfigError(
                f"frame_size {self.frame_size} is too short for low_frequency {self.low_frequency} Hz "
                f"(needs at least {min_frame} samples)"
            )
        if not 0.0 < self.corr_threshold <= 1.0:
            raise ConfigError(f"corr_threshold must be in (0, 1], got {self.corr_threshold}")
        if self.silence_rms < 0:
            raise ConfigError(f"silence_rms cannot be negative, got {self.silence_rms}")
        if self.buffer_capacity is not None and self.buffer_capacity < self.frame_size + self.hop_size:
            raise ConfigError(
                f"buffer_capacity must hold at least frame_size + hop_size "
                f"({self.frame_size + self.hop_size}) samples, got {self.buffer_capacity}"
            )

    @property
    def hop_s(self) -> float:
        return self.hop_size / self.sample_rate


@dataclass
class ScoringConfig:
    evaluation_interval_s: float = 1.0
    perfect_margin: float = 25.0
    good_margin: float = 75.0
    margin_unit: MarginUnit = MarginUnit.CENTS

    def __post_init__(self) -> None:
        try:
            self.margin_unit = MarginUnit(self.margin_unit)
        except ValueError:
            raise ConfigError(
                f"margin_unit must be one of {[u.value for u in MarginUnit]}, got {self.margin_unit!r}"
            ) from None
        if self.evaluation_interval_s <= 0:
            raise ConfigError(f"evaluation_interval_s must be positive, got {self.evaluation_interval_s}")
        if self.perfect_margin < 0 or self.good_margin < 0:
            raise ConfigError("margins cannot be negative")
        if self.perfect_margin > self.good_margin:
            raise ConfigError(
                f"perfect_margin ({self.perfect_margin}) cannot exceed good_margin ({self.good_margin})"
            )


def load_config(
    path: Optional[Path] = None,
    audio_overrides: Optional[Dict[str, Any]] = None,
    scoring_overrides: Optional[Dict[str, Any]] = None,
) -> Tuple[AudioConfig, ScoringConfig]:
    audio_values: Dict[str, Any] = {}
    scoring_values: Dict[str, Any] = {}

    if path is not None:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            raise ConfigError(f"Config file not found: {path}") from None
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Invalid JSON in {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigError(f"{path} must contain a JSON object")
        unknown = set(data) - {"audio", "scoring"}
        if unknown:
            raise ConfigError(f"Unknown config sections: {sorted(unknown)}")
        audio_values.update(data.get("audio", {}))
        scoring_values.update(data.get("scoring", {}))

    audio_values.update({k: v for k, v in (audio_overrides or {}).items() if v is not None})
    scoring_values.update({k: v for k, v in (scoring_overrides or {}).items() if v is not None})

    return _build(AudioConfig, audio_values), _build(ScoringConfig, scoring_values)


def _build(cls, values: Dict[str, Any]):
    known = {f.name for f in fields(cls)}
    unknown = set(values) - known
    if unknown:
        raise ConfigError(f"Unknown {cls.__name__} options: {sorted(unknown)}")
    return cls(**values)
