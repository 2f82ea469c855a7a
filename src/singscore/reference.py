from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterable, Optional

import numpy as np

from .buffer import FrameBuffer
from .config import AudioConfig
from .errors import ReferenceAssetError
from .pitch import PitchExtractor

logger = logging.getLogger(__name__)

ASSET_FORMAT = "singscore-reference"
ASSET_VERSION = 1


class ReferenceTrack:
    """Reference pitch per analysis window, indexed by time at ``hop_s`` spacing.

    Stored values are float32 Hz; 0.0 marks a window with no pitch.
    """

    def __init__(self, hz: Iterable[float], hop_s: float, sample_rate: Optional[int] = None, hop_size: Optional[int] = None):
        if hop_s <= 0:
            raise ValueError(f"hop_s must be positive, got {hop_s}")
        values = np.array([0.0 if v is None else v for v in hz], dtype=np.float32)
        values[~np.isfinite(values) | (values < 0)] = 0.0
        values.flags.writeable = False
        self._hz = values
        self.hop_s = float(hop_s)
        self.sample_rate = sample_rate
        self.hop_size = hop_size

    @classmethod
    def build(cls, samples: np.ndarray, config: AudioConfig) -> "ReferenceTrack":
        return build_reference_track(
            samples,
            sample_rate=config.sample_rate,
            frame_size=config.frame_size,
            hop_size=config.hop_size,
            low_frequency=config.low_frequency,
            high_frequency=config.high_frequency,
            corr_threshold=config.corr_threshold,
            silence_rms=config.silence_rms,
        )

    @property
    def hz(self) -> np.ndarray:
        return self._hz

    @property
    def duration_s(self) -> float:
        return len(self._hz) * self.hop_s

    @property
    def voiced_ratio(self) -> float:
        if len(self._hz) == 0:
            return 0.0
        return float(np.count_nonzero(self._hz > 0)) / len(self._hz)

    def __len__(self) -> int:
        return len(self._hz)

    def at(self, elapsed_s: float) -> Optional[float]:
        index = max(0, int(round(elapsed_s / self.hop_s)))
        if index >= len(self._hz):
            return None
        value = float(self._hz[index])
        return value if value > 0 else None

    def save(self, path: Path) -> None:
        payload = {
            "format": ASSET_FORMAT,
            "version": ASSET_VERSION,
            "hop_s": self.hop_s,
            "sample_rate": self.sample_rate,
            "hop_size": self.hop_size,
            "hz": [float(v) for v in self._hz],
        }
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(payload), encoding="utf-8")
        logger.info("Saved reference track (%d windows, %.1fs) to %s", len(self), self.duration_s, path)

    @classmethod
    def load(cls, path: Path) -> "ReferenceTrack":
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            raise ReferenceAssetError(f"Reference asset not found: {path}") from None
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ReferenceAssetError(f"Could not read reference asset {path}: {exc}") from exc

        if not isinstance(payload, dict) or payload.get("format") != ASSET_FORMAT:
            raise ReferenceAssetError(f"{path} is not a reference pitch asset")
        if payload.get("version") != ASSET_VERSION:
            raise ReferenceAssetError(f"Unsupported reference asset version {payload.get('version')!r} in {path}")
        try:
            hz = [float(v) for v in payload["hz"]]
            return cls(hz, float(payload["hop_s"]), payload.get("sample_rate"), payload.get("hop_size"))
        except (KeyError, TypeError, ValueError) as exc:
            raise ReferenceAssetError(f"Malformed reference asset {path}: {exc}") from exc


def build_reference_track(
    samples: np.ndarray,
    sample_rate: int,
    frame_size: int,
    hop_size: int,
    low_frequency: float,
    high_frequency: float,
    corr_threshold: float = 0.3,
    silence_rms: float = 0.01,
) -> ReferenceTrack:
    signal = np.asarray(samples, dtype=np.float32).reshape(-1)
    if signal.size == 0:
        raise ReferenceAssetError("Reference recording is empty")
    if not np.all(np.isfinite(signal)):
        raise ReferenceAssetError("Reference recording contains non-finite samples")
    if signal.size < frame_size:
        raise ReferenceAssetError(
            f"Reference recording is shorter than one analysis window ({signal.size} < {frame_size} samples)"
        )

    extractor = PitchExtractor(sample_rate, low_frequency, high_frequency, corr_threshold, silence_rms)
    buffer = FrameBuffer(frame_size, hop_size)
    hz = []
    for offset in range(0, signal.size, hop_size):
        buffer.extend(signal[offset : offset + hop_size])
        window = buffer.try_take_window()
        while window is not None:
            estimate = extractor.extract(window)
            hz.append(estimate.hz or 0.0)
            window = buffer.try_take_window()

    track = ReferenceTrack(hz, hop_size / sample_rate, sample_rate, hop_size)
    logger.info(
        "Built reference track: %d windows, %.1fs, %.0f%% voiced",
        len(track),
        track.duration_s,
        track.voiced_ratio * 100.0,
    )
    return track
