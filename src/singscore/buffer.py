from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalysisWindow:
    start: int
    samples: np.ndarray

    def __len__(self) -> int:
        return len(self.samples)


class FrameBuffer:
    """Ring of mono samples cut into fixed-size windows advancing by hop_size.

    The ring never blocks the producer: when a write would overwrite the
    oldest unread sample, the window start skips ahead by one hop and the
    skip is counted in ``overruns``.
    """

    def __init__(self, frame_size: int, hop_size: int, capacity: Optional[int] = None):
        if frame_size <= 0 or hop_size <= 0:
            raise ValueError("frame_size and hop_size must be positive")
        if hop_size > frame_size:
            raise ValueError("hop_size cannot exceed frame_size")
        if capacity is None:
            capacity = 4 * frame_size
        if capacity < frame_size + hop_size:
            raise ValueError("capacity must hold at least frame_size + hop_size samples")

        self.frame_size = frame_size
        self.hop_size = hop_size
        self.capacity = capacity
        self.overruns = 0
        self._ring = np.zeros(capacity, dtype=np.float32)
        self._written = 0
        self._start = 0

    @property
    def samples_written(self) -> int:
        return self._written

    @property
    def pending(self) -> int:
        return self._written - self._start

    def push(self, sample: float) -> None:
        self.extend(np.array([sample], dtype=np.float32))

    def extend(self, samples: np.ndarray) -> None:
        block = np.asarray(samples, dtype=np.float32).reshape(-1)
        for offset in range(0, len(block), self.hop_size):
            self._write(block[offset : offset + self.hop_size])

    def try_take_window(self) -> Optional[AnalysisWindow]:
        if self.pending < self.frame_size:
            return None
        idx = (np.arange(self.frame_size) + self._start) % self.capacity
        samples = self._ring[idx]
        samples.flags.writeable = False
        window = AnalysisWindow(start=self._start, samples=samples)
        self._start += self.hop_size
        return window

    def _write(self, chunk: np.ndarray) -> None:
        n = len(chunk)
        if self.pending + n > self.capacity:
            self._start += self.hop_size
            self.overruns += 1
            logger.warning("Frame buffer overrun #%d: dropped %d samples", self.overruns, self.hop_size)

        pos = self._written % self.capacity
        first = min(n, self.capacity - pos)
        self._ring[pos : pos + first] = chunk[:first]
        if first < n:
            self._ring[: n - first] = chunk[first:]
        self._written += n
