from __future__ import annotations

from pathlib import Path
from typing import Tuple

import numpy as np
import soundfile as sf

from .errors import ReferenceAssetError


def load_mono(path: Path) -> Tuple[np.ndarray, int]:
    if not path.exists():
        raise ReferenceAssetError(f"Audio file not found: {path}")
    try:
        data, sample_rate = sf.read(str(path), dtype="float32", always_2d=True)
    except (RuntimeError, OSError) as exc:
        raise ReferenceAssetError(f"Could not decode {path}: {exc}") from exc
    if data.shape[0] == 0:
        raise ReferenceAssetError(f"{path} contains no audio")
    return np.mean(data, axis=1).astype(np.float32), int(sample_rate)
