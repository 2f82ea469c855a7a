from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .errors import ReferenceAssetError
from .reference import ReferenceTrack

REFERENCE_ASSET_NAME = "reference.json"


@dataclass
class Song:
    root: Path
    audio_path: Path
    reference: Optional[ReferenceTrack]
    title: str
    artist: Optional[str] = None
    audio_offset_s: float = 0.0

    @classmethod
    def from_dir(cls, path: Path, load_reference: bool = True) -> "Song":
        root = path
        if not root.is_dir():
            raise FileNotFoundError(f"Song folder not found: {root}")

        audio_path = None
        for name in ("audio.wav", "audio.ogg", "audio.mp3"):
            candidate = root / name
            if candidate.exists():
                audio_path = candidate
                break
        if audio_path is None:
            raise FileNotFoundError(f"No audio.wav/audio.ogg/audio.mp3 in {root}")

        reference: Optional[ReferenceTrack] = None
        if load_reference:
            reference = ReferenceTrack.load(root / REFERENCE_ASSET_NAME)

        meta_path = root / "meta.json"
        meta = {}
        if meta_path.exists():
            try:
                meta = json.loads(meta_path.read_text(encoding="utf-8"))
            except json.JSONDecodeError as exc:
                raise ReferenceAssetError(f"Invalid JSON in {meta_path}: {exc}") from exc
            if not isinstance(meta, dict):
                raise ReferenceAssetError(f"{meta_path} must contain a JSON object")

        try:
            audio_offset_s = float(meta.get("audio_offset_s", 0.0))
        except (TypeError, ValueError):
            raise ReferenceAssetError(f"audio_offset_s in {meta_path} must be a number") from None

        return cls(
            root=root,
            audio_path=audio_path,
            reference=reference,
            title=meta.get("title", root.name),
            artist=meta.get("artist"),
            audio_offset_s=audio_offset_s,
        )
