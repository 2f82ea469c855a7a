"""Offline reference precompute: isolated vocal in, reference pitch asset out."""
from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from .audio_io import load_mono
from .config import load_config
from .errors import ConfigError, SingScoreError
from .reference import ReferenceTrack

logger = logging.getLogger(__name__)


def add_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("reference_audio", type=Path, help="Isolated reference vocal (wav/flac/ogg)")
    parser.add_argument("output_asset", type=Path, help="Output file, usually songs/<song>/reference.json")
    parser.add_argument("--config", type=Path, help="JSON config with an 'audio' section")
    parser.add_argument("--samplerate", type=int, help="Expected sample rate of the reference audio (Hz)")
    parser.add_argument("--frame-size", type=int, help="Analysis window length in samples")
    parser.add_argument("--hop-size", type=int, help="Samples between consecutive windows")
    parser.add_argument("--low-freq", type=float, help="Lowest detectable pitch (Hz)")
    parser.add_argument("--high-freq", type=float, help="Highest detectable pitch (Hz)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")


def build_reference_asset(
    reference_audio: Path,
    output_asset: Path,
    config_path: Optional[Path] = None,
    audio_overrides: Optional[Dict[str, Any]] = None,
) -> ReferenceTrack:
    """Decode the reference vocal, extract its pitch track and write the asset.

    The audio file's own sample rate is always used. A ``sample_rate``
    override that disagrees with it is an error rather than a silent
    mismatch with the live configuration.
    """
    samples, sample_rate = load_mono(reference_audio)
    overrides = dict(audio_overrides or {})
    expected_rate = overrides.pop("sample_rate", None)
    if expected_rate is not None and expected_rate != sample_rate:
        raise ConfigError(f"{reference_audio} is {sample_rate} Hz, expected {expected_rate} Hz")
    overrides["sample_rate"] = sample_rate

    audio_cfg, _ = load_config(config_path, audio_overrides=overrides)
    logger.info("Building reference from %s (%.1fs @ %d Hz)", reference_audio, len(samples) / sample_rate, sample_rate)
    track = ReferenceTrack.build(samples, audio_cfg)
    track.save(output_asset)
    return track


def run(args: argparse.Namespace) -> int:
    track = build_reference_asset(
        args.reference_audio,
        args.output_asset,
        args.config,
        audio_overrides={
            "sample_rate": args.samplerate,
            "frame_size": args.frame_size,
            "hop_size": args.hop_size,
            "low_frequency": args.low_freq,
            "high_frequency": args.high_freq,
        },
    )
    print(f"Reference: {len(track)} windows, {track.duration_s:.1f}s, {track.voiced_ratio * 100:.0f}% voiced")
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Precompute the reference pitch track of a song.")
    add_arguments(parser)
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return run(args)
    except (SingScoreError, FileNotFoundError) as exc:
        logger.error("%s", exc)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
