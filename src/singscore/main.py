from __future__ import annotations

import argparse
import logging
import queue
import time
from pathlib import Path
from typing import Optional

import numpy as np
import sounddevice as sd

from . import precompute
from .audio_io import load_mono
from .config import AudioConfig, MarginUnit, load_config
from .errors import SingScoreError
from .scoring import ScoreSummary, Tier
from .session import Session, SongClock, TickResult
from .song import Song

logger = logging.getLogger("singscore")


class AudioInput:
    """Microphone capture that never blocks the audio callback.

    Blocks go through a bounded queue; when the main loop falls behind the
    oldest block is discarded and counted in ``overruns``.
    """

    def __init__(self, config: AudioConfig, device: Optional[str] = None, max_blocks: int = 32):
        self.overruns = 0
        self._queue: "queue.Queue[np.ndarray]" = queue.Queue(maxsize=max_blocks)
        self.stream = sd.InputStream(
            channels=config.channels,
            samplerate=config.sample_rate,
            blocksize=config.hop_size,
            device=_parse_device(device),
            dtype="float32",
            callback=self._callback,
        )

    def _callback(self, indata: np.ndarray, frames: int, time_info, status) -> None:
        if status:
            logger.debug("Input stream status: %s", status)
        mono = np.mean(indata, axis=1).astype(np.float32)
        while True:
            try:
                self._queue.put_nowait(mono)
                return
            except queue.Full:
                try:
                    self._queue.get_nowait()
                    self.overruns += 1
                except queue.Empty:
                    pass

    def drain(self):
        while True:
            try:
                yield self._queue.get_nowait()
            except queue.Empty:
                return

    def __enter__(self) -> "AudioInput":
        self.stream.start()
        return self

    def __exit__(self, *exc) -> None:
        self.stream.stop()
        self.stream.close()


def parse_args(argv=None) -> argparse.Namespace:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", type=Path, help="JSON file with 'audio' and 'scoring' sections")
    common.add_argument("--samplerate", type=int, help="Sample rate (Hz)")
    common.add_argument("--frame-size", type=int, help="Analysis window length in samples")
    common.add_argument("--hop-size", type=int, help="Samples between consecutive windows")
    common.add_argument("--low-freq", type=float, help="Lowest detectable pitch (Hz)")
    common.add_argument("--high-freq", type=float, help="Highest detectable pitch (Hz)")
    common.add_argument("--interval", type=float, help="Evaluation interval in seconds")
    common.add_argument("--margin-unit", choices=[u.value for u in MarginUnit], help="Unit of the scoring margins")
    common.add_argument("--perfect-margin", type=float, help="Largest error still scored Perfect")
    common.add_argument("--good-margin", type=float, help="Largest error still scored Good")
    common.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    parser = argparse.ArgumentParser(description="Live singing pitch scoring against a reference vocal")
    sub = parser.add_subparsers(dest="command", required=True)

    sing = sub.add_parser("sing", parents=[common], help="Sing along with a song from the microphone")
    sing.add_argument("--song", required=True, type=Path, help="Song folder (audio + reference.json)")
    sing.add_argument("--fullscreen", action="store_true", help="Fullscreen display")
    sing.add_argument("--headless", action="store_true", help="No display and no playback")
    sing.add_argument("--device", help="Audio input device (index or name)")
    sing.add_argument("--no-reference", action="store_true", help="Run without a reference track (no scoring)")

    build = sub.add_parser("build-reference", help="Precompute a reference pitch asset")
    precompute.add_arguments(build)

    score = sub.add_parser("score", parents=[common], help="Score a recorded take against a song")
    score.add_argument("--song", required=True, type=Path, help="Song folder (audio + reference.json)")
    score.add_argument("--take", required=True, type=Path, help="Recorded vocal take")

    return parser.parse_args(argv)


def load_configs(args: argparse.Namespace, sample_rate: Optional[int] = None):
    return load_config(
        args.config,
        audio_overrides={
            "sample_rate": sample_rate or args.samplerate,
            "frame_size": args.frame_size,
            "hop_size": args.hop_size,
            "low_frequency": args.low_freq,
            "high_frequency": args.high_freq,
        },
        scoring_overrides={
            "evaluation_interval_s": args.interval,
            "margin_unit": args.margin_unit,
            "perfect_margin": args.perfect_margin,
            "good_margin": args.good_margin,
        },
    )


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        if args.command == "build-reference":
            return precompute.run(args)
        if args.command == "score":
            return score_take(args)
        return sing(args)
    except (SingScoreError, FileNotFoundError) as exc:
        logger.error("%s", exc)
        return 1


def score_take(args: argparse.Namespace) -> int:
    song = Song.from_dir(args.song)
    samples, sample_rate = load_mono(args.take)
    audio_cfg, scoring_cfg = load_configs(args, sample_rate=sample_rate)
    session = Session(audio_cfg, scoring_cfg, song.reference, reference_offset_s=song.audio_offset_s)
    for result in session.feed(samples):
        _print_tick(result)
    _print_final(session.summary())
    return 0


def sing(args: argparse.Namespace) -> int:
    song = Song.from_dir(args.song, load_reference=not args.no_reference)
    audio_cfg, scoring_cfg = load_configs(args)
    session = Session(audio_cfg, scoring_cfg, song.reference, reference_offset_s=song.audio_offset_s)
    audio = AudioInput(audio_cfg, device=args.device)

    ui = None
    if not args.headless:
        from .ui import PygameUI
        import pygame

        ui = PygameUI(fullscreen=args.fullscreen)
        pygame.mixer.init(frequency=audio_cfg.sample_rate)
        pygame.mixer.music.load(str(song.audio_path))

    clock = SongClock(audio_cfg.sample_rate)
    last: Optional[TickResult] = None

    with audio:
        if ui:
            import pygame

            pygame.mixer.music.play()
        playback_started_at = time.perf_counter()
        logger.info("Session started: %s", song.title)

        running = True
        try:
            while running:
                song_time = _get_song_time(playback_started_at, ui)
                if song_time is not None:
                    clock.nudge(song_time)

                # The nudge alone can carry the clock past a boundary
                ticks = session.push_timed(np.empty(0, dtype=np.float32), clock)
                for block in audio.drain():
                    ticks.extend(session.push_timed(block, clock))
                for last in ticks:
                    if ui is None:
                        _print_tick(last)

                if ui:
                    running = ui.update(_build_ui_state(song, session, last))
                    import pygame

                    if not pygame.mixer.music.get_busy():
                        running = False
                else:
                    if song.reference is not None and clock.time_s > song.reference.duration_s + song.audio_offset_s:
                        running = False
                    time.sleep(0.01)
        except KeyboardInterrupt:
            logger.info("Session interrupted")

    if audio.overruns:
        logger.warning("Dropped %d input blocks while the pipeline was busy", audio.overruns)
    summary = session.summary()
    summary.overruns += audio.overruns
    _print_final(summary)
    if ui:
        ui.close()
    return 0


def _parse_device(device: Optional[str]):
    if device is None:
        return None
    return int(device) if device.isdigit() else device


def _get_song_time(start_time: Optional[float], ui) -> Optional[float]:
    if start_time is None:
        return None
    if ui is None:
        return time.perf_counter() - start_time
    import pygame

    pos_ms = pygame.mixer.music.get_pos()
    if pos_ms < 0:
        return None
    return pos_ms / 1000.0


def _build_ui_state(song: Song, session: Session, last: Optional[TickResult]):
    from .ui import UIState

    estimate = session.last_estimate
    return UIState(
        title=song.title,
        artist=song.artist,
        score=session.engine.score,
        tier=last.tier if last else None,
        detected_hz=estimate.hz if estimate else None,
        reference_hz=last.reference_hz if last else None,
        scoring_enabled=session.scoring_enabled,
    )


def _print_tick(result: TickResult) -> None:
    label = result.tier.label if result.tier else "-"
    detected = f"{result.detected_hz:7.1f}" if result.detected_hz else "     --"
    reference = f"{result.reference_hz:7.1f}" if result.reference_hz else "     --"
    print(f"{result.elapsed_s:7.1f}s  voice {detected} Hz  ref {reference} Hz  {label:9s} score {result.score}")


def _print_final(summary: ScoreSummary) -> None:
    print("")
    print("Final result:")
    print(f"  Score:    {summary.score} / {summary.max_score} ({summary.percent:05.1f}%)")
    print(f"  Perfect:  {summary.tiers.get(Tier.PERFECT, 0)}")
    print(f"  Good:     {summary.tiers.get(Tier.GOOD, 0)}")
    print(f"  Miss:     {summary.tiers.get(Tier.MISS, 0)}")
    if summary.overruns:
        print(f"  Overruns: {summary.overruns}")


if __name__ == "__main__":
    raise SystemExit(main())
