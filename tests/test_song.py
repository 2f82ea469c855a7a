import json

import numpy as np
import pytest
import soundfile as sf

from conftest import sine
from singscore.audio_io import load_mono
from singscore.errors import ReferenceAssetError
from singscore.reference import ReferenceTrack
from singscore.song import Song


@pytest.fixture
def song_dir(tmp_path):
    root = tmp_path / "my_song"
    root.mkdir()
    (root / "audio.wav").write_bytes(b"")
    ReferenceTrack([220.0, 0.0, 330.0], hop_s=0.25).save(root / "reference.json")
    (root / "meta.json").write_text(
        json.dumps({"title": "Test Song", "artist": "Someone", "audio_offset_s": 0.5}), encoding="utf-8"
    )
    return root


def test_song_from_dir(song_dir):
    song = Song.from_dir(song_dir)
    assert song.title == "Test Song"
    assert song.artist == "Someone"
    assert song.audio_offset_s == 0.5
    assert song.audio_path == song_dir / "audio.wav"
    assert song.reference.at(0.5) == pytest.approx(330.0)


def test_song_without_meta_uses_folder_name(song_dir):
    (song_dir / "meta.json").unlink()
    song = Song.from_dir(song_dir)
    assert song.title == "my_song"
    assert song.artist is None


def test_missing_reference_is_fatal_unless_degraded(song_dir):
    (song_dir / "reference.json").unlink()
    with pytest.raises(ReferenceAssetError):
        Song.from_dir(song_dir)
    assert Song.from_dir(song_dir, load_reference=False).reference is None


@pytest.mark.parametrize("content", ["{not json", "[1, 2]", json.dumps({"audio_offset_s": "soon"})])
def test_malformed_meta_is_reported(song_dir, content):
    (song_dir / "meta.json").write_text(content, encoding="utf-8")
    with pytest.raises(ReferenceAssetError, match="meta.json"):
        Song.from_dir(song_dir)


def test_missing_audio_is_an_error(song_dir):
    (song_dir / "audio.wav").unlink()
    with pytest.raises(FileNotFoundError):
        Song.from_dir(song_dir)


def test_load_mono_downmixes(tmp_path):
    left = sine(220.0, 4410, 22050)
    stereo = np.stack([left, np.zeros_like(left)], axis=1)
    path = tmp_path / "take.wav"
    sf.write(str(path), stereo, 22050, subtype="FLOAT")

    samples, sample_rate = load_mono(path)
    assert sample_rate == 22050
    assert samples.dtype == np.float32
    np.testing.assert_allclose(samples, left / 2, atol=1e-6)


def test_load_mono_reports_unreadable_audio(tmp_path):
    path = tmp_path / "broken.wav"
    path.write_bytes(b"definitely not audio")
    with pytest.raises(ReferenceAssetError):
        load_mono(path)
    with pytest.raises(ReferenceAssetError):
        load_mono(tmp_path / "missing.wav")
