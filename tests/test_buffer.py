import numpy as np
import pytest

from singscore.buffer import FrameBuffer


def _take_all(buffer):
    windows = []
    window = buffer.try_take_window()
    while window is not None:
        windows.append(window)
        window = buffer.try_take_window()
    return windows


def test_not_ready_until_a_full_frame_is_buffered():
    buffer = FrameBuffer(frame_size=8, hop_size=2)
    for value in range(7):
        buffer.push(float(value))
        assert buffer.try_take_window() is None
    buffer.push(7.0)
    window = buffer.try_take_window()
    assert window is not None
    assert window.start == 0
    np.testing.assert_array_equal(window.samples, np.arange(8, dtype=np.float32))


def test_cursor_advances_by_hop_not_frame():
    buffer = FrameBuffer(frame_size=8, hop_size=2)
    buffer.extend(np.arange(8, dtype=np.float32))
    assert buffer.try_take_window() is not None
    assert buffer.try_take_window() is None

    buffer.extend(np.array([8.0, 9.0]))
    window = buffer.try_take_window()
    assert window.start == 2
    np.testing.assert_array_equal(window.samples, np.arange(2, 10, dtype=np.float32))
    assert buffer.try_take_window() is None


def test_consecutive_windows_overlap_by_three_quarters():
    frame_size, hop_size = 2048, 512
    buffer = FrameBuffer(frame_size, hop_size)
    stream = np.random.default_rng(0).uniform(-1, 1, 10_000).astype(np.float32)
    windows = []
    for offset in range(0, len(stream), 300):
        buffer.extend(stream[offset : offset + 300])
        windows.extend(_take_all(buffer))

    assert len(windows) == (len(stream) - frame_size) // hop_size + 1
    overlap = frame_size - hop_size
    for previous, current in zip(windows, windows[1:]):
        assert current.start - previous.start == hop_size
        np.testing.assert_array_equal(previous.samples[hop_size:], current.samples[:overlap])
    for window in windows:
        np.testing.assert_array_equal(window.samples, stream[window.start : window.start + frame_size])


def test_windows_are_read_only():
    buffer = FrameBuffer(frame_size=4, hop_size=4)
    buffer.extend(np.ones(4))
    window = buffer.try_take_window()
    with pytest.raises(ValueError):
        window.samples[0] = 2.0


def test_overrun_drops_oldest_and_is_counted():
    buffer = FrameBuffer(frame_size=8, hop_size=4, capacity=16)
    buffer.extend(np.arange(20, dtype=np.float32))

    assert buffer.overruns == 1
    assert buffer.samples_written == 20
    window = buffer.try_take_window()
    assert window.start == 4
    np.testing.assert_array_equal(window.samples, np.arange(4, 12, dtype=np.float32))


def test_overrun_keeps_latest_samples_intact():
    buffer = FrameBuffer(frame_size=8, hop_size=2, capacity=10)
    buffer.extend(np.arange(100, dtype=np.float32))
    assert buffer.overruns > 0
    windows = _take_all(buffer)
    assert windows
    for window in windows:
        np.testing.assert_array_equal(window.samples, np.arange(window.start, window.start + 8, dtype=np.float32))


@pytest.mark.parametrize(
    "frame_size,hop_size,capacity",
    [(0, 1, None), (8, 0, None), (8, 9, None), (8, 4, 10)],
)
def test_invalid_geometry_is_rejected(frame_size, hop_size, capacity):
    with pytest.raises(ValueError):
        FrameBuffer(frame_size, hop_size, capacity)
