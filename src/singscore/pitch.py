from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Tuple, Union

import numpy as np

from .buffer import AnalysisWindow
from .config import AudioConfig
from .dsp import min_frame_size, rms

# Earliest peak within this fraction of the strongest one wins, so a lag at
# two or three periods never beats the true period.
PEAK_PICK_RATIO = 0.9
MIN_LAG = 2
# Correlation points per period of the highest in-band pitch. Parabolic
# refinement on coarser sampling is biased by several cents.
POINTS_PER_PERIOD = 32


@dataclass
class PitchEstimate:
    hz: Optional[float]
    confidence: float
    sample_rate: int
    window_start: Optional[int] = None

    @property
    def voiced(self) -> bool:
        return self.hz is not None


def extract_pitch(
    window: Union[AnalysisWindow, np.ndarray],
    sample_rate: int,
    low_frequency: float,
    high_frequency: float,
    corr_threshold: float = 0.3,
    silence_rms: float = 0.01,
) -> PitchEstimate:
    """Estimate the fundamental frequency of one analysis window.

    Autocorrelation of the Hann-tapered window, divided by the taper's own
    autocorrelation, searched up to the lag of 1/low seconds and refined by
    parabolic interpolation. When the highest in-band period spans only a few
    samples the correlation is evaluated on a finer lag grid first. Silence,
    weak periodicity and out-of-band results come back as ``hz=None``.
    """
    if sample_rate <= 0:
        raise ValueError(f"sample_rate must be positive, got {sample_rate}")
    if low_frequency <= 0 or low_frequency >= high_frequency:
        raise ValueError(f"invalid frequency band [{low_frequency}, {high_frequency}]")

    window_start = window.start if isinstance(window, AnalysisWindow) else None
    frame = window.samples if isinstance(window, AnalysisWindow) else np.asarray(window)
    no_pitch = PitchEstimate(None, 0.0, sample_rate, window_start)

    if frame.size == 0:
        return no_pitch
    x = frame.astype(np.float64)
    if not np.all(np.isfinite(x)):
        raise ValueError("window contains non-finite samples")

    max_lag = int(math.ceil(sample_rate / low_frequency))
    if len(x) < min_frame_size(sample_rate, low_frequency):
        return no_pitch

    taper = np.hanning(len(x))
    # Taper-weighted mean: a plain mean over a fractional number of periods
    # leaves an offset in the tapered frame that shifts the peak.
    x = x - np.sum(taper * x) / np.sum(taper)
    if rms(x) < silence_rms:
        return no_pitch

    upsample = _upsample_factor(sample_rate, high_frequency)
    corr = _normalized_autocorrelation(x, taper, max_lag + 2, upsample)
    if corr is None:
        return no_pitch

    # Peaks above the band are searched too, so a pitch higher than
    # high_frequency is rejected instead of reported as a subharmonic.
    peak = _pick_peak(corr, MIN_LAG * upsample, max_lag * upsample)
    if peak is None:
        return no_pitch
    position, confidence = peak
    if confidence < corr_threshold:
        return PitchEstimate(None, confidence, sample_rate, window_start)

    hz = sample_rate * upsample / position
    if not low_frequency <= hz <= high_frequency:
        return PitchEstimate(None, confidence, sample_rate, window_start)
    return PitchEstimate(hz, confidence, sample_rate, window_start)


class PitchExtractor:
    def __init__(
        self,
        sample_rate: int,
        low_frequency: float,
        high_frequency: float,
        corr_threshold: float = 0.3,
        silence_rms: float = 0.01,
    ):
        if sample_rate <= 0:
            raise ValueError(f"sample_rate must be positive, got {sample_rate}")
        if low_frequency <= 0 or low_frequency >= high_frequency:
            raise ValueError(f"invalid frequency band [{low_frequency}, {high_frequency}]")
        self.sample_rate = sample_rate
        self.low_frequency = low_frequency
        self.high_frequency = high_frequency
        self.corr_threshold = corr_threshold
        self.silence_rms = silence_rms

    @classmethod
    def from_config(cls, config: AudioConfig) -> "PitchExtractor":
        return cls(
            sample_rate=config.sample_rate,
            low_frequency=config.low_frequency,
            high_frequency=config.high_frequency,
            corr_threshold=config.corr_threshold,
            silence_rms=config.silence_rms,
        )

    def extract(self, window: Union[AnalysisWindow, np.ndarray]) -> PitchEstimate:
        return extract_pitch(
            window,
            self.sample_rate,
            self.low_frequency,
            self.high_frequency,
            corr_threshold=self.corr_threshold,
            silence_rms=self.silence_rms,
        )


def _upsample_factor(sample_rate: int, high_frequency: float) -> int:
    return max(1, int(math.ceil(POINTS_PER_PERIOD * high_frequency / sample_rate)))


def _normalized_autocorrelation(
    x: np.ndarray, taper: np.ndarray, n_lags: int, upsample: int = 1
) -> Optional[np.ndarray]:
    """Taper-compensated autocorrelation at lags 0, 1/upsample, 2/upsample, ... samples.

    The finer grid comes from zero-padding the power spectrum, which
    interpolates the correlation without adding anything to it.
    """
    n_fft = 1 << int(math.ceil(math.log2(2 * len(x))))
    n_out = n_fft * upsample

    signal_power = np.abs(np.fft.rfft(x * taper, n_fft)) ** 2
    taper_power = np.abs(np.fft.rfft(taper, n_fft)) ** 2
    if upsample > 1:
        # The old Nyquist bin becomes an ordinary bin, counted twice.
        signal_power[-1] *= 0.5
        taper_power[-1] *= 0.5

    signal_corr = np.fft.irfft(signal_power, n_out)[: n_lags * upsample]
    taper_corr = np.fft.irfft(taper_power, n_out)[: n_lags * upsample]
    if signal_corr[0] <= 1e-12:
        return None

    return (signal_corr / signal_corr[0]) / (taper_corr / taper_corr[0])


def _pick_peak(corr: np.ndarray, min_lag: int, max_lag: int) -> Optional[Tuple[float, float]]:
    """Earliest local peak within PEAK_PICK_RATIO of the strongest, as (lag, height).

    Both come from the parabola through each peak and its neighbours, so the
    comparison uses the true heights rather than whichever samples happen to
    straddle the peak.
    """
    lags = np.arange(max(min_lag, 1), min(max_lag, len(corr) - 2) + 1)
    if lags.size == 0:
        return None
    is_peak = (corr[lags] > corr[lags - 1]) & (corr[lags] >= corr[lags + 1])
    peaks = lags[is_peak]
    if peaks.size == 0:
        return None

    y0, y1, y2 = corr[peaks - 1], corr[peaks], corr[peaks + 1]
    denom = y0 - 2.0 * y1 + y2
    curved = np.abs(denom) > 1e-12
    offsets = np.where(curved, 0.5 * (y0 - y2) / np.where(curved, denom, 1.0), 0.0)
    heights = y1 - 0.25 * (y0 - y2) * offsets

    best = float(np.max(heights))
    cutoff = PEAK_PICK_RATIO * best if best > 0 else best
    i = int(np.argmax(heights >= cutoff))
    return float(peaks[i] + offsets[i]), float(heights[i])
