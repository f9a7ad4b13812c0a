"""
FFT heart-rate estimator.

The signal is truncated (never zero-padded) to the largest power-of-two
length and the strongest magnitude bin inside the plausibility band gives
the rate.
"""

from __future__ import annotations

import logging
import math
from typing import Optional, Sequence, Tuple

import numpy as np

from ppg_heartrate.config import DEFAULT_CONFIG, NOISE_FLOOR, PipelineConfig, round_bpm

logger = logging.getLogger(__name__)


def _power_of_two_prefix(filtered: Sequence[float], min_samples: int) -> Optional[np.ndarray]:
    x = np.asarray(filtered, dtype=np.float64)
    if x.size < min_samples:
        return None
    n = 1 << int(math.floor(math.log2(x.size)))
    return x[:n]


def _band_bins(n: int, sample_rate: float, config: PipelineConfig) -> Tuple[int, int]:
    """Inclusive bin range covering the band; excludes DC and Nyquist."""
    resolution = sample_rate / n
    min_bin = max(1, int(math.ceil(config.band.min_hz / resolution)))
    max_bin = min(n // 2 - 1, int(math.floor(config.band.max_hz / resolution)))
    return min_bin, max_bin


def estimate_from_fft(
    filtered: Sequence[float],
    sample_rate: float,
    config: PipelineConfig = DEFAULT_CONFIG,
) -> Optional[int]:
    """
    Return the dominant in-band frequency as BPM, or ``None``.

    ``None`` is returned when fewer than ``config.fft_min_samples`` samples
    are available, when the sample rate leaves no bin inside the band, or
    when the in-band spectrum carries no energy.
    """
    x = _power_of_two_prefix(filtered, config.fft_min_samples)
    if x is None:
        logger.debug("fft: fewer than %d samples", config.fft_min_samples)
        return None

    n = x.size
    min_bin, max_bin = _band_bins(n, sample_rate, config)
    if max_bin < min_bin:
        logger.debug("fft: empty bin range at %.2f Hz", sample_rate)
        return None

    magnitudes = np.abs(np.fft.rfft(x))
    in_band = magnitudes[min_bin:max_bin + 1]
    # A unit-amplitude sine peaks at n / 2 in the magnitude spectrum
    if not np.all(np.isfinite(in_band)) or float(np.max(in_band)) <= NOISE_FLOOR * n:
        logger.debug("fft: no in-band energy")
        return None

    peak_bin = min_bin + int(np.argmax(in_band))
    if peak_bin == 0:
        return None

    bpm = round_bpm(peak_bin * (sample_rate / n) * 60.0)
    return bpm if config.band.contains(bpm) else None


def magnitude_spectrum(
    filtered: Sequence[float],
    sample_rate: float,
    config: PipelineConfig = DEFAULT_CONFIG,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Return ``(freqs_bpm, magnitudes)`` restricted to the plausibility band
    (for plotting).  Empty arrays if there is insufficient data.
    """
    x = _power_of_two_prefix(filtered, config.fft_min_samples)
    if x is None:
        return np.array([]), np.array([])

    freqs_bpm = np.fft.rfftfreq(x.size, d=1.0 / sample_rate) * 60.0
    magnitudes = np.abs(np.fft.rfft(x))
    band_mask = (freqs_bpm >= config.band.min_bpm) & (freqs_bpm <= config.band.max_bpm)
    return freqs_bpm[band_mask], magnitudes[band_mask]
