"""
Peak-interval heart-rate estimator.

Local maxima above an adaptive threshold are taken as beats; the median
inter-beat interval gives the rate.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

import numpy as np

from ppg_heartrate.config import DEFAULT_CONFIG, NOISE_FLOOR, PipelineConfig, round_bpm

logger = logging.getLogger(__name__)


def find_peaks(
    signal: Sequence[float],
    min_distance: int = 1,
    threshold_fraction: float = 0.3,
    lookahead: int = 2,
) -> List[int]:
    """
    Return indices of beats in *signal*.

    A sample is a peak when it exceeds ``mean + threshold_fraction · range``
    and is strictly greater than the *lookahead* samples on each side.  When
    a peak follows the last accepted one by fewer than *min_distance*
    samples, it replaces that peak if higher and is dropped otherwise.
    """
    x = np.asarray(signal, dtype=np.float64)
    n = x.size
    if n < 2 * lookahead + 1:
        return []

    value_range = float(np.max(x) - np.min(x))
    if not np.isfinite(value_range) or value_range <= NOISE_FLOOR:
        return []
    threshold = float(np.mean(x)) + threshold_fraction * value_range

    peaks: List[int] = []
    for i in range(lookahead, n - lookahead):
        v = x[i]
        if v <= threshold:
            continue
        neighbours = np.concatenate((x[i - lookahead:i], x[i + 1:i + 1 + lookahead]))
        if not np.all(v > neighbours):
            continue
        if not peaks or i - peaks[-1] >= min_distance:
            peaks.append(i)
        elif v > x[peaks[-1]]:
            peaks[-1] = i
    return peaks


def iqr_filter(values: Sequence[float], factor: float = 1.5) -> np.ndarray:
    """Keep values within ``[Q1 - factor·IQR, Q3 + factor·IQR]``."""
    v = np.asarray(values, dtype=np.float64)
    if v.size == 0:
        return v
    q1, q3 = np.percentile(v, [25, 75])
    iqr = q3 - q1
    mask = (v >= q1 - factor * iqr) & (v <= q3 + factor * iqr)
    return v[mask]


def bpm_from_peak_indices(
    peaks: Sequence[int],
    sample_rate: float,
    config: PipelineConfig = DEFAULT_CONFIG,
) -> Optional[int]:
    """
    Median-interval BPM from beat indices.

    Intervals implying a rate outside ``config.band`` are discarded, the rest are
    IQR-trimmed once enough of them remain.  Returns ``None`` when too few
    peaks or intervals survive.
    """
    band = config.band
    if len(peaks) < config.min_peaks:
        logger.debug("peaks: %d peaks, need %d", len(peaks), config.min_peaks)
        return None

    intervals = np.diff(np.asarray(peaks, dtype=np.float64)) / sample_rate
    intervals = intervals[intervals > 0]
    implied = 60.0 / intervals
    intervals = intervals[(implied >= band.min_bpm) & (implied <= band.max_bpm)]

    if intervals.size >= config.iqr_min_intervals:
        intervals = iqr_filter(intervals, config.iqr_factor)

    if intervals.size < config.min_intervals:
        logger.debug("peaks: %d valid intervals, need %d", intervals.size, config.min_intervals)
        return None

    bpm = round_bpm(60.0 / float(np.median(intervals)))
    return bpm if band.contains(bpm) else None


def estimate_from_peaks(
    filtered: Sequence[float],
    sample_rate: float,
    config: PipelineConfig = DEFAULT_CONFIG,
) -> Optional[int]:
    """BPM from beat-to-beat intervals of the bandpassed signal."""
    min_distance = max(int(sample_rate * config.min_peak_spacing_s), 1)
    peaks = find_peaks(
        filtered,
        min_distance=min_distance,
        threshold_fraction=config.peak_threshold_fraction,
        lookahead=config.peak_lookahead,
    )
    return bpm_from_peak_indices(peaks, sample_rate, config=config)
