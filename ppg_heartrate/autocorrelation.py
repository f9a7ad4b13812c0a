"""
Autocorrelation heart-rate estimator.

The signal is standardised and correlated with delayed copies of itself
over the lag range that maps onto the plausibility band.  The best lag is
refined to sub-sample precision with a parabola through its neighbours.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence, Tuple

import numpy as np
from scipy.signal import correlate

from ppg_heartrate.config import DEFAULT_CONFIG, NOISE_FLOOR, PipelineConfig, round_bpm

logger = logging.getLogger(__name__)

# Parabolic refinement is skipped below this curvature.
_MIN_CURVATURE = 1e-12


def lag_range(n: int, sample_rate: float, config: PipelineConfig = DEFAULT_CONFIG) -> Tuple[int, int]:
    """``(min_lag, max_lag)`` in samples for a window of *n* samples."""
    min_lag = max(1, round_bpm(sample_rate * 60.0 / config.band.max_bpm))
    max_lag = min(round_bpm(sample_rate * 60.0 / config.band.min_bpm), n // 2)
    return min_lag, max_lag


def autocorrelation(x: np.ndarray) -> np.ndarray:
    """
    Biased autocorrelation ``r[k] = (1/N)·Σ x[i]·x[i+k]`` for ``k >= 0``.

    *x* is expected to be standardised already, so ``r[0]`` is close to 1.
    """
    n = x.size
    full = correlate(x, x, mode="full", method="auto")
    return full[n - 1:] / n


def parabolic_offset(prev: float, curr: float, nxt: float) -> float:
    """Vertex offset of the parabola through three equally spaced points, in ``[-1, 1]``."""
    denominator = prev - 2.0 * curr + nxt
    if abs(denominator) < _MIN_CURVATURE:
        return 0.0
    offset = 0.5 * (prev - nxt) / denominator
    return float(np.clip(offset, -1.0, 1.0))


def fundamental_lag(corr: np.ndarray, best_lag: int, min_lag: int, ratio: float) -> int:
    """
    Step down from *best_lag* to its half while the half correlates nearly as well.

    When the period falls between two integer lags, a multiple of the period
    can land closer to an integer and outscore the period itself.
    """
    lag = best_lag
    while True:
        lo = max(min_lag, lag // 2)
        hi = -(-lag // 2)
        if hi < min_lag or hi >= lag:
            return lag
        candidate = lo + int(np.argmax(corr[lo:hi + 1]))
        if corr[candidate] < ratio * corr[lag]:
            return lag
        lag = candidate


def estimate_from_autocorrelation(
    filtered: Sequence[float],
    sample_rate: float,
    config: PipelineConfig = DEFAULT_CONFIG,
) -> Optional[int]:
    """Return BPM from the strongest in-band autocorrelation lag, or ``None``."""
    x = np.asarray(filtered, dtype=np.float64)
    n = x.size
    if n < config.ac_min_samples:
        logger.debug("autocorrelation: %d samples, need %d", n, config.ac_min_samples)
        return None

    x = x - np.mean(x)
    std = float(np.std(x, ddof=1))
    if not np.isfinite(std) or std <= NOISE_FLOOR:
        logger.debug("autocorrelation: zero or non-finite variance")
        return None
    x = x / std

    min_lag, max_lag = lag_range(n, sample_rate, config)
    if max_lag <= min_lag:
        logger.debug("autocorrelation: degenerate lag range %d..%d", min_lag, max_lag)
        return None

    corr = autocorrelation(x)
    window = corr[min_lag:max_lag + 1]
    best_lag = min_lag + int(np.argmax(window))
    best = float(corr[best_lag])
    if best <= config.ac_confidence_floor:
        logger.debug("autocorrelation: peak %.3f below floor %.2f", best, config.ac_confidence_floor)
        return None
    best_lag = fundamental_lag(corr, best_lag, min_lag, config.ac_subharmonic_ratio)
    best = float(corr[best_lag])

    # max_lag <= n // 2, so both neighbours always exist
    offset = parabolic_offset(float(corr[best_lag - 1]), best, float(corr[best_lag + 1]))
    refined_lag = best_lag + offset
    if refined_lag <= 0:
        return None

    bpm = round_bpm(60.0 * sample_rate / refined_lag)
    if not config.band.contains(bpm):
        logger.debug("autocorrelation: %d BPM outside band", bpm)
        return None
    return bpm
