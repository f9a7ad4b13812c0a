"""
Bandpass stage: two cascaded single-pole RC filters.

Low-pass (cutoff ``fc``, ``dt = 1 / fs``, ``rc = 1 / (2π·fc)``)::

    alpha = dt / (rc + dt)
    y[i]  = y[i-1] + alpha · (x[i] - y[i-1]),   y[0] = x[0]

High-pass::

    alpha = rc / (rc + dt)
    y[i]  = alpha · (y[i-1] + x[i] - x[i-1]),   y[0] = x[0]

Both recurrences are run through :func:`scipy.signal.lfilter`, seeded with
the filter state that reproduces ``y[0] = x[0]``.
"""

from __future__ import annotations

import logging
import math
from typing import Sequence

import numpy as np
from scipy.signal import lfilter

from ppg_heartrate.config import Passband

logger = logging.getLogger(__name__)

# At or below this many samples the filters are returned as a pass-through.
MIN_FILTER_SAMPLES = 10


def _rc_terms(cutoff_hz: float, sample_rate: float) -> tuple[float, float]:
    rc = 1.0 / (2.0 * math.pi * cutoff_hz)
    dt = 1.0 / sample_rate
    return rc, dt


def low_pass(signal: Sequence[float], cutoff_hz: float, sample_rate: float) -> np.ndarray:
    """Single-pole RC low-pass filter."""
    x = np.asarray(signal, dtype=np.float64)
    if x.size < 2:
        return x.copy()
    rc, dt = _rc_terms(cutoff_hz, sample_rate)
    alpha = dt / (rc + dt)

    # y[n] = alpha·x[n] + (1 - alpha)·y[n-1]; state after n=0 is (1 - alpha)·x[0]
    b = [alpha]
    a = [1.0, -(1.0 - alpha)]
    zi = np.array([(1.0 - alpha) * x[0]])
    tail, _ = lfilter(b, a, x[1:], zi=zi)
    return np.concatenate(([x[0]], tail))


def high_pass(signal: Sequence[float], cutoff_hz: float, sample_rate: float) -> np.ndarray:
    """Single-pole RC high-pass filter."""
    x = np.asarray(signal, dtype=np.float64)
    if x.size < 2:
        return x.copy()
    rc, dt = _rc_terms(cutoff_hz, sample_rate)
    alpha = rc / (rc + dt)

    # y[n] = alpha·x[n] - alpha·x[n-1] + alpha·y[n-1]; with y[0] = x[0] the
    # state after n=0 is alpha·(y[0] - x[0]) = 0
    b = [alpha, -alpha]
    a = [1.0, -alpha]
    zi = np.zeros(1)
    tail, _ = lfilter(b, a, x[1:], zi=zi)
    return np.concatenate(([x[0]], tail))


def bandpass(
    signal: Sequence[float],
    sample_rate: float,
    passband: Passband | None = None,
) -> np.ndarray:
    """
    Isolate the heart-rate band.

    Parameters
    ----------
    signal:
        Conditioned PPG samples.
    sample_rate:
        Measured sample rate in Hz.
    passband:
        Cutoffs; defaults to 0.67 – 3.5 Hz.

    Returns
    -------
    numpy.ndarray
        Same length as *signal*.  Windows of ``MIN_FILTER_SAMPLES`` or fewer
        are returned unfiltered.
    """
    passband = passband or Passband()
    x = np.asarray(signal, dtype=np.float64)
    if x.size <= MIN_FILTER_SAMPLES:
        logger.debug("bandpass: %d samples, returning unfiltered", x.size)
        return x.copy()

    centered = x - np.mean(x)
    low_passed = low_pass(centered, passband.high_hz, sample_rate)
    return high_pass(low_passed, passband.low_hz, sample_rate)
