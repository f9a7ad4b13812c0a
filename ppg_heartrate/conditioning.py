"""
Signal conditioning applied to the raw brightness series.

1. DC removal (subtract the window mean).
2. Median filter to knock out single-sample motion spikes while keeping
   pulse edges sharp.
3. Weighted moving average with a small centre-weighted kernel.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np
from scipy.ndimage import median_filter as _nd_median_filter
from scipy.signal.windows import gaussian

# Kernel for the default 5-sample smoother.
DEFAULT_KERNEL = np.array([0.1, 0.2, 0.4, 0.2, 0.1])


def remove_dc(signal: Sequence[float]) -> np.ndarray:
    """Return *signal* minus its arithmetic mean."""
    x = np.asarray(signal, dtype=np.float64)
    if x.size == 0:
        return x.copy()
    return x - np.mean(x)


def median_filter(signal: Sequence[float], window: int = 3) -> np.ndarray:
    """
    Centered running median.

    Window indices are clamped at the buffer edges, i.e. the edge sample is
    replicated.  Buffers no longer than *window* are returned unchanged.
    """
    x = np.asarray(signal, dtype=np.float64)
    if window <= 1 or x.size <= window:
        return x.copy()
    return _nd_median_filter(x, size=window, mode="nearest")


def smoothing_kernel(window: int) -> np.ndarray:
    """Symmetric, centre-weighted kernel summing to 1."""
    if window == 5:
        return DEFAULT_KERNEL.copy()
    if window <= 1:
        return np.ones(1)
    kernel = gaussian(window, std=window / 4.0)
    return kernel / kernel.sum()


def smooth(signal: Sequence[float], window: int = 5) -> np.ndarray:
    """
    Weighted moving average.

    Near the edges only part of the kernel overlaps the buffer; those
    samples are divided by the overlapping weight so every output is a
    proper weighted mean.
    """
    x = np.asarray(signal, dtype=np.float64)
    if window <= 1 or x.size <= window:
        return x.copy()
    kernel = smoothing_kernel(window)
    weighted = np.convolve(x, kernel, mode="same")
    coverage = np.convolve(np.ones_like(x), kernel, mode="same")
    return weighted / coverage


def normalize(signal: Sequence[float]) -> np.ndarray:
    """Scale to the 0 – 1 range.  Flat input is returned unchanged."""
    x = np.asarray(signal, dtype=np.float64)
    if x.size == 0:
        return x.copy()
    lo, hi = float(np.min(x)), float(np.max(x))
    if hi - lo <= 0:
        return x.copy()
    return (x - lo) / (hi - lo)


def condition(
    raw: Sequence[float],
    median_window: int = 3,
    smoothing_window: int = 5,
) -> np.ndarray:
    """
    DC removal, median filter, then smoothing.

    Same length as *raw*; windows too short to filter are returned unchanged.
    """
    x = np.asarray(raw, dtype=np.float64)
    if x.size <= max(median_window, smoothing_window):
        return x.copy()
    x = remove_dc(x)
    x = median_filter(x, median_window)
    return smooth(x, smoothing_window)
