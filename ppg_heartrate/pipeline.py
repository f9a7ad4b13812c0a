"""
End-to-end heart-rate pipeline.

    raw samples -> condition -> bandpass -> {peaks, FFT, autocorrelation} -> combine

Every stage is a pure function of its inputs; calling :func:`estimate_bpm`
twice with the same arguments gives the same answer and the caller's
buffer is never modified.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Optional, Sequence

import numpy as np

from ppg_heartrate.autocorrelation import estimate_from_autocorrelation
from ppg_heartrate.conditioning import condition
from ppg_heartrate.config import DEFAULT_CONFIG, PipelineConfig
from ppg_heartrate.consensus import combine
from ppg_heartrate.filters import bandpass
from ppg_heartrate.peaks import estimate_from_peaks
from ppg_heartrate.spectral import estimate_from_fft

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    """Intermediate signals and per-method estimates of one evaluation."""

    bpm: Optional[int] = None
    peak_bpm: Optional[int] = None
    fft_bpm: Optional[int] = None
    ac_bpm: Optional[int] = None
    conditioned: np.ndarray = field(default_factory=lambda: np.array([]))
    filtered: np.ndarray = field(default_factory=lambda: np.array([]))

    @property
    def present(self) -> bool:
        return self.bpm is not None


def _usable(samples: np.ndarray, sample_rate: float, config: PipelineConfig) -> bool:
    if samples.size == 0:
        logger.debug("pipeline: empty buffer")
        return False
    try:
        rate = float(sample_rate)
    except (TypeError, ValueError):
        rate = math.nan
    if not (math.isfinite(rate) and rate > 0):
        logger.debug("pipeline: invalid sample rate %r", sample_rate)
        return False
    if not np.all(np.isfinite(samples)):
        logger.debug("pipeline: non-finite samples in buffer")
        return False
    spread = float(np.ptp(samples))
    if spread <= config.flat_tolerance * max(1.0, abs(float(np.mean(samples)))):
        logger.debug("pipeline: flat window (spread %.3g)", spread)
        return False
    return True


def analyze(
    samples: Sequence[float],
    sample_rate: float,
    config: PipelineConfig | None = None,
) -> PipelineResult:
    """
    Run the full pipeline and keep the intermediates.

    Parameters
    ----------
    samples:
        Brightness samples in time order.
    sample_rate:
        Measured sample rate in Hz.
    config:
        Pipeline constants; :data:`~ppg_heartrate.config.DEFAULT_CONFIG` if omitted.
    """
    config = config or DEFAULT_CONFIG
    x = np.array(samples, dtype=np.float64).ravel()
    if not _usable(x, sample_rate, config):
        return PipelineResult()
    sample_rate = float(sample_rate)

    conditioned = condition(x, config.median_window, config.smoothing_window)
    filtered = bandpass(conditioned, sample_rate, config.passband)

    peak_bpm = estimate_from_peaks(filtered, sample_rate, config)
    fft_bpm = estimate_from_fft(filtered, sample_rate, config)
    ac_bpm = estimate_from_autocorrelation(filtered, sample_rate, config)
    bpm = combine(peak_bpm, fft_bpm, ac_bpm, config)

    logger.debug(
        "pipeline: n=%d fs=%.2f peak=%s fft=%s ac=%s -> %s",
        x.size, sample_rate, peak_bpm, fft_bpm, ac_bpm, bpm,
    )
    return PipelineResult(
        bpm=bpm,
        peak_bpm=peak_bpm,
        fft_bpm=fft_bpm,
        ac_bpm=ac_bpm,
        conditioned=conditioned,
        filtered=filtered,
    )


def estimate_bpm(
    samples: Sequence[float],
    sample_rate: float,
    config: PipelineConfig | None = None,
) -> Optional[int]:
    """Return the consensus BPM for *samples*, or ``None`` when there is no reliable estimate."""
    return analyze(samples, sample_rate, config).bpm
