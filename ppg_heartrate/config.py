"""
Tunable constants of the heart-rate pipeline.

Two variants of the pipeline constants exist in the field: the default
(0.67 – 3.5 Hz passband, 40 – 200 BPM plausibility band) and a narrower
one (0.8 – 3.0 Hz, 45 – 180 BPM), available as :meth:`PipelineConfig.narrow`.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace


# Amplitudes at or below this are floating-point residue of a flat window.
NOISE_FLOOR = 1e-12


def round_bpm(value: float) -> int:
    """Round half up (``72.5 -> 73``); ``round()`` would give 72."""
    return int(math.floor(value + 0.5))


# ---------------------------------------------------------------------------
# Bands
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Passband:
    """Bandpass cutoffs in Hz (``low_hz`` feeds the high-pass stage)."""

    low_hz: float = 0.67
    high_hz: float = 3.5

    def __post_init__(self) -> None:
        if not (0.0 < self.low_hz < self.high_hz):
            raise ValueError(
                f"Passband requires 0 < low_hz < high_hz, got {self.low_hz}–{self.high_hz} Hz"
            )


@dataclass(frozen=True)
class PlausibilityBand:
    """Closed interval of physiologically valid BPM values."""

    min_bpm: int = 40
    max_bpm: int = 200

    def __post_init__(self) -> None:
        if not (0 < self.min_bpm < self.max_bpm):
            raise ValueError(
                f"PlausibilityBand requires 0 < min_bpm < max_bpm, got {self.min_bpm}–{self.max_bpm}"
            )

    def contains(self, bpm: float | None) -> bool:
        return bpm is not None and self.min_bpm <= bpm <= self.max_bpm

    @property
    def min_hz(self) -> float:
        return self.min_bpm / 60.0

    @property
    def max_hz(self) -> float:
        return self.max_bpm / 60.0


# ---------------------------------------------------------------------------
# Pipeline configuration
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PipelineConfig:
    """
    Every knob of the pipeline, injectable per call.

    Parameters
    ----------
    passband:
        Bandpass cutoffs applied before the estimators.
    band:
        Plausibility band enforced by every estimator and the combiner.
    median_window:
        Odd median-filter width used for spike suppression.
    smoothing_window:
        Odd weighted-moving-average width.
    min_peaks:
        Peaks required by the peak estimator.
    min_intervals:
        Valid inter-beat intervals required after trimming.
    iqr_min_intervals:
        Interval count from which IQR trimming is applied.
    iqr_factor:
        Fence multiplier for the IQR filter.
    peak_threshold_fraction:
        Peak threshold is ``mean + fraction * range``.
    peak_lookahead:
        Neighbours on each side a peak must strictly exceed.
    min_peak_spacing_s:
        Minimum time between accepted peaks.
    fft_min_samples:
        Samples required by the spectral estimator.
    ac_min_samples:
        Samples required by the autocorrelation estimator.
    ac_confidence_floor:
        Best normalised correlation must exceed this value.
    ac_subharmonic_ratio:
        Half the best lag replaces it when its correlation reaches this
        fraction of the best one.
    flat_tolerance:
        Windows whose peak-to-peak spread is at most this fraction of
        ``max(1, |mean|)`` are treated as flat.
    agreement_tolerance:
        Two estimates within this many BPM are considered to agree.
    """

    passband: Passband = field(default_factory=Passband)
    band: PlausibilityBand = field(default_factory=PlausibilityBand)

    median_window: int = 3
    smoothing_window: int = 5

    min_peaks: int = 3
    min_intervals: int = 2
    iqr_min_intervals: int = 5
    iqr_factor: float = 1.5
    peak_threshold_fraction: float = 0.3
    peak_lookahead: int = 2
    min_peak_spacing_s: float = 0.33

    fft_min_samples: int = 64
    ac_min_samples: int = 128
    ac_confidence_floor: float = 0.1
    ac_subharmonic_ratio: float = 0.9
    flat_tolerance: float = 1e-9

    agreement_tolerance: int = 10

    def __post_init__(self) -> None:
        for name in ("median_window", "smoothing_window"):
            width = getattr(self, name)
            if width < 1 or width % 2 == 0:
                raise ValueError(f"{name} must be a positive odd integer, got {width}")
        if self.fft_min_samples < 2 or self.fft_min_samples & (self.fft_min_samples - 1):
            raise ValueError(f"fft_min_samples must be a power of two, got {self.fft_min_samples}")
        if self.min_peaks < 2 or self.min_intervals < 1:
            raise ValueError("min_peaks must be >= 2 and min_intervals >= 1")
        if self.peak_lookahead < 1:
            raise ValueError(f"peak_lookahead must be >= 1, got {self.peak_lookahead}")
        if not (0.0 < self.ac_subharmonic_ratio <= 1.0):
            raise ValueError(f"ac_subharmonic_ratio must be in (0, 1], got {self.ac_subharmonic_ratio}")
        if self.flat_tolerance < 0:
            raise ValueError(f"flat_tolerance must be >= 0, got {self.flat_tolerance}")
        if self.agreement_tolerance < 0:
            raise ValueError(f"agreement_tolerance must be >= 0, got {self.agreement_tolerance}")

    @classmethod
    def narrow(cls) -> "PipelineConfig":
        """0.8 – 3.0 Hz passband and 45 – 180 BPM band."""
        return cls(
            passband=Passband(low_hz=0.8, high_hz=3.0),
            band=PlausibilityBand(min_bpm=45, max_bpm=180),
        )

    def with_band(self, min_bpm: int, max_bpm: int) -> "PipelineConfig":
        return replace(self, band=PlausibilityBand(min_bpm=min_bpm, max_bpm=max_bpm))


DEFAULT_CONFIG = PipelineConfig()
