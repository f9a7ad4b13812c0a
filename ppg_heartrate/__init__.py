"""
PPG heart-rate estimation.

Turns a camera-derived brightness series (mean red channel per frame, with
the finger covering lens and torch) into a beats-per-minute estimate.
Three independent estimators (peak intervals, FFT, autocorrelation) run on
a bandpass-filtered signal and a consensus step merges them.
"""

from ppg_heartrate.config import Passband, PipelineConfig, PlausibilityBand
from ppg_heartrate.pipeline import PipelineResult, analyze, estimate_bpm

__all__ = [
    "Passband",
    "PipelineConfig",
    "PipelineResult",
    "PlausibilityBand",
    "analyze",
    "estimate_bpm",
]

__version__ = "0.1.0"
__author__ = "ppg_heartrate"
