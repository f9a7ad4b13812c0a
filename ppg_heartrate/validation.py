"""
Statistics over a series of per-cycle BPM readings.

A measurement session yields one pipeline estimate per evaluation cycle.
These helpers turn that series into a single reported value, a confidence
score and an error margin.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

import numpy as np

# Absolute limits for a reading to be kept at all.
VALID_BPM_MIN = 30
VALID_BPM_MAX = 220

RESTING_BPM_MIN = 40
RESTING_BPM_MAX = 100

# Camera PPG is never reported as certain.
MAX_CONFIDENCE = 0.99


class BPMCategory(Enum):
    LOW = "Low (Bradycardia)"
    ATHLETE = "Athletic Range"
    NORMAL = "Normal"
    ELEVATED = "Elevated"
    HIGH = "High (Tachycardia)"

    @property
    def description(self) -> str:
        return self.value


class ConfidenceLevel(Enum):
    VERY_LOW = "Very Low"
    LOW = "Low"
    MODERATE = "Moderate"
    HIGH = "High"
    VERY_HIGH = "Very High"

    @property
    def description(self) -> str:
        return f"{self.value} Confidence"


@dataclass(frozen=True)
class ErrorBounds:
    min_bpm: int
    max_bpm: int
    margin: int

    def __str__(self) -> str:
        return f"±{self.margin} BPM"


def is_valid_bpm(bpm: int) -> bool:
    return VALID_BPM_MIN <= bpm <= VALID_BPM_MAX


def is_resting_bpm(bpm: int) -> bool:
    return RESTING_BPM_MIN <= bpm <= RESTING_BPM_MAX


def bpm_category(bpm: int) -> BPMCategory:
    if bpm < 50:
        return BPMCategory.LOW
    if bpm < 60:
        return BPMCategory.ATHLETE
    if bpm < 100:
        return BPMCategory.NORMAL
    if bpm < 120:
        return BPMCategory.ELEVATED
    return BPMCategory.HIGH


def confidence_level(confidence: float) -> ConfidenceLevel:
    if confidence >= 0.85:
        return ConfidenceLevel.VERY_HIGH
    if confidence >= 0.7:
        return ConfidenceLevel.HIGH
    if confidence >= 0.5:
        return ConfidenceLevel.MODERATE
    if confidence >= 0.3:
        return ConfidenceLevel.LOW
    return ConfidenceLevel.VERY_LOW


def _quartile_trim(readings: np.ndarray, factor: float) -> np.ndarray:
    """
    Drop readings outside ``[Q1 - factor·IQR, Q3 + factor·IQR]``.

    Quartiles are taken by index on the sorted series (``n//4``, ``3n//4``),
    which keeps them on actual integer readings.
    """
    ordered = np.sort(readings)
    q1 = ordered[ordered.size // 4]
    q3 = ordered[(ordered.size * 3) // 4]
    iqr = q3 - q1
    mask = (readings >= q1 - factor * iqr) & (readings <= q3 + factor * iqr)
    return readings[mask]


def filter_valid_readings(readings: Sequence[int]) -> list[int]:
    return [int(r) for r in readings if is_valid_bpm(int(r))]


def reading_confidence(readings: Sequence[int], signal_quality_score: float = 1.0) -> float:
    """
    Confidence (0 – 0.99) that a series of readings reflects a stable rate.

    Combines how tight the readings are (std and coefficient of variation)
    with how many there are, then scales by *signal_quality_score*.
    Fewer than 5 readings give 0.
    """
    if len(readings) < 5:
        return 0.0

    cleaned = _quartile_trim(np.asarray(readings, dtype=np.float64), 3.0)
    if cleaned.size < 5:
        return 0.0

    mean = float(np.mean(cleaned))
    std = float(np.std(cleaned))
    cv = std / mean if mean > 0 else math.inf

    count_factor = min(1.0, cleaned.size / 20.0)
    # std of 1 – 2 BPM is excellent, 8+ is useless
    consistency = float(np.clip(1.0 - std / 8.0, 0.0, 1.0))
    cv_score = float(np.clip(1.0 - cv * 20.0, 0.0, 1.0))

    base = consistency * 0.5 + cv_score * 0.3 + count_factor * 0.2
    return float(np.clip(base * signal_quality_score, 0.0, MAX_CONFIDENCE))


def validated_average_bpm(readings: Sequence[int]) -> Optional[int]:
    """Integer mean of the valid, IQR-trimmed readings; ``None`` with fewer than 3."""
    valid = filter_valid_readings(readings)
    if len(valid) < 3:
        return None
    trimmed = _quartile_trim(np.asarray(valid, dtype=np.int64), 1.5)
    if trimmed.size == 0:
        return None
    return int(trimmed.sum() // trimmed.size)


def error_bounds(readings: Sequence[int]) -> Optional[ErrorBounds]:
    """
    Spread of a reading series.

    The margin is ``ceil(1.5 · std)`` of the trimmed readings, clamped to
    2 – 10 BPM (2 BPM is the floor of what a camera sensor can resolve).
    """
    valid = filter_valid_readings(readings)
    if len(valid) < 5:
        return None
    cleaned = _quartile_trim(np.asarray(valid, dtype=np.int64), 1.5)
    if cleaned.size < 3:
        return None

    std = float(np.std(cleaned))
    margin = max(2, min(int(math.ceil(std * 1.5)), 10))
    return ErrorBounds(min_bpm=int(cleaned.min()), max_bpm=int(cleaned.max()), margin=margin)


def error_bounds_description(readings: Sequence[int]) -> str:
    bounds = error_bounds(readings)
    return str(bounds) if bounds is not None else "±5 BPM (estimated)"
