"""
Per-frame signal quality checks for torch-lit finger PPG.

With the torch on and a fingertip pressed over the lens, the frame is:
  - Bright in the red channel (light transmitted through tissue).
  - Red-dominated (blood absorbs green and blue).
  - Pulsating by a few intensity units at the heart rate.

These heuristics gate the capture loop so the pipeline is only fed frames
that plausibly carry a pulse.
"""

from __future__ import annotations

from collections import deque
from enum import Enum
from typing import Deque, Sequence

import numpy as np


class SignalQuality(Enum):
    POOR = "Place finger firmly covering camera and flash"
    FAIR = "Hold steady..."
    GOOD = "Detecting pulse..."
    EXCELLENT = "Excellent signal"

    @property
    def hint(self) -> str:
        return self.value


class FingerDetector:
    """
    Heuristic detector: is the lens covered by a torch-lit finger?

    Parameters
    ----------
    min_red:
        Minimum mean red intensity (0 – 255).  An uncovered or unlit lens
        is darker than this.  Default: 60.
    red_dominance:
        Red must be at least ``red_dominance · (green + blue)``.
        Default: 0.8.
    """

    def __init__(self, min_red: float = 60.0, red_dominance: float = 0.8) -> None:
        self.min_red = min_red
        self.red_dominance = red_dominance

    def is_finger(self, red: float, green: float, blue: float) -> bool:
        """Return *True* if the channel means look like a covered lens."""
        if red < self.min_red:
            return False
        return red >= (green + blue) * self.red_dominance


def channel_means(frame: np.ndarray, order: str = "rgb") -> tuple[float, float, float]:
    """
    Return ``(red, green, blue)`` means of an H × W × 3 frame.

    *order* is the channel layout of *frame*: ``"rgb"`` or ``"bgr"``.
    """
    order = order.lower()
    if order not in ("rgb", "bgr"):
        raise ValueError(f"order must be 'rgb' or 'bgr', got {order!r}")
    pixels = np.asarray(frame, dtype=np.float64)
    if pixels.ndim != 3 or pixels.shape[2] < 3:
        raise ValueError(f"expected an H x W x 3 frame, got shape {pixels.shape}")
    means = pixels[:, :, :3].reshape(-1, 3).mean(axis=0)
    r, g, b = (means[order.index(c)] for c in "rgb")
    return float(r), float(g), float(b)


def evaluate_signal_quality(
    red: float,
    green: float,
    blue: float,
    recent: Sequence[float],
    detector: FingerDetector | None = None,
) -> SignalQuality:
    """
    Grade the current frame and the last 30 red samples.

    Parameters
    ----------
    red, green, blue:
        Channel means of the current frame.
    recent:
        Red-channel history, most recent last.
    """
    detector = detector or FingerDetector()
    if not detector.is_finger(red, green, blue):
        return SignalQuality.POOR
    if len(recent) < 30:
        return SignalQuality.POOR

    window = np.asarray(list(recent)[-30:], dtype=np.float64)
    mean = float(np.mean(window))
    amplitude = float(np.max(window) - np.min(window))
    std = float(np.std(window))

    # Too dark, flat (no pulse), or jumping around (motion)
    if mean < 60 or amplitude < 1.0 or std > 15:
        return SignalQuality.POOR
    if mean < 100 or amplitude < 2.5 or std < 0.6:
        return SignalQuality.FAIR
    if amplitude >= 5.0 and 1.2 <= std <= 5.0 and mean >= 120:
        return SignalQuality.EXCELLENT
    if amplitude >= 2.5 and 0.7 <= std <= 6.0:
        return SignalQuality.GOOD
    return SignalQuality.FAIR


class MotionDetector:
    """
    Flags hand movement from the sample-to-sample change in brightness.

    Normal pulsation moves the red mean by roughly 5 – 10 units per frame;
    a mean absolute step above *threshold* over the last *window_size*
    samples is treated as motion.
    """

    def __init__(self, window_size: int = 10, threshold: float = 20.0) -> None:
        self.window_size = window_size
        self.threshold = threshold
        self._values: Deque[float] = deque(maxlen=window_size)

    def is_motion_excessive(self, value: float) -> bool:
        self._values.append(float(value))
        if len(self._values) < self.window_size:
            return False
        steps = np.abs(np.diff(np.asarray(self._values)))
        return float(np.mean(steps)) > self.threshold

    def reset(self) -> None:
        self._values.clear()
