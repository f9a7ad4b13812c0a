"""
Capture-side measurement session.

Algorithm
---------
1. Reduce each incoming frame to its mean red-channel intensity (the
   channel that carries the torch light through the fingertip).
2. Keep a rolling buffer of the last ``window_seconds`` samples.  Samples
   are stamped with a valid-time clock that only advances on accepted
   frames, so rejected frames leave no gap in the buffer.
3. Skip the first ``warmup_samples`` (auto-exposure and torch settle).
4. Measure the actual sample rate from the valid-time stamps.
5. Hand a snapshot of the buffer to :func:`ppg_heartrate.pipeline.estimate_bpm`
   and collect the per-cycle readings.

The pipeline itself is stateless; this object owns the only mutable state.
"""

from __future__ import annotations

import logging
import math
from collections import deque
from typing import Deque, List, Optional, Tuple

import numpy as np

from ppg_heartrate.config import DEFAULT_CONFIG, PipelineConfig
from ppg_heartrate.pipeline import estimate_bpm
from ppg_heartrate.quality import (
    FingerDetector,
    MotionDetector,
    SignalQuality,
    channel_means,
    evaluate_signal_quality,
)
from ppg_heartrate.validation import reading_confidence, validated_average_bpm

logger = logging.getLogger(__name__)


class HeartRateMonitor:
    """
    Rolling PPG sample window for one measurement session.

    Parameters
    ----------
    nominal_rate:
        Expected frames-per-second.  Only used until enough timestamps
        exist to measure the real rate.
    window_seconds:
        Length of the rolling buffer in seconds (at the nominal rate).
    warmup_samples:
        Leading samples ignored by :meth:`compute_bpm`.
    min_samples:
        Usable samples (after warm-up) required before an estimate is
        attempted.  Defaults to 6 × nominal_rate (≈ 6 seconds).
    config:
        Pipeline constants forwarded to every evaluation.
    channel_order:
        Layout of frames given to :meth:`push_frame` (``"rgb"`` or ``"bgr"``).
    measurement_seconds:
        Valid signal time after which the session is complete and further
        samples are refused.
    """

    def __init__(
        self,
        nominal_rate: float = 30.0,
        window_seconds: float = 30.0,
        warmup_samples: int = 60,
        min_samples: int | None = None,
        config: PipelineConfig | None = None,
        channel_order: str = "rgb",
        measurement_seconds: float = 30.0,
    ) -> None:
        if nominal_rate <= 0:
            raise ValueError(f"nominal_rate must be positive, got {nominal_rate}")
        if measurement_seconds <= 0:
            raise ValueError(f"measurement_seconds must be positive, got {measurement_seconds}")
        self.nominal_rate = nominal_rate
        self.window_seconds = window_seconds
        self.measurement_seconds = measurement_seconds
        # One frame delta never advances the valid clock by more than three frames
        self.max_frame_gap = 3.0 / nominal_rate
        self.warmup_samples = warmup_samples
        self.config = config or DEFAULT_CONFIG
        self.channel_order = channel_order

        maxlen = int(nominal_rate * window_seconds)
        self._values: Deque[float] = deque(maxlen=maxlen)
        self._timestamps: Deque[float] = deque(maxlen=maxlen)
        self._seen = 0
        self._valid_elapsed = 0.0
        self._last_frame_time: Optional[float] = None
        self.min_samples: int = min_samples if min_samples is not None else int(6 * nominal_rate)

        self._finger = FingerDetector()
        self._motion = MotionDetector()

        self._readings: List[int] = []
        self._last_bpm: Optional[int] = None
        self._last_quality = SignalQuality.POOR

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def push_sample(self, value: float, timestamp: float | None = None) -> bool:
        """
        Append one intensity sample.

        Parameters
        ----------
        value:
            Brightness of the frame (e.g. mean red channel).
        timestamp:
            Wall-clock capture time in seconds.  When omitted, frames are
            spaced at the nominal rate.

        Returns *False* when the sample was rejected (session complete,
        non-finite value or a timestamp that does not advance).
        """
        if self.is_complete:
            return False
        delta = self._tick(timestamp)
        if delta is None:
            return False
        value = float(value)
        if not math.isfinite(value):
            logger.debug("Dropping non-finite sample %r", value)
            return False
        self._append(value, delta)
        return True

    def push_frame(self, frame: np.ndarray, timestamp: float | None = None) -> SignalQuality:
        """
        Reduce *frame* to its red mean and append it when the frame looks usable.

        Frames without a finger over the lens or taken during hand motion are
        not added and do not advance the valid-time clock.  Returns the
        quality grade of the frame.
        """
        red, green, blue = channel_means(frame, self.channel_order)
        if self.is_complete:
            return self._last_quality
        delta = self._tick(timestamp)
        if delta is None:
            return self._last_quality

        quality = evaluate_signal_quality(red, green, blue, self._values, self._finger)
        self._last_quality = quality
        if not self._finger.is_finger(red, green, blue):
            logger.debug("Frame rejected: no finger (r=%.1f g=%.1f b=%.1f)", red, green, blue)
            return quality

        if self._motion.is_motion_excessive(red):
            logger.debug("Frame rejected: excessive motion")
            self._last_quality = SignalQuality.POOR
            return self._last_quality

        # Quality needs 30 samples of history, so finger frames are kept while grading is POOR
        self._append(red, delta)
        return quality

    def compute_bpm(self) -> Optional[int]:
        """
        Evaluate the current window.

        Returns the consensus BPM, or *None* when there is not enough data
        or the estimators found no reliable rhythm.  Present values are
        appended to :attr:`readings`.
        """
        values, times = self._usable()
        if len(values) < self.min_samples:
            return None

        bpm = estimate_bpm(values, self._measure_rate(times), self.config)
        if bpm is not None:
            self._readings.append(bpm)
            self._last_bpm = bpm
        return bpm

    @property
    def observed_sample_rate(self) -> float:
        """Sample rate measured over the usable part of the buffer (Hz)."""
        _, times = self._usable()
        return self._measure_rate(times)

    @property
    def buffer_fill_ratio(self) -> float:
        """How full the rolling buffer is (0 – 1)."""
        return len(self._values) / self._values.maxlen

    @property
    def readings(self) -> List[int]:
        return list(self._readings)

    @property
    def last_bpm(self) -> Optional[int]:
        return self._last_bpm

    @property
    def last_quality(self) -> SignalQuality:
        return self._last_quality

    @property
    def confidence(self) -> float:
        """Confidence in the session's readings so far (0 – 0.99)."""
        return reading_confidence(self._readings)

    @property
    def average_bpm(self) -> Optional[int]:
        """Outlier-trimmed average of the session's readings."""
        return validated_average_bpm(self._readings)

    @property
    def valid_elapsed(self) -> float:
        """Seconds of accepted signal so far."""
        return self._valid_elapsed

    @property
    def progress(self) -> float:
        """Fraction of ``measurement_seconds`` covered by accepted signal (0 – 1)."""
        return min(self._valid_elapsed / self.measurement_seconds, 1.0)

    @property
    def is_complete(self) -> bool:
        return self._valid_elapsed >= self.measurement_seconds

    def reset(self) -> None:
        """Clear the buffer and all session readings."""
        self._values.clear()
        self._timestamps.clear()
        self._seen = 0
        self._valid_elapsed = 0.0
        self._last_frame_time = None
        self._motion.reset()
        self._readings.clear()
        self._last_bpm = None
        self._last_quality = SignalQuality.POOR
        logger.info("Measurement session reset.")

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _tick(self, timestamp: float | None) -> Optional[float]:
        """
        Register a frame at *timestamp* and return its capped delta.

        Every frame moves the wall clock, accepted or not, so the delta of
        the next accepted frame never spans rejected ones.  Returns *None*
        for a timestamp that does not advance.
        """
        last = self._last_frame_time
        if timestamp is None:
            timestamp = 0.0 if last is None else last + 1.0 / self.nominal_rate
        timestamp = float(timestamp)
        if last is not None and not timestamp > last:
            logger.debug("Dropping frame with non-increasing timestamp %.4f", timestamp)
            return None
        self._last_frame_time = timestamp
        if last is None:
            return 0.0
        return min(timestamp - last, self.max_frame_gap)

    def _append(self, value: float, delta: float) -> None:
        self._valid_elapsed += delta
        self._values.append(value)
        self._timestamps.append(self._valid_elapsed)
        self._seen += 1
        if self.is_complete:
            logger.info(
                "Measurement complete after %.1f s of valid signal (average %s BPM)",
                self._valid_elapsed, self.average_bpm,
            )

    def _usable(self) -> Tuple[np.ndarray, np.ndarray]:
        """Snapshot of the buffer with warm-up samples removed."""
        values = np.array(self._values, dtype=np.float64)
        times = np.array(self._timestamps, dtype=np.float64)
        # Warm-up counts from session start, not from the rolling window
        skip = max(0, self.warmup_samples - (self._seen - len(values)))
        if len(values) > skip:
            return values[skip:], times[skip:]
        return values, times

    def _measure_rate(self, times: np.ndarray) -> float:
        if times.size < 2 or times[-1] <= times[0]:
            return self.nominal_rate
        return (times.size - 1) / float(times[-1] - times[0])
