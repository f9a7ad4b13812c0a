"""
Consensus between the three estimators.

Decision order
--------------
1. No valid estimate            -> ``None``.
2. One valid estimate           -> that estimate.
3. Autocorrelation agrees with peaks (checked first) or FFT within the
   tolerance                    -> rounded mean of the agreeing pair.
4. Peaks and FFT agree          -> their rounded mean.
5. All three present            -> median.
6. Two disagree, AC among them  -> autocorrelation.
7. Otherwise                    -> the larger value.

Steps 6 and 7 are empirical preferences, not validated against reference data.
"""

from __future__ import annotations

from typing import Optional

from ppg_heartrate.config import DEFAULT_CONFIG, PipelineConfig, round_bpm


def _agree(a: int, b: int, tolerance: int) -> bool:
    return abs(a - b) <= tolerance


def _mean(a: int, b: int) -> int:
    return round_bpm((a + b) / 2.0)


def combine(
    peak: Optional[int],
    fft: Optional[int],
    ac: Optional[int],
    config: PipelineConfig = DEFAULT_CONFIG,
) -> Optional[int]:
    """Merge the per-method estimates into one BPM (or ``None``)."""
    band = config.band
    tolerance = config.agreement_tolerance

    peak = peak if band.contains(peak) else None
    fft = fft if band.contains(fft) else None
    ac = ac if band.contains(ac) else None

    present = [v for v in (peak, fft, ac) if v is not None]
    if not present:
        return None
    if len(present) == 1:
        return present[0]

    if ac is not None:
        if peak is not None and _agree(ac, peak, tolerance):
            return _mean(ac, peak)
        if fft is not None and _agree(ac, fft, tolerance):
            return _mean(ac, fft)

    if peak is not None and fft is not None and _agree(peak, fft, tolerance):
        return _mean(peak, fft)

    if len(present) == 3:
        return sorted(present)[1]

    if ac is not None:
        return ac

    return max(present)
