"""
Unit tests for the consensus combiner.
Run with:  pytest tests/
"""

from __future__ import annotations

import pytest

from ppg_heartrate.config import PipelineConfig
from ppg_heartrate.consensus import combine


class TestCombine:

    def test_all_absent(self):
        assert combine(None, None, None) is None

    @pytest.mark.parametrize("peak, fft, ac", [(70, None, None), (None, 70, None), (None, None, 70)])
    def test_single_estimate_returned(self, peak, fft, ac):
        assert combine(peak, fft, ac) == 70

    def test_out_of_band_inputs_ignored(self):
        assert combine(250, 20, None) is None
        assert combine(250, None, 80) == 80

    def test_autocorrelation_agrees_with_peaks(self):
        # FFT outlier is left out of the average
        assert combine(72, 95, 74) == 73

    def test_autocorrelation_agrees_with_fft(self):
        assert combine(120, 80, 84) == 82

    def test_peaks_checked_before_fft(self):
        # AC agrees with both; the peak pair wins
        assert combine(70, 80, 75) == 73

    def test_peaks_and_fft_agree(self):
        assert combine(70, 76, 120) == 73

    def test_average_rounds_half_up(self):
        assert combine(75, None, 72) == 74

    def test_all_disagree_median(self):
        assert combine(60, 100, 140) == 100

    def test_two_disagree_prefers_autocorrelation(self):
        assert combine(60, None, 120) == 120
        assert combine(None, 150, 90) == 90

    def test_two_disagree_without_autocorrelation_takes_higher(self):
        assert combine(60, 100, None) == 100

    def test_tolerance_is_configurable(self):
        strict = PipelineConfig(agreement_tolerance=1)
        # 72 vs 74 no longer agree; all three present -> median
        assert combine(72, 95, 74, strict) == 74

    def test_narrow_band_revalidates(self):
        narrow = PipelineConfig.narrow()
        assert combine(190, None, None, narrow) is None
        assert combine(42, 70, None, narrow) == 70
