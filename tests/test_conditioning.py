"""
Unit tests for signal conditioning and the bandpass stage.
Run with:  pytest tests/
"""

from __future__ import annotations

import numpy as np
import pytest

from ppg_heartrate.conditioning import (
    DEFAULT_KERNEL,
    condition,
    median_filter,
    normalize,
    remove_dc,
    smooth,
    smoothing_kernel,
)
from ppg_heartrate.config import Passband
from ppg_heartrate.filters import MIN_FILTER_SAMPLES, bandpass, high_pass, low_pass


# ---------------------------------------------------------------------------
# Conditioning
# ---------------------------------------------------------------------------

class TestConditioning:

    def test_remove_dc_zero_mean(self):
        out = remove_dc([101.0, 99.0, 103.0, 97.0])
        assert np.mean(out) == pytest.approx(0.0)

    def test_median_filter_removes_single_spike(self):
        x = np.zeros(20)
        x[10] = 100.0
        out = median_filter(x, 3)
        assert len(out) == 20
        assert out[10] == 0.0

    def test_median_filter_keeps_step_edge(self):
        x = np.concatenate((np.zeros(10), np.ones(10)))
        out = median_filter(x, 3)
        np.testing.assert_array_equal(out, x)

    def test_median_filter_clamps_edges(self):
        x = np.array([5.0, 1.0, 1.0, 1.0, 1.0, 1.0])
        # window at index 0 is (5, 5, 1) with the edge replicated
        assert median_filter(x, 3)[0] == 5.0

    def test_default_kernel_sums_to_one(self):
        np.testing.assert_allclose(smoothing_kernel(5), DEFAULT_KERNEL)
        for width in (3, 7, 9):
            kernel = smoothing_kernel(width)
            assert len(kernel) == width
            assert kernel.sum() == pytest.approx(1.0)
            assert np.argmax(kernel) == width // 2
            np.testing.assert_allclose(kernel, kernel[::-1])

    def test_smooth_impulse_response_is_kernel(self):
        x = np.zeros(21)
        x[10] = 1.0
        out = smooth(x, 5)
        np.testing.assert_allclose(out[8:13], DEFAULT_KERNEL)

    def test_smooth_constant_preserved_at_edges(self):
        out = smooth(np.full(20, 3.0), 5)
        np.testing.assert_allclose(out, 3.0)

    def test_condition_same_length(self, sine):
        raw = sine(1.2, 30.0, 300, offset=150.0, noise=0.05)
        assert len(condition(raw)) == len(raw)

    def test_condition_short_input_unchanged(self):
        raw = [120.0, 121.0, 119.0]
        np.testing.assert_array_equal(condition(raw), raw)

    def test_condition_does_not_mutate_input(self, sine):
        raw = sine(1.2, 30.0, 100, offset=150.0, noise=0.05)
        before = raw.copy()
        condition(raw)
        np.testing.assert_array_equal(raw, before)

    def test_normalize_range(self):
        out = normalize([2.0, 4.0, 6.0])
        np.testing.assert_allclose(out, [0.0, 0.5, 1.0])

    def test_normalize_flat_unchanged(self):
        np.testing.assert_array_equal(normalize([7.0, 7.0, 7.0]), [7.0, 7.0, 7.0])


# ---------------------------------------------------------------------------
# Bandpass
# ---------------------------------------------------------------------------

def _reference_low_pass(x, fc, fs):
    rc = 1.0 / (2.0 * np.pi * fc)
    dt = 1.0 / fs
    alpha = dt / (rc + dt)
    y = np.zeros_like(x)
    y[0] = x[0]
    for i in range(1, len(x)):
        y[i] = y[i - 1] + alpha * (x[i] - y[i - 1])
    return y


def _reference_high_pass(x, fc, fs):
    rc = 1.0 / (2.0 * np.pi * fc)
    dt = 1.0 / fs
    alpha = rc / (rc + dt)
    y = np.zeros_like(x)
    y[0] = x[0]
    for i in range(1, len(x)):
        y[i] = alpha * (y[i - 1] + x[i] - x[i - 1])
    return y


class TestBandpass:

    def test_low_pass_matches_recurrence(self, sine):
        x = sine(1.2, 30.0, 200, noise=0.3)
        np.testing.assert_allclose(low_pass(x, 3.5, 30.0), _reference_low_pass(x, 3.5, 30.0))

    def test_high_pass_matches_recurrence(self, sine):
        x = sine(1.2, 30.0, 200, offset=2.0, noise=0.3)
        np.testing.assert_allclose(high_pass(x, 0.67, 30.0), _reference_high_pass(x, 0.67, 30.0))

    def test_first_sample_passes_through(self):
        x = np.array([3.0, 1.0, 4.0, 1.0, 5.0])
        assert low_pass(x, 3.5, 30.0)[0] == 3.0
        assert high_pass(x, 0.67, 30.0)[0] == 3.0

    def test_short_input_unfiltered(self):
        x = np.arange(MIN_FILTER_SAMPLES, dtype=float)
        np.testing.assert_array_equal(bandpass(x, 30.0), x)

    def test_same_length(self, sine):
        x = sine(1.2, 30.0, 301)
        assert len(bandpass(x, 30.0)) == 301

    def test_flat_input_gives_zeros(self):
        out = bandpass(np.full(200, 120.0), 30.0)
        np.testing.assert_array_equal(out, np.zeros(200))

    def test_passes_heart_band_attenuates_high_frequency(self, sine):
        fs = 30.0
        in_band = bandpass(sine(1.2, fs, 300), fs)[60:]
        out_band = bandpass(sine(10.0, fs, 300), fs)[60:]
        assert np.std(in_band) > 2.0 * np.std(out_band)

    def test_removes_slow_drift(self, sine):
        fs = 30.0
        drift = np.linspace(0.0, 50.0, 300)
        out = bandpass(sine(1.2, fs, 300) + drift, fs)
        # a ramp leaves only a small constant offset (slope · rc) after the high-pass
        assert abs(np.mean(out[100:])) < 2.0
        assert abs(np.mean(out[100:])) < 0.25 * abs(np.mean(drift[100:] - drift.mean()))

    def test_narrow_passband_accepted(self, sine):
        out = bandpass(sine(1.2, 30.0, 300), 30.0, Passband(low_hz=0.8, high_hz=3.0))
        assert len(out) == 300

    def test_invalid_passband_rejected(self):
        with pytest.raises(ValueError):
            Passband(low_hz=3.0, high_hz=0.8)
