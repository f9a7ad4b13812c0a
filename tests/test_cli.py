"""
Tests for the ppg-heartrate command line.
Run with:  pytest tests/
"""

from __future__ import annotations

import numpy as np
import pytest

from ppg_heartrate.cli import (
    EXIT_BAD_INPUT,
    EXIT_NO_ESTIMATE,
    EXIT_OK,
    load_trace,
    main,
    measured_rate,
    parse_args,
    synthetic_trace,
)


def _write_trace(path, rate: float, n: int, hz: float = 1.2) -> None:
    t = np.arange(n) / rate
    values = 150.0 + np.sin(2 * np.pi * hz * t)
    np.savetxt(path, np.column_stack((t, values)), delimiter=",")


class TestCli:

    def test_synthetic(self, capsys):
        assert main(["--synthetic", "72"]) == EXIT_OK
        out = capsys.readouterr().out
        assert "combined=" in out

    def test_file_with_timestamps(self, tmp_path, capsys):
        path = tmp_path / "trace.csv"
        _write_trace(path, rate=25.0, n=400)
        assert main([str(path), "--column", "1", "--time-column", "0"]) == EXIT_OK
        assert "combined=7" in capsys.readouterr().out

    def test_too_short_trace(self, tmp_path):
        path = tmp_path / "short.csv"
        _write_trace(path, rate=30.0, n=20)
        assert main([str(path), "--column", "1"]) == EXIT_NO_ESTIMATE

    def test_missing_file(self, tmp_path):
        assert main([str(tmp_path / "missing.csv")]) == EXIT_BAD_INPUT

    def test_bad_column(self, tmp_path):
        path = tmp_path / "trace.csv"
        _write_trace(path, rate=30.0, n=100)
        assert main([str(path), "--column", "5"]) == EXIT_BAD_INPUT

    def test_requires_input(self):
        with pytest.raises(SystemExit):
            parse_args([])

    def test_load_trace_whitespace(self, tmp_path):
        path = tmp_path / "trace.txt"
        path.write_text("1.0\n2.0\n3.0\n")
        samples, times = load_trace(path)
        np.testing.assert_array_equal(samples, [1.0, 2.0, 3.0])
        assert times is None

    def test_measured_rate(self):
        assert measured_rate(np.arange(11) / 20.0) == pytest.approx(20.0)
        with pytest.raises(ValueError):
            measured_rate(np.array([1.0]))

    def test_synthetic_trace_length(self):
        assert len(synthetic_trace(72, 10.0, 30.0, 0.05)) == 300

    def test_export_waveform(self, tmp_path):
        out = tmp_path / "wave.txt"
        assert main(["--synthetic", "72", "--export", str(out)]) == EXIT_OK
        wave = np.loadtxt(out)
        assert len(wave) == 300
        assert wave.min() == pytest.approx(0.0)
        assert wave.max() == pytest.approx(1.0)
