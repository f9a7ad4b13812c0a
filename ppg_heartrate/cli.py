"""
Heart-rate estimation from a recorded PPG trace.

Usage
-----
    ppg-heartrate FILE [OPTIONS]
    ppg-heartrate --synthetic 72 [--seconds 10] [--rate 30]

FILE is a whitespace- or comma-separated numeric table, one sample per row.

Options
-------
    --rate FLOAT         Sample rate in Hz (ignored when --time-column is given)
    --column INT         Column holding the intensity samples (default: 0)
    --time-column INT    Column holding capture timestamps in seconds;
                         the sample rate is then measured from them
    --skip-rows INT      Header rows to skip (default: 0)
    --narrow             Use the 0.8–3.0 Hz / 45–180 BPM constants
    --synthetic BPM      Analyse a generated noisy sine instead of FILE
    --seconds FLOAT      Length of the synthetic trace (default: 10)
    --noise FLOAT        Noise std of the synthetic trace (default: 0.05)
    --export PATH        Write the normalised filtered waveform (0–1) to PATH
    --verbose            Debug logging (shows why estimators abstain)

Exit status is 0 with an estimate, 2 without one and 1 on bad input.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import numpy as np

from ppg_heartrate.conditioning import normalize
from ppg_heartrate.config import PipelineConfig
from ppg_heartrate.pipeline import analyze

logger = logging.getLogger("ppg_heartrate")

EXIT_OK = 0
EXIT_BAD_INPUT = 1
EXIT_NO_ESTIMATE = 2


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="ppg-heartrate",
        description="Estimate heart rate (BPM) from a camera PPG trace",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("file", nargs="?", type=Path, default=None,
                        help="Numeric table with one sample per row")
    parser.add_argument("--rate", type=float, default=30.0,
                        help="Sample rate in Hz")
    parser.add_argument("--column", type=int, default=0,
                        help="Column holding the intensity samples")
    parser.add_argument("--time-column", type=int, default=None,
                        help="Column holding timestamps in seconds")
    parser.add_argument("--skip-rows", type=int, default=0,
                        help="Header rows to skip")
    parser.add_argument("--narrow", action="store_true",
                        help="Use the 0.8-3.0 Hz / 45-180 BPM constants")
    parser.add_argument("--synthetic", type=float, default=None, metavar="BPM",
                        help="Analyse a generated sine at this rate instead of FILE")
    parser.add_argument("--seconds", type=float, default=10.0,
                        help="Length of the synthetic trace in seconds")
    parser.add_argument("--noise", type=float, default=0.05,
                        help="Gaussian noise std of the synthetic trace")
    parser.add_argument("--export", type=Path, default=None,
                        help="Write the normalised filtered waveform to this file")
    parser.add_argument("--verbose", action="store_true",
                        help="Enable debug logging")
    args = parser.parse_args(argv)
    if args.file is None and args.synthetic is None:
        parser.error("either FILE or --synthetic is required")
    return args


# ---------------------------------------------------------------------------
# Input
# ---------------------------------------------------------------------------

def synthetic_trace(bpm: float, seconds: float, rate: float, noise: float, seed: int = 0) -> np.ndarray:
    """Noisy sinusoid at *bpm* riding on a brightness offset."""
    rng = np.random.default_rng(seed)
    t = np.arange(int(seconds * rate)) / rate
    return 150.0 + np.sin(2 * np.pi * (bpm / 60.0) * t) + rng.normal(0.0, noise, t.size)


def load_trace(
    path: Path,
    column: int = 0,
    time_column: int | None = None,
    skip_rows: int = 0,
) -> tuple[np.ndarray, np.ndarray | None]:
    """
    Read samples (and optionally timestamps) from *path*.

    Raises
    ------
    OSError
        If the file cannot be read.
    ValueError
        If the table is not numeric or the columns do not exist.
    """
    text = path.read_text()
    delimiter = "," if "," in text else None
    table = np.loadtxt(path, delimiter=delimiter, skiprows=skip_rows, ndmin=2)
    samples = table[:, column]
    times = table[:, time_column] if time_column is not None else None
    return samples, times


def measured_rate(times: np.ndarray) -> float:
    """Average sample rate from capture timestamps."""
    if times.size < 2 or times[-1] <= times[0]:
        raise ValueError("timestamps must span a positive interval")
    return (times.size - 1) / float(times[-1] - times[0])


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def _fmt(bpm: int | None) -> str:
    return f"{bpm:d}" if bpm is not None else "-"


def run(args: argparse.Namespace) -> int:
    config = PipelineConfig.narrow() if args.narrow else PipelineConfig()

    if args.synthetic is not None:
        samples = synthetic_trace(args.synthetic, args.seconds, args.rate, args.noise)
        rate = args.rate
        logger.info("Synthetic trace: %.1f BPM, %.1f s at %.1f Hz", args.synthetic, args.seconds, rate)
    else:
        try:
            samples, times = load_trace(args.file, args.column, args.time_column, args.skip_rows)
            rate = measured_rate(times) if times is not None else args.rate
        except (OSError, ValueError, IndexError) as e:
            logger.error("Cannot read %s: %s", args.file, e)
            return EXIT_BAD_INPUT
        logger.info("Loaded %d samples from %s at %.2f Hz", samples.size, args.file, rate)

    result = analyze(samples, rate, config)
    if args.export is not None:
        np.savetxt(args.export, normalize(result.filtered), fmt="%.6f")
        logger.info("Filtered waveform written to %s", args.export)
    print(
        f"peaks={_fmt(result.peak_bpm)}  fft={_fmt(result.fft_bpm)}  "
        f"autocorr={_fmt(result.ac_bpm)}  combined={_fmt(result.bpm)}"
    )
    if result.bpm is None:
        logger.warning("No reliable estimate; record a longer or steadier trace.")
        return EXIT_NO_ESTIMATE
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s – %(message)s",
        datefmt="%H:%M:%S",
    )
    return run(args)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    sys.exit(main())
