from __future__ import annotations

import numpy as np
import pytest


def make_sine(
    hz: float,
    rate: float,
    n: int,
    amplitude: float = 1.0,
    offset: float = 0.0,
    noise: float = 0.0,
    seed: int = 42,
) -> np.ndarray:
    """Sampled sinusoid with optional additive Gaussian noise."""
    t = np.arange(n) / rate
    signal = offset + amplitude * np.sin(2 * np.pi * hz * t)
    if noise > 0:
        rng = np.random.default_rng(seed)
        signal = signal + rng.normal(0.0, noise, n)
    return signal


@pytest.fixture
def sine():
    return make_sine
