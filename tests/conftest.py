"""Shared fixtures for the segmented_trend test suite."""

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest

from segmented_trend.config import SimulationConfig
from segmented_trend.series import ObservationSet, generate_series


@pytest.fixture
def default_config():
    """36 quarters, cutover at 29, 10000→30000, -5000 effect, sd 1000."""
    return SimulationConfig()


@pytest.fixture
def simulated(default_config):
    return generate_series(default_config)


@pytest.fixture
def exact_series():
    """Noise-free segmented line: 100 + 5t - 20*flag - 3*post_time."""
    n, cutover = 24, 13
    period = np.arange(1, n + 1)
    flag = (period >= cutover).astype(float)
    post = np.where(flag == 1, period - cutover + 1, 0)
    y = 100.0 + 5.0 * period - 20.0 * flag - 3.0 * post
    return ObservationSet.from_counts(y, cutover)
