"""Pytest configuration and shared fixtures for arimakit tests.

This module provides:
- Deterministic RNG fixtures for numpy
- Synthetic series shared by the estimation and forecasting tests
"""

import os

import numpy as np
import pytest


def _seed() -> int:
    return int(os.environ.get("TEST_RNG_SEED", "0"))


@pytest.fixture(scope="function")
def rng() -> np.random.Generator:
    """Provide a deterministic numpy RNG for tests.

    Uses seed from TEST_RNG_SEED environment variable (default: 0).
    This ensures tests are reproducible while allowing override for debugging.

    Returns:
        A seeded numpy.random.Generator instance.
    """
    return np.random.default_rng(_seed())


@pytest.fixture(scope="function", autouse=True)
def set_random_seeds() -> None:
    """Auto-use fixture to set the global numpy seed for reproducibility."""
    np.random.seed(_seed())


@pytest.fixture(scope="module")
def ar1_series() -> np.ndarray:
    """AR(1) sample x_t = 0.5 x_{t-1} + e_t, e_t ~ N(0, 1), n = 200."""
    generator = np.random.default_rng(42)
    eps = generator.normal(size=400)
    x = np.zeros(400)
    for t in range(1, 400):
        x[t] = 0.5 * x[t - 1] + eps[t]
    return x[200:]
