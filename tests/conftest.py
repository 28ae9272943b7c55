"""
Shared fixtures for ulam_measures test suite.
"""

import numpy as np
import pytest
import sys
import os

# Ensure project root is on path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))


@pytest.fixture
def rng():
    """Fixed random state for reproducibility."""
    return np.random.RandomState(42)


@pytest.fixture
def uniform_2d():
    """100 uniform random points in the unit square."""
    return np.random.RandomState(1234).rand(100, 2)


@pytest.fixture
def unit_square_data(rng):
    """Uniform points whose range along each axis is exactly [0, 1]."""
    x = rng.rand(1000, 2)
    return np.vstack([x, [[0.0, 0.0], [1.0, 1.0]]])


@pytest.fixture
def logistic_trajectory():
    """Orbit of the fully chaotic logistic map x -> 4x(1-x)."""
    n = 20000
    x = np.empty(n)
    x[0] = 0.1234
    for t in range(1, n):
        x[t] = 4.0 * x[t - 1] * (1.0 - x[t - 1])
    return x
