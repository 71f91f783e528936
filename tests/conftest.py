"""Pytest fixtures for kernel smoother tests."""

import numpy as np
import pytest


@pytest.fixture
def random_state():
    """Fixed random state for reproducibility."""
    return np.random.RandomState(42)


@pytest.fixture
def simple_1d_data(random_state):
    """Simple 1D regression data."""
    n = 100
    X = random_state.uniform(-3, 3, (n, 1))
    y = np.sin(X[:, 0]) + 0.1 * random_state.randn(n)
    return X, y


@pytest.fixture
def simple_2d_data(random_state):
    """Simple 2D regression data."""
    n = 150
    X = random_state.uniform(-2, 2, (n, 2))
    y = X[:, 0] ** 2 + X[:, 1] + 0.1 * random_state.randn(n)
    return X, y


@pytest.fixture
def motorcycle_data(random_state):
    """133 (time, acceleration) pairs shaped like the motorcycle crash data."""
    n = 133
    t = np.sort(random_state.uniform(2.4, 57.6, n))
    signal = np.where(
        t < 14,
        0.0,
        -120 * np.sin((t - 14) / 8) * np.exp(-(t - 14) / 12),
    )
    noise = random_state.randn(n) * (2 + 20 * (t > 14))
    return t.reshape(-1, 1), signal + noise


@pytest.fixture
def line_data():
    """Five points on the identity line."""
    y = np.array([1.0, 2.0, 3.0, 4.0, 5.0])
    X = np.array([[1.0], [2.0], [3.0], [4.0], [5.0]])
    return X, y
