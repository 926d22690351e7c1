"""
Pytest configuration and fixtures for the Tincture test suite.

Prerequisites:
    pip install -e .[test]
"""

import numpy as np
import pytest

# Tolerance for float comparisons
RTOL = 1e-6  # relative tolerance
ATOL = 1e-9  # absolute tolerance (for values near zero)


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "slow: marks tests as slow")
    config.addinivalue_line("markers", "matrix: matrix and colorimetry tests")
    config.addinivalue_line("markers", "tonescale: tone scale and roll-off tests")
    config.addinivalue_line("markers", "gamut: gamut clip tests")
    config.addinivalue_line("markers", "transfer: transfer function tests")
    config.addinivalue_line("markers", "pipeline: full pipeline tests")
    config.addinivalue_line("markers", "registry: named transform registry tests")


def assert_close(actual, expected, rtol: float = RTOL, atol: float = ATOL,
                 msg: str = ""):
    """Assert arrays are close within tolerance."""
    np.testing.assert_allclose(actual, expected, rtol=rtol, atol=atol,
                               err_msg=msg)


def max_abs_diff(a: np.ndarray, b: np.ndarray) -> float:
    """Calculate maximum absolute difference."""
    return float(np.max(np.abs(np.asarray(a) - np.asarray(b))))


# ---------------------------------------------------------------------------
# Shared data
# ---------------------------------------------------------------------------

@pytest.fixture(scope="session")
def rng() -> np.random.Generator:
    """Seeded generator so random batches are reproducible."""
    return np.random.default_rng(20260101)


@pytest.fixture(scope="module")
def unit_cube_colors(rng) -> np.ndarray:
    """Random colours strictly inside [0, 1]^3."""
    return rng.uniform(0.01, 0.99, size=(256, 3))


@pytest.fixture(scope="module")
def wide_colors(rng) -> np.ndarray:
    """Random colours spanning [-0.5, 2.0]^3, mostly out of range."""
    return rng.uniform(-0.5, 2.0, size=(512, 3))


@pytest.fixture(scope="module")
def scene_ramp() -> np.ndarray:
    """Scene-linear grey ramp from deep shadow to far highlight."""
    return np.logspace(-4, 4, 161)
