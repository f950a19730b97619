"""Pytest configuration for repository-relative imports and shared data."""

import os
import sys

import matplotlib

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest


@pytest.fixture
def linear_data():
    """y = 2 + 1.5 x + N(0, 1), with a three-level group column."""
    rng = np.random.default_rng(0)
    n = 300
    x = rng.normal(0, 1, n)
    group = rng.choice(["a", "b", "c"], size=n)
    y = 2 + 1.5 * x + rng.normal(0, 1, n)
    return pd.DataFrame({"x": x, "y": y, "group": group})


@pytest.fixture
def housing():
    from appliedstats.datasets import simulate_housing
    return simulate_housing(n=600, seed=1)


@pytest.fixture
def admissions():
    from appliedstats.datasets import simulate_admissions
    return simulate_admissions(n=800, seed=3)
