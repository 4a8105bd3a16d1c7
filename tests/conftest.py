"""Shared fixtures: seeded data and small, fast optimizer settings."""

import numpy as np
import pytest
import torch

from gpbo.core import Bounds, ObservationSet


@pytest.fixture
def generator():
    """Seeded torch generator for reproducible test data."""
    return torch.Generator().manual_seed(1234)


@pytest.fixture
def fast_options():
    """Optimizer overrides that keep each fit and acquisition cheap."""
    return dict(
        n_restarts=1,
        fit_iterations=25,
        grid_size=50,
        n_candidates=8,
        acq_iterations=10,
    )


@pytest.fixture
def unit_square():
    return Bounds({'a': (0.0, 1.0), 'b': (0.0, 1.0)})


@pytest.fixture
def sine_observations():
    """Noise-free observations of sin(6x) at six well-separated points of [0, 1]."""
    obs = ObservationSet({'x': (0.0, 1.0)})
    for x in np.linspace(0.0, 1.0, 6):
        obs.append([x], float(np.sin(6 * x)))
    return obs


@pytest.fixture
def portfolio_inputs():
    """Expected returns and covariance of three assets."""
    expected_returns = np.array([0.10, 0.12, 0.08])
    vols = np.array([0.20, 0.30, 0.15])
    corr = np.array([
        [1.0, 0.3, 0.1],
        [0.3, 1.0, 0.2],
        [0.1, 0.2, 1.0],
    ])
    return expected_returns, corr * np.outer(vols, vols)
