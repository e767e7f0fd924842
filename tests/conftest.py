"""Shared pytest fixtures for sirsim."""

from __future__ import annotations

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest

from sirsim.parameters import InitialState, SIRParameters


@pytest.fixture
def t_grid() -> np.ndarray:
    """Daily grid 0..160 inclusive."""
    return np.arange(0.0, 161.0, 1.0)


@pytest.fixture
def baseline_params() -> SIRParameters:
    """N=1e5, beta=0.3, gamma=0.1 (R0 = 3)."""
    return SIRParameters(beta=0.3, gamma=0.1, N=100_000)


@pytest.fixture
def one_infected() -> InitialState:
    """A single infectious individual in a population of 1e5."""
    return InitialState(N=100_000, I0=1)
