"""Shared fixtures: small grids so the whole suite runs in seconds."""

import numpy as np
import pytest

from pa_saturation.config import SimulationConfig, default_epsilon
from pa_saturation.core.acoustics import DirectLineArray, GridGeometry
from pa_saturation.core.tissue import make_disc
from pa_saturation.utils.logging_config import SimulationLogger


@pytest.fixture
def epsilon():
    return default_epsilon()


@pytest.fixture
def small_grid():
    return GridGeometry(Nx=32, Ny=32, dx=1e-6, dy=1e-6)


@pytest.fixture
def disc_mask(small_grid):
    return make_disc(small_grid.Nx, small_grid.Ny, 16, 16, 4)


@pytest.fixture
def small_config():
    """Reference experiment on a 32 x 32 grid with a fixed seed."""
    return SimulationConfig(Nx=32, Ny=32, seed=1234)


@pytest.fixture
def direct_model():
    return DirectLineArray()


@pytest.fixture
def rng():
    return np.random.default_rng(0)


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    SimulationLogger.reset()
