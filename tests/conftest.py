"""Shared fixtures for the grid world MDP tests."""

from __future__ import annotations

import numpy as np
import pytest

from grid_world import FROZEN_LAKE_4X4, SLIPPERY_NOISE, GridWorld
from mdp import GridWorldMDP


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(42)


@pytest.fixture
def lake() -> GridWorld:
    """Deterministic 4x4 frozen lake."""
    return GridWorld.from_map(FROZEN_LAKE_4X4, noise=0.0)


@pytest.fixture
def lake_mdp(lake) -> GridWorldMDP:
    return GridWorldMDP(lake)


@pytest.fixture
def slippery_mdp() -> GridWorldMDP:
    """4x4 frozen lake where the agent slips with probability 2/3."""
    return GridWorldMDP(GridWorld.from_map(FROZEN_LAKE_4X4, noise=SLIPPERY_NOISE))
