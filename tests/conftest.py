"""Pytest configuration and fixtures for the particle colony tests."""

import numpy as np
import pytest

from particle_life_engine.params import (FoodParameters, GridParameters, RunParameters,
                                         SimulationParameters)


@pytest.fixture
def rng():
    """Provide a deterministic generator for tests."""
    return np.random.default_rng(42)


@pytest.fixture
def grid():
    return GridParameters(200.0, 200.0, 200.0)


@pytest.fixture
def small_params(grid):
    """Small world: three colonies of twelve particles sharing a crowded grid."""
    simulation = SimulationParameters(
        colony_count=3,
        particle_count=12,
        particle_types=3,
        max_force_range=80.0,
        epoch_duration=0.1,
        max_epochs=5,
    )
    food = FoodParameters(food_count=10, respawn_cooldown=0.05)
    return RunParameters(simulation, grid, food)
