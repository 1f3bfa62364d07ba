"""Evolving particle-life colonies: a force-field simulator driven by a genetic algorithm."""

from .errors import ColonyNotFoundError, ConfigurationError, ParticleLifeError, PopulationLoadError
from .genetics import EpochStats
from .genome import Genome
from .params import (BoundaryMode, FoodParameters, GridParameters, InteractionSelection,
                     RunParameters, SimulationParameters, SimulationSpeed)
from .world import World, WorldState
