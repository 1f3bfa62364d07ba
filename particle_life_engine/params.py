"""Run parameters for the particle colonies.

Each record is checked with ``validate()`` before a world is populated, so a
bad configuration is rejected up front instead of surfacing mid-tick.
"""

import math
from dataclasses import dataclass, field
from enum import IntEnum

from . import config as cfg
from .errors import ConfigurationError


class BoundaryMode(IntEnum):
    """Edge behaviour of the grid. The integer value is what the kernels see."""

    BOUNCE = 0
    TELEPORT = 1


class SimulationSpeed(IntEnum):
    """Number of fixed physics steps executed per external update."""

    PAUSED = 0
    NORMAL = 1
    FAST = 2
    VERY_FAST = 4

    @property
    def multiplier(self) -> float:
        return float(self.value)


class InteractionSelection(IntEnum):
    """Which neighbours count when a particle hits the interaction cap."""

    FIRST_ENCOUNTERED = 0
    NEAREST = 1


@dataclass
class GridParameters:
    width: float = cfg.DEFAULT_GRID_WIDTH
    height: float = cfg.DEFAULT_GRID_HEIGHT
    depth: float = cfg.DEFAULT_GRID_DEPTH

    @property
    def extents(self):
        return (self.width, self.height, self.depth)

    @property
    def half_extents(self):
        return (self.width / 2.0, self.height / 2.0, self.depth / 2.0)

    def validate(self):
        for name, value in zip(("width", "height", "depth"), self.extents):
            if not math.isfinite(value) or value <= 0:
                raise ConfigurationError(f"Grid {name} must be positive, got {value}")
            if value / 2.0 <= cfg.PARTICLE_RADIUS:
                raise ConfigurationError(
                    f"Grid {name} {value} is too small for particles of radius {cfg.PARTICLE_RADIUS}"
                )
        return self


@dataclass
class FoodParameters:
    food_count: int = cfg.DEFAULT_FOOD_COUNT
    respawn_enabled: bool = True
    respawn_cooldown: float = cfg.DEFAULT_FOOD_RESPAWN_TIME
    food_value: float = cfg.DEFAULT_FOOD_VALUE

    def validate(self):
        if self.food_count < 0:
            raise ConfigurationError(f"Food count cannot be negative, got {self.food_count}")
        if self.respawn_enabled and not (math.isfinite(self.respawn_cooldown) and self.respawn_cooldown > 0):
            raise ConfigurationError(
                f"Food respawn cooldown must be positive, got {self.respawn_cooldown}"
            )
        if not math.isfinite(self.food_value):
            raise ConfigurationError(f"Food value must be finite, got {self.food_value}")
        return self


@dataclass
class SimulationParameters:
    colony_count: int = cfg.DEFAULT_COLONY_COUNT
    particle_count: int = cfg.DEFAULT_PARTICLE_COUNT
    particle_types: int = cfg.DEFAULT_PARTICLE_TYPES
    simulation_speed: SimulationSpeed = SimulationSpeed.NORMAL
    boundary_mode: BoundaryMode = BoundaryMode.BOUNCE

    max_force_range: float = cfg.DEFAULT_MAX_FORCE_RANGE
    velocity_half_life: float = cfg.DEFAULT_VELOCITY_HALF_LIFE
    interaction_cap: int = cfg.DEFAULT_INTERACTION_CAP
    interaction_selection: InteractionSelection = InteractionSelection.FIRST_ENCOUNTERED

    epoch_duration: float = cfg.DEFAULT_EPOCH_DURATION
    max_epochs: int = cfg.DEFAULT_MAX_EPOCHS

    elite_ratio: float = cfg.DEFAULT_ELITE_RATIO
    mutation_rate: float = cfg.DEFAULT_MUTATION_RATE
    crossover_rate: float = cfg.DEFAULT_CROSSOVER_RATE

    @property
    def particles_per_type(self) -> int:
        """Per-type share, rounded up so every type gets the same count."""
        return -(-self.particle_count // self.particle_types)

    @property
    def particles_per_colony(self) -> int:
        return self.particles_per_type * self.particle_types

    def validate(self):
        if self.particle_types < 1:
            raise ConfigurationError(f"At least one particle type is required, got {self.particle_types}")
        if self.colony_count < 1:
            raise ConfigurationError(f"At least one colony is required, got {self.colony_count}")
        if self.particle_count < 1:
            raise ConfigurationError(f"At least one particle is required, got {self.particle_count}")
        if not math.isfinite(self.max_force_range) or self.max_force_range <= 0:
            raise ConfigurationError(f"Force range must be positive, got {self.max_force_range}")
        if self.particle_types * cfg.PARTICLE_RADIUS >= self.max_force_range:
            raise ConfigurationError(
                "Force range must exceed the minimum repulsion radius "
                f"({self.particle_types} types x radius {cfg.PARTICLE_RADIUS})"
            )
        if not math.isfinite(self.velocity_half_life) or self.velocity_half_life <= 0:
            raise ConfigurationError(f"Velocity half-life must be positive, got {self.velocity_half_life}")
        if not math.isfinite(self.epoch_duration) or self.epoch_duration <= 0:
            raise ConfigurationError(f"Epoch duration must be positive, got {self.epoch_duration}")
        if self.interaction_cap < 0:
            raise ConfigurationError(f"Interaction cap cannot be negative, got {self.interaction_cap}")
        if not 0.0 < self.elite_ratio <= 1.0:
            raise ConfigurationError(f"Elite ratio must lie in (0, 1], got {self.elite_ratio}")
        if not 0.0 <= self.mutation_rate <= 1.0:
            raise ConfigurationError(f"Mutation rate must lie in [0, 1], got {self.mutation_rate}")
        if not 0.0 <= self.crossover_rate <= 1.0:
            raise ConfigurationError(f"Crossover rate must lie in [0, 1], got {self.crossover_rate}")
        # Coerce plain ints coming from CLIs or saved records.
        try:
            self.simulation_speed = SimulationSpeed(self.simulation_speed)
            self.boundary_mode = BoundaryMode(self.boundary_mode)
            self.interaction_selection = InteractionSelection(self.interaction_selection)
        except ValueError as exc:
            raise ConfigurationError(str(exc)) from exc
        return self


@dataclass
class RunParameters:
    """Everything a world needs, validated together."""

    simulation: SimulationParameters = field(default_factory=SimulationParameters)
    grid: GridParameters = field(default_factory=GridParameters)
    food: FoodParameters = field(default_factory=FoodParameters)

    def validate(self):
        self.simulation.validate()
        self.grid.validate()
        self.food.validate()
        return self
