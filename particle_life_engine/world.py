# particle_life_engine/world.py

import logging
from enum import Enum

import numpy as np

from . import config as cfg # Relative imports
from . import engine, physics
from .boundary import boundary_policy
from .errors import ColonyNotFoundError, ConfigurationError
from .foraging import forage
from .genetics import ScoredGenome, next_generation
from .genome import Genome
from .params import BoundaryMode, RunParameters, SimulationSpeed
from .state import Colony, FoodField, ParticleArena, random_positions, type_balanced_layout

logger = logging.getLogger(__name__)

EXECUTORS = {
    "sequential": physics.step,
    "batched": engine.step,
}


class WorldState(Enum):
    UNINITIALIZED = "uninitialized"
    POPULATED = "populated"


class EpochTimer:
    """Counts simulated seconds towards the end of an epoch."""

    def __init__(self, duration):
        self.duration = float(duration)
        self.elapsed = 0.0

    def tick(self, delta):
        self.elapsed += delta

    @property
    def finished(self):
        return self.elapsed >= self.duration

    def reset(self):
        self.elapsed = 0.0


# ==============================================================================
# THE PYTHON WORLD CLASS
# ==============================================================================
class World:
    """Owns the colonies, particles and food, and drives epochs from external updates."""

    def __init__(self, params=None, executor="batched", seed=None, rng=None):
        self.params = (params or RunParameters()).validate()
        if executor not in EXECUTORS:
            raise ConfigurationError(f"Unknown executor '{executor}', expected one of {sorted(EXECUTORS)}")
        self.executor = executor
        self._step = EXECUTORS[executor]
        self.rng = rng if rng is not None else np.random.default_rng(seed)

        self.state = WorldState.UNINITIALIZED
        self.epoch = 0
        self.history = []
        self.previous_best = None
        self.epoch_timer = EpochTimer(self.sim.epoch_duration)
        self.policy = boundary_policy(self.sim.boundary_mode, self.grid)

        self.colonies = []
        self.particles = None
        self.food = None

    @property
    def sim(self):
        return self.params.simulation

    @property
    def grid(self):
        return self.params.grid

    @property
    def genomes(self):
        return [colony.genome for colony in self.colonies]

    @property
    def scores(self):
        return [colony.score for colony in self.colonies]

    @property
    def is_populated(self):
        return self.state is WorldState.POPULATED

    @property
    def finished(self):
        return self.epoch >= self.sim.max_epochs

    def colony(self, colony_id):
        if not 0 <= colony_id < len(self.colonies):
            raise ColonyNotFoundError(colony_id)
        return self.colonies[colony_id]

    def populate(self, genomes=None):
        """Spawn colonies, particles and food once; later calls are ignored."""
        if self.is_populated:
            logger.debug("World already populated, skipping spawn")
            return self
        if genomes is None:
            genomes = [Genome.random(self.sim.particle_types, self.rng) for _ in range(self.sim.colony_count)]
        self._check_genomes(genomes)

        types, positions = type_balanced_layout(self.sim, self.grid, self.rng)
        if self.sim.particles_per_colony != self.sim.particle_count:
            logger.info("Adjusted particle count from %d to %d for an even split across %d types",
                        self.sim.particle_count, types.size, self.sim.particle_types)
        self.particles = ParticleArena.for_colonies(len(genomes), types, positions)
        self.colonies = [
            Colony(colony_id, genome.copy(), int(self.particles.colony_offsets[colony_id]),
                   int(self.particles.colony_offsets[colony_id + 1]))
            for colony_id, genome in enumerate(genomes)
        ]
        self.food = FoodField.scatter(self.params.food, self.grid, self.rng)
        self.state = WorldState.POPULATED
        logger.info("Spawned %d colonies with %d particles each (%d per type) and %d food items",
                    len(self.colonies), types.size, self.sim.particles_per_type, len(self.food))
        return self

    def _check_genomes(self, genomes):
        if len(genomes) != self.sim.colony_count:
            raise ConfigurationError(f"Expected {self.sim.colony_count} genomes, got {len(genomes)}")
        for genome in genomes:
            if genome.type_count != self.sim.particle_types:
                raise ConfigurationError(
                    f"Genome has {genome.type_count} types but the simulation uses {self.sim.particle_types}"
                )

    def set_speed(self, speed):
        try:
            self.sim.simulation_speed = SimulationSpeed(speed)
        except ValueError as exc:
            raise ConfigurationError(str(exc)) from exc

    def set_boundary_mode(self, mode):
        """Switch topology between ticks; force and containment always share one policy."""
        try:
            mode = BoundaryMode(mode)
        except ValueError as exc:
            raise ConfigurationError(str(exc)) from exc
        self.sim.boundary_mode = mode
        self.policy = boundary_policy(mode, self.grid)

    def step(self):
        """One fixed physics timestep for every colony."""
        return self._step(self.particles, self.genomes, self.food, self.policy, self.sim, cfg.PHYSICS_TIMESTEP)

    def update(self, delta=cfg.FRAME_TIME):
        """Advance by one external update of ``delta`` seconds.

        Runs as many fixed physics steps as the simulation speed asks for, then
        resolves foraging and the epoch timer. Returns the ``EpochStats`` of an
        epoch that ended during this update, otherwise ``None``.
        """
        if not self.is_populated:
            self.populate()
        speed = SimulationSpeed(self.sim.simulation_speed)
        if speed is SimulationSpeed.PAUSED:
            return None

        for _ in range(speed.value):
            self.step()
        forage(self.particles, self.colonies, self.food, delta)
        logger.debug("Update ran %d physics steps", speed.value)

        self.epoch_timer.tick(delta * speed.multiplier)
        if self.epoch_timer.finished:
            return self.end_epoch()
        return None

    def run_epoch(self, delta=cfg.FRAME_TIME):
        """Update until the current epoch ends and return its statistics."""
        if SimulationSpeed(self.sim.simulation_speed) is SimulationSpeed.PAUSED:
            raise ConfigurationError("Cannot run an epoch while the simulation is paused")
        while True:
            stats = self.update(delta)
            if stats is not None:
                return stats

    def end_epoch(self):
        """Evolve the next generation from the current scores and reset the world."""
        if not self.is_populated:
            self.populate()
        scored = [ScoredGenome(colony.genome, colony.score) for colony in self.colonies]
        generation = next_generation(scored, self.sim, self.epoch, self.previous_best, self.rng)
        self.previous_best = generation.stats.best
        self.history.append(generation.stats)

        self.reset(generation.genomes)
        self.epoch += 1
        self.epoch_timer.reset()
        return generation.stats

    def reset(self, genomes):
        """Install ``genomes`` and put particles and food back at fresh random positions."""
        self._check_genomes(genomes)
        for colony, genome in zip(self.colonies, genomes):
            colony.genome = genome
            colony.score = 0.0

        types, positions = type_balanced_layout(self.sim, self.grid, self.rng)
        self.particles.reposition(types, positions)
        self.food.reset(random_positions(self.grid, len(self.food), self.rng))
        logger.info("Reset for epoch %d finished with %d genomes", self.epoch + 1, len(genomes))

    @classmethod
    def from_record(cls, record, executor="batched", seed=None):
        """Rebuild a runnable single-colony world from a saved population."""
        genome, sim_params, grid_params, food_params, boundary_mode = record.to_parameters()
        sim_params.boundary_mode = boundary_mode
        world = cls(RunParameters(sim_params, grid_params, food_params), executor=executor, seed=seed)
        return world.populate([genome])
