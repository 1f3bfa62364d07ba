"""The evolvable part of a colony: a type-by-type force matrix plus a food affinity per type."""

import numpy as np

from . import config as cfg
from .errors import ConfigurationError


class Genome:
    """Dense interaction matrix and food-affinity vector for ``type_count`` particle types.

    ``force_matrix[a * type_count + b]`` is the force exerted on type ``a`` by type ``b``.
    """

    def __init__(self, type_count, force_matrix=None, food_forces=None):
        if type_count < 1:
            raise ConfigurationError(f"A genome needs at least one particle type, got {type_count}")
        self.type_count = int(type_count)
        size = self.type_count * self.type_count
        if force_matrix is None:
            force_matrix = np.zeros(size, dtype=np.float32)
        if food_forces is None:
            food_forces = np.zeros(self.type_count, dtype=np.float32)
        self.force_matrix = np.array(force_matrix, dtype=np.float32).reshape(-1)
        self.food_forces = np.array(food_forces, dtype=np.float32).reshape(-1)
        if self.force_matrix.size != size or self.food_forces.size != self.type_count:
            raise ConfigurationError(
                f"Genome arrays do not match type_count={self.type_count}: "
                f"{self.force_matrix.size} forces, {self.food_forces.size} food forces"
            )

    @classmethod
    def random(cls, type_count, rng):
        """Uniform random genome; self-interaction is drawn from a repulsive range."""
        genome = cls(type_count)
        matrix = rng.uniform(cfg.GENE_RANDOM_MIN, cfg.GENE_RANDOM_MAX, (type_count, type_count))
        diagonal = rng.uniform(cfg.GENE_SELF_MIN, cfg.GENE_SELF_MAX, type_count)
        np.fill_diagonal(matrix, diagonal)
        genome.force_matrix[:] = matrix.reshape(-1)
        genome.food_forces[:] = rng.uniform(cfg.GENE_RANDOM_MIN, cfg.GENE_RANDOM_MAX, type_count)
        return genome

    @classmethod
    def preset(cls, type_count, rng):
        """Hand-tuned tables that produce lively behaviour for 3 and 4 types."""
        genome = cls(type_count)
        if type_count == 3:
            # rock-paper-scissors
            genome.set_force(0, 1, 1.0); genome.set_force(1, 2, 1.0); genome.set_force(2, 0, 1.0)
            genome.set_force(1, 0, -0.5); genome.set_force(2, 1, -0.5); genome.set_force(0, 2, -0.5)
            for t in range(3):
                genome.set_force(t, t, -0.3)
            genome.food_forces[:] = [0.8, -0.3, 0.5]
        elif type_count == 4:
            genome.set_force(0, 1, 1.5); genome.set_force(1, 2, 0.8)
            genome.set_force(2, 3, 1.2); genome.set_force(3, 0, 0.6)
            genome.set_force(0, 2, -1.0); genome.set_force(1, 3, -0.8)
            genome.set_force(2, 0, -0.6); genome.set_force(3, 1, -1.2)
            for t in range(4):
                genome.set_force(t, t, -0.4)
            genome.food_forces[:] = [0.6, -0.4, 0.8, -0.2]
        else:
            matrix = rng.uniform(cfg.GENE_RANDOM_MIN, cfg.GENE_RANDOM_MAX, (type_count, type_count))
            np.fill_diagonal(matrix, rng.uniform(-0.5, -0.1, type_count))
            genome.force_matrix[:] = matrix.reshape(-1)
            genome.food_forces[:] = rng.uniform(cfg.GENE_RANDOM_MIN, cfg.GENE_RANDOM_MAX, type_count)
        return genome

    def _in_range(self, index):
        return 0 <= index < self.type_count

    def get_force(self, type_a, type_b) -> float:
        if not (self._in_range(type_a) and self._in_range(type_b)):
            return 0.0
        return float(self.force_matrix[type_a * self.type_count + type_b])

    def set_force(self, type_a, type_b, force):
        if self._in_range(type_a) and self._in_range(type_b):
            self.force_matrix[type_a * self.type_count + type_b] = force

    def get_food_force(self, particle_type) -> float:
        if not self._in_range(particle_type):
            return 0.0
        return float(self.food_forces[particle_type])

    def force_table(self):
        """The force matrix as a ``(type_count, type_count)`` array."""
        return self.force_matrix.reshape(self.type_count, self.type_count).copy()

    def crossover(self, other, rng):
        """Uniform crossover: every entry comes from either parent with probability 0.5."""
        if other.type_count != self.type_count:
            raise ConfigurationError(
                f"Cannot cross genomes with {self.type_count} and {other.type_count} types"
            )
        take_self = rng.random(self.force_matrix.size) < 0.5
        take_self_food = rng.random(self.food_forces.size) < 0.5
        return Genome(
            self.type_count,
            np.where(take_self, self.force_matrix, other.force_matrix),
            np.where(take_self_food, self.food_forces, other.food_forces),
        )

    def mutate(self, rate, rng):
        """Perturb entries in place; food affinities mutate at half the rate."""
        for values, probability in ((self.force_matrix, rate), (self.food_forces, rate * 0.5)):
            hits = rng.random(values.size) < probability
            noise = rng.uniform(-cfg.GENE_MUTATION_STEP, cfg.GENE_MUTATION_STEP, values.size)
            values[hits] = np.clip(values[hits] + noise[hits], cfg.GENE_FORCE_MIN, cfg.GENE_FORCE_MAX)
        return self

    def validate(self):
        """Reject values that mutation could never have produced."""
        for values in (self.force_matrix, self.food_forces):
            if not np.all(np.isfinite(values)):
                raise ConfigurationError("Genome contains non-finite values")
            if np.any(values < cfg.GENE_FORCE_MIN) or np.any(values > cfg.GENE_FORCE_MAX):
                raise ConfigurationError(
                    f"Genome values must lie in [{cfg.GENE_FORCE_MIN}, {cfg.GENE_FORCE_MAX}]"
                )
        return self

    def copy(self):
        return Genome(self.type_count, self.force_matrix.copy(), self.food_forces.copy())

    def __eq__(self, other):
        if not isinstance(other, Genome):
            return NotImplemented
        return (
            self.type_count == other.type_count
            and np.array_equal(self.force_matrix, other.force_matrix)
            and np.array_equal(self.food_forces, other.food_forces)
        )

    __hash__ = None

    def __repr__(self):
        return f"Genome(type_count={self.type_count}, forces={self.force_table().tolist()}, food={self.food_forces.tolist()})"
