"""Mutable simulation state kept as aligned numpy arrays.

Particles of every colony live in one arena. A colony owns the contiguous slice
``colony_offsets[c]:colony_offsets[c + 1]``, and each particle row records its
colony id, so neither side needs a reference to the other.
"""

import numpy as np


def random_positions(grid, count, rng):
    """Positions drawn uniformly from the grid volume, centred on the origin."""
    half = np.array(grid.half_extents, dtype=np.float64)
    return rng.uniform(-half, half, (count, 3))


def type_balanced_layout(sim_params, grid, rng):
    """Particle types and positions for one colony.

    Every type gets ``ceil(particle_count / particle_types)`` particles, laid out
    type by type. The same layout is reused for every colony.
    """
    per_type = sim_params.particles_per_type
    types = np.repeat(np.arange(sim_params.particle_types, dtype=np.int32), per_type)
    return types, random_positions(grid, types.size, rng)


class Colony:
    """One independently evolving population: genome, score and its particle slice."""

    def __init__(self, colony_id, genome, start, stop):
        self.id = colony_id
        self.genome = genome
        self.score = 0.0
        self.start = start
        self.stop = stop

    @property
    def particle_count(self):
        return self.stop - self.start

    def add_score(self, value):
        self.score += float(value)

    def __repr__(self):
        return f"Colony(id={self.id}, score={self.score:.2f}, particles={self.start}:{self.stop})"


class ParticleArena:
    """Structure-of-arrays storage for every particle of every colony."""

    def __init__(self, types, positions, velocities, colony_ids, colony_offsets):
        self.types = np.ascontiguousarray(types, dtype=np.int32)
        self.positions = np.ascontiguousarray(positions, dtype=np.float64)
        self.velocities = np.ascontiguousarray(velocities, dtype=np.float64)
        self.colony_ids = np.ascontiguousarray(colony_ids, dtype=np.int32)
        self.colony_offsets = np.ascontiguousarray(colony_offsets, dtype=np.int64)

    @classmethod
    def for_colonies(cls, colony_count, types, positions):
        """Replicate one colony layout ``colony_count`` times."""
        per_colony = types.size
        total = per_colony * colony_count
        return cls(
            types=np.tile(types, colony_count),
            positions=np.tile(positions, (colony_count, 1)),
            velocities=np.zeros((total, 3), dtype=np.float64),
            colony_ids=np.repeat(np.arange(colony_count, dtype=np.int32), per_colony),
            colony_offsets=np.arange(colony_count + 1, dtype=np.int64) * per_colony,
        )

    def __len__(self):
        return self.types.size

    @property
    def colony_count(self):
        return self.colony_offsets.size - 1

    def colony_slice(self, colony_id):
        return slice(int(self.colony_offsets[colony_id]), int(self.colony_offsets[colony_id + 1]))

    def reposition(self, types, positions):
        """Move every colony back onto ``positions`` and stop all motion."""
        for colony_id in range(self.colony_count):
            rows = self.colony_slice(colony_id)
            count = rows.stop - rows.start
            self.types[rows] = types[:count]
            self.positions[rows] = positions[:count]
        self.velocities.fill(0.0)

    def commit(self, new_positions, new_velocities):
        """Accept candidate rows whose values are all finite; return the rejected count."""
        finite = np.isfinite(new_positions).all(axis=1) & np.isfinite(new_velocities).all(axis=1)
        self.positions[finite] = new_positions[finite]
        self.velocities[finite] = new_velocities[finite]
        return int(finite.size - np.count_nonzero(finite))

    def copy(self):
        return ParticleArena(
            self.types.copy(), self.positions.copy(), self.velocities.copy(),
            self.colony_ids.copy(), self.colony_offsets.copy(),
        )


class FoodField:
    """Food shared by all colonies.

    A food item with a respawn time is hidden after being eaten and comes back
    once its timer expires. One without a respawn time (``nan``) is removed
    for the rest of the epoch.
    """

    def __init__(self, positions, values, respawn_times):
        self.positions = np.ascontiguousarray(positions, dtype=np.float64).reshape(-1, 3)
        count = self.positions.shape[0]
        self.values = np.broadcast_to(np.asarray(values, dtype=np.float64), (count,)).copy()
        self.respawn_times = np.broadcast_to(np.asarray(respawn_times, dtype=np.float64), (count,)).copy()
        self.active = np.ones(count, dtype=bool)
        self.removed = np.zeros(count, dtype=bool)
        self.timers = np.zeros(count, dtype=np.float64)

    @classmethod
    def scatter(cls, food_params, grid, rng):
        respawn = food_params.respawn_cooldown if food_params.respawn_enabled else np.nan
        positions = random_positions(grid, food_params.food_count, rng)
        return cls(positions, food_params.food_value, respawn)

    def __len__(self):
        return self.positions.shape[0]

    @property
    def has_timer(self):
        return ~np.isnan(self.respawn_times)

    @property
    def hidden(self):
        return ~self.active & ~self.removed

    def active_positions(self):
        return self.positions[self.active]

    def reset(self, positions):
        """Move every item to ``positions`` and make all of them available again."""
        self.positions[:] = positions
        self.active[:] = True
        self.removed[:] = False
        self.timers[:] = 0.0
