"""Grid edge policies.

A policy decides both what happens when a particle leaves the grid and how the
displacement between two points is measured. The force pass and the
integration pass of one tick must share the same policy instance.
"""

import numpy as np

from . import config as cfg
from .params import BoundaryMode


class BoundaryPolicy:
    mode = None

    def __init__(self, grid):
        self.grid = grid
        self.extents = np.array(grid.extents, dtype=np.float64)
        self.half_extents = self.extents / 2.0

    def contain(self, position, velocity):
        raise NotImplementedError

    def direction(self, origin, target):
        raise NotImplementedError


class BouncePolicy(BoundaryPolicy):
    """Walls at ``half_extent - PARTICLE_RADIUS`` reflect and damp the crossing axis."""

    mode = BoundaryMode.BOUNCE

    def contain(self, position, velocity):
        position = np.array(position, dtype=np.float64)
        velocity = np.array(velocity, dtype=np.float64)
        limits = self.half_extents - cfg.PARTICLE_RADIUS
        for axis in range(3):
            if abs(position[axis]) > limits[axis]:
                position[axis] = np.sign(position[axis]) * limits[axis]
                velocity[axis] *= -cfg.COLLISION_DAMPING
        return position, velocity

    def direction(self, origin, target):
        return np.asarray(target, dtype=np.float64) - np.asarray(origin, dtype=np.float64)


class TeleportPolicy(BoundaryPolicy):
    """Toroidal grid: coordinates wrap and distances use the nearest periodic image."""

    mode = BoundaryMode.TELEPORT

    def contain(self, position, velocity):
        position = np.array(position, dtype=np.float64)
        velocity = np.array(velocity, dtype=np.float64)
        for axis in range(3):
            half = self.half_extents[axis]
            if position[axis] > half:
                position[axis] = -half + (position[axis] - half)
            elif position[axis] < -half:
                position[axis] = half + (position[axis] + half)
        return position, velocity

    def direction(self, origin, target):
        delta = np.asarray(target, dtype=np.float64) - np.asarray(origin, dtype=np.float64)
        for axis in range(3):
            if abs(delta[axis]) > self.half_extents[axis]:
                if delta[axis] > 0.0:
                    delta[axis] -= self.extents[axis]
                else:
                    delta[axis] += self.extents[axis]
        return delta


_POLICIES = {
    BoundaryMode.BOUNCE: BouncePolicy,
    BoundaryMode.TELEPORT: TeleportPolicy,
}


def boundary_policy(mode, grid):
    """Build the policy for ``mode`` (a ``BoundaryMode`` or its integer value)."""
    return _POLICIES[BoundaryMode(mode)](grid)
