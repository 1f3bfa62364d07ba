# particle_life_engine/engine.py

import logging
import math

import numpy as np
import numba

from . import config as cfg # Use relative import within the package
from .params import BoundaryMode, InteractionSelection
from .physics import min_repulsion_radius, velocity_decay

logger = logging.getLogger(__name__)

TELEPORT = int(BoundaryMode.TELEPORT)
NEAREST = int(InteractionSelection.NEAREST)

# ==============================================================================
# PART 1: GEOMETRY HELPERS (boundary mode is passed as a plain int)
# ==============================================================================
@numba.njit
def wrap_delta(delta, extent):
    """Minimal-image displacement along one toroidal axis."""
    if abs(delta) > extent / 2.0:
        if delta > 0.0:
            return delta - extent
        return delta + extent
    return delta

@numba.njit
def direction(ox, oy, oz, tx, ty, tz, extents, boundary_mode):
    dx, dy, dz = tx - ox, ty - oy, tz - oz
    if boundary_mode == TELEPORT:
        dx = wrap_delta(dx, extents[0])
        dy = wrap_delta(dy, extents[1])
        dz = wrap_delta(dz, extents[2])
    return dx, dy, dz

@numba.njit
def contain_axis(p, v, extent, boundary_mode):
    half = extent / 2.0
    if boundary_mode == TELEPORT:
        if p > half:
            p = -half + (p - half)
        elif p < -half:
            p = half + (p + half)
    else:
        limit = half - cfg.PARTICLE_RADIUS
        if abs(p) > limit:
            p = np.sign(p) * limit
            v *= -cfg.COLLISION_DAMPING
    return p, v

@numba.njit
def genome_force(force_matrix, type_count, type_a, type_b):
    if type_a < 0 or type_a >= type_count or type_b < 0 or type_b >= type_count:
        return 0.0
    return float(force_matrix[type_a * type_count + type_b])

@numba.njit
def pair_force_magnitude(normalized_dist, normalized_min_r, attraction):
    if normalized_dist < normalized_min_r:
        return normalized_dist / normalized_min_r - 1.0
    return attraction * (
        1.0 - abs(1.0 + normalized_min_r - 2.0 * normalized_dist) / (1.0 - normalized_min_r)
    )

# ==============================================================================
# PART 2: THE BATCHED FORCE PASS
# ==============================================================================
@numba.njit(parallel=True)
def compute_forces_batched(
    positions, types, colony_ids, colony_offsets,
    force_matrices, food_forces, type_count,
    food_positions, max_force_range, min_r,
    interaction_cap, selection, boundary_mode, extents
):
    """
    Net force on every particle from its own colony and from active food.
    Each iteration reads the tick-start snapshot and writes only its own row.
    """
    n = positions.shape[0]
    forces = np.zeros((n, 3), dtype=np.float64)
    max_range_sq = max_force_range * max_force_range
    normalized_min_r = min_r / max_force_range

    for i in numba.prange(n):
        colony = colony_ids[i]
        start, stop = colony_offsets[colony], colony_offsets[colony + 1]
        matrix = force_matrices[colony]
        ox, oy, oz = positions[i, 0], positions[i, 1], positions[i, 2]
        particle_type = types[i]

        # Gather neighbours inside the force range, in arena order.
        cand_idx = np.empty(stop - start, dtype=np.int64)
        cand_dist_sq = np.empty(stop - start, dtype=np.float64)
        count = 0
        for j in range(start, stop):
            if j == i:
                continue
            dx, dy, dz = direction(ox, oy, oz, positions[j, 0], positions[j, 1], positions[j, 2],
                                   extents, boundary_mode)
            dist_sq = dx * dx + dy * dy + dz * dz
            if dist_sq > max_range_sq or dist_sq < cfg.MIN_DISTANCE:
                continue
            cand_idx[count] = j
            cand_dist_sq[count] = dist_sq
            count += 1
            if selection != NEAREST and count >= interaction_cap:
                break

        if selection == NEAREST:
            order = np.argsort(cand_dist_sq[:count], kind='mergesort')
        else:
            order = np.arange(count)
        used = min(count, interaction_cap)

        fx, fy, fz = 0.0, 0.0, 0.0
        for k in range(used):
            j = cand_idx[order[k]]
            dx, dy, dz = direction(ox, oy, oz, positions[j, 0], positions[j, 1], positions[j, 2],
                                   extents, boundary_mode)
            dist = math.sqrt(dx * dx + dy * dy + dz * dz)
            if dist < cfg.MIN_DISTANCE:
                continue
            normalized_dist = dist / max_force_range
            attraction = genome_force(matrix, type_count, particle_type, types[j]) * cfg.FORCE_SCALE_FACTOR
            force = pair_force_magnitude(normalized_dist, normalized_min_r, attraction)
            fx += ((dx / max_force_range) * force / normalized_dist) * max_force_range
            fy += ((dy / max_force_range) * force / normalized_dist) * max_force_range
            fz += ((dz / max_force_range) * force / normalized_dist) * max_force_range

        # Food attraction saturates once the particle is within twice the food radius.
        affinity = 0.0
        if particle_type >= 0 and particle_type < type_count:
            affinity = float(food_forces[colony, particle_type])
        if abs(affinity) > cfg.FOOD_FORCE_THRESHOLD:
            food_force = affinity * cfg.FORCE_SCALE_FACTOR
            for f in range(food_positions.shape[0]):
                dx, dy, dz = direction(ox, oy, oz, food_positions[f, 0], food_positions[f, 1],
                                       food_positions[f, 2], extents, boundary_mode)
                distance = math.sqrt(dx * dx + dy * dy + dz * dz)
                if distance <= cfg.MIN_DISTANCE or distance >= max_force_range:
                    continue
                factor = math.sqrt(min(cfg.FOOD_RADIUS * 2.0 / distance, 1.0))
                fx += (dx / distance) * (food_force * factor)
                fy += (dy / distance) * (food_force * factor)
                fz += (dz / distance) * (food_force * factor)

        forces[i, 0] = fx
        forces[i, 1] = fy
        forces[i, 2] = fz
    return forces

# ==============================================================================
# PART 3: THE BATCHED INTEGRATION PASS
# ==============================================================================
@numba.njit(parallel=True)
def integrate_batched(positions, velocities, forces, dt, decay, boundary_mode, extents):
    """Candidate positions/velocities after one fixed step. Inputs are left untouched."""
    n = positions.shape[0]
    new_positions = np.empty_like(positions)
    new_velocities = np.empty_like(velocities)
    for i in numba.prange(n):
        vx = (velocities[i, 0] + forces[i, 0] * dt) * decay
        vy = (velocities[i, 1] + forces[i, 1] * dt) * decay
        vz = (velocities[i, 2] + forces[i, 2] * dt) * decay
        speed = math.sqrt(vx * vx + vy * vy + vz * vz)
        if speed > cfg.MAX_VELOCITY:
            vx = vx / speed * cfg.MAX_VELOCITY
            vy = vy / speed * cfg.MAX_VELOCITY
            vz = vz / speed * cfg.MAX_VELOCITY
        px, vx = contain_axis(positions[i, 0] + vx * dt, vx, extents[0], boundary_mode)
        py, vy = contain_axis(positions[i, 1] + vy * dt, vy, extents[1], boundary_mode)
        pz, vz = contain_axis(positions[i, 2] + vz * dt, vz, extents[2], boundary_mode)
        new_positions[i, 0], new_positions[i, 1], new_positions[i, 2] = px, py, pz
        new_velocities[i, 0], new_velocities[i, 1], new_velocities[i, 2] = vx, vy, vz
    return new_positions, new_velocities

# ==============================================================================
# PART 4: THE PYTHON-SIDE LAUNCHER
# ==============================================================================
def stack_genomes(genomes):
    """Pack colony genomes into ``(colonies, T*T)`` and ``(colonies, T)`` float32 arrays."""
    force_matrices = np.stack([genome.force_matrix for genome in genomes]).astype(np.float32)
    food_forces = np.stack([genome.food_forces for genome in genomes]).astype(np.float32)
    return force_matrices, food_forces


def step(arena, genomes, food, policy, sim_params, dt=cfg.PHYSICS_TIMESTEP):
    """Advance every particle by one fixed timestep with the compiled kernels."""
    force_matrices, food_forces = stack_genomes(genomes)
    extents = policy.extents.astype(np.float64)
    boundary_mode = int(policy.mode)
    food_positions = np.ascontiguousarray(food.active_positions(), dtype=np.float64).reshape(-1, 3)

    forces = compute_forces_batched(
        arena.positions, arena.types, arena.colony_ids, arena.colony_offsets,
        force_matrices, food_forces, genomes[0].type_count,
        food_positions, float(sim_params.max_force_range), float(min_repulsion_radius(sim_params)),
        int(sim_params.interaction_cap), int(sim_params.interaction_selection), boundary_mode, extents,
    )
    new_positions, new_velocities = integrate_batched(
        arena.positions, arena.velocities, forces, float(dt),
        float(velocity_decay(sim_params, dt)), boundary_mode, extents,
    )
    rejected = arena.commit(new_positions, new_velocities)
    if rejected:
        logger.warning("Discarded %d non-finite particle updates from the batched pass", rejected)
    return rejected
