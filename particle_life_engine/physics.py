"""Sequential force field and integrator.

This is the reference executor: one particle at a time, plain Python and
numpy. ``engine.py`` holds the batched executor, which must reproduce these
trajectories within floating point tolerance, so every formula here has a
twin there written in the same operation order.
"""

import logging
import math

import numpy as np

from . import config as cfg
from .params import InteractionSelection

logger = logging.getLogger(__name__)


def velocity_decay(sim_params, dt=cfg.PHYSICS_TIMESTEP):
    """Per-step velocity multiplier for the configured half-life."""
    return 0.5 ** (dt / sim_params.velocity_half_life)


def min_repulsion_radius(sim_params):
    return sim_params.particle_types * cfg.PARTICLE_RADIUS


def length_squared(vector):
    return vector[0] * vector[0] + vector[1] * vector[1] + vector[2] * vector[2]


def pair_force_magnitude(normalized_dist, normalized_min_r, attraction):
    """Piecewise force curve over the normalised distance.

    Inside the minimum radius the force is a linear repulsion reaching -1 at
    contact. Beyond it the force is a tent that is zero at the minimum radius
    and at the force range, peaking at ``attraction`` in between.
    """
    if normalized_dist < normalized_min_r:
        return normalized_dist / normalized_min_r - 1.0
    return attraction * (
        1.0 - abs(1.0 + normalized_min_r - 2.0 * normalized_dist) / (1.0 - normalized_min_r)
    )


def pair_acceleration(min_r, delta, attraction, max_force_range):
    """Acceleration on a particle from a neighbour at displacement ``delta``, in range units."""
    dist = math.sqrt(length_squared(delta))
    if dist < cfg.MIN_DISTANCE:
        return np.zeros(3)
    normalized_dist = dist / max_force_range
    force = pair_force_magnitude(normalized_dist, min_r / max_force_range, attraction)
    return (delta / max_force_range) * force / normalized_dist


def food_acceleration(delta, food_force, max_force_range):
    """Pull towards a food item, saturating once inside twice the food radius."""
    distance = math.sqrt(length_squared(delta))
    if distance <= cfg.MIN_DISTANCE or distance >= max_force_range:
        return np.zeros(3)
    factor = math.sqrt(min(cfg.FOOD_RADIUS * 2.0 / distance, 1.0))
    return (delta / distance) * (food_force * factor)


def select_neighbours(candidates, cap, selection):
    """Trim ``(index, delta, dist_sq)`` candidates to the interaction cap.

    Candidates arrive in arena order. ``FIRST_ENCOUNTERED`` keeps that order;
    ``NEAREST`` keeps the closest ones, ties broken by arena order.
    """
    if selection == InteractionSelection.NEAREST:
        candidates = sorted(candidates, key=lambda item: item[2])
    return candidates[:cap]


def particle_force(i, arena, genome, food_positions, policy, sim_params):
    """Net force on particle ``i`` from its own colony and from active food."""
    position = arena.positions[i]
    particle_type = int(arena.types[i])
    max_range = sim_params.max_force_range
    max_range_sq = max_range * max_range
    min_r = min_repulsion_radius(sim_params)

    colony = arena.colony_slice(int(arena.colony_ids[i]))
    candidates = []
    for j in range(colony.start, colony.stop):
        if j == i:
            continue
        delta = policy.direction(position, arena.positions[j])
        dist_sq = length_squared(delta)
        if dist_sq > max_range_sq or dist_sq < cfg.MIN_DISTANCE:
            continue
        candidates.append((j, delta, dist_sq))
        if sim_params.interaction_selection == InteractionSelection.FIRST_ENCOUNTERED \
                and len(candidates) >= sim_params.interaction_cap:
            break

    total = np.zeros(3)
    for j, delta, _ in select_neighbours(candidates, sim_params.interaction_cap,
                                         sim_params.interaction_selection):
        attraction = genome.get_force(particle_type, int(arena.types[j])) * cfg.FORCE_SCALE_FACTOR
        total += pair_acceleration(min_r, delta, attraction, max_range) * max_range

    affinity = genome.get_food_force(particle_type)
    if abs(affinity) > cfg.FOOD_FORCE_THRESHOLD:
        food_force = affinity * cfg.FORCE_SCALE_FACTOR
        for food_position in food_positions:
            total += food_acceleration(policy.direction(position, food_position), food_force, max_range)
    return total


def compute_forces(arena, genomes, food, policy, sim_params):
    """Forces for every particle, aligned with the arena rows.

    Reads only tick-start state, so the result does not depend on the order
    particles are visited in.
    """
    forces = np.zeros((len(arena), 3))
    food_positions = food.active_positions()
    for i in range(len(arena)):
        genome = genomes[int(arena.colony_ids[i])]
        forces[i] = particle_force(i, arena, genome, food_positions, policy, sim_params)
    return forces


def integrate(arena, forces, policy, sim_params, dt=cfg.PHYSICS_TIMESTEP):
    """Candidate positions and velocities after one step; the arena is not touched."""
    decay = velocity_decay(sim_params, dt)
    new_positions = np.empty_like(arena.positions)
    new_velocities = np.empty_like(arena.velocities)
    for i in range(len(arena)):
        velocity = (arena.velocities[i] + forces[i] * dt) * decay
        speed = math.sqrt(length_squared(velocity))
        if speed > cfg.MAX_VELOCITY:
            velocity = velocity / speed * cfg.MAX_VELOCITY
        position = arena.positions[i] + velocity * dt
        new_positions[i], new_velocities[i] = policy.contain(position, velocity)
    return new_positions, new_velocities


def step(arena, genomes, food, policy, sim_params, dt=cfg.PHYSICS_TIMESTEP):
    """Advance every particle by one fixed timestep; return the rejected row count."""
    forces = compute_forces(arena, genomes, food, policy, sim_params)
    new_positions, new_velocities = integrate(arena, forces, policy, sim_params, dt)
    rejected = arena.commit(new_positions, new_velocities)
    if rejected:
        logger.warning("Discarded %d non-finite particle updates", rejected)
    return rejected
