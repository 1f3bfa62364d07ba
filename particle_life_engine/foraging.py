"""Particle/food collisions and the food respawn cycle.

Food is the one resource every colony writes to, so it is resolved here in a
single sequential pass after the physics step. When several particles touch
the same food in one update, the particle with the lowest arena index eats it.
"""

from collections import namedtuple

import numpy as np

from . import config as cfg

Consumption = namedtuple("Consumption", ["food_index", "particle_index", "colony_id", "value"])


def advance_respawn_timers(food, delta):
    """Tick hidden food; anything whose timer has run out becomes active again."""
    hidden = food.hidden
    food.timers[hidden] += delta
    expired = hidden & (food.timers >= food.respawn_times)
    food.active[expired] = True
    food.timers[expired] = 0.0
    return int(np.count_nonzero(expired))


def forage(arena, colonies, food, delta):
    """Award food to the colonies whose particles touch it.

    Returns the list of ``Consumption`` events in food order.
    """
    advance_respawn_timers(food, delta)
    collision_distance = cfg.PARTICLE_RADIUS + cfg.FOOD_RADIUS
    has_timer = food.has_timer
    events = []
    if len(arena) == 0:
        return events

    for f in np.flatnonzero(food.active):
        offsets = arena.positions - food.positions[f]
        distances = np.sqrt(np.einsum("ij,ij->i", offsets, offsets))
        touching = np.flatnonzero(distances < collision_distance)
        if touching.size == 0:
            continue
        winner = int(touching[0])
        colony_id = int(arena.colony_ids[winner])
        value = float(food.values[f])
        colonies[colony_id].add_score(value)

        food.active[f] = False
        if has_timer[f]:
            food.timers[f] = 0.0
        else:
            food.removed[f] = True
        events.append(Consumption(int(f), winner, colony_id, value))
    return events
