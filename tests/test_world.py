"""Tests for the world lifecycle: population, updates and epoch transitions."""

import numpy as np
import pytest

from particle_life_engine import (BoundaryMode, ColonyNotFoundError, ConfigurationError, Genome,
                                  SimulationSpeed, World, WorldState)
from particle_life_engine.boundary import BouncePolicy, TeleportPolicy
from particle_life_engine.params import RunParameters, SimulationParameters


@pytest.fixture
def world(small_params):
    return World(small_params, executor="sequential", seed=7)


def test_populate_spawns_every_colony(world):
    assert world.state is WorldState.UNINITIALIZED
    world.populate()
    assert world.is_populated
    assert len(world.colonies) == 3
    assert len(world.particles) == 36
    assert len(world.food) == 10
    for colony in world.colonies:
        assert colony.particle_count == 12
        assert colony.score == 0.0
    # every colony starts from the same layout
    np.testing.assert_array_equal(world.particles.positions[:12], world.particles.positions[12:24])
    assert not world.particles.velocities.any()


def test_populate_only_once(world):
    world.populate()
    positions = world.particles.positions.copy()
    world.populate()
    np.testing.assert_array_equal(world.particles.positions, positions)


def test_uneven_particle_count_is_rounded_up(small_params):
    small_params.simulation.particle_count = 10
    world = World(small_params, executor="sequential", seed=1).populate()
    assert world.colonies[0].particle_count == 12
    counts = np.bincount(world.particles.types[:12])
    assert counts.tolist() == [4, 4, 4]


def test_populate_checks_genomes(world, rng):
    with pytest.raises(ConfigurationError):
        world.populate([Genome.random(3, rng)])
    with pytest.raises(ConfigurationError):
        world.populate([Genome.random(2, rng) for _ in range(3)])
    assert not world.is_populated


def test_populate_with_given_genomes(world, rng):
    genomes = [Genome.random(3, rng) for _ in range(3)]
    world.populate(genomes)
    assert world.genomes == genomes
    assert world.genomes[0] is not genomes[0]


def test_unknown_colony(world):
    world.populate()
    assert world.colony(2).id == 2
    with pytest.raises(ColonyNotFoundError) as excinfo:
        world.colony(3)
    assert excinfo.value.colony_id == 3
    with pytest.raises(LookupError):
        world.colony(-1)


def test_invalid_configuration_is_rejected():
    with pytest.raises(ConfigurationError):
        World(RunParameters(simulation=SimulationParameters(particle_types=0)))
    with pytest.raises(ConfigurationError):
        World(executor="gpu")


@pytest.mark.parametrize("field", ["max_force_range", "velocity_half_life", "epoch_duration"])
@pytest.mark.parametrize("value", [float("nan"), float("inf")])
def test_non_finite_simulation_parameters_are_rejected(small_params, field, value):
    setattr(small_params.simulation, field, value)
    with pytest.raises(ConfigurationError):
        World(small_params, executor="sequential")


@pytest.mark.parametrize("field", ["respawn_cooldown", "food_value"])
@pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
def test_non_finite_food_parameters_are_rejected(small_params, field, value):
    setattr(small_params.food, field, value)
    with pytest.raises(ConfigurationError):
        World(small_params, executor="sequential")


def test_update_populates_lazily(world):
    assert world.update() is None
    assert world.is_populated


def test_paused_update_does_nothing(world):
    world.populate()
    world.set_speed(SimulationSpeed.PAUSED)
    positions = world.particles.positions.copy()
    assert world.update() is None
    np.testing.assert_array_equal(world.particles.positions, positions)
    assert world.epoch_timer.elapsed == 0.0
    with pytest.raises(ConfigurationError):
        world.run_epoch()


@pytest.mark.parametrize("speed", [SimulationSpeed.NORMAL, SimulationSpeed.FAST, SimulationSpeed.VERY_FAST])
def test_speed_sets_steps_per_update(world, monkeypatch, speed):
    world.populate()
    world.set_speed(speed)
    calls = []
    monkeypatch.setattr(world, "step", lambda: calls.append(1))
    world.update(0.01)
    assert len(calls) == speed.value
    assert world.epoch_timer.elapsed == pytest.approx(0.01 * speed.multiplier)


def test_epoch_transition_resets_the_world(world):
    world.populate()
    world.colonies[1].score = 4.0
    stats = world.run_epoch()

    assert stats.epoch == 0
    assert stats.best >= 4.0
    assert world.epoch == 1
    assert world.history == [stats]
    assert world.previous_best == stats.best
    assert world.scores == [0.0, 0.0, 0.0]
    assert not world.particles.velocities.any()
    assert world.food.active.all()
    assert world.epoch_timer.elapsed == 0.0
    assert len(world.genomes) == 3


def test_best_genome_survives_the_epoch(world):
    world.populate()
    for colony in world.colonies:
        colony.score = -100.0
    world.colonies[2].score = 1000.0
    champion = world.colonies[2].genome.copy()
    world.end_epoch()
    assert world.genomes[0] == champion


def test_finished_after_max_epochs(world):
    world.populate()
    while not world.finished:
        world.end_epoch()
    assert world.epoch == 5
    assert [stats.epoch for stats in world.history] == [0, 1, 2, 3, 4]
    assert world.history[0].improvement == 0.0


def test_switching_boundary_mode(world):
    world.populate()
    assert isinstance(world.policy, BouncePolicy)
    world.set_boundary_mode(BoundaryMode.TELEPORT)
    assert isinstance(world.policy, TeleportPolicy)
    world.update()
    with pytest.raises(ConfigurationError):
        world.set_boundary_mode(7)


def test_batched_world_runs_an_epoch(small_params):
    world = World(small_params, executor="batched", seed=3)
    stats = world.run_epoch()
    assert world.epoch == 1
    assert stats.worst <= stats.average <= stats.best
    assert np.isfinite(world.particles.positions).all()


def test_executors_agree_on_a_seeded_update(small_params):
    sequential = World(small_params, executor="sequential", seed=11).populate()
    batched = World(small_params, executor="batched", seed=11).populate()
    for _ in range(3):
        sequential.update()
        batched.update()
    np.testing.assert_allclose(batched.particles.positions, sequential.particles.positions,
                               rtol=1e-7, atol=1e-7)
    assert batched.scores == sequential.scores
