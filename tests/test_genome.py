"""Tests for the genome: lookups, random initialisation, crossover and mutation."""

import numpy as np
import pytest

from particle_life_engine.errors import ConfigurationError
from particle_life_engine.genome import Genome


@pytest.mark.parametrize("type_count", [1, 2, 3, 5])
def test_lookups_never_fail(type_count, rng):
    genome = Genome.random(type_count, rng)
    for a in range(-2, type_count + 3):
        for b in range(-2, type_count + 3):
            value = genome.get_force(a, b)
            if 0 <= a < type_count and 0 <= b < type_count:
                assert value == float(genome.force_matrix[a * type_count + b])
            else:
                assert value == 0.0
        expected = float(genome.food_forces[a]) if 0 <= a < type_count else 0.0
        assert genome.get_food_force(a) == expected


def test_out_of_range_column_does_not_alias_next_row():
    genome = Genome(2, [0.1, 0.2, 0.3, 0.4], [0.0, 0.0])
    assert genome.get_force(0, 2) == 0.0
    assert genome.get_force(1, 1) == pytest.approx(0.4)


def test_random_genome_ranges(rng):
    for _ in range(50):
        genome = Genome.random(4, rng)
        table = genome.force_table()
        assert np.all(np.diag(table) <= -0.1) and np.all(np.diag(table) >= -1.0)
        assert np.all(np.abs(table) <= 1.0)
        assert np.all(np.abs(genome.food_forces) <= 1.0)
        assert genome.force_matrix.dtype == np.float32


def test_zero_type_count_is_rejected():
    with pytest.raises(ConfigurationError):
        Genome(0)


def test_set_force_ignores_out_of_range():
    genome = Genome(2)
    genome.set_force(5, 0, 1.0)
    genome.set_force(1, 0, 0.5)
    assert genome.get_force(1, 0) == pytest.approx(0.5)
    assert np.count_nonzero(genome.force_matrix) == 1


def test_crossover_takes_each_entry_from_a_parent(rng):
    parent_a = Genome.random(3, rng)
    parent_b = Genome.random(3, rng)
    seen_a = seen_b = False
    for _ in range(200):
        child = parent_a.crossover(parent_b, rng)
        assert child.type_count == 3
        assert child.force_matrix.size == parent_a.force_matrix.size
        assert child.food_forces.size == parent_a.food_forces.size
        from_a = child.force_matrix == parent_a.force_matrix
        from_b = child.force_matrix == parent_b.force_matrix
        assert np.all(from_a | from_b)
        assert np.all((child.food_forces == parent_a.food_forces) | (child.food_forces == parent_b.food_forces))
        seen_a |= bool(from_a.any())
        seen_b |= bool(from_b.any())
    assert seen_a and seen_b


def test_crossover_rejects_mismatched_parents(rng):
    with pytest.raises(ConfigurationError):
        Genome.random(3, rng).crossover(Genome.random(4, rng), rng)


def test_mutation_stays_clamped(rng):
    genome = Genome(3, np.full(9, 1.95), np.full(3, -1.95))
    for _ in range(100):
        genome.mutate(1.0, rng)
        assert np.all(genome.force_matrix <= 2.0) and np.all(genome.force_matrix >= -2.0)
        assert np.all(genome.food_forces <= 2.0) and np.all(genome.food_forces >= -2.0)


def test_zero_rate_mutation_changes_nothing(rng):
    genome = Genome.random(3, rng)
    before = genome.copy()
    genome.mutate(0.0, rng)
    assert genome == before


def test_mutation_steps_are_bounded(rng):
    genome = Genome(3)
    genome.mutate(1.0, rng)
    assert np.all(np.abs(genome.force_matrix) <= 0.2 + 1e-6)


def test_copy_is_independent(rng):
    genome = Genome.random(2, rng)
    clone = genome.copy()
    clone.force_matrix[0] = 1.5
    assert genome.force_matrix[0] != clone.force_matrix[0]


def test_presets(rng):
    rps = Genome.preset(3, rng)
    assert rps.get_force(0, 1) == pytest.approx(1.0)
    assert rps.get_force(1, 0) == pytest.approx(-0.5)
    assert rps.get_food_force(0) == pytest.approx(0.8)
    cycle = Genome.preset(4, rng)
    assert cycle.get_force(3, 1) == pytest.approx(-1.2)
    other = Genome.preset(5, rng)
    assert np.all(np.diag(other.force_table()) <= -0.1)
