"""Tests for saving and restoring populations."""

import json
import os

import numpy as np
import pytest

from particle_life_engine import BoundaryMode, ColonyNotFoundError, PopulationLoadError, World
from particle_life_engine.persistence import (PopulationRecord, list_populations, load_population,
                                              save_population)


@pytest.fixture
def world(small_params):
    small_params.simulation.boundary_mode = BoundaryMode.TELEPORT
    world = World(small_params, executor="sequential", seed=5).populate()
    world.colonies[1].score = 12.5
    return world


def test_save_and_load_round_trip(world, tmp_path):
    path = save_population(world, 1, "Runner up", directory=str(tmp_path), description="second colony")
    assert os.path.basename(path).startswith("Runner_up_")

    record = load_population(path)
    assert record.name == "Runner up"
    assert record.score == 12.5
    assert record.description == "second colony"
    assert record.boundary_mode == "TELEPORT"

    genome, sim_params, grid_params, food_params, boundary_mode = record.to_parameters()
    saved = world.colony(1).genome
    assert genome == saved
    assert np.array_equal(genome.force_matrix.view(np.uint32), saved.force_matrix.view(np.uint32))
    assert sim_params.colony_count == 1
    assert sim_params.particle_count == 12
    assert sim_params.max_force_range == 80.0
    assert grid_params == world.grid
    assert food_params == world.params.food
    assert boundary_mode is BoundaryMode.TELEPORT


def test_unknown_colony_writes_nothing(world, tmp_path):
    directory = tmp_path / "populations"
    with pytest.raises(ColonyNotFoundError):
        save_population(world, 9, "ghost", directory=str(directory))
    assert not directory.exists()


def test_invalid_json_is_rejected(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json")
    with pytest.raises(PopulationLoadError):
        load_population(str(path))


def test_missing_fields_are_rejected():
    with pytest.raises(PopulationLoadError):
        PopulationRecord.loads(json.dumps({"name": "incomplete"}))
    with pytest.raises(PopulationLoadError):
        PopulationRecord.loads("[1, 2, 3]")


def test_bad_genome_is_rejected(world):
    data = PopulationRecord.from_colony(world.colony(0), world.params, "bad").to_dict()
    data["genome"]["force_matrix"] = data["genome"]["force_matrix"][:-1]
    with pytest.raises(PopulationLoadError):
        PopulationRecord.from_dict(data)


@pytest.mark.parametrize("section, key, value", [
    ("grid_params", "width", 0.0),
    ("simulation_params", "epoch_duration", float("inf")),
    ("food_params", "food_value", float("nan")),
])
def test_unrunnable_parameters_are_rejected(world, section, key, value):
    data = PopulationRecord.from_colony(world.colony(0), world.params, "bad").to_dict()
    data[section][key] = value
    with pytest.raises(PopulationLoadError):
        PopulationRecord.loads(json.dumps(data))


@pytest.mark.parametrize("value", [float("nan"), 3.0, -2.5])
def test_out_of_range_genome_values_are_rejected(world, value):
    data = PopulationRecord.from_colony(world.colony(0), world.params, "bad").to_dict()
    data["genome"]["force_matrix"][0] = value
    with pytest.raises(PopulationLoadError):
        PopulationRecord.loads(json.dumps(data))


def test_listing_skips_unrunnable_records(world, tmp_path):
    save_population(world, 0, "good", directory=str(tmp_path))
    data = PopulationRecord.from_colony(world.colony(0), world.params, "nan-genome").to_dict()
    data["genome"]["food_forces"][0] = float("nan")
    (tmp_path / "nan-genome.json").write_text(json.dumps(data))
    assert [record.name for record in list_populations(str(tmp_path))] == ["good"]


def test_saved_score_can_be_given_explicitly(world, tmp_path):
    path = save_population(world, 1, "best", directory=str(tmp_path), score=99.0)
    assert load_population(path).score == 99.0
    assert world.colony(1).score == 12.5


def test_missing_file_is_a_load_error(tmp_path):
    with pytest.raises(PopulationLoadError):
        load_population(str(tmp_path / "absent.json"))


def test_list_populations_skips_broken_files(world, tmp_path):
    save_population(world, 0, "first", directory=str(tmp_path))
    save_population(world, 1, "second", directory=str(tmp_path))
    (tmp_path / "junk.json").write_text("nope")
    (tmp_path / "notes.txt").write_text("ignored")

    records = list_populations(str(tmp_path))
    assert sorted(record.name for record in records) == ["first", "second"]
    assert list_populations(str(tmp_path / "missing")) == []


def test_world_from_record(world, tmp_path):
    record = load_population(save_population(world, 1, "seed", directory=str(tmp_path)))
    restored = World.from_record(record, executor="sequential", seed=1)

    assert restored.is_populated
    assert len(restored.colonies) == 1
    assert restored.genomes[0] == world.colony(1).genome
    assert isinstance(restored.policy, type(world.policy))
    restored.update()
    assert np.isfinite(restored.particles.positions).all()
