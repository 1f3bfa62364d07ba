"""Saved populations: one colony's genome plus the parameters it evolved under."""

import json
import logging
import os
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone

from . import config as cfg
from .errors import PopulationLoadError
from .genome import Genome
from .params import BoundaryMode, FoodParameters, GridParameters, RunParameters, SimulationParameters

logger = logging.getLogger(__name__)

SAVED_SIMULATION_KEYS = ("particle_count", "particle_types", "max_force_range",
                         "velocity_half_life", "epoch_duration")


@dataclass
class PopulationRecord:
    name: str
    genome: dict
    score: float
    simulation_params: dict
    grid_params: dict
    food_params: dict
    boundary_mode: str = BoundaryMode.BOUNCE.name
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).strftime(cfg.TIMESTAMP_FORMAT))
    description: str = None

    @classmethod
    def from_colony(cls, colony, params, name, description=None, score=None):
        genome = colony.genome
        return cls(
            name=name,
            genome={
                "force_matrix": [float(value) for value in genome.force_matrix],
                "food_forces": [float(value) for value in genome.food_forces],
                "type_count": genome.type_count,
            },
            score=float(colony.score if score is None else score),
            simulation_params={key: getattr(params.simulation, key) for key in SAVED_SIMULATION_KEYS},
            grid_params=asdict(params.grid),
            food_params=asdict(params.food),
            boundary_mode=BoundaryMode(params.simulation.boundary_mode).name,
            description=description,
        )

    def to_dict(self):
        return asdict(self)

    @classmethod
    def from_dict(cls, data):
        try:
            record = cls(**data)
            genome, sim_params, grid_params, food_params, _ = record.to_parameters()
            RunParameters(sim_params, grid_params, food_params).validate()
            genome.validate()
        except (TypeError, KeyError, ValueError) as exc:
            raise PopulationLoadError(f"Invalid population record: {exc}") from exc
        return record

    def dumps(self):
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def loads(cls, text):
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise PopulationLoadError(f"Population record is not valid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise PopulationLoadError("Population record must be a JSON object")
        return cls.from_dict(data)

    def to_parameters(self):
        """Genome, single-colony simulation parameters, grid, food and boundary mode."""
        genome = Genome(self.genome["type_count"], self.genome["force_matrix"], self.genome["food_forces"])
        sim_params = SimulationParameters(colony_count=1, **self.simulation_params)
        sim_params.boundary_mode = BoundaryMode[self.boundary_mode]
        grid_params = GridParameters(**self.grid_params)
        food_params = FoodParameters(**self.food_params)
        return genome, sim_params, grid_params, food_params, sim_params.boundary_mode


def record_filename(record):
    safe_name = "".join(ch if ch.isalnum() or ch in "-_" else "_" for ch in record.name)
    return f"{safe_name}_{record.timestamp}.json"


def save_population(world, colony_id, name, directory=cfg.POPULATION_DIR, description=None, score=None):
    """Write one colony of ``world`` to ``directory`` and return the file path.

    Raises ``ColonyNotFoundError`` before touching the filesystem if the colony
    does not exist.
    """
    colony = world.colony(colony_id)
    record = PopulationRecord.from_colony(colony, world.params, name, description, score)
    os.makedirs(directory, exist_ok=True)
    path = os.path.join(directory, record_filename(record))
    with open(path, "w") as f:
        f.write(record.dumps())
    logger.info("Saved colony %d (score %.2f) to %s", colony_id, record.score, path)
    return path


def load_population(path):
    try:
        with open(path, "r") as f:
            text = f.read()
    except OSError as exc:
        raise PopulationLoadError(f"Could not read population file '{path}': {exc}") from exc
    return PopulationRecord.loads(text)


def list_populations(directory=cfg.POPULATION_DIR):
    """Every readable record in ``directory``, newest timestamp first. Broken files are skipped."""
    if not os.path.isdir(directory):
        return []
    records = []
    for filename in sorted(os.listdir(directory)):
        if not filename.endswith(".json"):
            continue
        try:
            records.append(load_population(os.path.join(directory, filename)))
        except PopulationLoadError as exc:
            logger.warning("Skipping %s: %s", filename, exc)
    records.sort(key=lambda record: record.timestamp, reverse=True)
    return records
