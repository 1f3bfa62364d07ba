# Headless runner for the particle colonies (e.g. python main.py 20 --executor batched)

import csv
import argparse
import logging
import os
import sys

from particle_life_engine import (BoundaryMode, FoodParameters, GridParameters, InteractionSelection,
                                  ParticleLifeError, RunParameters, SimulationParameters,
                                  Genome, SimulationSpeed, World)
from particle_life_engine.persistence import save_population
import particle_life_engine.config as cfg

def save_chronicle(history, run_number: int, directory: str = cfg.CHRONICLE_DIR):
    """Saves the per-epoch statistics to a CSV file."""
    os.makedirs(directory, exist_ok=True)
    filename = os.path.join(directory, f"run_{run_number}_epochs.csv")

    with open(filename, 'w', newline='') as f:
        writer = csv.writer(f)
        writer.writerow(cfg.EPOCH_STATS_KEYS)
        writer.writerows(stats.as_row() for stats in history)
    print(f"Successfully saved chronicle to {filename}")
    return filename

def build_parameters(args) -> RunParameters:
    simulation = SimulationParameters(
        colony_count=args.colonies,
        particle_count=args.particles,
        particle_types=args.types,
        simulation_speed=SimulationSpeed[args.speed.upper()],
        boundary_mode=BoundaryMode[args.boundary.upper()],
        interaction_selection=InteractionSelection[args.selection.upper()],
        epoch_duration=args.epoch_duration,
        max_epochs=args.num_epochs,
    )
    grid = GridParameters(args.grid, args.grid, args.grid)
    food = FoodParameters(food_count=args.food, respawn_enabled=not args.single_use_food)
    return RunParameters(simulation, grid, food)

def seed_genomes(world):
    """Every colony starts from the same hand-tuned force table."""
    preset = Genome.preset(world.sim.particle_types, world.rng)
    return [preset] * world.sim.colony_count

def main(args) -> int:
    """
    Evolves the colonies for the requested number of epochs.
    """
    print(f"--- Preparing to run {args.num_epochs} epoch(s) with the {args.executor} executor. ---")

    try:
        world = World(build_parameters(args), executor=args.executor, seed=args.seed)
        world.populate(seed_genomes(world) if args.preset else None)
    except ParticleLifeError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    best_epoch, best_score = 0, float('-inf')
    while not world.finished:
        stats = world.run_epoch()
        if stats.best > best_score:
            best_epoch, best_score = stats.epoch + 1, stats.best
        print(f"> Epoch {stats.epoch + 1}/{args.num_epochs} | best {stats.best:.2f} | "
              f"avg {stats.average:.2f} | std {stats.std_deviation:.2f} | "
              f"mutation {stats.mutation_rate:.3f}")

    save_chronicle(world.history, args.run_number, args.chronicle_dir)

    if args.save_best and world.history:
        # Elites lead the new generation, so colony 0 now carries the last epoch's best genome.
        try:
            path = save_population(world, 0, args.save_best, directory=args.population_dir,
                                   score=world.history[-1].best)
        except (ParticleLifeError, OSError) as exc:
            print(f"Warning: could not save population: {exc}", file=sys.stderr)
        else:
            print(f"Saved best genome to {path}")

    print(f"--- Evolution Complete: best score {best_score:.2f} in epoch {best_epoch} ---")
    return 0

def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Run the particle colony evolution harness.")
    parser.add_argument("num_epochs", type=int, nargs='?', default=10)
    parser.add_argument("--run-number", type=int, default=1)
    parser.add_argument("--executor", choices=["batched", "sequential"], default="batched")
    parser.add_argument("--colonies", type=int, default=cfg.DEFAULT_COLONY_COUNT)
    parser.add_argument("--particles", type=int, default=cfg.DEFAULT_PARTICLE_COUNT)
    parser.add_argument("--types", type=int, default=cfg.DEFAULT_PARTICLE_TYPES)
    parser.add_argument("--food", type=int, default=cfg.DEFAULT_FOOD_COUNT)
    parser.add_argument("--single-use-food", action="store_true")
    parser.add_argument("--grid", type=float, default=cfg.DEFAULT_GRID_WIDTH)
    parser.add_argument("--epoch-duration", type=float, default=cfg.DEFAULT_EPOCH_DURATION)
    parser.add_argument("--boundary", choices=["bounce", "teleport"], default="bounce")
    parser.add_argument("--selection", choices=["first_encountered", "nearest"], default="first_encountered")
    parser.add_argument("--speed", choices=["normal", "fast", "very_fast"], default="normal")
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--preset", action="store_true", help="Start every colony from the hand-tuned force table")
    parser.add_argument("--save-best", metavar="NAME", default=None)
    parser.add_argument("--chronicle-dir", default=cfg.CHRONICLE_DIR)
    parser.add_argument("--population-dir", default=cfg.POPULATION_DIR)
    parser.add_argument("--log-level", default="WARNING")
    return parser.parse_args(argv)

if __name__ == "__main__":
    args = parse_args()
    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(name)s %(levelname)s %(message)s")
    sys.exit(main(args))
