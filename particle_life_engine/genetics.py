"""Genetic algorithm run between epochs.

Turns the (genome, score) snapshot of the epoch that just ended into the
genomes of the next one: elitism, weighted tournament selection, uniform
crossover, and a mutation rate that adapts to diversity and stagnation.
"""

import logging
import math
from collections import namedtuple
from dataclasses import asdict, dataclass

import numpy as np

from . import config as cfg

logger = logging.getLogger(__name__)

ScoredGenome = namedtuple("ScoredGenome", ["genome", "score"])


@dataclass
class EpochStats:
    epoch: int = 0
    best: float = 0.0
    worst: float = 0.0
    average: float = 0.0
    median: float = 0.0
    std_deviation: float = 0.0
    improvement: float = 0.0
    q1: float = 0.0
    q3: float = 0.0
    mutation_rate: float = 0.0

    def as_row(self):
        values = asdict(self)
        return [values[key] for key in cfg.EPOCH_STATS_KEYS]


@dataclass
class Generation:
    genomes: list
    stats: EpochStats
    elite_count: int


def compute_epoch_stats(scores, previous_best=None, epoch=0):
    """Summary of one epoch's scores.

    ``improvement`` is measured against ``previous_best`` and is 0.0 when there
    is no earlier epoch to compare with.
    """
    if len(scores) == 0:
        return EpochStats(epoch=epoch)
    values = np.asarray(scores, dtype=np.float64)
    ordered = np.sort(values)
    best = float(ordered[-1])
    return EpochStats(
        epoch=epoch,
        best=best,
        worst=float(ordered[0]),
        average=float(np.mean(values)),
        median=float(np.median(values)),
        std_deviation=float(np.std(values)),
        improvement=0.0 if previous_best is None else best - previous_best,
        q1=float(ordered[len(ordered) // 4]),
        q3=float(ordered[min(3 * len(ordered) // 4, len(ordered) - 1)]),
    )


def rank_population(scored):
    """Best score first; equal scores keep their colony order."""
    return sorted(scored, key=lambda entry: entry.score, reverse=True)


def elite_count(population_size, elite_ratio):
    return min(population_size, max(1, math.ceil(population_size * elite_ratio)))


def tournament_weights(population_size):
    ranks = np.arange(population_size, dtype=np.float64)
    return 1.0 / (1.0 + ranks * cfg.TOURNAMENT_RANK_PENALTY)


def weighted_tournament_selection(ranked, rng, size=cfg.TOURNAMENT_SIZE):
    """Draw a small tournament biased towards good ranks and return its best entrant.

    ``ranked`` must already be sorted best first.
    """
    weights = tournament_weights(len(ranked))
    draws = rng.choice(len(ranked), size=min(size, len(ranked)), replace=True, p=weights / weights.sum())
    winner = max(draws, key=lambda index: ranked[index].score)
    return ranked[int(winner)]


def adaptive_mutation_rate(stats, base_rate, epoch):
    """Scale the base rate up for converged, stagnating or young populations."""
    if stats.std_deviation < 5.0:
        diversity_factor = 2.0
    elif stats.std_deviation > 20.0:
        diversity_factor = 0.5
    else:
        diversity_factor = 1.0
    stagnation_factor = 1.5 if stats.improvement <= 0.0 else 1.0
    early_exploration = 1.5 if epoch < cfg.EARLY_EXPLORATION_EPOCHS else 1.0
    return min(cfg.MAX_ADAPTIVE_MUTATION_RATE,
               base_rate * diversity_factor * stagnation_factor * early_exploration)


def next_generation(scored, sim_params, epoch, previous_best, rng):
    """Build the genomes of the next epoch from this epoch's ``ScoredGenome`` list."""
    stats = compute_epoch_stats([entry.score for entry in scored], previous_best, epoch)
    ranked = rank_population(scored)
    elites = elite_count(len(ranked), sim_params.elite_ratio)
    stats.mutation_rate = adaptive_mutation_rate(stats, sim_params.mutation_rate, epoch)
    log_generation(stats, elites, len(ranked))

    genomes = [entry.genome.copy() for entry in ranked[:elites]]
    while len(genomes) < len(ranked):
        if rng.random() < sim_params.crossover_rate and len(ranked) >= 2:
            parent1 = weighted_tournament_selection(ranked, rng)
            parent2 = weighted_tournament_selection(ranked, rng)
            child = parent1.genome.crossover(parent2.genome, rng)
        else:
            child = weighted_tournament_selection(ranked, rng).genome.copy()
        genomes.append(child.mutate(stats.mutation_rate, rng))
    return Generation(genomes, stats, elites)


def log_generation(stats, elites, population_size):
    logger.info("=== GENETIC ALGORITHM - EPOCH %d ===", stats.epoch)
    logger.info("Scores: best=%.2f worst=%.2f average=%.2f median=%.2f std=%.2f",
                stats.best, stats.worst, stats.average, stats.median, stats.std_deviation)
    if stats.improvement > 0.0:
        logger.info("Improvement: +%.2f", stats.improvement)
    elif stats.improvement < 0.0:
        logger.info("Regression: %.2f", stats.improvement)
    else:
        logger.info("Stagnation (no improvement)")
    if population_size >= 4:
        logger.info("Quartiles: Q1=%.1f, Q3=%.1f", stats.q1, stats.q3)
    logger.info("Elites kept: %d / %d, adaptive mutation rate %.3f",
                elites, population_size, stats.mutation_rate)
