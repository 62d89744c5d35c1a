"""Batch scheduler façade.

A batch scheduler sees the whole workload up front and produces one
assignment. ``allocate`` only computes it; ``schedule`` additionally commits
it (stores it on the scheduler and returns it together with the analytic
estimates an executor may want to log or compare against).
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Sequence

from cloudsched.models import (
    AlgorithmType,
    Assignment,
    ConfigurationError,
    Metrics,
    ObjectiveWeights,
    Resource,
    Task,
)
from cloudsched.objective import ObjectiveEvaluator
from cloudsched.optimizers import create_optimizer

logger = logging.getLogger("cloudsched.scheduler")


@dataclass
class ScheduleResult:
    assignment: Assignment
    metrics: Metrics
    fitness: float
    history: list[float] = field(default_factory=list)


class Scheduler:
    """Base class: owns the workload view and its objective evaluator."""

    name = "scheduler"

    def __init__(
        self,
        tasks: Sequence[Task],
        resources: Sequence[Resource],
        weights: ObjectiveWeights | None = None,
        reference_seed: int = 0,
    ):
        self.tasks = list(tasks)
        self.resources = list(resources)
        self.weights = weights if weights is not None else ObjectiveWeights()
        self.objective = ObjectiveEvaluator(self.tasks, self.resources, self.weights, reference_seed)
        self.assignment: Assignment | None = None

    @property
    def task_count(self) -> int:
        return len(self.tasks)

    @property
    def resource_count(self) -> int:
        return len(self.resources)

    @property
    def history(self) -> list[float]:
        return []

    def allocate(self) -> Assignment:  # pragma: no cover - abstract
        raise NotImplementedError

    def schedule(self) -> ScheduleResult:
        """Allocate, validate and commit the assignment; log the estimates."""
        assignment = self.allocate()
        self.objective.validate_assignment(assignment)
        self.assignment = list(assignment)
        metrics = self.objective.metrics(assignment)
        fitness = self.objective.evaluate(assignment)
        logger.debug("[%s] estimated makespan: %.4f", self.name, metrics.makespan)
        logger.debug("[%s] estimated load balance: %.4f", self.name, metrics.load_balance)
        logger.debug("[%s] estimated cost: %.4f", self.name, metrics.cost)
        logger.debug("[%s] estimated total time: %.4f", self.name, metrics.total_time)
        logger.debug("[%s] estimated fitness: %.6f", self.name, fitness)
        return ScheduleResult(
            assignment=self.assignment,
            metrics=metrics,
            fitness=fitness,
            history=list(self.history),
        )


class RandomScheduler(Scheduler):
    """Uniform random resource per task."""

    name = "random"

    def __init__(self, tasks, resources, weights=None, seed: int | None = 0, reference_seed: int = 0):
        super().__init__(tasks, resources, weights, reference_seed)
        self.rng = random.Random(seed)

    def allocate(self) -> Assignment:
        return [self.rng.randrange(self.resource_count) for _ in range(self.task_count)]


class MetaheuristicScheduler(Scheduler):
    """Wraps one of PSO/WOA/GWO/HHO (``dim`` = tasks, ``ub`` = resources - 1)."""

    def __init__(
        self,
        tasks: Sequence[Task],
        resources: Sequence[Resource],
        algorithm: AlgorithmType | str,
        weights: ObjectiveWeights | None = None,
        population: int = 30,
        max_iterations: int = 100,
        seed: int | None = 0,
        reference_seed: int = 0,
    ):
        super().__init__(tasks, resources, weights, reference_seed)
        self.algorithm = AlgorithmType.parse(algorithm)
        self.name = self.algorithm.value.lower()
        self.optimizer = create_optimizer(
            self.algorithm,
            self.objective,
            population=population,
            dim=self.task_count,
            upper_bound=float(self.resource_count - 1),
            max_iterations=max_iterations,
            seed=seed,
        )
        logger.debug("Using %s scheduler", self.algorithm.value)

    @property
    def history(self) -> list[float]:
        return self.optimizer.history

    def allocate(self) -> Assignment:
        return self.optimizer.execute()


@dataclass(frozen=True)
class SchedulerParams:
    """Hyper-parameters read by ``create_batch_scheduler`` (only the relevant
    subset is used by each algorithm)."""

    population: int = 30
    max_iterations: int = 100
    seed: int | None = 0
    reference_seed: int = 0
    learning_rate: float = 0.1
    discount_factor: float = 0.9
    exploration_rate: float = 0.8
    min_exploration_rate: float = 0.05
    episodes: int = 100


def create_batch_scheduler(
    algorithm: AlgorithmType | str,
    tasks: Sequence[Task],
    resources: Sequence[Resource],
    weights: ObjectiveWeights | None = None,
    params: SchedulerParams | None = None,
) -> Scheduler:
    """Build the batch scheduler for ``algorithm``.

    Raises:
        ConfigurationError: Unknown or realtime-only algorithm, or invalid
            parameters.
    """
    from cloudsched.schedulers.rl import QLearningScheduler

    algo = AlgorithmType.parse(algorithm)
    p = params if params is not None else SchedulerParams()
    if algo is AlgorithmType.RANDOM:
        return RandomScheduler(tasks, resources, weights, seed=p.seed, reference_seed=p.reference_seed)
    if algo is AlgorithmType.RL:
        return QLearningScheduler(
            tasks,
            resources,
            weights,
            learning_rate=p.learning_rate,
            discount_factor=p.discount_factor,
            exploration_rate=p.exploration_rate,
            min_exploration_rate=p.min_exploration_rate,
            episodes=p.episodes,
            seed=p.seed,
            reference_seed=p.reference_seed,
        )
    if algo in (AlgorithmType.PSO, AlgorithmType.WOA, AlgorithmType.GWO, AlgorithmType.HHO):
        return MetaheuristicScheduler(
            tasks,
            resources,
            algo,
            weights,
            population=p.population,
            max_iterations=p.max_iterations,
            seed=p.seed,
            reference_seed=p.reference_seed,
        )
    raise ConfigurationError(f"{algo.value} is not a batch algorithm", field="algorithm")
