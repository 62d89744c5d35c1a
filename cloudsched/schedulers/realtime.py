"""Realtime (incremental) scheduling: one decision per arriving task.

``RealtimeScheduler.schedule_on_arrival`` sees the new task and a snapshot of
the waiting set (already placed, not yet finished tasks with their resource)
and returns the resource for the new task only. ``RealtimeSession`` drives a
scheduler over an arrival stream and keeps that waiting set up to date with
an analytic FIFO estimate of when each task finishes.
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass
from typing import Iterable, Sequence

from cloudsched.models import (
    AlgorithmType,
    ConfigurationError,
    Metrics,
    ObjectiveWeights,
    Resource,
    Task,
)
from cloudsched.objective import ObjectiveEvaluator
from cloudsched.optimizers import create_optimizer

logger = logging.getLogger("cloudsched.realtime")

WaitingTask = tuple[Task, int]


def least_loaded(waiting: Sequence[WaitingTask], resources: Sequence[Resource]) -> int:
    """Index of the resource with the smallest aggregate load (ties: lowest index).

    Raises:
        ValueError: A waiting entry points outside ``resources``.
    """
    loads = [0.0] * len(resources)
    for task, r in waiting:
        if not 0 <= r < len(resources):
            raise ValueError(f"Waiting task {task.index} assigned to unknown resource {r}")
        loads[r] += task.length / resources[r].rate
    best = 0
    for r in range(1, len(loads)):
        if loads[r] < loads[best]:
            best = r
    return best


class RealtimeScheduler:
    name = "realtime"

    def __init__(self, resources: Sequence[Resource]):
        if not resources:
            raise ConfigurationError("Resource list must not be empty", field="resources")
        self.resources = list(resources)
        self.arrivals = 0

    @property
    def resource_count(self) -> int:
        return len(self.resources)

    def schedule_on_arrival(
        self,
        new_task: Task,
        waiting: Sequence[WaitingTask],
        resources: Sequence[Resource] | None = None,
    ) -> int:
        resources = self.resources if resources is None else list(resources)
        choice = self._choose(new_task, list(waiting), resources)
        self.arrivals += 1
        return choice

    def _choose(self, new_task: Task, waiting: list[WaitingTask], resources: list[Resource]) -> int:  # pragma: no cover - abstract
        raise NotImplementedError


class RealtimeRandomScheduler(RealtimeScheduler):
    name = "random"

    def __init__(self, resources: Sequence[Resource], seed: int | None = 0):
        super().__init__(resources)
        self.rng = random.Random(seed)

    def _choose(self, new_task, waiting, resources):
        return self.rng.randrange(len(resources))


class RealtimeMinLoadScheduler(RealtimeScheduler):
    name = "min_load"

    def _choose(self, new_task, waiting, resources):
        return least_loaded(waiting, resources)


class RealtimeMetaheuristicScheduler(RealtimeScheduler):
    """Re-optimizes the whole waiting window plus the new task on every arrival.

    Each call builds a fresh evaluator and optimizer over ``waiting + [new]``
    seeded with ``seed + arrival_index`` and keeps only the decision for the
    new task. An empty window falls back to ``least_loaded`` over the new
    task alone.
    """

    algorithm = AlgorithmType.PSO

    def __init__(
        self,
        resources: Sequence[Resource],
        algorithm: AlgorithmType | str | None = None,
        weights: ObjectiveWeights | None = None,
        population: int = 20,
        max_iterations: int = 20,
        seed: int = 0,
        reference_seed: int = 0,
    ):
        super().__init__(resources)
        algo = AlgorithmType.parse(algorithm) if algorithm is not None else self.algorithm
        algo = {
            AlgorithmType.PSO_REALTIME: AlgorithmType.PSO,
            AlgorithmType.WOA_REALTIME: AlgorithmType.WOA,
        }.get(algo, algo)
        if algo not in (AlgorithmType.PSO, AlgorithmType.WOA):
            raise ConfigurationError(
                f"{algo.value} is not supported for incremental scheduling", field="algorithm"
            )
        if population < 1:
            raise ConfigurationError("population must be >= 1", field="population")
        if max_iterations < 1:
            raise ConfigurationError("max_iterations must be >= 1", field="max_iterations")
        self.algorithm = algo
        self.name = f"{algo.value.lower()}_realtime"
        self.weights = weights if weights is not None else ObjectiveWeights()
        self.population = population
        self.max_iterations = max_iterations
        self.seed = seed
        self.reference_seed = reference_seed

    def _choose(self, new_task, waiting, resources):
        if not waiting:
            return least_loaded([], resources)
        window = [task for task, _ in waiting] + [new_task]
        objective = ObjectiveEvaluator(window, resources, self.weights, self.reference_seed)
        optimizer = create_optimizer(
            self.algorithm,
            objective,
            population=self.population,
            dim=len(window),
            upper_bound=float(len(resources) - 1),
            max_iterations=self.max_iterations,
            seed=self.seed + self.arrivals,
        )
        assignment = optimizer.execute()
        logger.debug(
            "[%s] arrival %d: window=%d best=%.6f",
            self.name,
            self.arrivals,
            len(window),
            optimizer.best_fitness,
        )
        return assignment[-1]


class RealtimePSOScheduler(RealtimeMetaheuristicScheduler):
    algorithm = AlgorithmType.PSO


class RealtimeWOAScheduler(RealtimeMetaheuristicScheduler):
    algorithm = AlgorithmType.WOA


def create_realtime_scheduler(
    algorithm: AlgorithmType | str,
    resources: Sequence[Resource],
    weights: ObjectiveWeights | None = None,
    population: int = 20,
    max_iterations: int = 20,
    seed: int = 0,
    reference_seed: int = 0,
) -> RealtimeScheduler:
    """Build the realtime scheduler for ``algorithm``.

    Raises:
        ConfigurationError: Algorithm has no realtime variant.
    """
    algo = AlgorithmType.parse(algorithm)
    if algo is AlgorithmType.RANDOM:
        return RealtimeRandomScheduler(resources, seed=seed)
    if algo is AlgorithmType.MIN_LOAD:
        return RealtimeMinLoadScheduler(resources)
    if algo in (AlgorithmType.PSO_REALTIME, AlgorithmType.WOA_REALTIME):
        return RealtimeMetaheuristicScheduler(
            resources,
            algo,
            weights,
            population=population,
            max_iterations=max_iterations,
            seed=seed,
            reference_seed=reference_seed,
        )
    raise ConfigurationError(f"{algo.value} is not a realtime algorithm", field="algorithm")


@dataclass(frozen=True)
class RealtimeRecord:
    task_index: int
    resource: int
    start: float
    finish: float


@dataclass(frozen=True)
class RealtimeSummary:
    metrics: Metrics
    mean_waiting_time: float
    mean_response_time: float
    task_count: int

    def as_dict(self) -> dict[str, float]:
        data = self.metrics.as_dict()
        data["mean_waiting_time"] = self.mean_waiting_time
        data["mean_response_time"] = self.mean_response_time
        data["task_count"] = self.task_count
        return data


class RealtimeSession:
    """Feeds arrivals to a realtime scheduler in non-decreasing time order.

    Every resource runs its tasks FIFO: a task starts at
    ``max(arrival_time, resource_free_at)``. Before each decision, tasks
    whose estimated finish is ``<= arrival_time`` leave the waiting set.
    """

    def __init__(self, scheduler: RealtimeScheduler, resources: Sequence[Resource] | None = None):
        self.scheduler = scheduler
        self.resources = list(resources) if resources is not None else list(scheduler.resources)
        if not self.resources:
            raise ConfigurationError("Resource list must not be empty", field="resources")
        self.free_at = [0.0] * len(self.resources)
        self.waiting: list[tuple[Task, int, float]] = []
        self.records: list[RealtimeRecord] = []
        self.tasks: list[Task] = []
        self.clock = 0.0

    def submit(self, task: Task) -> RealtimeRecord:
        """Place one arriving task.

        Raises:
            ValueError: ``task.arrival_time`` is earlier than a previous arrival.
        """
        if task.arrival_time < self.clock:
            raise ValueError(
                f"Task {task.index} arrives at {task.arrival_time} before current time {self.clock}"
            )
        self.clock = task.arrival_time
        self.waiting = [w for w in self.waiting if w[2] > self.clock]
        snapshot = [(t, r) for t, r, _ in self.waiting]
        resource = self.scheduler.schedule_on_arrival(task, snapshot, self.resources)
        if not 0 <= resource < len(self.resources):
            raise ValueError(f"Scheduler returned invalid resource {resource}")
        start = max(task.arrival_time, self.free_at[resource])
        finish = start + self.resources[resource].execution_time(task)
        self.free_at[resource] = finish
        self.waiting.append((task, resource, finish))
        record = RealtimeRecord(task_index=task.index, resource=resource, start=start, finish=finish)
        self.records.append(record)
        self.tasks.append(task)
        logger.debug(
            "Task %d at t=%.3f -> resource %d (waiting=%d, finish=%.3f)",
            task.index,
            task.arrival_time,
            resource,
            len(snapshot),
            finish,
        )
        return record

    def run(self, tasks: Iterable[Task]) -> list[RealtimeRecord]:
        """Submit ``tasks`` sorted (stably) by arrival time."""
        for task in sorted(tasks, key=lambda t: t.arrival_time):
            self.submit(task)
        return list(self.records)

    @property
    def assignment(self) -> list[int]:
        return [rec.resource for rec in self.records]

    def summary(self, weights: ObjectiveWeights | None = None) -> RealtimeSummary:
        """Analytic metrics of the placed tasks plus waiting/response means.

        Raises:
            ValueError: No task was submitted.
        """
        if not self.records:
            raise ValueError("No tasks were scheduled")
        objective = ObjectiveEvaluator(self.tasks, self.resources, weights)
        metrics = objective.metrics(self.assignment)
        waits = [rec.start - task.arrival_time for rec, task in zip(self.records, self.tasks)]
        responses = [rec.finish - task.arrival_time for rec, task in zip(self.records, self.tasks)]
        mean_wait = math.fsum(waits) / len(waits)
        mean_response = math.fsum(responses) / len(responses)
        return RealtimeSummary(
            metrics=metrics,
            mean_waiting_time=mean_wait,
            mean_response_time=mean_response,
            task_count=len(self.records),
        )
