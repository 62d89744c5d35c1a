"""Objective evaluation of task-to-resource assignments.

The evaluator turns an assignment (``assignment[i]`` = resource of task ``i``)
into a single lower-is-better fitness value. Four raw metrics are computed
analytically from task lengths and resource rates:

    load[r]       sum of ``length / rate[r]`` over tasks placed on ``r``
    makespan      ``max(load)``
    total_time    ``sum(load)``
    load_balance  population standard deviation of ``load``
    cost          sum of ``length / rate * price`` per task

Each metric is rescaled into ``[0, 1]`` with bounds computed once, at
construction time. Cost and total time use two reference assignments
(everything on the slowest resource, everything on the fastest one).
Makespan runs from a perfect spread of the total length over the combined
rate up to everything on the slowest resource. Load balance runs from 0 up
to the value of a seeded uniform random assignment. The weighted sum of the rescaled values is
the fitness. Bounds never change afterwards, so one evaluator may be shared
read-only by several optimizers working on the same workload.
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass
from typing import Sequence

from cloudsched.models import (
    ConfigurationError,
    Metrics,
    ObjectiveWeights,
    Resource,
    Task,
)

logger = logging.getLogger("cloudsched.objective")

METRIC_NAMES = ("cost", "total_time", "load_balance", "makespan")


@dataclass(frozen=True)
class MetricBounds:
    lower: float
    upper: float

    def ratio(self, value: float) -> float:
        """Linear rescale of ``value`` clamped into ``[0, 1]``.

        A zero-width (or inverted) range maps to 0. A non-finite value maps
        to 1, the worst score.
        """
        span = self.upper - self.lower
        if not (span > 0.0 and math.isfinite(span)):
            return 0.0
        if not math.isfinite(value):
            return 1.0
        return min(1.0, max(0.0, (value - self.lower) / span))


class ObjectiveEvaluator:
    """Weighted, normalized fitness over a fixed task/resource list.

    Args:
        tasks: Workload to be placed (only ``length`` is read).
        resources: Candidate resources; every ``rate`` must be positive.
        weights: Objective weights; metrics with weight 0 are not normalized.
        reference_seed: Seed of the random assignment used as the upper
            bound of load balance. Changing it shifts absolute fitness values
            but not the ordering of assignments.

    Raises:
        ConfigurationError: Empty task/resource list or non-positive rate.
    """

    def __init__(
        self,
        tasks: Sequence[Task],
        resources: Sequence[Resource],
        weights: ObjectiveWeights | None = None,
        reference_seed: int = 0,
    ):
        if not tasks:
            raise ConfigurationError("Task list must not be empty", field="tasks")
        if not resources:
            raise ConfigurationError("Resource list must not be empty", field="resources")
        for res in resources:
            if not res.rate > 0:
                raise ConfigurationError(
                    f"Resource {res.index} must have a positive rate, got {res.rate}",
                    field="rate",
                )
        self.tasks = tuple(tasks)
        self.resources = tuple(resources)
        self.weights = weights if weights is not None else ObjectiveWeights()
        self.reference_seed = reference_seed

        self.task_count = len(self.tasks)
        self.resource_count = len(self.resources)
        self._lengths = [float(t.length) for t in self.tasks]
        self._rates = [float(r.rate) for r in self.resources]
        self._prices = [float(r.price_per_sec) for r in self.resources]

        self.bounds: dict[str, MetricBounds] = self._compute_bounds()

    # ------------------------------------------------------------------ metrics
    def resource_loads(self, assignment: Sequence[int]) -> list[float]:
        loads = [0.0] * self.resource_count
        lengths = self._lengths
        rates = self._rates
        for i in range(self.task_count):
            r = assignment[i]
            loads[r] += lengths[i] / rates[r]
        return loads

    def makespan(self, assignment: Sequence[int]) -> float:
        return max(self.resource_loads(assignment))

    def total_time(self, assignment: Sequence[int]) -> float:
        return sum(self.resource_loads(assignment))

    def load_balance(self, assignment: Sequence[int]) -> float:
        return _population_std(self.resource_loads(assignment))

    def cost(self, assignment: Sequence[int]) -> float:
        total = 0.0
        for i in range(self.task_count):
            r = assignment[i]
            total += self._lengths[i] / self._rates[r] * self._prices[r]
        return total

    def metrics(self, assignment: Sequence[int]) -> Metrics:
        """All four raw metrics from a single pass over the loads."""
        self.validate_assignment(assignment)
        loads = self.resource_loads(assignment)
        return Metrics(
            cost=self.cost(assignment),
            total_time=sum(loads),
            load_balance=_population_std(loads),
            makespan=max(loads),
        )

    # ---------------------------------------------------------------- fitness
    def ratios(self, assignment: Sequence[int]) -> dict[str, float]:
        """Normalized ``[0, 1]`` value of every metric (0 for unweighted ones)."""
        out = dict.fromkeys(METRIC_NAMES, 0.0)
        if not self.bounds:
            return out
        loads = self.resource_loads(assignment)
        raw = {
            "total_time": sum(loads),
            "load_balance": _population_std(loads),
            "makespan": max(loads),
        }
        for name, bounds in self.bounds.items():
            value = self.cost(assignment) if name == "cost" else raw[name]
            out[name] = bounds.ratio(value)
        return out

    def evaluate(self, assignment: Sequence[int]) -> float:
        ratios = self.ratios(assignment)
        w = self.weights
        fitness = (
            w.cost * ratios["cost"]
            + w.total_time * ratios["total_time"]
            + w.load_balance * ratios["load_balance"]
            + w.makespan * ratios["makespan"]
        )
        return fitness

    __call__ = evaluate

    def validate_assignment(self, assignment: Sequence[int]) -> None:
        """Raise ``ValueError`` when length or any resource index is invalid."""
        if len(assignment) != self.task_count:
            raise ValueError(
                f"Assignment length {len(assignment)} != task count {self.task_count}"
            )
        for i, r in enumerate(assignment):
            if not 0 <= r < self.resource_count:
                raise ValueError(f"Resource index out of range for task {i}: {r}")

    # ----------------------------------------------------------------- bounds
    def slowest_resource(self) -> int:
        """Lowest rate, then cheapest, then lowest index."""
        return min(
            range(self.resource_count),
            key=lambda r: (self._rates[r], self._prices[r], r),
        )

    def fastest_resource(self) -> int:
        """Highest rate, then most expensive, then lowest index."""
        return min(
            range(self.resource_count),
            key=lambda r: (-self._rates[r], -self._prices[r], r),
        )

    def _compute_bounds(self) -> dict[str, MetricBounds]:
        w = self.weights
        bounds: dict[str, MetricBounds] = {}
        slow = [self.slowest_resource()] * self.task_count
        fast = [self.fastest_resource()] * self.task_count
        probes = {
            "cost": (w.cost, self.cost),
            "total_time": (w.total_time, self.total_time),
        }
        for name, (weight, fn) in probes.items():
            if weight <= 0.0:
                continue
            a, b = fn(slow), fn(fast)
            bounds[name] = MetricBounds(lower=min(a, b), upper=max(a, b))
        if w.makespan > 0.0:
            # perfect spread over the combined rate, everything on the slowest
            ideal = sum(self._lengths) / sum(self._rates)
            worst = sum(self._lengths) / self._rates[slow[0]]
            bounds["makespan"] = MetricBounds(lower=min(ideal, worst), upper=worst)
        if w.load_balance > 0.0:
            rng = random.Random(self.reference_seed)
            reference = [rng.randrange(self.resource_count) for _ in range(self.task_count)]
            bounds["load_balance"] = MetricBounds(
                lower=0.0, upper=self.load_balance(reference)
            )
        logger.debug(
            "Objective bounds tasks=%d resources=%d %s",
            self.task_count,
            self.resource_count,
            {k: (round(v.lower, 4), round(v.upper, 4)) for k, v in bounds.items()},
        )
        return bounds


def _population_std(values: Sequence[float]) -> float:
    n = len(values)
    mean = sum(values) / n
    return math.sqrt(sum((v - mean) ** 2 for v in values) / n)
