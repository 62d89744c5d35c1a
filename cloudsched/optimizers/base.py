"""Common structures and helper functions for population-based optimizers.

Every optimizer keeps its candidate positions in ONE flat list of floats
(``positions[agent * dim + j]``) so that the coordinates of one candidate are
contiguous. Positions are relaxed (real valued) resource indices; after every
mutation they are rounded to the nearest integer and clamped into
``[lower_bound, upper_bound]`` before being handed to the objective.
"""

from __future__ import annotations

import logging
import math
import random
import time
from dataclasses import dataclass, field
from typing import Callable, Sequence

from cloudsched.models import ConfigurationError

logger = logging.getLogger("cloudsched.optimizer")

ObjectiveFn = Callable[[Sequence[int]], float]


@dataclass
class SearchState:
    """Best-known solution and convergence bookkeeping shared by optimizers."""

    best_position: list[float]
    best_fitness: float = math.inf
    history: list[float] = field(default_factory=list)
    evaluations: int = 0
    iteration: int = 0
    start_time: float = 0.0

    def update_best(self, position: Sequence[float], fitness: float) -> bool:
        """Replace best on strictly lower fitness. Returns True if improved."""
        if fitness < self.best_fitness:
            self.best_fitness = fitness
            self.best_position[:] = position
            return True
        return False

    def elapsed_ms(self) -> int:
        return int((time.time() - self.start_time) * 1000)


class Optimizer:
    """Base class of the metaheuristics (PSO, WOA, GWO, HHO).

    Subclasses implement ``_initialize`` (population set-up, run once at
    construction) and ``_iterate(t)`` (one full iteration over the swarm).

    Args:
        objective: Callable mapping an integer assignment to a fitness
            (lower is better); normally an ``ObjectiveEvaluator``.
        population: Number of candidates (>= 1).
        dim: Number of decision variables, i.e. tasks (>= 1).
        upper_bound: Largest admissible resource index.
        lower_bound: Smallest admissible resource index.
        max_iterations: Fixed number of iterations run by ``execute``.
        seed: Seed of the private ``random.Random`` (ignored if ``rng`` given).
        rng: Explicit generator, for callers that manage seeding themselves.

    Raises:
        ConfigurationError: Non-positive population/dim/max_iterations or
            inverted bounds.
    """

    name = "optimizer"

    def __init__(
        self,
        objective: ObjectiveFn,
        population: int,
        dim: int,
        upper_bound: float,
        lower_bound: float = 0.0,
        max_iterations: int = 100,
        seed: int | None = None,
        rng: random.Random | None = None,
    ):
        if population < 1:
            raise ConfigurationError(
                f"population must be >= 1, got {population}", field="population"
            )
        if max_iterations < 1:
            raise ConfigurationError(
                f"max_iterations must be >= 1, got {max_iterations}", field="max_iterations"
            )
        if dim < 1:
            raise ConfigurationError(f"dim must be >= 1, got {dim}", field="dim")
        if upper_bound < lower_bound:
            raise ConfigurationError(
                f"upper_bound {upper_bound} < lower_bound {lower_bound}", field="upper_bound"
            )
        self.objective = objective
        self.population = population
        self.dim = dim
        self.lb = float(lower_bound)
        self.ub = float(upper_bound)
        self.max_iterations = max_iterations
        self.rng = rng if rng is not None else random.Random(seed)

        self.positions = [0.0] * (population * dim)
        self.state = SearchState(best_position=[self.lb] * dim, start_time=time.time())
        self._initialize()
        self.state.history.append(self.state.best_fitness)

    # ------------------------------------------------------------ public API
    def execute(self) -> list[int]:
        """Run ``max_iterations`` iterations and return the best assignment."""
        logger.debug(
            "[%s] start population=%d dim=%d iterations=%d bounds=[%s, %s]",
            self.name,
            self.population,
            self.dim,
            self.max_iterations,
            self.lb,
            self.ub,
        )
        for t in range(self.max_iterations):
            self._iterate(t)
            self.state.iteration = t + 1
            self.state.history.append(self.state.best_fitness)
        logger.debug(
            "[%s] done best=%.6f evals=%d elapsed_ms=%d",
            self.name,
            self.state.best_fitness,
            self.state.evaluations,
            self.state.elapsed_ms(),
        )
        return self.to_assignment(self.state.best_position)

    @property
    def best_fitness(self) -> float:
        return self.state.best_fitness

    @property
    def history(self) -> list[float]:
        return self.state.history

    @property
    def evaluations(self) -> int:
        return self.state.evaluations

    # -------------------------------------------------------------- helpers
    def _initialize(self) -> None:  # pragma: no cover - abstract
        raise NotImplementedError

    def _iterate(self, t: int) -> None:  # pragma: no cover - abstract
        raise NotImplementedError

    def random_coordinate(self) -> float:
        return self.lb + (self.ub - self.lb) * self.rng.random()

    def randomize_agent(self, agent: int) -> None:
        base = agent * self.dim
        for j in range(self.dim):
            self.positions[base + j] = self.random_coordinate()
        self.adjust(agent)

    def position(self, agent: int) -> list[float]:
        """Copy of one candidate's coordinates."""
        base = agent * self.dim
        return self.positions[base : base + self.dim]

    def set_position(self, agent: int, values: Sequence[float]) -> None:
        base = agent * self.dim
        self.positions[base : base + self.dim] = values

    def feasible(self, value: float, fallback: float | None = None) -> float:
        """Round to nearest and clamp; non-finite values fall back."""
        if not math.isfinite(value):
            return self.lb if fallback is None else fallback
        value = float(round(value))
        if value < self.lb:
            return self.lb
        if value > self.ub:
            return self.ub
        return value

    def adjust(self, agent: int, previous: Sequence[float] | None = None) -> None:
        """Feasibility pass over one candidate, in place."""
        base = agent * self.dim
        pos = self.positions
        for j in range(self.dim):
            fallback = previous[j] if previous is not None else None
            pos[base + j] = self.feasible(pos[base + j], fallback)

    def adjust_vector(self, vector: list[float], previous: Sequence[float] | None = None) -> list[float]:
        for j in range(self.dim):
            vector[j] = self.feasible(vector[j], previous[j] if previous is not None else None)
        return vector

    def to_assignment(self, vector: Sequence[float]) -> list[int]:
        return [int(self.feasible(v)) for v in vector]

    def evaluate_vector(self, vector: Sequence[float]) -> float:
        """Fitness of a coordinate vector; non-finite results become ``inf``."""
        self.state.evaluations += 1
        fitness = self.objective(self.to_assignment(vector))
        if fitness is None or not math.isfinite(fitness):
            return math.inf
        return float(fitness)

    def evaluate_agent(self, agent: int) -> float:
        return self.evaluate_vector(self.position(agent))

    def commit_move(self, agent: int, previous: list[float], fitness: float) -> bool:
        """Keep a move unless its fitness is non-finite; then roll back."""
        if math.isinf(fitness):
            self.set_position(agent, previous)
            return False
        return True
