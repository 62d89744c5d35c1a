"""Population-based metaheuristics for task assignment.

Contains:
- Particle Swarm Optimization (PSO)
- Whale Optimization Algorithm (WOA)
- Grey Wolf Optimizer (GWO)
- Harris Hawks Optimization (HHO)
"""

from __future__ import annotations

import random

from cloudsched.models import AlgorithmType, ConfigurationError
from cloudsched.optimizers.base import ObjectiveFn, Optimizer, SearchState
from cloudsched.optimizers.gwo import GWO
from cloudsched.optimizers.hho import HHO
from cloudsched.optimizers.pso import PSO
from cloudsched.optimizers.woa import WOA

OPTIMIZERS: dict[AlgorithmType, type[Optimizer]] = {
    AlgorithmType.PSO: PSO,
    AlgorithmType.WOA: WOA,
    AlgorithmType.GWO: GWO,
    AlgorithmType.HHO: HHO,
}


def create_optimizer(
    algorithm: AlgorithmType | str,
    objective: ObjectiveFn,
    population: int,
    dim: int,
    upper_bound: float,
    max_iterations: int,
    seed: int | None = None,
    rng: random.Random | None = None,
) -> Optimizer:
    """Instantiate one of PSO/WOA/GWO/HHO with the shared constructor contract.

    Raises:
        ConfigurationError: Algorithm is not a population method or any
            optimizer parameter is invalid.
    """
    algo = AlgorithmType.parse(algorithm)
    cls = OPTIMIZERS.get(algo)
    if cls is None:
        raise ConfigurationError(
            f"{algo.value} is not a population-based optimizer", field="algorithm"
        )
    return cls(
        objective,
        population=population,
        dim=dim,
        upper_bound=upper_bound,
        lower_bound=0.0,
        max_iterations=max_iterations,
        seed=seed,
        rng=rng,
    )


__all__ = [
    "GWO",
    "HHO",
    "OPTIMIZERS",
    "Optimizer",
    "PSO",
    "SearchState",
    "WOA",
    "create_optimizer",
]
