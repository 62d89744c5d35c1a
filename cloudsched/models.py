"""Core data structures for task-to-resource assignment.

This module defines:
    Task              -- immutable unit of work (length in work units).
    Resource          -- immutable processing unit (rate + price per second).
    ObjectiveWeights  -- validated weights of the four objective metrics.
    Metrics           -- raw analytic metrics of one assignment.
    AlgorithmType     -- every scheduling strategy the package provides.
    ConfigurationError -- raised for invalid construction-time parameters.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, fields
from enum import Enum

Assignment = list[int]  # assignment[i] -> resource index of task i


class ConfigurationError(ValueError):
    """Invalid configuration detected before any work started.

    Attributes:
        field: Name of the offending parameter (``None`` when several fields
            are reported at once).
    """

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


@dataclass(frozen=True)
class Task:
    """Single task (cloudlet).

    Attributes:
        index: Position of the task in its workload.
        length: Amount of work in abstract work units (MI).
        file_size: Input size, carried for the executor only.
        output_size: Output size, carried for the executor only.
        arrival_time: Submission time in seconds (realtime workloads).
    """

    index: int
    length: float
    file_size: float = 0.0
    output_size: float = 0.0
    arrival_time: float = 0.0


@dataclass(frozen=True)
class Resource:
    """Processing resource (VM) with a fixed rate and price.

    Attributes:
        index: Position of the resource in the resource list.
        rate: Work units processed per second (MIPS).
        price_per_sec: Monetary cost of one second of processing.
        tier: Optional catalog tier label (``low``/``medium``/``high``).
    """

    index: int
    rate: float
    price_per_sec: float
    tier: str = ""

    def execution_time(self, task: Task) -> float:
        return task.length / self.rate


@dataclass(frozen=True)
class ObjectiveWeights:
    """Weights of cost, total time, load balance and makespan.

    Every weight must lie in ``[0, 1]`` and at least one must be positive.
    The weights are not required to sum to one.
    """

    cost: float = 1.0 / 3
    total_time: float = 1.0 / 3
    load_balance: float = 1.0 / 3
    makespan: float = 0.0

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if not isinstance(value, (int, float)) or not math.isfinite(value):
                raise ConfigurationError(
                    f"Objective weight '{f.name}' must be a finite number, got {value!r}",
                    field=f.name,
                )
            if not 0.0 <= value <= 1.0:
                raise ConfigurationError(
                    f"Objective weight '{f.name}' must be in [0, 1], got {value}",
                    field=f.name,
                )
        if self.total() <= 0.0:
            raise ConfigurationError(
                "Sum of objective weights must be greater than 0", field="weights"
            )

    def total(self) -> float:
        return self.cost + self.total_time + self.load_balance + self.makespan

    def as_dict(self) -> dict[str, float]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class Metrics:
    """Raw (non-normalized) analytic metrics of an assignment."""

    cost: float
    total_time: float
    load_balance: float
    makespan: float

    def as_dict(self) -> dict[str, float]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


class AlgorithmType(str, Enum):
    RANDOM = "RANDOM"
    PSO = "PSO"
    WOA = "WOA"
    GWO = "GWO"
    HHO = "HHO"
    RL = "RL"
    MIN_LOAD = "MIN_LOAD"
    PSO_REALTIME = "PSO_REALTIME"
    WOA_REALTIME = "WOA_REALTIME"

    @classmethod
    def parse(cls, name: str | AlgorithmType) -> AlgorithmType:
        """Case-insensitive lookup; unknown names raise ``ConfigurationError``."""
        if isinstance(name, AlgorithmType):
            return name
        try:
            return cls(str(name).strip().upper())
        except ValueError:
            raise ConfigurationError(f"Unknown algorithm: {name}", field="algorithm") from None


BATCH_ALGORITHMS = (
    AlgorithmType.RANDOM,
    AlgorithmType.PSO,
    AlgorithmType.WOA,
    AlgorithmType.GWO,
    AlgorithmType.HHO,
    AlgorithmType.RL,
)
POPULATION_ALGORITHMS = (
    AlgorithmType.PSO,
    AlgorithmType.WOA,
    AlgorithmType.GWO,
    AlgorithmType.HHO,
)
REALTIME_ALGORITHMS = (
    AlgorithmType.RANDOM,
    AlgorithmType.MIN_LOAD,
    AlgorithmType.PSO_REALTIME,
    AlgorithmType.WOA_REALTIME,
)
