"""Synthetic workloads and the default resource catalog.

Generators are plain functions over an explicit ``random.Random`` so that a
workload is fully determined by its seed.

Resource catalog
    Three tiers (low / medium / high) of rate and price. ``create_resources``
    orders them from slowest to fastest, so index 0 is the cheapest resource.
"""

from __future__ import annotations

import math
import random
from dataclasses import dataclass
from typing import Optional

from cloudsched.models import ConfigurationError, Resource, Task


@dataclass(frozen=True)
class ResourceTier:
    name: str
    rate: float
    price_per_sec: float
    count: int


DEFAULT_TIERS = (
    ResourceTier("low", rate=1000.0, price_per_sec=0.1, count=4),
    ResourceTier("medium", rate=2000.0, price_per_sec=0.5, count=3),
    ResourceTier("high", rate=4000.0, price_per_sec=1.0, count=2),
)

# log-normal task lengths: exp(N(0, 1) * sigma + ln(mean))
MEAN_LENGTH = 30000.0
LENGTH_SIGMA = 1.5
MEAN_FILE_SIZE = 100.0
FILE_SIZE_STD = 100.0
MIN_FILE_SIZE = 10.0

GENERATORS = ("log_normal", "uniform")


def create_resources(tiers: tuple[ResourceTier, ...] = DEFAULT_TIERS) -> list[Resource]:
    """Expand tiers into an indexed resource list (tiers in given order)."""
    resources: list[Resource] = []
    for tier in tiers:
        if tier.count < 0:
            raise ConfigurationError(f"Tier '{tier.name}' has negative count", field="count")
        if not tier.rate > 0:
            raise ConfigurationError(f"Tier '{tier.name}' must have a positive rate", field="rate")
        for _ in range(tier.count):
            resources.append(
                Resource(
                    index=len(resources),
                    rate=tier.rate,
                    price_per_sec=tier.price_per_sec,
                    tier=tier.name,
                )
            )
    if not resources:
        raise ConfigurationError("Resource catalog is empty", field="resources")
    return resources


def generate_log_normal_tasks(
    count: int,
    rng: random.Random,
    mean_length: float = MEAN_LENGTH,
    length_sigma: float = LENGTH_SIGMA,
    mean_file_size: float = MEAN_FILE_SIZE,
    file_size_std: float = FILE_SIZE_STD,
) -> list[Task]:
    """Log-normal lengths, normal (floored) input/output sizes."""
    tasks = []
    for i in range(count):
        length = math.exp(rng.gauss(0.0, 1.0) * length_sigma + math.log(mean_length))
        file_size = max(MIN_FILE_SIZE, rng.gauss(0.0, 1.0) * file_size_std + mean_file_size)
        output_size = max(MIN_FILE_SIZE, rng.gauss(0.0, 1.0) * file_size_std + mean_file_size)
        tasks.append(
            Task(
                index=i,
                length=float(max(1, int(length))),
                file_size=float(int(file_size)),
                output_size=float(int(output_size)),
            )
        )
    return tasks


def generate_uniform_tasks(
    count: int,
    rng: random.Random,
    min_length: float = 10000.0,
    max_length: float = 50000.0,
    min_file_size: float = 10.0,
    max_file_size: float = 200.0,
) -> list[Task]:
    if max_length < min_length:
        raise ConfigurationError("max_length < min_length", field="max_length")
    tasks = []
    for i in range(count):
        tasks.append(
            Task(
                index=i,
                length=float(int(min_length + rng.random() * (max_length - min_length))),
                file_size=float(int(min_file_size + rng.random() * (max_file_size - min_file_size))),
                output_size=float(int(min_file_size + rng.random() * (max_file_size - min_file_size))),
            )
        )
    return tasks


def generate_tasks(count: int, generator: str = "log_normal", seed: Optional[int] = None) -> list[Task]:
    """Generate ``count`` tasks with the named generator.

    Raises:
        ConfigurationError: ``count < 1`` or unknown generator name.
    """
    if count < 1:
        raise ConfigurationError(f"task count must be >= 1, got {count}", field="task_count")
    rng = random.Random(seed)
    if generator == "log_normal":
        return generate_log_normal_tasks(count, rng)
    if generator == "uniform":
        return generate_uniform_tasks(count, rng)
    raise ConfigurationError(f"Unknown generator: {generator}", field="generator")


def generate_arrivals(
    count: int,
    arrival_rate: float,
    simulation_duration: float,
    generator: str = "log_normal",
    seed: Optional[int] = None,
) -> list[Task]:
    """Tasks with Poisson arrivals (exponential inter-arrival times).

    Tasks that would arrive after ``simulation_duration`` are dropped, so the
    result may hold fewer than ``count`` tasks. Arrival times are
    non-decreasing and indices are re-numbered from 0.
    """
    if arrival_rate <= 0:
        raise ConfigurationError("arrival_rate must be > 0", field="arrival_rate")
    if simulation_duration <= 0:
        raise ConfigurationError("simulation_duration must be > 0", field="simulation_duration")
    base = generate_tasks(count, generator, seed)
    rng = random.Random(None if seed is None else seed + 1)
    now = 0.0
    tasks: list[Task] = []
    for task in base:
        now += -math.log(1.0 - rng.random()) / arrival_rate
        if now > simulation_duration:
            break
        tasks.append(
            Task(
                index=len(tasks),
                length=task.length,
                file_size=task.file_size,
                output_size=task.output_size,
                arrival_time=now,
            )
        )
    return tasks
