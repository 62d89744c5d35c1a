"""YAML experiment configuration.

Example::

    mode: batch
    random_seed: 0
    log_level: INFO
    weights: {cost: 0.33, total_time: 0.33, load_balance: 0.34, makespan: 0.0}
    batch:
      task_count: 200
      runs: 5
      algorithms: [RANDOM, PSO, WOA, GWO, HHO, RL]
      optimizer: {population: 30, max_iterations: 50}
      rl: {learning_rate: 0.1, discount_factor: 0.9, exploration_rate: 0.8,
          min_exploration_rate: 0.05, episodes: 100}
    output: {results_dir: results, charts: true, csv: true}

Loading never touches global state: ``load_config`` returns an
``ExperimentConfig`` whose pieces are passed to constructors explicitly.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Mapping

import yaml

from cloudsched.models import (
    BATCH_ALGORITHMS,
    REALTIME_ALGORITHMS,
    AlgorithmType,
    ConfigurationError,
    ObjectiveWeights,
)
from cloudsched.workload import GENERATORS

MODES = ("batch", "realtime")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class OptimizerParams:
    population: int = 30
    max_iterations: int = 50


@dataclass(frozen=True)
class RLParams:
    learning_rate: float = 0.1
    discount_factor: float = 0.9
    exploration_rate: float = 0.8
    min_exploration_rate: float = 0.05
    episodes: int = 100


@dataclass(frozen=True)
class WorkloadConfig:
    generator: str = "log_normal"


@dataclass(frozen=True)
class BatchConfig:
    task_count: int = 200
    runs: int = 5
    algorithms: tuple[AlgorithmType, ...] = BATCH_ALGORITHMS
    optimizer: OptimizerParams = field(default_factory=OptimizerParams)
    rl: RLParams = field(default_factory=RLParams)
    workload: WorkloadConfig = field(default_factory=WorkloadConfig)


@dataclass(frozen=True)
class RealtimeConfig:
    task_count: int = 100
    arrival_rate: float = 5.0
    simulation_duration: float = 100.0
    runs: int = 5
    algorithms: tuple[AlgorithmType, ...] = REALTIME_ALGORITHMS
    optimizer: OptimizerParams = field(
        default_factory=lambda: OptimizerParams(population=20, max_iterations=20)
    )
    workload: WorkloadConfig = field(default_factory=WorkloadConfig)


@dataclass(frozen=True)
class OutputConfig:
    results_dir: str = "results"
    charts: bool = True
    csv: bool = True


@dataclass(frozen=True)
class ExperimentConfig:
    mode: str = "batch"
    random_seed: int = 0
    weights: ObjectiveWeights = field(default_factory=ObjectiveWeights)
    reference_seed: int = 0
    batch: BatchConfig = field(default_factory=BatchConfig)
    realtime: RealtimeConfig = field(default_factory=RealtimeConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    log_level: str = "INFO"


def load_config(config_file: str = "config.yaml") -> ExperimentConfig:
    """Load and validate configuration from a YAML file.

    Raises:
        FileNotFoundError: ``config_file`` does not exist.
        ConfigurationError: Any value is invalid (all problems are listed).
    """
    with open(config_file, "r", encoding="utf-8") as file:
        data = yaml.safe_load(file) or {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"{config_file}: top level must be a mapping")
    return config_from_dict(data)


def config_from_dict(data: Mapping[str, Any]) -> ExperimentConfig:
    """Build an ``ExperimentConfig`` from plain mappings (e.g. parsed YAML).

    Missing keys take their defaults. Every problem found is collected and
    reported in one ``ConfigurationError``; when there is exactly one, its
    ``field`` names the offending key.
    """
    errors: list[tuple[str, str]] = []
    cfg = _Reader(data, "", errors)

    mode = cfg.string("mode", "batch")
    if mode not in MODES:
        errors.append(("mode", f"mode must be one of {MODES}, got {mode!r}"))

    weights = ObjectiveWeights()
    w = cfg.section("weights")
    if w.data:
        values = {
            "cost": w.number("cost", 0.0),
            "total_time": w.number("total_time", 0.0),
            "load_balance": w.number("load_balance", 0.0),
            "makespan": w.number("makespan", 0.0),
        }
        weight_errors = _weight_errors(values)
        if weight_errors:
            errors.extend(weight_errors)
        else:
            weights = ObjectiveWeights(**values)

    b = cfg.section("batch")
    batch = BatchConfig(
        task_count=b.positive_int("task_count", 200),
        runs=b.positive_int("runs", 5),
        algorithms=b.algorithms("algorithms", BATCH_ALGORITHMS, BATCH_ALGORITHMS),
        optimizer=_optimizer_params(b.section("optimizer"), OptimizerParams()),
        rl=_rl_params(b.section("rl")),
        workload=_workload(b.section("workload")),
    )

    r = cfg.section("realtime")
    realtime = RealtimeConfig(
        task_count=r.positive_int("task_count", 100),
        arrival_rate=r.positive_number("arrival_rate", 5.0),
        simulation_duration=r.positive_number("simulation_duration", 100.0),
        runs=r.positive_int("runs", 5),
        algorithms=r.algorithms("algorithms", REALTIME_ALGORITHMS, REALTIME_ALGORITHMS),
        optimizer=_optimizer_params(r.section("optimizer"), OptimizerParams(20, 20)),
        workload=_workload(r.section("workload")),
    )

    o = cfg.section("output")
    output = OutputConfig(
        results_dir=o.string("results_dir", "results"),
        charts=o.boolean("charts", True),
        csv=o.boolean("csv", True),
    )

    log_level = cfg.string("log_level", "INFO").upper()
    if log_level not in LOG_LEVELS:
        errors.append(("log_level", f"log_level must be one of {LOG_LEVELS}, got {log_level!r}"))

    config = ExperimentConfig(
        mode=mode,
        random_seed=cfg.integer("random_seed", 0),
        weights=weights,
        reference_seed=cfg.integer("reference_seed", 0),
        batch=batch,
        realtime=realtime,
        output=output,
        log_level=log_level,
    )
    _raise_if_errors(errors)
    return config


def validate_config(config: ExperimentConfig) -> None:
    """Re-check an already built configuration.

    Raises:
        ConfigurationError: Listing every invalid value.
    """
    errors: list[tuple[str, str]] = []
    if config.mode not in MODES:
        errors.append(("mode", f"mode must be one of {MODES}"))
    if config.log_level not in LOG_LEVELS:
        errors.append(("log_level", f"log_level must be one of {LOG_LEVELS}"))
    errors.extend(_weight_errors(config.weights.as_dict()))
    for prefix, section, allowed in (
        ("batch", config.batch, BATCH_ALGORITHMS),
        ("realtime", config.realtime, REALTIME_ALGORITHMS),
    ):
        if section.task_count < 1:
            errors.append((f"{prefix}.task_count", "task_count must be >= 1"))
        if section.runs < 1:
            errors.append((f"{prefix}.runs", "runs must be >= 1"))
        if section.optimizer.population < 1:
            errors.append((f"{prefix}.optimizer.population", "population must be >= 1"))
        if section.optimizer.max_iterations < 1:
            errors.append((f"{prefix}.optimizer.max_iterations", "max_iterations must be >= 1"))
        if section.workload.generator not in GENERATORS:
            errors.append((f"{prefix}.workload.generator", f"generator must be one of {GENERATORS}"))
        if not section.algorithms:
            errors.append((f"{prefix}.algorithms", "algorithms must not be empty"))
        for algo in section.algorithms:
            if algo not in allowed:
                errors.append((f"{prefix}.algorithms", f"{algo.value} is not allowed in {prefix} mode"))
    rl = config.batch.rl
    if not 0 < rl.learning_rate <= 1:
        errors.append(("batch.rl.learning_rate", "learning_rate must be in (0, 1]"))
    if not 0 <= rl.discount_factor < 1:
        errors.append(("batch.rl.discount_factor", "discount_factor must be in [0, 1)"))
    if not 0 <= rl.exploration_rate <= 1:
        errors.append(("batch.rl.exploration_rate", "exploration_rate must be in [0, 1]"))
    if not 0 <= rl.min_exploration_rate <= rl.exploration_rate:
        errors.append(
            ("batch.rl.min_exploration_rate", "min_exploration_rate must be in [0, exploration_rate]")
        )
    if rl.episodes < 1:
        errors.append(("batch.rl.episodes", "episodes must be >= 1"))
    if not config.realtime.arrival_rate > 0:
        errors.append(("realtime.arrival_rate", "arrival_rate must be > 0"))
    if not config.realtime.simulation_duration > 0:
        errors.append(("realtime.simulation_duration", "simulation_duration must be > 0"))
    _raise_if_errors(errors)


# ---- helpers ----


def _raise_if_errors(errors: list[tuple[str, str]]) -> None:
    if not errors:
        return
    if len(errors) == 1:
        name, message = errors[0]
        raise ConfigurationError(f"{name}: {message}", field=name)
    lines = "\n".join(f"  - {name}: {message}" for name, message in errors)
    raise ConfigurationError(f"Invalid configuration:\n{lines}", field=errors[0][0])


def _weight_errors(values: Mapping[str, float]) -> list[tuple[str, str]]:
    errors = []
    for name, value in values.items():
        if not (math.isfinite(value) and 0.0 <= value <= 1.0):
            errors.append((f"weights.{name}", f"weight must be in [0, 1], got {value}"))
    if not errors and not sum(values.values()) > 0:
        errors.append(("weights", "weights must sum to a positive value"))
    return errors


def _optimizer_params(section: "_Reader", default: OptimizerParams) -> OptimizerParams:
    return OptimizerParams(
        population=section.positive_int("population", default.population),
        max_iterations=section.positive_int("max_iterations", default.max_iterations),
    )


def _rl_params(section: "_Reader") -> RLParams:
    learning_rate = section.number("learning_rate", 0.1)
    discount_factor = section.number("discount_factor", 0.9)
    exploration_rate = section.number("exploration_rate", 0.8)
    min_exploration_rate = section.number("min_exploration_rate", 0.05)
    if not 0 < learning_rate <= 1:
        section.error("learning_rate", "learning_rate must be in (0, 1]")
    if not 0 <= discount_factor < 1:
        section.error("discount_factor", "discount_factor must be in [0, 1)")
    if not 0 <= exploration_rate <= 1:
        section.error("exploration_rate", "exploration_rate must be in [0, 1]")
    elif not 0 <= min_exploration_rate <= exploration_rate:
        section.error("min_exploration_rate", "min_exploration_rate must be in [0, exploration_rate]")
    return RLParams(
        learning_rate=learning_rate,
        discount_factor=discount_factor,
        exploration_rate=exploration_rate,
        min_exploration_rate=min_exploration_rate,
        episodes=section.positive_int("episodes", 100),
    )


def _workload(section: "_Reader") -> WorkloadConfig:
    generator = section.string("generator", "log_normal")
    if generator not in GENERATORS:
        section.error("generator", f"generator must be one of {GENERATORS}, got {generator!r}")
    return WorkloadConfig(generator=generator)


class _Reader:
    """Typed access to one mapping; problems go to the shared error list."""

    def __init__(self, data: Any, prefix: str, errors: list[tuple[str, str]]):
        if data is None:
            data = {}
        if not isinstance(data, Mapping):
            errors.append((prefix.rstrip("."), "must be a mapping"))
            data = {}
        self.data = data
        self.prefix = prefix
        self.errors = errors

    def error(self, key: str, message: str) -> None:
        self.errors.append((self.prefix + key, message))

    def section(self, key: str) -> "_Reader":
        return _Reader(self.data.get(key), f"{self.prefix}{key}.", self.errors)

    def string(self, key: str, default: str) -> str:
        value = self.data.get(key, default)
        if not isinstance(value, str):
            self.error(key, f"must be a string, got {value!r}")
            return default
        return value

    def boolean(self, key: str, default: bool) -> bool:
        value = self.data.get(key, default)
        if not isinstance(value, bool):
            self.error(key, f"must be true or false, got {value!r}")
            return default
        return value

    def integer(self, key: str, default: int) -> int:
        value = self.data.get(key, default)
        if isinstance(value, bool) or not isinstance(value, int):
            self.error(key, f"must be an integer, got {value!r}")
            return default
        return value

    def positive_int(self, key: str, default: int) -> int:
        value = self.integer(key, default)
        if value < 1:
            self.error(key, f"must be >= 1, got {value}")
            return default
        return value

    def number(self, key: str, default: float) -> float:
        value = self.data.get(key, default)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            self.error(key, f"must be a number, got {value!r}")
            return default
        return float(value)

    def positive_number(self, key: str, default: float) -> float:
        value = self.number(key, default)
        if not (value > 0 and math.isfinite(value)):
            self.error(key, f"must be > 0, got {value}")
            return default
        return value

    def algorithms(
        self,
        key: str,
        default: tuple[AlgorithmType, ...],
        allowed: tuple[AlgorithmType, ...],
    ) -> tuple[AlgorithmType, ...]:
        value = self.data.get(key)
        if value is None:
            return default
        if not isinstance(value, list) or not value:
            self.error(key, "must be a non-empty list of algorithm names")
            return default
        parsed: list[AlgorithmType] = []
        for name in value:
            try:
                algo = AlgorithmType.parse(name)
            except ConfigurationError as e:
                self.error(key, str(e))
                continue
            if algo not in allowed:
                self.error(key, f"{algo.value} is not allowed here")
                continue
            parsed.append(algo)
        return tuple(parsed) if parsed else default
