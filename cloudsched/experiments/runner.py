from __future__ import annotations

import json
import logging
import time
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, List

from cloudsched.config import ExperimentConfig, validate_config
from cloudsched.models import AlgorithmType
from cloudsched.schedulers.batch import SchedulerParams, create_batch_scheduler
from cloudsched.schedulers.realtime import RealtimeSession, create_realtime_scheduler
from cloudsched.workload import create_resources, generate_arrivals, generate_tasks

logger = logging.getLogger("cloudsched.experiments")


@dataclass
class RunResult:
    """Outcome of one (algorithm, run) pair.

    ``metrics`` holds the analytic estimates; realtime runs add mean waiting
    and response time to it and leave ``history`` empty.
    """

    mode: str  # 'batch' | 'realtime'
    algorithm: str
    run: int
    seed: int
    task_count: int
    resource_count: int
    assignment: List[int]
    metrics: dict[str, float]
    fitness: float | None
    elapsed_ms: int
    history: List[float] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        # inf is not valid JSON
        d["history"] = [h if h != float("inf") else None for h in self.history]
        return d


class ExperimentRunner:
    def __init__(self, config: ExperimentConfig, results_dir: str | None = None):
        """Each runner gets its own timestamped directory under ``results_dir``.

        Raises:
            ConfigurationError: ``config`` fails validation.
        """
        validate_config(config)
        self.config = config
        self.base_dir = Path(results_dir if results_dir is not None else config.output.results_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self.timestamp_dir = self.base_dir / datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        self.timestamp_dir.mkdir(parents=True, exist_ok=True)
        self.resources = create_resources()

    def run(self) -> List[RunResult]:
        if self.config.mode == "realtime":
            return self.run_realtime()
        return self.run_batch()

    def run_batch(self) -> List[RunResult]:
        cfg = self.config
        batch = cfg.batch
        results: List[RunResult] = []
        total = batch.runs * len(batch.algorithms)
        idx = 0
        for run in range(batch.runs):
            seed = cfg.random_seed + run
            tasks = generate_tasks(batch.task_count, batch.workload.generator, seed)
            params = SchedulerParams(
                population=batch.optimizer.population,
                max_iterations=batch.optimizer.max_iterations,
                seed=seed,
                reference_seed=cfg.reference_seed,
                learning_rate=batch.rl.learning_rate,
                discount_factor=batch.rl.discount_factor,
                exploration_rate=batch.rl.exploration_rate,
                min_exploration_rate=batch.rl.min_exploration_rate,
                episodes=batch.rl.episodes,
            )
            for algo in batch.algorithms:
                idx += 1
                logger.info("(%d/%d) batch %s run=%d seed=%d", idx, total, algo.value, run, seed)
                start = time.perf_counter()
                scheduler = create_batch_scheduler(algo, tasks, self.resources, cfg.weights, params)
                outcome = scheduler.schedule()
                elapsed_ms = int((time.perf_counter() - start) * 1000)
                result = RunResult(
                    mode="batch",
                    algorithm=algo.value,
                    run=run,
                    seed=seed,
                    task_count=len(tasks),
                    resource_count=len(self.resources),
                    assignment=outcome.assignment,
                    metrics=outcome.metrics.as_dict(),
                    fitness=outcome.fitness,
                    elapsed_ms=elapsed_ms,
                    history=outcome.history,
                )
                logger.info(
                    "%s fitness=%.6f makespan=%.2f cost=%.2f (%d ms)",
                    algo.value,
                    outcome.fitness,
                    outcome.metrics.makespan,
                    outcome.metrics.cost,
                    elapsed_ms,
                )
                results.append(result)
                self._persist_result(result)
        return results

    def run_realtime(self) -> List[RunResult]:
        cfg = self.config
        rt = cfg.realtime
        results: List[RunResult] = []
        total = rt.runs * len(rt.algorithms)
        idx = 0
        for run in range(rt.runs):
            seed = cfg.random_seed + run
            tasks = generate_arrivals(
                rt.task_count, rt.arrival_rate, rt.simulation_duration, rt.workload.generator, seed
            )
            if not tasks:
                logger.warning("Run %d: no task arrived within %.1f s, skipping", run, rt.simulation_duration)
                continue
            for algo in rt.algorithms:
                idx += 1
                logger.info("(%d/%d) realtime %s run=%d seed=%d", idx, total, algo.value, run, seed)
                results.append(self._run_realtime_single(algo, tasks, run, seed))
        return results

    def _run_realtime_single(self, algo: AlgorithmType, tasks, run: int, seed: int) -> RunResult:
        cfg = self.config
        scheduler = create_realtime_scheduler(
            algo,
            self.resources,
            cfg.weights,
            population=cfg.realtime.optimizer.population,
            max_iterations=cfg.realtime.optimizer.max_iterations,
            seed=seed,
            reference_seed=cfg.reference_seed,
        )
        session = RealtimeSession(scheduler, self.resources)
        start = time.perf_counter()
        session.run(tasks)
        elapsed_ms = int((time.perf_counter() - start) * 1000)
        summary = session.summary(cfg.weights)
        result = RunResult(
            mode="realtime",
            algorithm=algo.value,
            run=run,
            seed=seed,
            task_count=summary.task_count,
            resource_count=len(self.resources),
            assignment=session.assignment,
            metrics=summary.as_dict(),
            fitness=None,
            elapsed_ms=elapsed_ms,
        )
        logger.info(
            "%s makespan=%.2f mean_response=%.2f (%d ms)",
            algo.value,
            summary.metrics.makespan,
            summary.mean_response_time,
            elapsed_ms,
        )
        self._persist_result(result)
        return result

    def _persist_result(self, result: RunResult) -> None:
        filename = f"mode={result.mode}_algo={result.algorithm}_run={result.run}_seed={result.seed}.json"
        path = self.timestamp_dir / filename
        try:
            with open(path, "w", encoding="utf-8") as f:
                json.dump(result.to_dict(), f, indent=2)
        except OSError as e:
            logger.warning("Failed to save %s: %s", path, e)
            return
        logger.debug("Saved %s", path)
