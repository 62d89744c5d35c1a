from __future__ import annotations

import csv
import json
import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Sequence

logger = logging.getLogger("cloudsched.experiments")

SUMMARY_METRICS = (
    "fitness",
    "makespan",
    "cost",
    "total_time",
    "load_balance",
    "mean_waiting_time",
    "mean_response_time",
    "elapsed_ms",
)


@dataclass(frozen=True)
class StatisticalValue:
    mean: float
    std_dev: float
    min: float
    max: float

    @classmethod
    def from_values(cls, values: Sequence[float]) -> "StatisticalValue":
        """Population statistics of ``values``.

        Raises:
            ValueError: ``values`` is empty.
        """
        if not values:
            raise ValueError("Cannot summarize an empty list")
        mean = math.fsum(values) / len(values)
        variance = math.fsum((v - mean) ** 2 for v in values) / len(values)
        return cls(mean=mean, std_dev=math.sqrt(variance), min=min(values), max=max(values))

    def __str__(self) -> str:
        return f"{self.mean:.4f} ± {self.std_dev:.4f}"


def _row(result: Any) -> Dict[str, Any]:
    return result.to_dict() if hasattr(result, "to_dict") else dict(result)


def _metric(row: Dict[str, Any], name: str) -> float | None:
    if name in ("fitness", "elapsed_ms"):
        value = row.get(name)
    else:
        value = (row.get("metrics") or {}).get(name)
    if value is None:
        return None
    return float(value)


def summarize(results: Iterable[Any]) -> Dict[str, Dict[str, StatisticalValue]]:
    """Per algorithm, a ``StatisticalValue`` for every metric the runs report."""
    grouped: Dict[str, Dict[str, List[float]]] = {}
    for result in results:
        row = _row(result)
        per_algo = grouped.setdefault(row["algorithm"], {})
        for name in SUMMARY_METRICS:
            value = _metric(row, name)
            if value is not None and math.isfinite(value):
                per_algo.setdefault(name, []).append(value)
    return {
        algo: {name: StatisticalValue.from_values(values) for name, values in metrics.items()}
        for algo, metrics in grouped.items()
    }


def load_results_dir(timestamp_dir: Path) -> List[Dict[str, Any]]:
    """Load every JSON result written by ``ExperimentRunner`` in ``timestamp_dir``."""
    results: List[Dict[str, Any]] = []
    for file in sorted(Path(timestamp_dir).glob("*.json")):
        try:
            with open(file, "r", encoding="utf-8") as f:
                results.append(json.load(f))
        except (OSError, ValueError) as e:
            logger.warning("Failed to load %s: %s", file, e)
    return results


def write_summary_csv(results: Iterable[Any], out_path: Path) -> Path:
    """One row per algorithm: runs count, then mean/std/min/max of each metric."""
    rows = [_row(r) for r in results]
    stats = summarize(rows)
    runs: Dict[str, int] = {}
    for row in rows:
        runs[row["algorithm"]] = runs.get(row["algorithm"], 0) + 1
    metrics = [m for m in SUMMARY_METRICS if any(m in s for s in stats.values())]
    columns = ["algorithm", "runs"]
    for m in metrics:
        columns += [f"{m}_mean", f"{m}_std", f"{m}_min", f"{m}_max"]
    out_path = Path(out_path)
    with open(out_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(columns)
        for algo, per_metric in stats.items():
            line: List[Any] = [algo, runs[algo]]
            for m in metrics:
                s = per_metric.get(m)
                line += [s.mean, s.std_dev, s.min, s.max] if s else ["", "", "", ""]
            writer.writerow(line)
    logger.info("Summary written: %s", out_path)
    return out_path
