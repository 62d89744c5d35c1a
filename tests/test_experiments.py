"""End-to-end experiment runs on tiny workloads.

Results are written under pytest's tmp_path.
"""

import csv
import json
from pathlib import Path

import pytest

from cloudsched.config import config_from_dict
from cloudsched.experiments.aggregate import (
    StatisticalValue,
    load_results_dir,
    summarize,
    write_summary_csv,
)
from cloudsched.experiments.runner import ExperimentRunner
from cloudsched.models import ConfigurationError
from cloudsched.visualization import mean_histories, plot_convergence


def _batch_config(tmp_path: Path):
    return config_from_dict(
        {
            "mode": "batch",
            "random_seed": 3,
            "batch": {
                "task_count": 12,
                "runs": 2,
                "algorithms": ["RANDOM", "PSO", "HHO", "RL"],
                "optimizer": {"population": 5, "max_iterations": 5},
                "rl": {"episodes": 10},
            },
            "output": {"results_dir": str(tmp_path / "results")},
        }
    )


def test_batch_runs_persist_json(tmp_path: Path) -> None:
    runner = ExperimentRunner(_batch_config(tmp_path))
    results = runner.run()
    assert len(results) == 8
    assert {r.seed for r in results} == {3, 4}
    files = sorted(runner.timestamp_dir.glob("*.json"))
    assert len(files) == 8
    data = json.loads(files[0].read_text(encoding="utf-8"))
    assert data["mode"] == "batch"
    assert len(data["assignment"]) == 12
    assert set(data["metrics"]) == {"cost", "total_time", "load_balance", "makespan"}
    assert len(load_results_dir(runner.timestamp_dir)) == 8


def test_batch_runs_reproducible(tmp_path: Path) -> None:
    a = ExperimentRunner(_batch_config(tmp_path), str(tmp_path / "a")).run_batch()
    b = ExperimentRunner(_batch_config(tmp_path), str(tmp_path / "b")).run_batch()
    assert [r.assignment for r in a] == [r.assignment for r in b]
    assert [r.fitness for r in a] == [r.fitness for r in b]


def test_realtime_runs(tmp_path: Path) -> None:
    cfg = config_from_dict(
        {
            "mode": "realtime",
            "realtime": {
                "task_count": 10,
                "arrival_rate": 2.0,
                "simulation_duration": 1000.0,
                "runs": 1,
                "algorithms": ["RANDOM", "MIN_LOAD", "WOA_REALTIME"],
                "optimizer": {"population": 4, "max_iterations": 3},
            },
        }
    )
    results = ExperimentRunner(cfg, str(tmp_path)).run()
    assert [r.algorithm for r in results] == ["RANDOM", "MIN_LOAD", "WOA_REALTIME"]
    for r in results:
        assert r.task_count == 10
        assert r.fitness is None
        assert r.metrics["mean_response_time"] >= r.metrics["mean_waiting_time"] >= 0


def test_summary_csv(tmp_path: Path) -> None:
    results = ExperimentRunner(_batch_config(tmp_path)).run()
    out = write_summary_csv(results, tmp_path / "summary.csv")
    with open(out, newline="", encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    assert {row["algorithm"] for row in rows} == {"RANDOM", "PSO", "HHO", "RL"}
    assert all(row["runs"] == "2" for row in rows)
    assert "fitness_mean" in rows[0]
    stats = summarize(results)
    assert stats["PSO"]["fitness"].min <= stats["PSO"]["fitness"].mean <= stats["PSO"]["fitness"].max


def test_convergence_chart(tmp_path: Path) -> None:
    results = ExperimentRunner(_batch_config(tmp_path)).run()
    histories = mean_histories(results)
    assert set(histories) == {"PSO", "HHO"}
    path = plot_convergence(histories, tmp_path / "charts" / "convergence.png")
    assert path is not None and path.exists()
    assert plot_convergence({}, tmp_path / "empty.png") is None


def test_runner_validates_config(tmp_path: Path) -> None:
    from dataclasses import replace

    cfg = replace(_batch_config(tmp_path), mode="stream")
    with pytest.raises(ConfigurationError):
        ExperimentRunner(cfg)


def test_statistical_value() -> None:
    s = StatisticalValue.from_values([1.0, 2.0, 3.0])
    assert s.mean == pytest.approx(2.0)
    assert s.std_dev == pytest.approx((2 / 3) ** 0.5)
    assert (s.min, s.max) == (1.0, 3.0)
    assert str(s) == "2.0000 ± 0.8165"
    with pytest.raises(ValueError):
        StatisticalValue.from_values([])
