#!/usr/bin/env python3
"""Run a scheduling comparison described by a YAML config.

    python main.py --config config.yaml
"""

import argparse
import logging
import sys

from cloudsched.config import load_config
from cloudsched.experiments.aggregate import summarize, write_summary_csv
from cloudsched.experiments.runner import ExperimentRunner
from cloudsched.models import ConfigurationError
from cloudsched.visualization import mean_histories, plot_convergence


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Compare task scheduling algorithms")
    parser.add_argument("--config", default="config.yaml", help="Path to YAML config")
    parser.add_argument("--results-dir", default=None, help="Override output.results_dir")
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
    except (OSError, ConfigurationError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger = logging.getLogger("cloudsched")
    logger.info("Mode: %s, seed: %d", config.mode, config.random_seed)

    runner = ExperimentRunner(config, args.results_dir)
    results = runner.run()
    if not results:
        logger.warning("No results produced")
        return 1

    for algo, stats in summarize(results).items():
        key = "fitness" if "fitness" in stats else "makespan"
        logger.info("%-14s %s: %s", algo, key, stats[key])

    if config.output.csv:
        try:
            write_summary_csv(results, runner.timestamp_dir / "summary.csv")
        except OSError as e:
            logger.warning("Failed to write summary: %s", e)
    if config.output.charts and config.mode == "batch":
        plot_convergence(mean_histories(results), runner.timestamp_dir / "convergence.png")
    logger.info("Results in %s", runner.timestamp_dir)
    return 0


if __name__ == "__main__":
    sys.exit(main())
