"""Pytest configuration & custom summary hook.

Also puts the project root on sys.path so 'cloudsched' imports without install.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Project root on sys.path so 'import cloudsched' works
_root = Path(__file__).resolve().parents[1]
if str(_root) not in sys.path:
    sys.path.insert(0, str(_root))


def pytest_terminal_summary(
    terminalreporter: pytest.TerminalReporter,
    exitstatus: int,
    config: pytest.Config,
) -> None:  # noqa: D401
    """Append a compact custom summary at the end of test session."""
    stats = terminalreporter.stats
    collected = terminalreporter._numcollected  # type: ignore[attr-defined]
    passed = len(stats.get("passed", []))
    failed = len(stats.get("failed", []))
    errors = len(stats.get("error", []))
    skipped = len(stats.get("skipped", []))
    xfailed = len(stats.get("xfailed", []))
    xpassed = len(stats.get("xpassed", []))

    terminalreporter.section("Custom summary", sep="=")
    terminalreporter.write_line(
        "Collected: "
        f"{collected} | Passed: {passed} | Failed: {failed} | "
        f"Errors: {errors} | Skipped: {skipped} | "
        f"xfailed: {xfailed} | xpassed: {xpassed}"
    )
    if failed:
        terminalreporter.write_line("Failed tests:")
        for rep in stats["failed"]:
            terminalreporter.write_line(f"  - {rep.nodeid}")


@pytest.fixture
def small_workload():
    """Six tasks on three resources of rates 1000/2000/4000."""
    from cloudsched.models import Resource, Task

    tasks = [Task(index=i, length=float(length)) for i, length in enumerate([5000, 12000, 3000, 40000, 8000, 20000])]
    resources = [
        Resource(index=0, rate=1000.0, price_per_sec=0.1, tier="low"),
        Resource(index=1, rate=2000.0, price_per_sec=0.5, tier="medium"),
        Resource(index=2, rate=4000.0, price_per_sec=1.0, tier="high"),
    ]
    return tasks, resources
