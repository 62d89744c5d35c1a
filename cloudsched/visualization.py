import logging
import math
from pathlib import Path
from typing import Dict, Optional, Sequence

import matplotlib

matplotlib.use("Agg")  # Must be set before importing pyplot
import matplotlib.pyplot as plt  # noqa: E402

logger = logging.getLogger("cloudsched.visualization")


def plot_convergence(
    histories: Dict[str, Sequence[float]],
    save_path,
    title: str = "Convergence comparison",
    colors: Optional[Dict[str, str]] = None,
) -> Optional[Path]:
    """Best fitness per iteration for several algorithms on one chart.

    Non-finite entries (no feasible solution yet) are skipped. Returns the
    written path, or ``None`` when nothing could be plotted or saved.
    """
    if colors is None:
        colors = {}
    fig, ax = plt.subplots(figsize=(10, 6), constrained_layout=True)
    plotted = 0
    for name, history in histories.items():
        points = [(i, v) for i, v in enumerate(history) if v is not None and math.isfinite(v)]
        if not points:
            continue
        xs, ys = zip(*points)
        ax.plot(xs, ys, label=name, linewidth=2, color=colors.get(name))
        ax.annotate(
            f"{ys[-1]:.4f}",
            xy=(xs[-1], ys[-1]),
            xytext=(6, -10),
            textcoords="offset points",
            fontsize=9,
            bbox=dict(boxstyle="round,pad=0.2", facecolor="white", alpha=0.55),
        )
        plotted += 1
    if not plotted:
        plt.close(fig)
        logger.warning("No convergence data to plot")
        return None
    ax.set_xlabel("Iteration", fontsize=12)
    ax.set_ylabel("Best fitness", fontsize=12)
    ax.set_title(title, fontsize=14, fontweight="bold")
    ax.grid(True, alpha=0.25, linestyle="--", linewidth=0.7)
    ax.legend(loc="upper right")
    path = Path(save_path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(path, dpi=150)
    except OSError as e:
        logger.warning("Failed to save chart %s: %s", path, e)
        return None
    finally:
        plt.close(fig)
    logger.info("Chart saved: %s", path)
    return path


def mean_histories(results) -> Dict[str, list]:
    """Average batch histories per algorithm (shortest run length wins)."""
    grouped: Dict[str, list] = {}
    for r in results:
        if r.history:
            grouped.setdefault(r.algorithm, []).append(r.history)
    out = {}
    for algo, runs in grouped.items():
        length = min(len(h) for h in runs)
        out[algo] = [sum(h[i] for h in runs) / len(runs) for i in range(length)]
    return out
