"""Plotting helpers for decoded history and scan results."""
from __future__ import annotations

from pathlib import Path
from typing import Any

import numpy as np

from .anomaly import AnomalyReport
from .builder import History


def generate_plots(history: History, report: AnomalyReport, output_dir: Path) -> Path:
    plt = _require_matplotlib()
    output_dir.mkdir(parents=True, exist_ok=True)
    fig, (ax_counts, ax_blocks) = plt.subplots(2, 1, figsize=(14, 7), sharex=True)

    _plot_counts(history, report, ax_counts)
    _plot_block_averages(history, report, ax_blocks)

    fig.tight_layout()
    out_path = output_dir / "history.png"
    fig.savefig(out_path, dpi=150)
    plt.close(fig)
    return out_path


def _plot_counts(history: History, report: AnomalyReport, ax) -> None:
    counts = history.counts()
    index = np.arange(counts.size)
    ax.plot(index, counts, color="tab:blue", linewidth=0.8, label=f"counts ({history.rate.unit})")
    for interval in report.intervals:
        color = "tab:red" if interval.last_index in report.super_high_indices else "tab:orange"
        ax.axvspan(interval.first_index, interval.last_index, color=color, alpha=0.3)
    ax.axhline(report.mean, color="black", linewidth=0.8, linestyle="--", label=f"mean {report.mean}")
    ax.set_title(history.label or "History")
    ax.set_ylabel("Counts")
    ax.legend(loc="best")


def _plot_block_averages(history: History, report: AnomalyReport, ax) -> None:
    counts = history.counts()
    block = report.block_size
    n_blocks = counts.size // block
    if n_blocks:
        averages = counts[: n_blocks * block].reshape(n_blocks, block).sum(axis=1) // block
        ax.step(np.arange(n_blocks) * block, averages, where="post", color="tab:green", label="block average")
    ax.axhline(report.upper_threshold, color="tab:orange", linestyle=":", label=f"high >= {report.upper_threshold}")
    ax.axhline(
        report.super_high_threshold,
        color="tab:red",
        linestyle=":",
        label=f"super high >= {report.super_high_threshold}",
    )
    ax.set_xlabel("Sample index")
    ax.set_ylabel("Average")
    ax.legend(loc="best")


def _require_matplotlib() -> Any:
    home_cache = Path.home() / ".cache" / "fontconfig"
    try:
        home_cache.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise RuntimeError("matplotlib cannot write font cache in this environment") from exc

    try:
        import matplotlib
        matplotlib.use("Agg", force=True)
        import matplotlib.pyplot as plt  # type: ignore
    except ImportError as exc:  # pragma: no cover - optional dependency
        raise RuntimeError("matplotlib is required for plotting; install gmchist[plot]") from exc
    except Exception as exc:  # pragma: no cover - environment issues
        raise RuntimeError(f"matplotlib initialisation failed: {exc}") from exc
    return plt
