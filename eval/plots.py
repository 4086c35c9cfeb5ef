"""Generate figures: sweep bars, replication spread, waiting-time histogram."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np


def plot_sweep_bars(
    csv_path: str | Path,
    output_path: str | Path | None = None,
    metrics: list[str] | None = None,
) -> Path:
    """Bar chart: shift x metric(s)."""
    import pandas as pd

    df = pd.read_csv(csv_path)
    if output_path is None:
        output_path = Path(csv_path).parent / "sweep_bars.png"
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    metrics = [
        m
        for m in (metrics or ["rejection_rate_mean", "eviction_rate_mean", "mean_wait_mean"])
        if m in df.columns
    ]
    if "shift" not in df.columns or not metrics:
        return output_path

    fig, axes = plt.subplots(1, len(metrics), figsize=(4 * len(metrics), 4))
    if len(metrics) == 1:
        axes = [axes]
    for ax, m in zip(axes, metrics):
        df.plot(x="shift", y=m, kind="bar", ax=ax, legend=False)
        ax.set_ylabel(m)
        ax.set_title(m)
        plt.setp(ax.xaxis.get_majorticklabels(), rotation=45, ha="right")
    fig.suptitle("Sweep: hub performance by shifted setting")
    fig.tight_layout()
    fig.savefig(output_path, dpi=150, bbox_inches="tight")
    plt.close()
    return output_path


def plot_replication_spread(
    csv_path: str | Path,
    output_path: str | Path | None = None,
    metric: str = "rejection_rate",
) -> Path:
    """Per-replication values of one metric with the mean drawn as a line."""
    import pandas as pd

    df = pd.read_csv(csv_path)
    if output_path is None:
        output_path = Path(csv_path).parent / f"replications_{metric}.png"
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    if metric not in df.columns:
        return output_path

    fig, ax = plt.subplots()
    x = df["seed"] if "seed" in df.columns else range(len(df))
    ax.scatter(x, df[metric], s=20, alpha=0.8)
    ax.axhline(df[metric].mean(), color="tab:red", linestyle="--", label="mean")
    ax.set_xlabel("seed")
    ax.set_ylabel(metric)
    ax.set_title(f"{metric} across replications")
    ax.legend()
    fig.tight_layout()
    fig.savefig(output_path, dpi=150)
    plt.close()
    return output_path


def plot_wait_histogram(
    waiting_times: Sequence[float],
    output_path: str | Path,
    bins: int = 30,
) -> Path:
    """Histogram of waiting times (minutes) from one run."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    values = np.asarray(waiting_times, dtype=float)
    fig, ax = plt.subplots()
    if values.size:
        ax.hist(values, bins=bins, alpha=0.8)
        ax.axvline(float(values.mean()), color="tab:red", linestyle="--", label="mean")
        ax.legend()
    ax.set_xlabel("waiting time (min)")
    ax.set_ylabel("requests")
    ax.set_title("Waiting time before service")
    fig.tight_layout()
    fig.savefig(output_path, dpi=150)
    plt.close()
    return output_path


def generate_all_plots(results_dir: str | Path = "results") -> None:
    """Generate all plots from results dir if corresponding CSVs exist."""
    results_dir = Path(results_dir)
    if (results_dir / "sweep_results.csv").exists():
        plot_sweep_bars(results_dir / "sweep_results.csv", results_dir / "sweep_bars.png")
        print("Saved sweep_bars.png")
    if (results_dir / "replications.csv").exists():
        for metric in ("rejection_rate", "mean_wait"):
            plot_replication_spread(results_dir / "replications.csv", metric=metric)
            print(f"Saved replications_{metric}.png")


if __name__ == "__main__":
    import argparse

    p = argparse.ArgumentParser()
    p.add_argument("--results_dir", type=str, default="results")
    args = p.parse_args()
    generate_all_plots(results_dir=args.results_dir)
