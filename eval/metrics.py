"""Replication aggregation, confidence intervals and run sanity checks."""

from __future__ import annotations

from typing import Any

import numpy as np


def aggregate_metrics(metrics_list: list[dict]) -> tuple[dict, dict]:
    """
    Aggregate K episodes: mean and std for every numeric metric.
    """
    if not metrics_list:
        return {}, {}

    keys = list(metrics_list[0].keys())
    means = {}
    stds = {}
    for k in keys:
        vals = [m.get(k, 0) for m in metrics_list]
        if isinstance(vals[0], (int, float)):
            means[k] = float(np.mean(vals))
            stds[k] = float(np.std(vals)) if len(vals) > 1 else 0.0
        else:
            means[k] = vals[0]
    return means, stds


def confidence_interval_95(values: list[float]) -> tuple[float, float]:
    """Return (lower, upper) 95% CI for mean."""
    if len(values) < 2:
        return (float(values[0]), float(values[0])) if values else (0.0, 0.0)
    n = len(values)
    mean = np.mean(values)
    se = np.std(values, ddof=1) / (n ** 0.5)
    # Approximate 1.96 for 95%
    margin = 1.96 * se
    return (float(mean - margin), float(mean + margin))


def conservation_gap(metrics: dict[str, Any]) -> int:
    """arrivals - (completed + rejected + evicted + in_flight); zero for a consistent run."""
    return int(
        metrics.get("arrivals", 0)
        - metrics.get("completed", 0)
        - metrics.get("rejected", 0)
        - metrics.get("evicted", 0)
        - metrics.get("in_flight", 0)
    )


def loss_rate(metrics: dict[str, Any]) -> float:
    """Share of arrivals that never got served: rejected plus evicted."""
    arrivals = metrics.get("arrivals", 0)
    if not arrivals:
        return 0.0
    return (metrics.get("rejected", 0) + metrics.get("evicted", 0)) / arrivals
