"""Evaluation: replications, metrics, sweeps, plots."""

from eval.metrics import (
    aggregate_metrics,
    confidence_interval_95,
    conservation_gap,
    loss_rate,
)

__all__ = [
    "aggregate_metrics",
    "confidence_interval_95",
    "conservation_gap",
    "loss_rate",
]
