"""Passive statistics fed by the dispatcher and the clock."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable

import numpy as np

from hub.entities import CARGO_CLASSES, CargoClass, Request


def _per_class() -> dict[str, int]:
    return {c: 0 for c in CARGO_CLASSES}


def _mean(values: list[float]) -> float:
    return float(np.mean(values)) if values else 0.0


def _max(values: list[float]) -> float:
    return float(np.max(values)) if values else 0.0


def _p95(values: list[float]) -> float:
    # Same cut-off as the episode metrics: fall back to the mean below 20 samples
    if len(values) >= 20:
        return float(sorted(values)[int(0.95 * len(values))])
    return _mean(values)


@dataclass
class StatisticsCollector:
    """Accumulates counts and time samples for one run."""

    total_arrivals: int = 0
    total_completed: int = 0
    total_rejected: int = 0
    total_evicted: int = 0
    arrivals_by_class: dict[str, int] = field(default_factory=_per_class)
    completed_by_class: dict[str, int] = field(default_factory=_per_class)
    rejected_by_class: dict[str, int] = field(default_factory=_per_class)
    evicted_by_class: dict[str, int] = field(default_factory=_per_class)
    waiting_times: list[float] = field(default_factory=list)
    service_times: list[float] = field(default_factory=list)
    system_times: list[float] = field(default_factory=list)
    eviction_waits: list[float] = field(default_factory=list)

    def record_arrival(self, request: Request) -> None:
        self.total_arrivals += 1
        self.arrivals_by_class[_key(request.cargo_class)] += 1

    def record_service_completion(self, request: Request, current_time: float) -> None:
        self.total_completed += 1
        self.completed_by_class[_key(request.cargo_class)] += 1
        self.system_times.append(current_time - request.arrival_time)
        if request.service_start_time is not None:
            self.service_times.append(current_time - request.service_start_time)
            self.waiting_times.append(request.service_start_time - request.arrival_time)

    def record_rejection(self, request: Request) -> None:
        self.total_rejected += 1
        self.rejected_by_class[_key(request.cargo_class)] += 1

    def record_eviction(self, request: Request, current_time: float) -> None:
        self.total_evicted += 1
        self.evicted_by_class[_key(request.cargo_class)] += 1
        self.eviction_waits.append(request.waiting_time(current_time))

    def completion_rate(self) -> float:
        return self.total_completed / self.total_arrivals if self.total_arrivals else 0.0

    def rejection_rate(self) -> float:
        return self.total_rejected / self.total_arrivals if self.total_arrivals else 0.0

    def eviction_rate(self) -> float:
        return self.total_evicted / self.total_arrivals if self.total_arrivals else 0.0

    def summary(self, horizon: float, devices: Iterable[Any] = ()) -> dict[str, Any]:
        """Flat, JSON-serialisable metrics for one run."""
        out: dict[str, Any] = {
            "arrivals": self.total_arrivals,
            "completed": self.total_completed,
            "rejected": self.total_rejected,
            "evicted": self.total_evicted,
            "completion_rate": self.completion_rate(),
            "rejection_rate": self.rejection_rate(),
            "eviction_rate": self.eviction_rate(),
            "throughput": self.total_completed / (horizon / 60.0) if horizon > 0 else 0.0,
            "mean_wait": _mean(self.waiting_times),
            "max_wait": _max(self.waiting_times),
            "p95_wait": _p95(self.waiting_times),
            "mean_service": _mean(self.service_times),
            "max_service": _max(self.service_times),
            "mean_system_time": _mean(self.system_times),
            "max_system_time": _max(self.system_times),
        }
        for c in CARGO_CLASSES:
            arrived = self.arrivals_by_class[c]
            out[f"{c}_arrivals"] = arrived
            out[f"{c}_rejection_rate"] = self.rejected_by_class[c] / arrived if arrived else 0.0
            out[f"{c}_eviction_rate"] = self.evicted_by_class[c] / arrived if arrived else 0.0
        utils = [d.utilization(horizon) for d in devices]
        out["device_utilization"] = _mean(utils)
        return out


def _key(cargo_class: CargoClass) -> str:
    return cargo_class.value
