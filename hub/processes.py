"""Processes: random generators, request ids, arrival sources."""

from __future__ import annotations

import itertools
import logging

import numpy as np

from hub.entities import CargoClass, Request

logger = logging.getLogger(__name__)

# Share of arrivals that carry perishable cargo
DEFAULT_PERISHABLE_SHARE = 0.1


def make_rng(seed: int | None) -> np.random.Generator:
    """Seeded generator shared by every stochastic component of one run."""
    return np.random.default_rng(seed)


def sample_interarrival(rng: np.random.Generator, rate_per_min: float) -> float:
    """Exponential interarrival time (minutes)."""
    if rate_per_min <= 0:
        return float("inf")
    return float(rng.exponential(1.0 / rate_per_min))


def sample_service_time(
    rng: np.random.Generator, min_time: float, max_time: float
) -> float:
    """Uniform service time (minutes) in [min_time, max_time]."""
    return float(rng.uniform(min_time, max_time))


def sample_cargo_class(
    rng: np.random.Generator, perishable_share: float = DEFAULT_PERISHABLE_SHARE
) -> CargoClass:
    return CargoClass.PERISHABLE if rng.random() < perishable_share else CargoClass.REGULAR


class RequestIdSequence:
    """Monotone request ids shared by all sources of one simulation."""

    def __init__(self, start: int = 1) -> None:
        self._counter = itertools.count(start)
        self.last_id = start - 1

    def next_id(self) -> int:
        self.last_id = next(self._counter)
        return self.last_id


class RandomRequestSource:
    """Poisson source of requests with arrival rate ``rate`` per minute."""

    def __init__(
        self,
        id: int,
        rate: float,
        rng: np.random.Generator,
        ids: RequestIdSequence,
        perishable_share: float = DEFAULT_PERISHABLE_SHARE,
    ) -> None:
        self.id = id
        self.rate = rate
        self.rng = rng
        self.ids = ids
        self.perishable_share = perishable_share
        self.generated_count = 0
        self.rejected_count = 0
        self.next_generation_time = float("inf")

    def next_inter_arrival(self) -> float:
        return sample_interarrival(self.rng, self.rate)

    def generate(self, current_time: float) -> Request:
        self.generated_count += 1
        request = Request(
            id=self.ids.next_id(),
            source_id=self.id,
            arrival_time=current_time,
            cargo_class=sample_cargo_class(self.rng, self.perishable_share),
        )
        logger.debug(
            "source %d generated request %d (%s) at %.2f",
            self.id,
            request.id,
            request.cargo_class.value,
            current_time,
        )
        return request
