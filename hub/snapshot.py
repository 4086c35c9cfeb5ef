"""Read-only views of engine state for renderers and reports."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class SourceView:
    id: int
    rate: float
    next_generation_time: float
    generated_count: int
    rejected_count: int


@dataclass(frozen=True)
class ResidentView:
    id: int
    arrival_time: float
    source_id: int
    slot: int | None
    deadline: float | None
    status: str


@dataclass(frozen=True)
class BufferView:
    cargo_class: str
    capacity: int
    load_factor: float
    residents: tuple[ResidentView, ...]


@dataclass(frozen=True)
class DeviceView:
    id: int
    priority_class: int
    capacity: int
    is_free: bool
    job_end_time: float
    current_request_id: int | None
    in_progress: int
    processed_count: int


@dataclass(frozen=True)
class EventView:
    time: float
    kind: str
    note: str


@dataclass(frozen=True)
class StatsView:
    arrivals: int
    completed: int
    rejected: int
    evicted: int
    in_flight: int
    waiting_times: tuple[float, ...] = ()
    service_times: tuple[float, ...] = ()
    system_times: tuple[float, ...] = ()


@dataclass(frozen=True)
class HubSnapshot:
    """Everything a step-by-step display needs after one engine step."""

    now: float
    step_count: int
    sources: tuple[SourceView, ...]
    buffers: tuple[BufferView, ...]
    devices: tuple[DeviceView, ...]
    stats: StatsView
    pending: tuple[EventView, ...] = field(default=())

    def buffer(self, cargo_class: str) -> BufferView:
        for view in self.buffers:
            if view.cargo_class == cargo_class:
                return view
        raise KeyError(cargo_class)
