"""Simulation clock: pulls events off the calendar and routes them to the dispatcher."""

from __future__ import annotations

import logging
from typing import Any

import numpy as np

from hub.buffers import Buffer
from hub.devices import Device, DeviceGroup
from hub.dispatcher import Admission, Dispatcher
from hub.entities import CargoClass, Request
from hub.errors import HubError
from hub.events import DeviceRef, Event, EventCalendar, EventKind, SourceRef
from hub.models import HubConfig
from hub.processes import RandomRequestSource, RequestIdSequence, make_rng
from hub.snapshot import (
    BufferView,
    DeviceView,
    EventView,
    HubSnapshot,
    ResidentView,
    SourceView,
    StatsView,
)
from hub.statistics import StatisticsCollector

logger = logging.getLogger(__name__)


class Simulation:
    """
    One run of the hub. Everything the engine needs is built here and passed
    down explicitly; nothing is looked up globally.

    Drive it with step() (one event at a time, for inspection) or
    run_until() (silent bulk mode).

    ``requests`` maps every generated request id to its Request for the whole
    run, terminal ones included, so callers can inspect final statuses.
    """

    def __init__(self, config: HubConfig | None = None, rng: np.random.Generator | None = None):
        self.config = config or HubConfig()
        self.rng = rng if rng is not None else make_rng(None)
        self.now = 0.0
        self.calendar = EventCalendar()
        self.statistics = StatisticsCollector()
        self.ids = RequestIdSequence()
        self.requests: dict[int, Request] = {}
        self.sources: dict[int, RandomRequestSource] = {
            i: RandomRequestSource(i, rate, self.rng, self.ids, self.config.perishable_share)
            for i, rate in enumerate(self.config.sources, start=1)
        }

        buffers: dict[CargoClass, Buffer] = {}
        pools: dict[CargoClass, DeviceGroup] = {}
        next_device_id = 1
        for cargo_class in (CargoClass.PERISHABLE, CargoClass.REGULAR):
            cc = self.config.for_class(cargo_class)
            buffers[cargo_class] = Buffer(cc.buffer_capacity, cargo_class, cc.deadline_minutes)
            devices = []
            for _ in range(cc.devices):
                devices.append(
                    Device(
                        next_device_id,
                        cargo_class.priority,
                        cc.device_capacity,
                        cc.min_service,
                        cc.max_service,
                        self.calendar,
                        self.rng,
                    )
                )
                next_device_id += 1
            pools[cargo_class] = DeviceGroup(cargo_class.priority, devices)
        self.dispatcher = Dispatcher(buffers, pools, self.calendar, self.statistics)
        self._started = False

    def start(self) -> None:
        """Schedule the first arrival of every source (once)."""
        if self._started:
            return
        self._started = True
        for source in self.sources.values():
            self._schedule_arrival(source)
        logger.info(
            "simulation started: %d sources, %d devices, horizon %.1f min",
            len(self.sources),
            len(self.dispatcher.devices()),
            self.config.horizon,
        )

    def step(self) -> Event | None:
        """Process the next event and return it, or None when the run is over."""
        self.start()
        next_time = self.calendar.peek_time()
        if next_time is None or next_time > self.config.horizon:
            return None
        event = self.calendar.next()
        self.now = event.time
        self._dispatch(event)
        return event

    def run_until(self, t_end: float | None = None) -> int:
        """Step silently through every event at or before t_end (default: horizon)."""
        bound = self.config.horizon if t_end is None else min(t_end, self.config.horizon)
        self.start()
        processed = 0
        while True:
            next_time = self.calendar.peek_time()
            if next_time is None or next_time > bound:
                break
            if self.step() is None:
                break
            processed += 1
        logger.info(
            "ran %d events up to t=%.2f (arrivals=%d, completed=%d, rejected=%d, evicted=%d)",
            processed,
            self.now,
            self.statistics.total_arrivals,
            self.statistics.total_completed,
            self.statistics.total_rejected,
            self.statistics.total_evicted,
        )
        return processed

    def _dispatch(self, event: Event) -> None:
        match event.subject:
            case SourceRef(source_id=source_id) if event.kind is EventKind.ARRIVAL:
                self._on_arrival(self.sources[source_id])
            case DeviceRef(device_id=device_id) if event.kind is EventKind.SERVICE_COMPLETE:
                self.dispatcher.on_service_complete(self.dispatcher.device(device_id), self.now)
            case _:
                raise HubError(f"no handler for scheduled event {event}")

    def _on_arrival(self, source: RandomRequestSource) -> None:
        request = source.generate(self.now)
        self.requests[request.id] = request
        self.statistics.record_arrival(request)
        if self.dispatcher.on_arrival(request, self.now) is Admission.REJECTED:
            source.rejected_count += 1
        self._schedule_arrival(source)

    def _schedule_arrival(self, source: RandomRequestSource) -> None:
        t = self.now + source.next_inter_arrival()
        source.next_generation_time = t
        self.calendar.schedule(
            Event(t, EventKind.ARRIVAL, SourceRef(source.id), f"arrival from source {source.id}")
        )

    def in_flight(self) -> int:
        """Requests currently held by a buffer or a device."""
        queued = sum(len(b) for b in self.dispatcher.buffers.values())
        serving = sum(d.load for d in self.dispatcher.devices())
        return queued + serving

    def summary(self) -> dict[str, Any]:
        devices = self.dispatcher.devices()
        next_time = self.calendar.peek_time()
        # A finished run counts occupancy up to the horizon, not the last event
        if self._started and (next_time is None or next_time > self.config.horizon):
            until = self.config.horizon
        else:
            until = self.now
        for device in devices:
            device.settle(until)
        metrics = self.statistics.summary(self.config.horizon, devices)
        metrics["in_flight"] = self.in_flight()
        metrics["events"] = self.calendar.step_count
        return metrics

    def snapshot(self) -> HubSnapshot:
        stats = self.statistics
        return HubSnapshot(
            now=self.now,
            step_count=self.calendar.step_count,
            sources=tuple(
                SourceView(
                    id=s.id,
                    rate=s.rate,
                    next_generation_time=s.next_generation_time,
                    generated_count=s.generated_count,
                    rejected_count=s.rejected_count,
                )
                for s in self.sources.values()
            ),
            buffers=tuple(
                BufferView(
                    cargo_class=b.cargo_class.value,
                    capacity=b.capacity,
                    load_factor=b.load_factor(),
                    residents=tuple(
                        ResidentView(
                            id=r.id,
                            arrival_time=r.arrival_time,
                            source_id=r.source_id,
                            slot=r.buffer_slot,
                            deadline=r.deadline,
                            status=r.status.value,
                        )
                        for r in b.residents
                    ),
                )
                for b in self.dispatcher.buffers.values()
            ),
            devices=tuple(
                DeviceView(
                    id=d.id,
                    priority_class=d.priority_class,
                    capacity=d.capacity,
                    is_free=d.is_free(),
                    job_end_time=d.job_end_time,
                    current_request_id=d.current_request_id,
                    in_progress=d.load,
                    processed_count=d.processed_count,
                )
                for d in self.dispatcher.devices()
            ),
            stats=StatsView(
                arrivals=stats.total_arrivals,
                completed=stats.total_completed,
                rejected=stats.total_rejected,
                evicted=stats.total_evicted,
                in_flight=self.in_flight(),
                waiting_times=tuple(stats.waiting_times),
                service_times=tuple(stats.service_times),
                system_times=tuple(stats.system_times),
            ),
            pending=tuple(
                EventView(time=e.time, kind=e.kind.value, note=e.note)
                for e in self.calendar.pending()
            ),
        )


def run_episode(params: dict[str, Any] | None, seed: int) -> dict[str, Any]:
    """
    Run one replication to the configured horizon.
    Returns a flat metrics dict (counts, rates, time statistics, utilisation).
    """
    config = HubConfig.from_params(params)
    sim = Simulation(config, make_rng(seed))
    sim.run_until()
    return sim.summary()
