"""Service devices and same-priority device pools."""

from __future__ import annotations

import logging

import numpy as np

from hub.entities import Request, RequestStatus
from hub.events import DeviceRef, Event, EventCalendar, EventKind
from hub.processes import sample_service_time

logger = logging.getLogger(__name__)


class Device:
    """Serves up to ``capacity`` requests at once.

    Every start draws a fresh uniform duration and schedules the matching
    SERVICE_COMPLETE on the calendar handed in at construction.
    """

    def __init__(
        self,
        id: int,
        priority_class: int,
        capacity: int,
        min_service_time: float,
        max_service_time: float,
        calendar: EventCalendar,
        rng: np.random.Generator,
    ) -> None:
        self.id = id
        self.priority_class = priority_class
        self.capacity = capacity
        self.min_service_time = min_service_time
        self.max_service_time = max_service_time
        self.calendar = calendar
        self.rng = rng
        self.in_progress: list[Request] = []
        self.processed_count = 0
        self.busy_time = 0.0
        self._end_times: dict[int, float] = {}
        self._last_change = 0.0

    def is_free(self) -> bool:
        return len(self.in_progress) < self.capacity

    @property
    def load(self) -> int:
        return len(self.in_progress)

    @property
    def job_end_time(self) -> float:
        """Next completion instant, +inf while idle."""
        return min(self._end_times.values(), default=float("inf"))

    @property
    def current_request_id(self) -> int | None:
        return self.in_progress[0].id if self.in_progress else None

    def start_service(self, request: Request, current_time: float) -> bool:
        if not self.is_free():
            return False
        duration = sample_service_time(self.rng, self.min_service_time, self.max_service_time)
        end_time = current_time + duration
        self._mark_busy(current_time)
        self.in_progress.append(request)
        self._end_times[request.id] = end_time
        request.transition(RequestStatus.IN_SERVICE)
        request.service_start_time = current_time
        self.calendar.schedule(
            Event(
                end_time,
                EventKind.SERVICE_COMPLETE,
                DeviceRef(self.id),
                f"request {request.id} finishes on device {self.id}",
            )
        )
        logger.debug(
            "device %d: request %d started at %.2f, ends %.2f",
            self.id,
            request.id,
            current_time,
            end_time,
        )
        return True

    def finish_service(self, current_time: float) -> Request | None:
        if not self.in_progress:
            return None
        self._mark_busy(current_time)
        # The completion event belongs to the job with the earliest end time
        request = min(self.in_progress, key=lambda r: self._end_times[r.id])
        self.in_progress.remove(request)
        self._end_times.pop(request.id, None)
        request.transition(RequestStatus.COMPLETED)
        request.service_end_time = current_time
        self.processed_count += 1
        logger.debug("device %d: request %d completed at %.2f", self.id, request.id, current_time)
        return request

    def settle(self, current_time: float) -> None:
        """Bring busy_time up to current_time without changing occupancy."""
        self._mark_busy(current_time)

    def utilization(self, horizon: float) -> float:
        denom = horizon * self.capacity
        return self.busy_time / denom if denom > 0 else 0.0

    def _mark_busy(self, now: float) -> None:
        # Integrate occupied-slot minutes since the last occupancy change
        dt = now - self._last_change
        if dt > 0:
            self.busy_time += len(self.in_progress) * dt
        self._last_change = now


class DeviceGroup:
    """Fixed pool of devices serving one priority class."""

    def __init__(self, priority_class: int, devices: list[Device]) -> None:
        self.priority_class = priority_class
        self.devices = devices

    def least_loaded_free(self) -> Device | None:
        free = [d for d in self.devices if d.is_free()]
        if not free:
            return None
        return min(free, key=lambda d: d.load)

    def assign(self, request: Request, current_time: float) -> Device | None:
        device = self.least_loaded_free()
        if device is None:
            return None
        if not device.start_service(request, current_time):
            return None
        return device

    def any_free(self) -> bool:
        return any(d.is_free() for d in self.devices)

    def __iter__(self):
        return iter(self.devices)

    def __len__(self) -> int:
        return len(self.devices)
