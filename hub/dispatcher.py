"""Admission and dispatch policy: devices first, then buffer, then eviction or rejection."""

from __future__ import annotations

import logging
from enum import Enum

from hub.buffers import Buffer
from hub.devices import Device, DeviceGroup
from hub.entities import CargoClass, Request, RequestStatus
from hub.errors import OwnershipError
from hub.events import Event, EventCalendar, EventKind, RequestRef
from hub.statistics import StatisticsCollector

logger = logging.getLogger(__name__)


class Admission(str, Enum):
    STARTED = "started"  # went straight to a device
    BUFFERED = "buffered"  # took a free buffer slot
    REPLACED = "replaced"  # took the slot of an evicted, expired resident
    REJECTED = "rejected"


class Dispatcher:
    """Owns the buffers and device pools and routes requests between them."""

    def __init__(
        self,
        buffers: dict[CargoClass, Buffer],
        pools: dict[CargoClass, DeviceGroup],
        calendar: EventCalendar,
        statistics: StatisticsCollector,
    ) -> None:
        self.buffers = buffers
        self.pools = pools
        self.calendar = calendar
        self.statistics = statistics
        self._devices: dict[int, Device] = {d.id: d for pool in pools.values() for d in pool}
        self._device_class: dict[int, CargoClass] = {
            d.id: cargo_class for cargo_class, pool in pools.items() for d in pool
        }

    def buffer_for(self, cargo_class: CargoClass) -> Buffer:
        return self.buffers[cargo_class]

    def pool_for(self, cargo_class: CargoClass) -> DeviceGroup:
        return self.pools[cargo_class]

    def device(self, device_id: int) -> Device:
        return self._devices[device_id]

    def devices(self) -> list[Device]:
        return list(self._devices.values())

    def on_arrival(self, request: Request, current_time: float) -> Admission:
        cargo_class = request.cargo_class
        device = self.pool_for(cargo_class).assign(request, current_time)
        if device is not None:
            self._note(
                current_time,
                EventKind.SERVICE_START,
                request,
                f"request {request.id} starts on device {device.id}",
            )
            return Admission.STARTED

        buffer = self.buffer_for(cargo_class)
        if buffer.try_add(request):
            self._note(
                current_time,
                EventKind.BUFFER_ADD,
                request,
                f"request {request.id} queued in {cargo_class.value} buffer slot {request.buffer_slot}",
            )
            return Admission.BUFFERED

        return self._evict_or_reject(request, buffer, current_time)

    def _evict_or_reject(self, request: Request, buffer: Buffer, current_time: float) -> Admission:
        expired = buffer.find_expired(current_time)
        if expired is None:
            request.transition(RequestStatus.REJECTED)
            self.statistics.record_rejection(request)
            self._note(
                current_time,
                EventKind.REJECTION,
                request,
                f"request {request.id} rejected: buffer full, nothing expired",
            )
            logger.debug("request %d rejected at %.2f", request.id, current_time)
            return Admission.REJECTED

        self._note(
            current_time,
            EventKind.BUFFER_EVICT,
            expired,
            f"request {expired.id} evicted (deadline {expired.deadline:.2f})",
        )
        self._remove_resident(buffer, expired)
        expired.transition(RequestStatus.EVICTED)
        self.statistics.record_eviction(expired, current_time)
        self._note(
            current_time,
            EventKind.BUFFER_REMOVE,
            expired,
            f"request {expired.id} left the {buffer.cargo_class.value} buffer",
        )
        buffer.try_add(request)
        self._note(
            current_time,
            EventKind.BUFFER_ADD,
            request,
            f"request {request.id} queued in place of evicted request {expired.id}",
        )
        logger.debug(
            "request %d evicted for request %d at %.2f", expired.id, request.id, current_time
        )
        return Admission.REPLACED

    def on_service_complete(self, device: Device, current_time: float) -> Request | None:
        completed = device.finish_service(current_time)
        if completed is not None:
            self.statistics.record_service_completion(completed, current_time)
        self.drain_into(device, current_time)
        return completed

    def drain_into(self, device: Device, current_time: float) -> int:
        """Start buffered work of the device's own class while it has room."""
        buffer = self.buffer_for(self._device_class[device.id])
        started = 0
        while device.is_free() and not buffer.is_empty():
            request = buffer.take_for_device()
            self._remove_resident(buffer, request)
            self._note(
                current_time,
                EventKind.BUFFER_REMOVE,
                request,
                f"request {request.id} leaves the buffer for device {device.id}",
            )
            device.start_service(request, current_time)
            self._note(
                current_time,
                EventKind.SERVICE_START,
                request,
                f"request {request.id} starts on device {device.id} from buffer",
            )
            started += 1
        return started

    def _remove_resident(self, buffer: Buffer, request: Request) -> None:
        if not buffer.remove(request):
            raise OwnershipError(
                f"request {request.id} is not resident in the {buffer.cargo_class.value} buffer"
            )

    def _note(self, time: float, kind: EventKind, request: Request, note: str) -> None:
        self.calendar.record(Event(time, kind, RequestRef(request.id), note))
