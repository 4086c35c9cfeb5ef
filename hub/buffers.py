"""Bounded per-class holding area with deadlines and eviction search."""

from __future__ import annotations

import logging

from hub.entities import DEFAULT_DEADLINE_MINUTES, CargoClass, Request, RequestStatus

logger = logging.getLogger(__name__)


class Buffer:
    """Holds queued requests of one cargo class.

    Residents keep insertion order. Each resident occupies a numbered slot in
    ``1..capacity`` and carries a deadline of ``arrival_time + deadline_minutes``
    for as long as it stays here.
    """

    def __init__(
        self,
        capacity: int,
        cargo_class: CargoClass,
        deadline_minutes: float | None = None,
    ) -> None:
        self.capacity = capacity
        self.cargo_class = cargo_class
        if deadline_minutes is None:
            deadline_minutes = DEFAULT_DEADLINE_MINUTES[cargo_class.value]
        self.deadline_minutes = deadline_minutes
        self._residents: list[Request] = []
        self._free_slots: set[int] = set(range(1, capacity + 1))

    def try_add(self, request: Request) -> bool:
        if not self.has_space():
            return False
        slot = min(self._free_slots)
        self._free_slots.discard(slot)
        request.buffer_slot = slot
        request.deadline = request.arrival_time + self.deadline_minutes
        request.transition(RequestStatus.QUEUED)
        self._residents.append(request)
        return True

    def take_for_device(self) -> Request | None:
        """Most recently inserted resident (LIFO). The caller must remove() it."""
        if not self._residents:
            return None
        request = self._residents[-1]
        logger.debug("buffer %s: request %d taken (LIFO)", self.cargo_class.value, request.id)
        return request

    def find_expired(self, current_time: float) -> Request | None:
        """First resident, in insertion order, whose deadline has passed."""
        for request in self._residents:
            if request.is_deadline_exceeded(current_time):
                logger.debug(
                    "buffer %s: request %d expired (deadline %.2f, now %.2f)",
                    self.cargo_class.value,
                    request.id,
                    request.deadline,
                    current_time,
                )
                return request
        return None

    def remove(self, request: Request) -> bool:
        try:
            self._residents.remove(request)
        except ValueError:
            return False
        request.deadline = None
        if request.buffer_slot is not None:
            self._free_slots.add(request.buffer_slot)
        request.buffer_slot = None
        return True

    def oldest(self) -> Request | None:
        return self._residents[0] if self._residents else None

    @property
    def residents(self) -> list[Request]:
        return list(self._residents)

    def has_space(self) -> bool:
        return len(self._residents) < self.capacity

    def is_empty(self) -> bool:
        return not self._residents

    def load_factor(self) -> float:
        if self.capacity == 0:
            return 0.0
        return len(self._residents) / self.capacity

    def __len__(self) -> int:
        return len(self._residents)

    def __contains__(self, request: object) -> bool:
        return request in self._residents
