"""Event types, subjects and the event calendar."""

from __future__ import annotations

import heapq
import itertools
from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from hub.errors import EmptyCalendarError

# Use a total ordering: (time, event_kind_rank, tiebreaker) so same-time events
# have deterministic order (arrivals are admitted before a device is released).
EVENT_RANK_ARRIVAL = 0
EVENT_RANK_BUFFER_ADD = 1
EVENT_RANK_SERVICE_START = 2
EVENT_RANK_BUFFER_EVICT = 3
EVENT_RANK_SERVICE_COMPLETE = 4
EVENT_RANK_BUFFER_REMOVE = 5
EVENT_RANK_REJECTION = 6


class EventKind(str, Enum):
    ARRIVAL = "arrival"
    BUFFER_ADD = "buffer_add"
    SERVICE_START = "service_start"
    BUFFER_EVICT = "buffer_evict"
    SERVICE_COMPLETE = "service_complete"
    BUFFER_REMOVE = "buffer_remove"
    REJECTION = "rejection"


EVENT_RANKS: dict[EventKind, int] = {
    EventKind.ARRIVAL: EVENT_RANK_ARRIVAL,
    EventKind.BUFFER_ADD: EVENT_RANK_BUFFER_ADD,
    EventKind.SERVICE_START: EVENT_RANK_SERVICE_START,
    EventKind.BUFFER_EVICT: EVENT_RANK_BUFFER_EVICT,
    EventKind.SERVICE_COMPLETE: EVENT_RANK_SERVICE_COMPLETE,
    EventKind.BUFFER_REMOVE: EVENT_RANK_BUFFER_REMOVE,
    EventKind.REJECTION: EVENT_RANK_REJECTION,
}


@dataclass(frozen=True)
class SourceRef:
    source_id: int


@dataclass(frozen=True)
class DeviceRef:
    device_id: int


@dataclass(frozen=True)
class RequestRef:
    request_id: int


EventSubject = Union[SourceRef, DeviceRef, RequestRef]


@dataclass(order=True)
class Event:
    """Single event for the DES. Ordered by (time, rank, tiebreaker)."""

    time: float
    kind: EventKind = field(compare=False)
    subject: EventSubject | None = field(compare=False, default=None)
    note: str = field(compare=False, default="")
    rank: int = field(compare=True, default=-1)
    tiebreaker: int = field(compare=True, default=0)

    def __post_init__(self) -> None:
        self.rank = EVENT_RANKS[self.kind]

    def __str__(self) -> str:
        return f"{self.time:.2f} | {self.kind.value} | {self.note}"


class EventCalendar:
    """Future event list plus the log of everything that already happened.

    Pending events live in a min-heap keyed by (time, kind rank, sequence).
    Extracted events and recorded notifications are appended to ``occurred``
    so presentation code can replay what the engine did.
    """

    def __init__(self) -> None:
        self._pending: list[Event] = []
        self._sequence = itertools.count(1)
        self.occurred: list[Event] = []
        self.step_count = 0

    def schedule(self, event: Event) -> Event:
        event.tiebreaker = next(self._sequence)
        heapq.heappush(self._pending, event)
        return event

    def next(self) -> Event:
        if not self._pending:
            raise EmptyCalendarError("no pending events")
        event = heapq.heappop(self._pending)
        self.step_count += 1
        self.occurred.append(event)
        return event

    def record(self, event: Event) -> Event:
        """Log a notification that happened now without scheduling it."""
        event.tiebreaker = next(self._sequence)
        self.occurred.append(event)
        return event

    def is_empty(self) -> bool:
        return not self._pending

    def peek_time(self) -> float | None:
        return self._pending[0].time if self._pending else None

    def pending(self) -> list[Event]:
        return sorted(self._pending)

    def __len__(self) -> int:
        return len(self._pending)
