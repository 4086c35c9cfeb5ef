"""Hub entities: cargo classes, request statuses, Request."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from hub.errors import InvalidTransitionError

# Cargo classes
CARGO_PERISHABLE = "perishable"
CARGO_REGULAR = "regular"
CARGO_CLASSES = (CARGO_PERISHABLE, CARGO_REGULAR)

# Deadline offsets (minutes after arrival) used when the config gives none
DEFAULT_DEADLINE_MINUTES = {CARGO_PERISHABLE: 15.0, CARGO_REGULAR: 20.0}

# Request status
STATUS_ARRIVED = "arrived"
STATUS_QUEUED = "queued"
STATUS_IN_SERVICE = "in_service"
STATUS_COMPLETED = "completed"
STATUS_REJECTED = "rejected"
STATUS_EVICTED = "evicted"


class CargoClass(str, Enum):
    PERISHABLE = CARGO_PERISHABLE
    REGULAR = CARGO_REGULAR

    @property
    def priority(self) -> int:
        """Priority class of the device pool serving this cargo (1 is highest)."""
        return 1 if self is CargoClass.PERISHABLE else 2


class RequestStatus(str, Enum):
    ARRIVED = STATUS_ARRIVED
    QUEUED = STATUS_QUEUED
    IN_SERVICE = STATUS_IN_SERVICE
    COMPLETED = STATUS_COMPLETED
    REJECTED = STATUS_REJECTED
    EVICTED = STATUS_EVICTED


# Lifecycle edges; anything else is a defect in the caller.
ALLOWED_TRANSITIONS: dict[RequestStatus, tuple[RequestStatus, ...]] = {
    RequestStatus.ARRIVED: (
        RequestStatus.IN_SERVICE,
        RequestStatus.QUEUED,
        RequestStatus.REJECTED,
    ),
    RequestStatus.QUEUED: (RequestStatus.IN_SERVICE, RequestStatus.EVICTED),
    RequestStatus.IN_SERVICE: (RequestStatus.COMPLETED,),
    RequestStatus.COMPLETED: (),
    RequestStatus.REJECTED: (),
    RequestStatus.EVICTED: (),
}

TERMINAL_STATUSES = frozenset(
    s for s, targets in ALLOWED_TRANSITIONS.items() if not targets
)


@dataclass(eq=False)
class Request:
    """A unit of cargo travelling through the hub."""

    id: int
    source_id: int
    arrival_time: float
    cargo_class: CargoClass
    status: RequestStatus = RequestStatus.ARRIVED
    buffer_slot: int | None = None  # set only while queued
    deadline: float | None = None  # set only while queued
    service_start_time: float | None = None
    service_end_time: float | None = None
    history: list[RequestStatus] = field(default_factory=list, repr=False)

    def __hash__(self) -> int:
        return hash(self.id)

    def transition(self, new_status: RequestStatus) -> None:
        if new_status not in ALLOWED_TRANSITIONS[self.status]:
            raise InvalidTransitionError(
                f"request {self.id}: {self.status.value} -> {new_status.value}"
            )
        self.history.append(self.status)
        self.status = new_status

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def has_deadline(self) -> bool:
        return self.deadline is not None

    def is_deadline_exceeded(self, current_time: float) -> bool:
        return self.deadline is not None and current_time > self.deadline

    def waiting_time(self, current_time: float) -> float:
        return current_time - self.arrival_time

    def remaining_time(self, current_time: float) -> float:
        if self.deadline is None:
            return 0.0
        return max(0.0, self.deadline - current_time)
