"""Engine errors. These signal defects in the driving code, never simulated outcomes."""

from __future__ import annotations


class HubError(Exception):
    """Base class for invariant violations inside the hub engine."""


class EmptyCalendarError(HubError):
    """An event was extracted from a calendar with nothing pending."""


class OwnershipError(HubError):
    """A request was removed from a container that does not hold it."""


class InvalidTransitionError(HubError):
    """A request status change that would reverse or skip the lifecycle."""
