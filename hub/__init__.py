"""Discrete-event simulator for a two-class warehouse intake hub."""

from hub.entities import CargoClass, Request, RequestStatus
from hub.events import Event, EventCalendar, EventKind
from hub.models import ClassConfig, HubConfig
from hub.runner import Simulation, run_episode

__all__ = [
    "CargoClass",
    "Request",
    "RequestStatus",
    "Event",
    "EventCalendar",
    "EventKind",
    "ClassConfig",
    "HubConfig",
    "Simulation",
    "run_episode",
]
