"""Intake hub scripts package initialization."""

from .run_replications import main as run_replications
from .run_sweep_suite import main as run_sweep_suite
