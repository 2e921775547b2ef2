"""In-memory simulated world backing the CLI and integration tests."""

from .scenario import build_world, load_scenario
from .world import SimulatedWorld

__all__ = [
    "SimulatedWorld",
    "build_world",
    "load_scenario",
]
