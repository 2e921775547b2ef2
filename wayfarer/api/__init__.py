"""Data models, result types and the service boundaries navigation consumes."""

from .models import (
    ActorState,
    AdjacentLevel,
    AreaData,
    InteractableObject,
    Monster,
    MonsterFilter,
    ObjectKind,
    Path,
    Position,
    ShrineType,
    Snapshot,
)
from .pathfinding import GridPathService, find_path
from .results import NavErrorKind, NavResult, PathResult, PathStopReason
from .services import CombatService, InputService, LootService, PathService, Perception

__all__ = [
    # Models
    "ActorState",
    "AdjacentLevel",
    "AreaData",
    "InteractableObject",
    "Monster",
    "MonsterFilter",
    "ObjectKind",
    "Path",
    "Position",
    "ShrineType",
    "Snapshot",
    # Results
    "NavErrorKind",
    "NavResult",
    "PathResult",
    "PathStopReason",
    # Services
    "CombatService",
    "InputService",
    "LootService",
    "PathService",
    "Perception",
    # Pathfinding
    "GridPathService",
    "find_path",
]
