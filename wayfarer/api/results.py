"""
Result types returned across the navigation boundary.

Navigation failures are values, not exceptions: every operation returns a
NavResult tagged with a NavErrorKind, and callers branch on the kind.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .models import Path


class NavErrorKind(Enum):
    """Outcome kinds for navigation operations and movement primitives."""

    OK = "ok"
    DIED = "died"
    CHICKEN = "chicken"
    INTERRUPTED = "interrupted"
    PATH_NOT_FOUND = "path_not_found"
    STUCK = "stuck"
    ROUND_TRIP = "round_trip"
    MONSTERS_IN_PATH = "monsters_in_path"
    NO_PATH = "no_path"
    DEAD_END = "dead_end"
    AREA_SYNC_TIMEOUT = "area_sync_timeout"
    AREA_NOT_FOUND = "area_not_found"
    ENTRANCE_FAILED = "entrance_failed"
    INTERACTION_FAILED = "interaction_failed"
    TOWN_PORTAL_FAILED = "town_portal_failed"
    PRIMITIVE_FAILED = "primitive_failed"


# Kinds that always unwind immediately, without any recovery attempt
FATAL_KINDS = frozenset({NavErrorKind.DIED, NavErrorKind.CHICKEN, NavErrorKind.INTERRUPTED})


@dataclass(frozen=True)
class NavResult:
    """Result of a navigation operation."""

    kind: NavErrorKind
    detail: str = ""

    @classmethod
    def ok(cls) -> "NavResult":
        return cls(NavErrorKind.OK)

    @classmethod
    def error(cls, kind: NavErrorKind, detail: str = "") -> "NavResult":
        if kind == NavErrorKind.OK:
            raise ValueError("error() needs a failure kind")
        return cls(kind, detail)

    @property
    def success(self) -> bool:
        return self.kind == NavErrorKind.OK

    @property
    def is_fatal(self) -> bool:
        """Death, chicken or interrupt: propagate without recovery."""
        return self.kind in FATAL_KINDS

    def __bool__(self) -> bool:
        """Allow `if result:` to check for success."""
        return self.success

    def __repr__(self) -> str:
        if self.success:
            return "NavResult(OK)"
        return f"NavResult({self.kind.value}, detail='{self.detail}')"


class PathStopReason(Enum):
    """Reasons why a path query succeeded or failed."""

    SUCCESS = "success"
    NO_GRID = "no_grid"
    TARGET_OUT_OF_BOUNDS = "target_out_of_bounds"
    TARGET_UNWALKABLE = "target_unwalkable"
    NO_PATH_EXISTS = "no_path_exists"


@dataclass
class PathResult:
    """Result of a path query: waypoints, approximate distance and reason."""

    path: Optional[Path]
    distance: int
    reason: PathStopReason
    message: str = ""

    @classmethod
    def not_found(cls, reason: PathStopReason, message: str = "") -> "PathResult":
        return cls(None, 0, reason, message)

    @property
    def found(self) -> bool:
        return self.reason == PathStopReason.SUCCESS and self.path is not None

    def __bool__(self) -> bool:
        """Allow `if result:` to check for success."""
        return self.found

    def __repr__(self) -> str:
        if self.found:
            return f"PathResult(path=[{len(self.path)} steps], distance={self.distance}, reason=SUCCESS)"
        return f"PathResult(path=None, reason={self.reason.value}, message='{self.message}')"
