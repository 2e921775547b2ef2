"""
Service boundaries the navigation layer consumes.

Path search, perception, input simulation, combat and looting live behind
these interfaces. The navigation components only ever talk to them through
an ActorContext, so a live game client and the in-memory simulator are
interchangeable.
"""

from typing import TYPE_CHECKING, Callable, Optional, Protocol

from .models import InteractableObject, MonsterFilter, Path, Position, Snapshot
from .results import NavResult, PathResult

if TYPE_CHECKING:
    from wayfarer.navigation.options import MoveOptions


class PathService(Protocol):
    """Path search and spatial queries against the actor's current area."""

    def get_path(self, target: Position) -> PathResult:
        """Shortest path from the actor to ``target``."""
        ...

    def distance_from_me(self, pos: Position) -> int:
        ...

    def has_door_between(
        self, origin: Position, destination: Position
    ) -> tuple[bool, Optional[InteractableObject]]:
        ...

    def closest_walkable_path(self, pos: Position) -> PathResult:
        """Path to the walkable tile nearest to ``pos``."""
        ...

    def closest_chest(
        self, pos: Position, selectable_only: bool = True
    ) -> Optional[InteractableObject]:
        ...

    def closest_super_chest(
        self, pos: Position, selectable_only: bool = True
    ) -> Optional[InteractableObject]:
        ...

    def last_path_index_on_screen(self, path: Path) -> int:
        """Index of the furthest waypoint that is currently renderable."""
        ...

    async def random_movement(self) -> None:
        """Move a short random distance to break out of a stuck state."""
        ...


class Perception(Protocol):
    """Resyncs the actor/world snapshot."""

    async def refresh(self) -> Snapshot:
        ...


class InputService(Protocol):
    """Input-simulation primitives."""

    async def move(self, destination: Position, options: "MoveOptions") -> NavResult:
        """
        Single-step movement primitive.

        Returns a classified result: OK, MONSTERS_IN_PATH, STUCK, ROUND_TRIP,
        NO_PATH, or any other kind for unclassified failures.
        """
        ...

    async def click(self, pos: Position) -> None:
        ...

    async def interact_object(
        self, obj: InteractableObject, is_completed: Optional[Callable[[Snapshot], bool]] = None
    ) -> NavResult:
        """
        Interact with ``obj`` until ``is_completed`` holds for a fresh snapshot.

        Without a predicate, the object turning unselectable counts as done.
        """
        ...

    async def interact_entrance(self, area_id: str) -> NavResult:
        ...

    async def use_portal_in_town(self) -> NavResult:
        ...


class CombatService(Protocol):
    async def clear_area_around_position(
        self, pos: Position, radius: int, filters: list[MonsterFilter]
    ) -> NavResult:
        ...


class LootService(Protocol):
    async def item_pickup(self, radius: int) -> NavResult:
        ...
