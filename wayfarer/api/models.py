"""
Data models for the navigation API.

These dataclasses represent the actor, the areas it walks through and the
objects it can interact with, in a structured, type-safe way that the
navigation components and the services behind them share.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterator, Optional

import numpy as np


class ObjectKind(Enum):
    """Kinds of interactable map objects."""

    SHRINE = "shrine"
    CHEST = "chest"
    TELEPORT_PAD = "teleport_pad"
    ENTRANCE = "entrance"
    DOOR = "door"
    PORTAL = "portal"
    OTHER = "other"


class ShrineType(Enum):
    """Shrine sub-types."""

    HEALTH = "health"
    MANA = "mana"
    REFILL = "refill"
    EXPERIENCE = "experience"
    MANA_REGEN = "mana_regen"
    STAMINA = "stamina"
    SKILL = "skill"
    ARMOR = "armor"
    COMBAT = "combat"
    RESIST_LIGHTNING = "resist_lightning"
    RESIST_FIRE = "resist_fire"
    RESIST_COLD = "resist_cold"
    RESIST_POISON = "resist_poison"


# Taken whenever the matching resource is not already near full
ALWAYS_TAKE_SHRINES = (ShrineType.REFILL, ShrineType.HEALTH, ShrineType.MANA)

# (shrine, buff state it grants), highest priority first
PRIORITIZED_SHRINES = (
    (ShrineType.EXPERIENCE, "shrine_experience"),
    (ShrineType.MANA_REGEN, "shrine_mana_regen"),
    (ShrineType.STAMINA, "shrine_stamina"),
    (ShrineType.SKILL, "shrine_skill"),
)

# Any of these replaces the current shrine state, which removes curses
CURSE_BREAKING_SHRINES = (
    ShrineType.EXPERIENCE,
    ShrineType.MANA_REGEN,
    ShrineType.STAMINA,
    ShrineType.SKILL,
    ShrineType.ARMOR,
    ShrineType.COMBAT,
    ShrineType.RESIST_LIGHTNING,
    ShrineType.RESIST_FIRE,
    ShrineType.RESIST_COLD,
    ShrineType.RESIST_POISON,
)

CURSE_STATES = ("amplify_damage", "lower_resist", "decrepify")


@dataclass(frozen=True, order=True)
class Position:
    """A position in area-local coordinates."""

    x: int
    y: int

    def distance_to(self, other: "Position") -> int:
        """Euclidean distance truncated to an integer."""
        return int(math.sqrt((other.x - self.x) ** 2 + (other.y - self.y) ** 2))

    def chebyshev_distance(self, other: "Position") -> int:
        """Number of moves with 8-directional movement."""
        return max(abs(self.x - other.x), abs(self.y - other.y))

    def adjacent(self) -> list["Position"]:
        """Get all 8 adjacent positions."""
        return [
            Position(self.x + dx, self.y + dy)
            for dx in [-1, 0, 1]
            for dy in [-1, 0, 1]
            if not (dx == 0 and dy == 0)
        ]

    def __add__(self, other: tuple[int, int]) -> "Position":
        """Add a delta tuple to position."""
        return Position(self.x + other[0], self.y + other[1])


@dataclass
class Path:
    """
    Ordered local waypoints for a single target.

    Waypoints are stored in grid-local coordinates; ``offset_x``/``offset_y``
    convert them back to the coordinates the actor moves in.
    """

    waypoints: list[Position]
    offset_x: int = 0
    offset_y: int = 0

    def __post_init__(self) -> None:
        if not self.waypoints:
            raise ValueError("Path must contain at least one waypoint")

    def world(self, index: int) -> Position:
        """Waypoint ``index`` converted to world coordinates."""
        local = self.waypoints[index]
        return Position(local.x + self.offset_x, local.y + self.offset_y)

    @property
    def origin(self) -> Position:
        return self.world(0)

    @property
    def destination(self) -> Position:
        return self.world(len(self.waypoints) - 1)

    def advance(self, steps: int) -> "Path":
        """Return the path with the first ``steps`` waypoints consumed."""
        if steps <= 0:
            return self
        steps = min(steps, len(self.waypoints) - 1)
        return Path(self.waypoints[steps:], self.offset_x, self.offset_y)

    def __len__(self) -> int:
        return len(self.waypoints)

    def __iter__(self) -> Iterator[Position]:
        return (self.world(i) for i in range(len(self.waypoints)))


@dataclass(frozen=True)
class InteractableObject:
    """A map object the actor can interact with."""

    id: int
    name: str
    position: Position
    kind: ObjectKind = ObjectKind.OTHER
    selectable: bool = True
    shrine_type: Optional[ShrineType] = None
    is_super_chest: bool = False

    @property
    def is_shrine(self) -> bool:
        return self.kind == ObjectKind.SHRINE

    @property
    def is_chest(self) -> bool:
        return self.kind == ObjectKind.CHEST

    @property
    def is_teleport_pad(self) -> bool:
        return self.kind == ObjectKind.TELEPORT_PAD


@dataclass(frozen=True)
class Monster:
    """A creature visible to the actor."""

    id: int
    name: str
    position: Position
    hostile: bool = True


MonsterFilter = Callable[[list[Monster]], list[Monster]]


@dataclass(frozen=True)
class AdjacentLevel:
    """A neighbouring area and the point on the border (or entrance) leading to it."""

    area_id: str
    position: Position
    is_entrance: bool = False


@dataclass
class AreaData:
    """Static and loaded data for one area."""

    id: str
    is_town: bool = False
    grid: Optional[np.ndarray] = None  # bool walkability, indexed [y, x]
    offset_x: int = 0
    offset_y: int = 0
    objects: list[InteractableObject] = field(default_factory=list)
    adjacent: list[AdjacentLevel] = field(default_factory=list)

    def has_valid_grid(self) -> bool:
        """Whether a non-empty, two-dimensional walkability grid is loaded."""
        if self.grid is None:
            return False
        grid = np.asarray(self.grid)
        return grid.ndim == 2 and grid.size > 0

    def to_local(self, pos: Position) -> Position:
        return Position(pos.x - self.offset_x, pos.y - self.offset_y)

    def is_inside(self, pos: Position) -> bool:
        """Whether a world position falls inside this area's grid bounds."""
        if not self.has_valid_grid():
            return False
        local = self.to_local(pos)
        height, width = self.grid.shape
        return 0 <= local.x < width and 0 <= local.y < height

    def is_walkable(self, pos: Position) -> bool:
        if not self.is_inside(pos):
            return False
        local = self.to_local(pos)
        return bool(self.grid[local.y, local.x])

    def adjacent_level(self, area_id: str) -> Optional[AdjacentLevel]:
        for level in self.adjacent:
            if level.area_id == area_id:
                return level
        return None


@dataclass
class ActorState:
    """Live state of the controlled actor."""

    position: Position
    area_id: str
    hp: int = 100
    max_hp: int = 100
    mana: int = 100
    max_mana: int = 100
    states: frozenset[str] = frozenset()

    @property
    def hp_percent(self) -> int:
        return int(self.hp * 100 / max(self.max_hp, 1))

    @property
    def mana_percent(self) -> int:
        return int(self.mana * 100 / max(self.max_mana, 1))

    @property
    def is_dead(self) -> bool:
        return self.hp <= 0

    def has_state(self, state: str) -> bool:
        return state in self.states


@dataclass
class Snapshot:
    """One perception refresh of the actor and the world around it."""

    actor: ActorState
    area: AreaData
    areas: dict[str, AreaData] = field(default_factory=dict)
    objects: list[InteractableObject] = field(default_factory=list)
    monsters: list[Monster] = field(default_factory=list)
    in_game: bool = True

    @property
    def position(self) -> Position:
        return self.actor.position

    def find_object(self, object_id: int) -> Optional[InteractableObject]:
        for obj in self.objects:
            if obj.id == object_id:
                return obj
        return None

    def find_objects(self, name: str) -> list[InteractableObject]:
        return [obj for obj in self.objects if obj.name == name]

    def enemies(self, *filters: MonsterFilter) -> list[Monster]:
        """Hostile monsters, narrowed by each filter in turn."""
        result = [m for m in self.monsters if m.hostile]
        for monster_filter in filters:
            result = monster_filter(result)
        return result
