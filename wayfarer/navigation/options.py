"""Per-call movement options."""

from dataclasses import dataclass, field, replace
from typing import Optional

from wayfarer.api.models import MonsterFilter

DEFAULT_FINISH_DISTANCE = 4


@dataclass(frozen=True)
class MoveOptions:
    """
    Immutable configuration for one MoveTo call.

    Example usage:
        opts = MoveOptions(finish_distance=7, ignore_monsters=True)
        await controller.move_to_coords(entrance, opts)
    """

    finish_distance: Optional[int] = None
    ignore_monsters: bool = False
    ignore_items: bool = False
    ignore_shrines: bool = False
    monster_filters: tuple[MonsterFilter, ...] = field(default_factory=tuple)
    clear_path_override: Optional[int] = None
    # Stop once the distance to the target lies within [min, max]
    stationary_range: Optional[tuple[int, int]] = None

    def with_finish_distance(self, distance: int) -> "MoveOptions":
        return replace(self, finish_distance=distance)

    def resolved_finish_distance(self, default: int = DEFAULT_FINISH_DISTANCE) -> int:
        return self.finish_distance if self.finish_distance is not None else default
