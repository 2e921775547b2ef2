"""Loop-local state for one navigation call."""

from dataclasses import dataclass, field
from typing import Optional

from wayfarer.api.models import InteractableObject, Path, Position


@dataclass
class NavigationState:
    """
    Everything the navigation loop carries from one tick to the next.

    Created fresh at the start of a MoveTo call and discarded when it
    returns; never shared between calls or actors.
    """

    target: Optional[Position] = None
    previous_target: Optional[Position] = None
    previous_position: Optional[Position] = None
    path: Optional[Path] = None
    path_found: bool = False
    stuck: bool = False
    path_errors: int = 0
    monster_blocks: int = 0
    widen_arrival: bool = False
    # At most one detour (shrine or chest) overrides the real target
    active_hazard: Optional[InteractableObject] = None
    active_pad: Optional[InteractableObject] = None
    blacklist: set[int] = field(default_factory=set)
    last_threat_clear: Optional[float] = None
    nudges: int = 0
    ticks: int = 0

    def invalidate_path(self) -> None:
        """Force the next tick to recompute the path."""
        self.previous_target = None

    def is_blacklisted(self, obj: InteractableObject) -> bool:
        return obj.id in self.blacklist

    def blacklist_object(self, obj: InteractableObject) -> None:
        self.blacklist.add(obj.id)

    @property
    def effective_target(self) -> Optional[Position]:
        """The detour position if one is active, otherwise the real target."""
        if self.active_hazard is not None:
            return self.active_hazard.position
        if self.active_pad is not None:
            return self.active_pad.position
        return self.target
