"""
Teleport-pad graph walker.

Some maze-like areas are not contiguous: the only way across is a chain of
teleport pads. When normal pathing fails there, the walker heads for the
closest reachable pad it hasn't used yet. Pads are tracked by position
because every pad pair shares an object name.
"""

import logging
from typing import Optional, Union

from wayfarer.api.models import InteractableObject, Position
from wayfarer.api.results import NavErrorKind, NavResult

from .context import ActorContext

logger = logging.getLogger(__name__)

# The actor has been teleported once it is further than this from the pad
PAD_DEPARTURE_DISTANCE = 5


class TeleportPadWalker:
    """Per-call walker over the pads of the current area."""

    def __init__(self, ctx: ActorContext):
        self.ctx = ctx
        self.blacklist: list[Position] = []

    def _valid_pads(self) -> list[InteractableObject]:
        area = self.ctx.snapshot.area
        return [
            obj
            for obj in area.objects
            if obj.is_teleport_pad and obj.position not in self.blacklist
        ]

    def next_pad(self) -> Union[InteractableObject, NavResult]:
        """
        Pick the reachable pad with the shortest path distance.

        Returns the pad (already blacklisted), or a DEAD_END result when no
        unvisited pad can be reached.
        """
        best: Optional[InteractableObject] = None
        best_distance = None
        for pad in self._valid_pads():
            result = self.ctx.path.get_path(pad.position)
            if result.found and (best_distance is None or result.distance < best_distance):
                best = pad
                best_distance = result.distance

        if best is None:
            return NavResult.error(
                NavErrorKind.DEAD_END,
                f"no reachable unvisited teleport pad in {self.ctx.snapshot.area.id}",
            )

        logger.debug(f"teleport_pads: heading to pad at {best.position} ({best_distance} steps)")
        self.blacklist.append(best.position)
        return best

    def closest_pad(self) -> Optional[InteractableObject]:
        """Closest unvisited pad by straight-line distance, reachable or not."""
        closest = None
        closest_distance = None
        for pad in self._valid_pads():
            distance = self.ctx.path.distance_from_me(pad.position)
            if closest_distance is None or distance < closest_distance:
                closest = pad
                closest_distance = distance
        return closest

    async def use_pad(self, pad: InteractableObject) -> NavResult:
        """Step on a pad, then blacklist the pad we landed on."""
        result = await self.ctx.input.interact_object(
            pad, lambda snapshot: snapshot.position.distance_to(pad.position) > PAD_DEPARTURE_DISTANCE
        )
        if not result.success:
            return result

        await self.ctx.refresh()
        exit_pad = self.closest_pad()
        if exit_pad is not None:
            logger.debug(f"teleport_pads: landed next to pad at {exit_pad.position}")
            self.blacklist.append(exit_pad.position)
        return NavResult.ok()
