"""
Grid pathfinding.

Implements A* over an area's walkability grid plus the spatial queries the
navigation layer needs (closest chest, doors between two points, how much
of a path is on screen).

This is the reference PathService used by the simulator and the CLI; a
live client can provide its own implementation of the same protocol.
"""

import heapq
import logging
from typing import Awaitable, Callable, Optional

import numpy as np

from .models import AreaData, InteractableObject, ObjectKind, Path, Position, Snapshot
from .results import PathResult, PathStopReason

logger = logging.getLogger(__name__)

CHEST_SCAN_DISTANCE = 20
DOOR_VICINITY = 5
DOOR_PATH_TOLERANCE = 4


def _is_diagonal_move(from_pos: Position, to_pos: Position) -> bool:
    """Check if movement between two adjacent positions is diagonal."""
    dx = abs(to_pos.x - from_pos.x)
    dy = abs(to_pos.y - from_pos.y)
    return dx + dy == 2


def _heuristic(a: Position, b: Position) -> float:
    """
    Heuristic for A* (Chebyshev distance, accounting for diagonal movement).

    Admissible because diagonal moves cost ~1.4 and this returns the
    minimum possible distance.
    """
    dx = abs(a.x - b.x)
    dy = abs(a.y - b.y)
    return max(dx, dy) + 0.4 * min(dx, dy)


def _in_bounds(grid: np.ndarray, pos: Position) -> bool:
    height, width = grid.shape
    return 0 <= pos.x < width and 0 <= pos.y < height


def _astar(start: Position, goal: Position, grid: np.ndarray) -> list[Position]:
    """
    A* pathfinding over a local walkability grid.

    Args:
        start: Starting position (grid-local)
        goal: Target position (grid-local)
        grid: 2D bool array indexed [y, x]

    Returns:
        List of positions from start to goal (excluding start), or empty if no path
    """
    if not _in_bounds(grid, goal) or not grid[goal.y, goal.x]:
        return []

    # Priority queue: (f_score, counter, position)
    # Counter ensures stable sorting when f_scores are equal
    counter = 0
    open_set = [(0.0, counter, start)]
    came_from: dict[Position, Position] = {}
    g_score: dict[Position, float] = {start: 0.0}

    while open_set:
        _, _, current = heapq.heappop(open_set)

        if current == goal:
            path = []
            while current in came_from:
                path.append(current)
                current = came_from[current]
            path.reverse()
            return path

        for neighbor in current.adjacent():
            if not _in_bounds(grid, neighbor):
                continue
            if not grid[neighbor.y, neighbor.x]:
                continue

            move_cost = 1.4 if _is_diagonal_move(current, neighbor) else 1.0
            tentative_g = g_score[current] + move_cost

            if neighbor not in g_score or tentative_g < g_score[neighbor]:
                came_from[neighbor] = current
                g_score[neighbor] = tentative_g
                counter += 1
                heapq.heappush(open_set, (tentative_g + _heuristic(neighbor, goal), counter, neighbor))

    return []


def find_path(area: AreaData, start: Position, target: Position) -> PathResult:
    """
    Find a path between two world positions inside one area.

    The returned Path starts at ``start``, so ``len(path) - 1`` is the
    number of steps.
    """
    if not area.has_valid_grid():
        return PathResult.not_found(PathStopReason.NO_GRID, f"No walkability grid loaded for {area.id}")

    grid = np.asarray(area.grid, dtype=bool)
    local_start = area.to_local(start)
    local_target = area.to_local(target)

    if not _in_bounds(grid, local_target):
        return PathResult.not_found(
            PathStopReason.TARGET_OUT_OF_BOUNDS, f"Target {target} is outside {area.id}"
        )
    if not grid[local_target.y, local_target.x]:
        return PathResult.not_found(
            PathStopReason.TARGET_UNWALKABLE, f"Target {target} is not walkable"
        )

    if local_start == local_target:
        return PathResult(Path([local_start], area.offset_x, area.offset_y), 0, PathStopReason.SUCCESS)

    steps = _astar(local_start, local_target, grid)
    if not steps:
        logger.debug(f"find_path: A* found no path from {start} to {target} in {area.id}")
        return PathResult.not_found(
            PathStopReason.NO_PATH_EXISTS, f"No path from {start} to {target} in {area.id}"
        )

    path = Path([local_start] + steps, area.offset_x, area.offset_y)
    return PathResult(path, len(steps), PathStopReason.SUCCESS)


class GridPathService:
    """
    PathService backed by the current snapshot's walkability grid.

    Example usage:
        service = GridPathService(lambda: world.snapshot, nudge=world.random_step)
        result = service.get_path(Position(40, 12))
        if result:
            next_hop = result.path.world(1)
    """

    def __init__(
        self,
        snapshot_source: Callable[[], Snapshot],
        nudge: Optional[Callable[[], Awaitable[None]]] = None,
        screen_half_width: int = 20,
        screen_half_height: int = 12,
        hud_rows: int = 2,
    ):
        """
        Initialize the path service.

        Args:
            snapshot_source: Returns the latest perception snapshot
            nudge: Coroutine factory performing one random movement
            screen_half_width: Tiles visible left/right of the actor
            screen_half_height: Tiles visible above/below the actor
            hud_rows: Bottom rows hidden behind the HUD
        """
        self._snapshot_source = snapshot_source
        self._nudge = nudge
        self.screen_half_width = screen_half_width
        self.screen_half_height = screen_half_height
        self.hud_rows = hud_rows

    @property
    def _snapshot(self) -> Snapshot:
        return self._snapshot_source()

    def get_path(self, target: Position) -> PathResult:
        snapshot = self._snapshot
        return find_path(snapshot.area, snapshot.position, target)

    def get_path_from(self, origin: Position, target: Position) -> PathResult:
        return find_path(self._snapshot.area, origin, target)

    def distance_from_me(self, pos: Position) -> int:
        return self._snapshot.position.distance_to(pos)

    def closest_door(self, pos: Position) -> Optional[InteractableObject]:
        closest = None
        min_distance = DOOR_VICINITY
        for obj in self._snapshot.objects:
            if obj.kind != ObjectKind.DOOR or not obj.selectable:
                continue
            distance = pos.distance_to(obj.position)
            if distance < min_distance:
                min_distance = distance
                closest = obj
        return closest

    def has_door_between(
        self, origin: Position, destination: Position
    ) -> tuple[bool, Optional[InteractableObject]]:
        """
        Check for a closed door along the route between two points.

        If the route itself can't be computed, a door right next to the
        origin is assumed to be what blocks it.
        """
        result = self.get_path_from(origin, destination)
        if not result.found:
            door = self.closest_door(origin)
            return (door is not None, door)

        waypoints = list(result.path)
        for obj in self._snapshot.objects:
            if obj.kind != ObjectKind.DOOR or not obj.selectable:
                continue
            if any(p.distance_to(obj.position) <= DOOR_PATH_TOLERANCE for p in waypoints):
                return (True, obj)
        return (False, None)

    def closest_walkable_path(self, pos: Position) -> PathResult:
        """Path to the walkable tile nearest to ``pos`` (spiralling outwards)."""
        area = self._snapshot.area
        if area.is_walkable(pos):
            return self.get_path(pos)
        if not area.has_valid_grid():
            return PathResult.not_found(PathStopReason.NO_GRID)

        height, width = area.grid.shape
        for radius in range(1, max(height, width)):
            candidates = [
                pos + (dx, dy)
                for dx in range(-radius, radius + 1)
                for dy in range(-radius, radius + 1)
                if max(abs(dx), abs(dy)) == radius
            ]
            candidates.sort(key=pos.distance_to)
            for candidate in candidates:
                if area.is_walkable(candidate):
                    result = self.get_path(candidate)
                    if result.found:
                        return result
        return PathResult.not_found(PathStopReason.NO_PATH_EXISTS, f"No walkable tile near {pos}")

    def _closest_chest(self, pos: Position, selectable_only: bool, super_only: bool) -> Optional[InteractableObject]:
        closest = None
        min_distance = CHEST_SCAN_DISTANCE
        for obj in self._snapshot.objects:
            if not obj.is_chest:
                continue
            if super_only and not obj.is_super_chest:
                continue
            if selectable_only and not obj.selectable:
                continue
            distance = pos.distance_to(obj.position)
            if distance < min_distance:
                min_distance = distance
                closest = obj
        return closest

    def closest_chest(self, pos: Position, selectable_only: bool = True) -> Optional[InteractableObject]:
        return self._closest_chest(pos, selectable_only, super_only=False)

    def closest_super_chest(self, pos: Position, selectable_only: bool = True) -> Optional[InteractableObject]:
        return self._closest_chest(pos, selectable_only, super_only=True)

    def last_path_index_on_screen(self, path: Path) -> int:
        """Walk the path backwards and return the first waypoint that is on screen."""
        origin = path.origin
        bottom = self.screen_half_height - self.hud_rows
        for i in range(len(path) - 1, -1, -1):
            pos = path.world(i)
            dx = pos.x - origin.x
            dy = pos.y - origin.y
            if abs(dx) <= self.screen_half_width and -self.screen_half_height <= dy <= bottom:
                return i
        return 0

    async def random_movement(self) -> None:
        if self._nudge is None:
            logger.debug("random_movement: no movement hook configured")
            return
        await self._nudge()
