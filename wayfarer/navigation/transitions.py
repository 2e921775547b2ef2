"""
Area transitions.

Moves the actor from its current area into an adjacent one: either by
walking across a shared border, or by approaching an entrance object (cave
mouth, stairs) and interacting with it. A handful of area pairs need special
handling (fixed coordinates, two possible exits, a portal object); those are
rows of a TransitionTable rather than conditionals in the manager.

Example usage:
    manager = AreaTransitionManager(ctx)
    result = await manager.move_to_area("tower_cellar_1")
"""

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Union

from wayfarer.api.models import AdjacentLevel, Position
from wayfarer.api.results import NavErrorKind, NavResult

from .context import ActorContext
from .controller import NavigationController
from .options import MoveOptions
from .sync import ensure_area_sync

logger = logging.getLogger(__name__)

# Below this the entrance is clicked directly instead of approached
ENTRANCE_CLICK_DISTANCE = 3
# Click this many tiles short of the entrance on both axes
ENTRANCE_CLICK_OFFSET = 2


@dataclass(frozen=True)
class StaticTarget:
    """Walk to a fixed position until the area changes."""

    position: Position


@dataclass(frozen=True)
class ProbeTarget:
    """
    Pick between two exits depending on which side is reachable.

    If a path to ``probe`` exists, walk to ``if_reachable``; otherwise to
    ``otherwise``.
    """

    probe: Position
    if_reachable: Position
    otherwise: Position


@dataclass(frozen=True)
class PortalTransition:
    """
    Use a portal object instead of an adjacency.

    ``activator`` names an object that has to be interacted with first to
    make the portal appear.
    """

    object_name: str
    activator: Optional[str] = None


TransitionStrategy = Union[StaticTarget, ProbeTarget, PortalTransition]


@dataclass(frozen=True)
class TransitionRule:
    from_area: str
    to_area: str
    strategy: Optional[TransitionStrategy] = None
    # Arrival threshold for the approach, when the entrance needs a closer look
    finish_distance: Optional[int] = None


DEFAULT_TRANSITIONS: tuple[TransitionRule, ...] = (
    TransitionRule("tamoe_highland", "monastery_gate", StaticTarget(Position(15139, 5056))),
    TransitionRule("monastery_gate", "tamoe_highland", StaticTarget(Position(15142, 5118))),
    TransitionRule(
        "lut_gholein",
        "rocky_waste",
        ProbeTarget(Position(5004, 5065), Position(4989, 5063), Position(5096, 4997)),
    ),
    TransitionRule("palace_cellar_3", "arcane_sanctuary", PortalTransition("arcane_sanctuary_portal")),
    TransitionRule(
        "arcane_sanctuary",
        "canyon_of_the_magi",
        PortalTransition("permanent_town_portal", activator="yet_another_tome"),
    ),
    TransitionRule("lut_gholein", "harem_1", finish_distance=7),
    TransitionRule("sewers_2_act2", "sewers_3_act2", finish_distance=7),
    TransitionRule("forgotten_tower", "tower_cellar_1", finish_distance=7),
    TransitionRule("tower_cellar_1", "tower_cellar_2", finish_distance=7),
    TransitionRule("tower_cellar_2", "tower_cellar_3", finish_distance=7),
    TransitionRule("tower_cellar_3", "tower_cellar_4", finish_distance=7),
    TransitionRule("tower_cellar_4", "tower_cellar_5", finish_distance=7),
)


def _position(value: Any, field_name: str) -> Position:
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        raise ValueError(f"Transition field '{field_name}' must be an [x, y] pair, got {value!r}")
    return Position(int(value[0]), int(value[1]))


def _rule_from_row(row: dict[str, Any]) -> TransitionRule:
    """
    Parse one config row.

    Rows look like:
        {from: tamoe_highland, to: monastery_gate, static: [15139, 5056]}
        {from: a, to: b, probe: [x, y], if_reachable: [x, y], otherwise: [x, y]}
        {from: a, to: b, portal: portal_name, activator: tome_name}
        {from: a, to: b, finish_distance: 7}
    """
    try:
        from_area = str(row["from"])
        to_area = str(row["to"])
    except KeyError as e:
        raise ValueError(f"Transition row {row!r} is missing {e}") from e

    strategy: Optional[TransitionStrategy] = None
    if "static" in row:
        strategy = StaticTarget(_position(row["static"], "static"))
    elif "probe" in row:
        if "if_reachable" not in row or "otherwise" not in row:
            raise ValueError(f"Probe transition {from_area} -> {to_area} needs if_reachable and otherwise")
        strategy = ProbeTarget(
            _position(row["probe"], "probe"),
            _position(row["if_reachable"], "if_reachable"),
            _position(row["otherwise"], "otherwise"),
        )
    elif "portal" in row:
        strategy = PortalTransition(str(row["portal"]), row.get("activator"))

    finish_distance = row.get("finish_distance")
    if finish_distance is not None:
        finish_distance = int(finish_distance)

    if strategy is None and finish_distance is None:
        raise ValueError(f"Transition row {from_area} -> {to_area} overrides nothing")
    return TransitionRule(from_area, to_area, strategy, finish_distance)


class TransitionTable:
    """Special-case transitions keyed by ``(from_area, to_area)``."""

    def __init__(self, rules: Iterable[TransitionRule] = DEFAULT_TRANSITIONS):
        self._rules: dict[tuple[str, str], TransitionRule] = {}
        for rule in rules:
            self.add(rule)

    @classmethod
    def from_config(
        cls, rows: Iterable[dict[str, Any]], base: Iterable[TransitionRule] = DEFAULT_TRANSITIONS
    ) -> "TransitionTable":
        """Build the default table and layer config rows over it (later rows win)."""
        table = cls(base)
        for row in rows:
            table.add(_rule_from_row(row))
        return table

    def add(self, rule: TransitionRule) -> None:
        self._rules[(rule.from_area, rule.to_area)] = rule

    def lookup(self, from_area: str, to_area: str) -> Optional[TransitionRule]:
        return self._rules.get((from_area, to_area))

    def __contains__(self, key: tuple[str, str]) -> bool:
        return key in self._rules

    def __len__(self) -> int:
        return len(self._rules)


class AreaTargetProvider:
    """Keeps steering towards ``destination`` until the actor is in it."""

    def __init__(
        self,
        ctx: ActorContext,
        destination: str,
        level: AdjacentLevel,
        approach: Position,
        rule: Optional[TransitionRule] = None,
    ):
        self.ctx = ctx
        self.destination = destination
        self.level = level
        self.approach = approach
        self.rule = rule

    def next_target(self) -> tuple[Optional[Position], bool]:
        if self.ctx.check_fatal() is not None:
            return None, False

        snapshot = self.ctx.snapshot
        if snapshot.actor.area_id == self.destination:
            logger.debug(f"{self.ctx.name}: reached area {self.destination}")
            return None, False

        strategy = self.rule.strategy if self.rule is not None else None
        if isinstance(strategy, StaticTarget):
            return strategy.position, True
        if isinstance(strategy, ProbeTarget):
            if self.ctx.path.get_path(strategy.probe).found:
                return strategy.if_reachable, True
            return strategy.otherwise, True

        # Entrances are approached directly, the next area is loaded on interaction
        if self.level.is_entrance:
            return self.level.position, True
        return self.approach, True

    def __repr__(self) -> str:
        return f"AreaTargetProvider({self.destination})"


class AreaTransitionManager:
    """Moves the actor into adjacent areas and waits until they are usable."""

    def __init__(
        self,
        ctx: ActorContext,
        controller: Optional[NavigationController] = None,
        table: Optional[TransitionTable] = None,
    ):
        self.ctx = ctx
        self.controller = controller or NavigationController(ctx)
        self.table = table or TransitionTable.from_config(ctx.navigation.transitions)

    async def ensure_area_sync(self, area_id: str) -> NavResult:
        return await ensure_area_sync(self.ctx, area_id)

    async def move_to_area(self, destination: str) -> NavResult:
        """Move into the adjacent area ``destination``."""
        return await self._move_to_area(destination, depth=0)

    async def _move_to_area(self, destination: str, depth: int) -> NavResult:
        ctx = self.ctx
        nav = ctx.navigation

        if ctx.snapshot is None:
            await ctx.refresh()
        aborted = ctx.check_abort()
        if aborted is not None:
            return aborted

        synced = await ensure_area_sync(ctx, ctx.snapshot.actor.area_id)
        if not synced.success:
            return synced

        current = ctx.snapshot.actor.area_id
        rule = self.table.lookup(current, destination)
        if rule is not None and isinstance(rule.strategy, PortalTransition):
            result = await self._through_portal(rule.strategy, destination)
            return await self._entered(destination, result)

        level = ctx.snapshot.area.adjacent_level(destination)
        if level is None:
            return NavResult.error(NavErrorKind.AREA_NOT_FOUND, f"destination area not found: {destination}")

        approach = level.position
        if not level.is_entrance and current != destination:
            approach = self._approach_target(level)

        finish_distance = None
        if rule is not None and rule.finish_distance is not None:
            finish_distance = rule.finish_distance
        elif level.is_entrance:
            finish_distance = nav.entrance_finish_distance
        options = MoveOptions(finish_distance=finish_distance)

        logger.info(f"{ctx.name}: moving from {current} to {destination} (depth {depth})")
        provider = AreaTargetProvider(ctx, destination, level, approach, rule)
        result = await self.controller.move_to(provider, options)
        if not result.success:
            if result.is_fatal or not level.is_entrance:
                return result
            logger.warning(f"{ctx.name}: error moving to area {destination}, will try to continue: {result.detail}")

        fatal = ctx.check_fatal()
        if fatal is not None:
            return fatal

        if level.is_entrance:
            entered = await self._interact_entrance(destination, level, depth)
            if entered is not None:
                return entered

        synced = await ensure_area_sync(ctx, destination)
        return await self._entered(destination, synced)

    def _approach_target(self, level: AdjacentLevel) -> Position:
        """
        Where to walk to cross a plain border.

        Any object of the destination area that already has a path wins,
        then the walkable tile closest to the border, then the border itself.
        """
        ctx = self.ctx
        destination_area = ctx.snapshot.areas.get(level.area_id)
        if destination_area is not None:
            objects = sorted(destination_area.objects, key=lambda o: ctx.path.distance_from_me(o.position))
            for obj in objects:
                if ctx.path.get_path(obj.position).found:
                    return obj.position

        walkable = ctx.path.closest_walkable_path(level.position)
        if walkable.found:
            return walkable.path.destination
        return level.position

    async def _interact_entrance(
        self, destination: str, level: AdjacentLevel, depth: int
    ) -> Optional[NavResult]:
        """
        Retry the entrance interaction a few times.

        Returns None once the entrance was used, or the result to hand back.
        """
        ctx = self.ctx
        nav = ctx.navigation
        result = NavResult.error(NavErrorKind.ENTRANCE_FAILED, "entrance not attempted")

        for attempt in range(nav.max_entrance_attempts):
            distance = ctx.path.distance_from_me(level.position)

            if distance > nav.entrance_finish_distance:
                # Drifted away, go through the whole approach again
                if depth + 1 >= nav.max_area_recursion:
                    return NavResult.error(
                        NavErrorKind.ENTRANCE_FAILED,
                        f"still {distance} away from the {destination} entrance after {depth + 1} approaches",
                    )
                return await self._move_to_area(destination, depth + 1)
            if distance > ENTRANCE_CLICK_DISTANCE:
                await ctx.input.click(
                    Position(level.position.x - ENTRANCE_CLICK_OFFSET, level.position.y - ENTRANCE_CLICK_OFFSET)
                )
                await ctx.sleep(nav.entrance_click_delay)
                await ctx.refresh()

            aborted = ctx.check_abort()
            if aborted is not None:
                return aborted

            result = await ctx.input.interact_entrance(destination)
            if result.success:
                return None
            if result.is_fatal:
                return result

            if attempt < nav.max_entrance_attempts - 1:
                logger.warning(
                    f"{ctx.name}: entrance interaction failed, retrying (attempt {attempt + 1}): {result.detail}"
                )
                await ctx.sleep(nav.entrance_retry_delay)
                await ctx.refresh()

        return NavResult.error(
            NavErrorKind.ENTRANCE_FAILED,
            f"failed to interact with area {destination} after {nav.max_entrance_attempts} attempts: {result.detail}",
        )

    async def _through_portal(self, portal: PortalTransition, destination: str) -> NavResult:
        ctx = self.ctx
        logger.debug(f"{ctx.name}: {destination} is reached through {portal.object_name}")

        if portal.activator is not None:
            activators = ctx.snapshot.find_objects(portal.activator)
            if not activators:
                return NavResult.error(NavErrorKind.AREA_NOT_FOUND, f"no {portal.activator} in {ctx.snapshot.area.id}")
            activator = activators[0]
            moved = await self.controller.move_to_coords(activator.position)
            if moved.is_fatal:
                return moved
            result = await ctx.input.interact_object(
                activator, lambda snapshot: bool(snapshot.find_objects(portal.object_name))
            )
            if not result.success:
                return result
            await ctx.refresh()

        portals = ctx.snapshot.find_objects(portal.object_name)
        if not portals:
            return NavResult.error(NavErrorKind.AREA_NOT_FOUND, f"no {portal.object_name} in {ctx.snapshot.area.id}")
        target = portals[0]

        moved = await self.controller.move_to_coords(target.position)
        if moved.is_fatal:
            return moved
        result = await ctx.input.interact_object(target, lambda snapshot: snapshot.actor.area_id == destination)
        if not result.success:
            return result
        return await ensure_area_sync(ctx, destination)

    async def _entered(self, destination: str, result: NavResult) -> NavResult:
        if not result.success:
            return result
        logger.info(f"{self.ctx.name}: entered {destination}")
        await self.ctx.notify_area_entered(destination)
        return result
