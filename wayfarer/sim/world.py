"""
In-memory world for driving the navigation layer without a game client.

SimulatedWorld plays every external role the navigation components talk
to: perception, input, combat and loot. Path queries go through a
GridPathService reading the world's live snapshot. Movement is exact (the
actor lands on the requested tile), which keeps runs deterministic.

Scripted faults let tests reproduce what a live client does badly:
queued movement errors, moves that silently go nowhere, interactions
that fail, and a grid that takes a few refreshes to load after an area
change.

Example usage:
    world = SimulatedWorld(areas, ActorState(Position(5, 5), "blood_moor"))
    ctx = world.context()
    result = await NavigationController(ctx).move_to_coords(Position(40, 12))
"""

import logging
import random
from dataclasses import replace
from typing import Callable, Optional

from wayfarer.api.models import (
    CURSE_BREAKING_SHRINES,
    CURSE_STATES,
    ActorState,
    AreaData,
    InteractableObject,
    Monster,
    MonsterFilter,
    ObjectKind,
    Position,
    ShrineType,
    Snapshot,
)
from wayfarer.api.pathfinding import GridPathService, find_path
from wayfarer.api.results import NavErrorKind, NavResult
from wayfarer.config import CharacterConfig, NavigationConfig
from wayfarer.navigation.context import ActorContext
from wayfarer.navigation.options import MoveOptions

logger = logging.getLogger(__name__)

# Interactions only work this close to the object
INTERACT_RANGE = 5
# A move ending this close to a border crosses it
BORDER_RADIUS = 4
# Hostile monsters this close to a move's destination block it
BLOCK_RADIUS = 2
NUDGE_RANGE = 3


class SimulatedWorld:
    """Deterministic stand-in for a game client."""

    def __init__(
        self,
        areas: dict[str, AreaData],
        actor: ActorState,
        monsters: Optional[dict[str, list[Monster]]] = None,
        arrivals: Optional[dict[tuple[str, str], Position]] = None,
        pad_links: Optional[dict[Position, Position]] = None,
        portal_links: Optional[dict[str, tuple[str, Position]]] = None,
        activators: Optional[dict[str, InteractableObject]] = None,
        town_portal: Optional[tuple[str, Position]] = None,
        grid_lag: int = 0,
        seed: int = 0,
    ):
        if actor.area_id not in areas:
            raise ValueError(f"Actor starts in unknown area {actor.area_id}")

        self.areas = areas
        self.actor = actor
        self.monsters = monsters or {}
        # (from_area, to_area) -> where the actor lands
        self.arrivals = arrivals or {}
        # entry pad position -> exit pad position
        self.pad_links = pad_links or {}
        # portal object name -> (area, landing position)
        self.portal_links = portal_links or {}
        # activator object name -> portal object it makes appear
        self.activators = activators or {}
        self.town_portal = town_portal
        self.grid_lag = grid_lag
        self._rng = random.Random(seed)
        self._grid_lag_left = 0
        # Teleporting skips the walk check and flies over monsters
        self.can_teleport = False
        # Monsters the actor walks past; set from the context, never block a move
        self.ignore_monster: Optional[Callable[[Monster], bool]] = None

        # Scripted faults
        self.queued_move_results: list[NavResult] = []
        self.frozen_moves = 0
        self.failing_objects: set[int] = set()
        self.entrance_failures = 0

        # Observations
        self.moves: list[Position] = []
        self.clicks: list[Position] = []
        self.interactions: list[int] = []
        self.entered: list[str] = []
        self.nudges = 0
        self.clears = 0
        self.kills = 0
        self.pickups = 0
        self.chests_opened = 0
        self.buffs = 0

        self.path = GridPathService(self.snapshot, nudge=self.random_step)

    @property
    def area(self) -> AreaData:
        return self.areas[self.actor.area_id]

    def context(
        self,
        name: str = "sim",
        character: Optional[CharacterConfig] = None,
        navigation: Optional[NavigationConfig] = None,
        ignore_monster: Optional[Callable[[Monster], bool]] = None,
    ) -> ActorContext:
        """Build an actor context wired to this world."""
        character = character or CharacterConfig()
        self.can_teleport = character.can_teleport
        self.ignore_monster = ignore_monster
        return ActorContext(
            name=name,
            perception=self,
            path=self.path,
            input=self,
            combat=self,
            loot=self,
            character=character,
            navigation=navigation or NavigationConfig(),
            ignore_monster=ignore_monster,
        )

    # Perception

    def snapshot(self) -> Snapshot:
        area = self.area
        if self._grid_lag_left > 0:
            area = replace(area, grid=None)
        return Snapshot(
            actor=replace(self.actor),
            area=area,
            areas=self.areas,
            objects=list(self.area.objects),
            monsters=list(self.monsters.get(self.actor.area_id, [])),
        )

    async def refresh(self) -> Snapshot:
        snapshot = self.snapshot()
        if self._grid_lag_left > 0:
            self._grid_lag_left -= 1
        return snapshot

    # Input

    def _hostiles(self, filters: list[MonsterFilter]) -> list[Monster]:
        return self.snapshot().enemies(*filters)

    def _door_in_the_way(self, origin: Position, destination: Position) -> Optional[InteractableObject]:
        result = find_path(self.area, origin, destination)
        if not result.found:
            return None
        waypoints = list(result.path)
        for obj in self.area.objects:
            if obj.kind != ObjectKind.DOOR or not obj.selectable:
                continue
            if any(p.distance_to(obj.position) <= 1 for p in waypoints):
                return obj
        return None

    async def move(self, destination: Position, options: MoveOptions) -> NavResult:
        if self.queued_move_results:
            return self.queued_move_results.pop(0)

        self.moves.append(destination)
        if self.frozen_moves > 0:
            self.frozen_moves -= 1
            return NavResult.ok()

        if not options.ignore_monsters and not self.can_teleport:
            blocking = [
                m
                for m in self._hostiles(list(options.monster_filters))
                if m.position.distance_to(destination) <= BLOCK_RADIUS
                and (self.ignore_monster is None or not self.ignore_monster(m))
            ]
            if blocking:
                return NavResult.error(NavErrorKind.MONSTERS_IN_PATH, f"{len(blocking)} monsters around {destination}")

        area = self.area
        if not area.is_walkable(destination):
            return NavResult.error(NavErrorKind.NO_PATH, f"{destination} is not walkable")

        if not self.can_teleport:
            if not find_path(area, self.actor.position, destination).found:
                return NavResult.error(NavErrorKind.NO_PATH, f"no walk from {self.actor.position} to {destination}")
            door = self._door_in_the_way(self.actor.position, destination)
            if door is not None:
                return NavResult.error(NavErrorKind.STUCK, f"door {door.id} is closed")

        self.actor.position = destination
        self._cross_border()
        return NavResult.ok()

    def _cross_border(self) -> None:
        for level in self.area.adjacent:
            if level.is_entrance:
                continue
            if self.actor.position.distance_to(level.position) <= BORDER_RADIUS:
                arrival = self.arrivals.get((self.actor.area_id, level.area_id))
                if arrival is not None:
                    self._enter(level.area_id, arrival)
                    return

    def _enter(self, area_id: str, position: Position) -> None:
        if area_id not in self.areas:
            raise ValueError(f"Unknown area {area_id}")
        logger.debug(f"sim: actor enters {area_id} at {position}")
        self.actor.area_id = area_id
        self.actor.position = position
        self._grid_lag_left = self.grid_lag
        self.entered.append(area_id)

    async def click(self, pos: Position) -> None:
        self.clicks.append(pos)
        if self.area.is_walkable(pos) and find_path(self.area, self.actor.position, pos).found:
            self.actor.position = pos

    def _replace_object(self, obj: InteractableObject, **changes) -> InteractableObject:
        objects = self.area.objects
        for i, existing in enumerate(objects):
            if existing.id == obj.id:
                objects[i] = replace(existing, **changes)
                return objects[i]
        raise ValueError(f"Object {obj.id} is not in {self.area.id}")

    def _take_shrine(self, shrine: InteractableObject) -> None:
        actor = self.actor
        if shrine.shrine_type in (ShrineType.HEALTH, ShrineType.REFILL):
            actor.hp = actor.max_hp
        if shrine.shrine_type in (ShrineType.MANA, ShrineType.REFILL):
            actor.mana = actor.max_mana
        if shrine.shrine_type in CURSE_BREAKING_SHRINES:
            # A new shrine state replaces the old one and lifts curses
            kept = {s for s in actor.states if not s.startswith("shrine_") and s not in CURSE_STATES}
            actor.states = frozenset(kept | {f"shrine_{shrine.shrine_type.value}"})

    async def interact_object(
        self, obj: InteractableObject, is_completed: Optional[Callable[[Snapshot], bool]] = None
    ) -> NavResult:
        current = next((o for o in self.area.objects if o.id == obj.id), None)
        if current is None:
            return NavResult.error(NavErrorKind.INTERACTION_FAILED, f"object {obj.id} not found")
        if self.actor.position.distance_to(current.position) > INTERACT_RANGE:
            return NavResult.error(NavErrorKind.INTERACTION_FAILED, f"object {obj.id} is too far")

        self.interactions.append(obj.id)
        if obj.id in self.failing_objects:
            return NavResult.error(NavErrorKind.INTERACTION_FAILED, f"object {obj.id} did not react")

        if current.kind in (ObjectKind.SHRINE, ObjectKind.CHEST, ObjectKind.DOOR):
            if current.selectable:
                self._replace_object(current, selectable=False)
                if current.is_shrine:
                    self._take_shrine(current)
                elif current.is_chest:
                    self.chests_opened += 1
        elif current.is_teleport_pad:
            exit_pad = self.pad_links.get(current.position)
            if exit_pad is not None:
                self.actor.position = exit_pad
        elif current.name in self.portal_links:
            area_id, position = self.portal_links[current.name]
            self._enter(area_id, position)
        elif current.name in self.activators:
            spawned = self.activators[current.name]
            if not any(o.id == spawned.id for o in self.area.objects):
                self.area.objects.append(spawned)

        if is_completed is not None and not is_completed(self.snapshot()):
            return NavResult.error(NavErrorKind.INTERACTION_FAILED, f"interaction with {obj.id} did not complete")
        return NavResult.ok()

    async def interact_entrance(self, area_id: str) -> NavResult:
        level = self.area.adjacent_level(area_id)
        if level is None or not level.is_entrance:
            return NavResult.error(NavErrorKind.ENTRANCE_FAILED, f"no entrance to {area_id} in {self.area.id}")
        if self.actor.position.distance_to(level.position) > INTERACT_RANGE:
            return NavResult.error(NavErrorKind.ENTRANCE_FAILED, f"entrance to {area_id} is too far")
        if self.entrance_failures > 0:
            self.entrance_failures -= 1
            return NavResult.error(NavErrorKind.ENTRANCE_FAILED, f"entrance to {area_id} did not react")

        arrival = self.arrivals.get((self.actor.area_id, area_id))
        if arrival is None:
            back = self.areas[area_id].adjacent_level(self.actor.area_id)
            if back is None:
                return NavResult.error(NavErrorKind.ENTRANCE_FAILED, f"nowhere to land in {area_id}")
            arrival = back.position
        self._enter(area_id, arrival)
        return NavResult.ok()

    async def use_portal_in_town(self) -> NavResult:
        if self.town_portal is None or not self.area.is_town:
            return NavResult.error(NavErrorKind.TOWN_PORTAL_FAILED, "no town portal available")
        area_id, position = self.town_portal
        self._enter(area_id, position)
        return NavResult.ok()

    async def random_step(self) -> None:
        self.nudges += 1
        area = self.area
        candidates = [
            self.actor.position + (dx, dy)
            for dx in range(-NUDGE_RANGE, NUDGE_RANGE + 1)
            for dy in range(-NUDGE_RANGE, NUDGE_RANGE + 1)
            if (dx, dy) != (0, 0)
        ]
        walkable = [p for p in candidates if area.is_walkable(p)]
        if walkable:
            self.actor.position = self._rng.choice(walkable)

    # Combat and loot

    async def clear_area_around_position(
        self, pos: Position, radius: int, filters: list[MonsterFilter]
    ) -> NavResult:
        self.clears += 1
        targets = {m.id for m in self._hostiles(filters) if m.position.distance_to(pos) <= radius}
        if targets:
            area_monsters = self.monsters.get(self.actor.area_id, [])
            self.monsters[self.actor.area_id] = [m for m in area_monsters if m.id not in targets]
            self.kills += len(targets)
            logger.debug(f"sim: cleared {len(targets)} monsters around {pos}")
        return NavResult.ok()

    async def item_pickup(self, radius: int) -> NavResult:
        self.pickups += 1
        return NavResult.ok()

    async def buff(self, ctx: ActorContext, area_id: str) -> None:
        """on_area_entered hook standing in for a buff routine."""
        self.buffs += 1
