"""Shared fixtures for the navigation tests."""

from unittest.mock import AsyncMock, MagicMock

import numpy as np
import pytest

from wayfarer.api.models import ActorState, AreaData, Position, Snapshot
from wayfarer.api.results import NavResult
from wayfarer.config import CharacterConfig, NavigationConfig
from wayfarer.navigation.context import ActorContext
from wayfarer.sim.world import SimulatedWorld


@pytest.fixture
def navigation():
    """Navigation config with every delay zeroed so tests run instantly."""
    return NavigationConfig(
        monster_handle_cooldown=0.0,
        area_sync_delay=0.0,
        nudge_delay=0.0,
        town_wait_delay=0.0,
        move_delay=0.0,
        interaction_delay=0.0,
        entrance_click_delay=0.0,
        entrance_retry_delay=0.0,
    )


@pytest.fixture
def make_area():
    """Factory for open rectangular areas, optionally with wall tiles."""

    def factory(area_id="field", width=40, height=20, walls=(), **kwargs):
        grid = np.ones((height, width), dtype=bool)
        for x, y in walls:
            grid[y, x] = False
        return AreaData(id=area_id, grid=grid, **kwargs)

    return factory


@pytest.fixture
def make_world(navigation, make_area):
    """
    Factory returning a (SimulatedWorld, ActorContext) pair.

    Shrine detours are off unless a character config enables them.
    """

    def factory(
        areas=None,
        position=Position(5, 5),
        area_id=None,
        character=None,
        nav=None,
        ignore_monster=None,
        actor_kwargs=None,
        **world_kwargs,
    ):
        areas = areas or [make_area()]
        area_id = area_id or areas[0].id
        actor = ActorState(position, area_id, **(actor_kwargs or {}))
        world = SimulatedWorld({a.id: a for a in areas}, actor, **world_kwargs)
        ctx = world.context(
            character=character or CharacterConfig(interact_with_shrines=False),
            navigation=nav or navigation,
            ignore_monster=ignore_monster,
        )
        return world, ctx

    return factory


class ScriptedPerception:
    """Perception returning a fixed sequence of snapshots (the last one repeats)."""

    def __init__(self, snapshots):
        self.snapshots = list(snapshots)
        self.calls = 0

    async def refresh(self) -> Snapshot:
        snapshot = self.snapshots[min(self.calls, len(self.snapshots) - 1)]
        self.calls += 1
        return snapshot


@pytest.fixture
def scripted_ctx(navigation):
    """
    Factory for an ActorContext over scripted snapshots and mocked services.

    The input service reports OK for every primitive; the path service is a
    MagicMock the test configures.
    """

    def factory(snapshots, character=None, nav=None):
        path = MagicMock()
        path.random_movement = AsyncMock()
        path.has_door_between.return_value = (False, None)
        path.closest_chest.return_value = None
        path.closest_super_chest.return_value = None
        input_service = MagicMock()
        input_service.move = AsyncMock(return_value=NavResult.ok())
        input_service.click = AsyncMock()
        input_service.interact_object = AsyncMock(return_value=NavResult.ok())
        input_service.interact_entrance = AsyncMock(return_value=NavResult.ok())
        input_service.use_portal_in_town = AsyncMock(return_value=NavResult.ok())
        combat = MagicMock()
        combat.clear_area_around_position = AsyncMock(return_value=NavResult.ok())
        loot = MagicMock()
        loot.item_pickup = AsyncMock(return_value=NavResult.ok())

        return ActorContext(
            name="scripted",
            perception=ScriptedPerception(snapshots),
            path=path,
            input=input_service,
            combat=combat,
            loot=loot,
            character=character or CharacterConfig(interact_with_shrines=False),
            navigation=nav or navigation,
        )

    return factory


@pytest.fixture
def make_snapshot(make_area):
    """Factory for a snapshot of one actor standing in an open area."""

    def factory(position=Position(5, 5), area=None, hp=100, objects=(), monsters=(), **actor_kwargs):
        area = area or make_area()
        actor = ActorState(position, area.id, hp=hp, **actor_kwargs)
        return Snapshot(
            actor=actor,
            area=area,
            areas={area.id: area},
            objects=list(objects) or list(area.objects),
            monsters=list(monsters),
        )

    return factory
