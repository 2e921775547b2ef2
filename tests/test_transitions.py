"""Tests for area sync and area transitions."""

from unittest.mock import AsyncMock, MagicMock

import numpy as np
import pytest

from wayfarer.api.models import AdjacentLevel, AreaData, InteractableObject, ObjectKind, Position
from wayfarer.api.pathfinding import find_path
from wayfarer.api.results import NavErrorKind, NavResult, PathResult, PathStopReason
from wayfarer.navigation.sync import ensure_area_sync
from wayfarer.navigation.transitions import (
    DEFAULT_TRANSITIONS,
    AreaTargetProvider,
    AreaTransitionManager,
    PortalTransition,
    ProbeTarget,
    StaticTarget,
    TransitionRule,
    TransitionTable,
)


class TestAreaSync:
    """Test the area-sync barrier."""

    @pytest.mark.asyncio
    async def test_waits_for_grid_then_refreshes_once_more(self, scripted_ctx, make_snapshot, make_area):
        field = make_area("field")
        loading = AreaData(id="cave")
        cave = make_area("cave", width=12, height=12)
        snapshots = [
            make_snapshot(area=field),
            make_snapshot(area=field),
            make_snapshot(position=Position(3, 3), area=loading),
            make_snapshot(position=Position(3, 3), area=cave),
            make_snapshot(position=Position(3, 4), area=cave),
        ]
        ctx = scripted_ctx(snapshots)

        result = await ensure_area_sync(ctx, "cave")

        assert result.success
        # Four polls plus the extra refresh
        assert ctx.perception.calls == 5
        assert ctx.snapshot.position == Position(3, 4)

    @pytest.mark.asyncio
    async def test_immediate_match_takes_one_poll(self, scripted_ctx, make_snapshot):
        ctx = scripted_ctx([make_snapshot()])
        assert (await ensure_area_sync(ctx, "field")).success
        assert ctx.perception.calls == 1

    @pytest.mark.asyncio
    async def test_times_out(self, scripted_ctx, make_snapshot):
        ctx = scripted_ctx([make_snapshot()])

        result = await ensure_area_sync(ctx, "cave")

        assert result.kind == NavErrorKind.AREA_SYNC_TIMEOUT
        assert "expected: cave" in result.detail
        assert ctx.perception.calls == ctx.navigation.max_area_sync_attempts

    @pytest.mark.asyncio
    async def test_interrupt_checked_before_polling(self, scripted_ctx, make_snapshot):
        ctx = scripted_ctx([make_snapshot()])
        ctx.gate.request_interrupt()

        result = await ensure_area_sync(ctx, "field")

        assert result.kind == NavErrorKind.INTERRUPTED
        assert ctx.perception.calls == 0

    @pytest.mark.asyncio
    async def test_death_while_waiting(self, scripted_ctx, make_snapshot):
        ctx = scripted_ctx([make_snapshot(hp=0)])
        result = await ensure_area_sync(ctx, "cave")
        assert result.kind == NavErrorKind.DIED


class TestTransitionTable:
    """Test the special-case transition table."""

    def test_defaults(self):
        table = TransitionTable()
        assert len(table) == len(DEFAULT_TRANSITIONS)
        assert table.lookup("tamoe_highland", "monastery_gate").strategy == StaticTarget(Position(15139, 5056))
        assert ("tower_cellar_4", "tower_cellar_5") in table
        assert table.lookup("tower_cellar_5", "tower_cellar_4") is None

    def test_portal_with_activator(self):
        rule = TransitionTable().lookup("arcane_sanctuary", "canyon_of_the_magi")
        assert rule.strategy == PortalTransition("permanent_town_portal", activator="yet_another_tome")

    def test_config_rows_layer_over_defaults(self):
        rows = [
            {"from": "cold_plains", "to": "burial_grounds", "static": [40, 2]},
            {"from": "tamoe_highland", "to": "monastery_gate", "finish_distance": 2},
            {"from": "a", "to": "b", "probe": [1, 1], "if_reachable": [2, 2], "otherwise": [3, 3]},
            {"from": "c", "to": "d", "portal": "red_portal"},
        ]
        table = TransitionTable.from_config(rows)

        assert len(table) == len(DEFAULT_TRANSITIONS) + 3
        assert table.lookup("cold_plains", "burial_grounds").strategy == StaticTarget(Position(40, 2))
        assert table.lookup("tamoe_highland", "monastery_gate") == TransitionRule(
            "tamoe_highland", "monastery_gate", None, 2
        )
        assert table.lookup("a", "b").strategy == ProbeTarget(Position(1, 1), Position(2, 2), Position(3, 3))
        assert table.lookup("c", "d").strategy == PortalTransition("red_portal")

    @pytest.mark.parametrize(
        "row",
        [
            {"to": "b", "static": [1, 1]},
            {"from": "a", "to": "b"},
            {"from": "a", "to": "b", "static": [1]},
            {"from": "a", "to": "b", "probe": [1, 1], "if_reachable": [2, 2]},
        ],
    )
    def test_malformed_rows(self, row):
        with pytest.raises(ValueError):
            TransitionTable.from_config([row])

    def test_manager_reads_rows_from_config(self, make_world, navigation):
        navigation.transitions = [{"from": "field", "to": "meadow", "static": [30, 3]}]
        _, ctx = make_world(nav=navigation)
        manager = AreaTransitionManager(ctx)
        assert manager.table.lookup("field", "meadow").strategy == StaticTarget(Position(30, 3))


class TestAreaTargetProvider:
    """Test the per-tick target of a transition."""

    def test_stops_in_destination(self, scripted_ctx, make_snapshot, make_area):
        ctx = scripted_ctx([])
        ctx.snapshot = make_snapshot(area=make_area("meadow"))
        provider = AreaTargetProvider(ctx, "meadow", AdjacentLevel("meadow", Position(39, 3)), Position(38, 3))
        assert provider.next_target() == (None, False)

    def test_stops_when_dead(self, scripted_ctx, make_snapshot):
        ctx = scripted_ctx([])
        ctx.snapshot = make_snapshot(hp=0)
        provider = AreaTargetProvider(ctx, "meadow", AdjacentLevel("meadow", Position(39, 3)), Position(38, 3))
        assert provider.next_target() == (None, False)

    def test_border_uses_approach_and_entrance_uses_level(self, scripted_ctx, make_snapshot):
        ctx = scripted_ctx([])
        ctx.snapshot = make_snapshot()
        border = AreaTargetProvider(ctx, "meadow", AdjacentLevel("meadow", Position(39, 3)), Position(38, 3))
        cave = AreaTargetProvider(
            ctx, "cave", AdjacentLevel("cave", Position(30, 12), is_entrance=True), Position(29, 12)
        )
        assert border.next_target() == (Position(38, 3), True)
        assert cave.next_target() == (Position(30, 12), True)

    def test_static_rule(self, scripted_ctx, make_snapshot):
        ctx = scripted_ctx([])
        ctx.snapshot = make_snapshot()
        rule = TransitionRule("field", "meadow", StaticTarget(Position(12, 2)))
        provider = AreaTargetProvider(ctx, "meadow", AdjacentLevel("meadow", Position(39, 3)), Position(38, 3), rule)
        assert provider.next_target() == (Position(12, 2), True)

    def test_probe_rule(self, scripted_ctx, make_snapshot, make_area):
        ctx = scripted_ctx([])
        area = make_area()
        ctx.snapshot = make_snapshot(area=area)
        rule = TransitionRule("field", "meadow", ProbeTarget(Position(10, 10), Position(1, 1), Position(30, 3)))
        provider = AreaTargetProvider(ctx, "meadow", AdjacentLevel("meadow", Position(39, 3)), Position(38, 3), rule)

        ctx.path.get_path.return_value = find_path(area, Position(5, 5), Position(10, 10))
        assert provider.next_target() == (Position(1, 1), True)

        ctx.path.get_path.return_value = PathResult.not_found(PathStopReason.NO_PATH_EXISTS)
        assert provider.next_target() == (Position(30, 3), True)


def border_world(make_world, make_area, grid_lag=0):
    field = make_area("field", adjacent=[AdjacentLevel("meadow", Position(39, 10))])
    meadow = make_area(
        "meadow", width=30, height=20, offset_x=40, adjacent=[AdjacentLevel("field", Position(40, 10))]
    )
    return make_world(
        areas=[field, meadow],
        position=Position(5, 10),
        arrivals={("field", "meadow"): Position(42, 10)},
        grid_lag=grid_lag,
    )


def cave_world(make_world, make_area, position=Position(5, 12)):
    field = make_area("field", adjacent=[AdjacentLevel("cave", Position(30, 12), is_entrance=True)])
    cave = make_area(
        "cave",
        width=12,
        height=12,
        offset_x=100,
        offset_y=100,
        adjacent=[AdjacentLevel("field", Position(103, 103), is_entrance=True)],
    )
    return make_world(areas=[field, cave], position=position)


class TestBorderCrossing:
    """Test walking across a shared border."""

    @pytest.mark.asyncio
    async def test_crosses_and_syncs(self, make_world, make_area):
        world, ctx = border_world(make_world, make_area, grid_lag=2)

        result = await AreaTransitionManager(ctx).move_to_area("meadow")

        assert result.success
        assert world.entered == ["meadow"]
        assert ctx.snapshot.actor.area_id == "meadow"
        assert ctx.snapshot.area.has_valid_grid()

    @pytest.mark.asyncio
    async def test_area_entered_hooks_run(self, make_world, make_area):
        world, ctx = border_world(make_world, make_area)
        ctx.on_area_entered.append(world.buff)

        assert (await AreaTransitionManager(ctx).move_to_area("meadow")).success
        assert world.buffs == 1

    @pytest.mark.asyncio
    async def test_unknown_destination(self, make_world, make_area):
        world, ctx = border_world(make_world, make_area)

        result = await AreaTransitionManager(ctx).move_to_area("nowhere")

        assert result.kind == NavErrorKind.AREA_NOT_FOUND
        assert world.moves == []

    @pytest.mark.asyncio
    async def test_movement_error_on_border_propagates(self, make_world, make_area):
        world, ctx = border_world(make_world, make_area)
        controller = MagicMock()
        controller.move_to = AsyncMock(return_value=NavResult.error(NavErrorKind.PATH_NOT_FOUND))

        result = await AreaTransitionManager(ctx, controller=controller).move_to_area("meadow")

        assert result.kind == NavErrorKind.PATH_NOT_FOUND

    @pytest.mark.asyncio
    async def test_static_rule_drives_the_walk(self, make_world, make_area):
        world, ctx = border_world(make_world, make_area)
        table = TransitionTable([TransitionRule("field", "meadow", StaticTarget(Position(38, 10)))])

        result = await AreaTransitionManager(ctx, table=table).move_to_area("meadow")

        assert result.success
        assert world.entered == ["meadow"]


class TestEntrances:
    """Test entering an area through an entrance object."""

    @pytest.mark.asyncio
    async def test_walks_up_and_interacts(self, make_world, make_area):
        world, ctx = cave_world(make_world, make_area)

        result = await AreaTransitionManager(ctx).move_to_area("cave")

        assert result.success
        assert world.entered == ["cave"]
        assert world.actor.position == Position(103, 103)

    @pytest.mark.asyncio
    async def test_clicks_closer_when_not_adjacent(self, make_world, make_area):
        world, ctx = cave_world(make_world, make_area, position=Position(25, 12))

        result = await AreaTransitionManager(ctx).move_to_area("cave")

        assert result.success
        assert world.clicks == [Position(28, 10)]
        assert world.moves == []

    @pytest.mark.asyncio
    async def test_retries_failed_interactions(self, make_world, make_area):
        world, ctx = cave_world(make_world, make_area)
        world.entrance_failures = 2

        result = await AreaTransitionManager(ctx).move_to_area("cave")

        assert result.success
        assert world.entrance_failures == 0

    @pytest.mark.asyncio
    async def test_gives_up_after_three_failures(self, make_world, make_area):
        world, ctx = cave_world(make_world, make_area)
        world.entrance_failures = 3

        result = await AreaTransitionManager(ctx).move_to_area("cave")

        assert result.kind == NavErrorKind.ENTRANCE_FAILED
        assert world.entered == []

    @pytest.mark.asyncio
    async def test_approach_error_is_tolerated(self, make_world, make_area):
        world, ctx = cave_world(make_world, make_area, position=Position(27, 12))
        controller = MagicMock()
        controller.move_to = AsyncMock(return_value=NavResult.error(NavErrorKind.PATH_NOT_FOUND))

        result = await AreaTransitionManager(ctx, controller=controller).move_to_area("cave")

        assert result.success
        assert world.entered == ["cave"]

    @pytest.mark.asyncio
    async def test_fatal_approach_error_propagates(self, make_world, make_area):
        world, ctx = cave_world(make_world, make_area, position=Position(27, 12))
        controller = MagicMock()
        controller.move_to = AsyncMock(return_value=NavResult.error(NavErrorKind.DIED))

        result = await AreaTransitionManager(ctx, controller=controller).move_to_area("cave")

        assert result.kind == NavErrorKind.DIED
        assert world.entered == []

    @pytest.mark.asyncio
    async def test_bounded_reapproach(self, make_world, make_area):
        # The controller claims success but the actor never gets close
        world, ctx = cave_world(make_world, make_area)
        controller = MagicMock()
        controller.move_to = AsyncMock(return_value=NavResult.ok())

        result = await AreaTransitionManager(ctx, controller=controller).move_to_area("cave")

        assert result.kind == NavErrorKind.ENTRANCE_FAILED
        assert controller.move_to.await_count == ctx.navigation.max_area_recursion

    @pytest.mark.asyncio
    async def test_entrance_uses_entrance_finish_distance(self, make_world, make_area):
        world, ctx = cave_world(make_world, make_area, position=Position(27, 12))
        controller = MagicMock()
        controller.move_to = AsyncMock(return_value=NavResult.ok())

        await AreaTransitionManager(ctx, controller=controller).move_to_area("cave")

        _, options = controller.move_to.await_args.args
        assert options.finish_distance == ctx.navigation.entrance_finish_distance

    @pytest.mark.asyncio
    async def test_rule_overrides_finish_distance(self, make_world, make_area):
        world, ctx = cave_world(make_world, make_area, position=Position(27, 12))
        controller = MagicMock()
        controller.move_to = AsyncMock(return_value=NavResult.ok())
        table = TransitionTable([TransitionRule("field", "cave", finish_distance=2)])

        await AreaTransitionManager(ctx, controller=controller, table=table).move_to_area("cave")

        _, options = controller.move_to.await_args.args
        assert options.finish_distance == 2


class TestPortals:
    """Test portal-object transitions."""

    @pytest.mark.asyncio
    async def test_walks_into_portal(self, make_world, make_area):
        portal = InteractableObject(5, "arcane_sanctuary_portal", Position(20, 5), ObjectKind.PORTAL)
        cellar = make_area("palace_cellar_3", objects=[portal])
        sanctuary = make_area("arcane_sanctuary", width=30, height=30)
        world, ctx = make_world(
            areas=[cellar, sanctuary],
            position=Position(2, 5),
            portal_links={"arcane_sanctuary_portal": ("arcane_sanctuary", Position(15, 15))},
        )

        result = await AreaTransitionManager(ctx).move_to_area("arcane_sanctuary")

        assert result.success
        assert world.interactions == [5]
        assert world.entered == ["arcane_sanctuary"]

    @pytest.mark.asyncio
    async def test_activator_spawns_portal_first(self, make_world, make_area):
        tome = InteractableObject(8, "yet_another_tome", Position(10, 5))
        spawned = InteractableObject(9, "permanent_town_portal", Position(12, 7), ObjectKind.PORTAL)
        sanctuary = make_area("arcane_sanctuary", objects=[tome])
        canyon = make_area("canyon_of_the_magi", width=30, height=30)
        world, ctx = make_world(
            areas=[sanctuary, canyon],
            position=Position(2, 5),
            activators={"yet_another_tome": spawned},
            portal_links={"permanent_town_portal": ("canyon_of_the_magi", Position(3, 3))},
        )

        result = await AreaTransitionManager(ctx).move_to_area("canyon_of_the_magi")

        assert result.success
        assert world.interactions == [8, 9]
        assert world.actor.area_id == "canyon_of_the_magi"

    @pytest.mark.asyncio
    async def test_missing_portal(self, make_world, make_area):
        world, ctx = make_world(areas=[make_area("palace_cellar_3"), make_area("arcane_sanctuary")])

        result = await AreaTransitionManager(ctx).move_to_area("arcane_sanctuary")

        assert result.kind == NavErrorKind.AREA_NOT_FOUND


class TestTransitionGrid:
    """Test approach-target selection for plain borders."""

    def test_walkable_tile_next_to_blocked_border(self, make_world):
        grid = np.ones((20, 40), dtype=bool)
        grid[:, 39] = False
        field = AreaData(id="field", grid=grid, adjacent=[AdjacentLevel("meadow", Position(39, 10))])
        meadow = AreaData(id="meadow", grid=np.ones((20, 30), dtype=bool), offset_x=40)
        _, ctx = make_world(areas=[field, meadow])
        ctx.snapshot = ctx.perception.snapshot()

        approach = AreaTransitionManager(ctx)._approach_target(field.adjacent[0])

        assert approach.x == 38
        assert abs(approach.y - 10) <= 1
