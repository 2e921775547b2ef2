"""Tests for shrine and chest detour selection."""

from wayfarer.api.models import InteractableObject, ObjectKind, Position, ShrineType
from wayfarer.config import CharacterConfig
from wayfarer.navigation.hazards import HazardInterceptor
from wayfarer.navigation.options import MoveOptions
from wayfarer.navigation.state import NavigationState


def shrine(obj_id, shrine_type, x, y, selectable=True):
    return InteractableObject(
        obj_id, f"{shrine_type.value}_shrine", Position(x, y), ObjectKind.SHRINE, selectable, shrine_type
    )


def chest(obj_id, x, y, super_chest=False):
    return InteractableObject(obj_id, "chest", Position(x, y), ObjectKind.CHEST, is_super_chest=super_chest)


def setup(make_world, make_area, objects, character=None, area_kwargs=None, **actor_kwargs):
    area = make_area(objects=list(objects), **(area_kwargs or {}))
    world, ctx = make_world(
        areas=[area],
        character=character or CharacterConfig(interact_with_shrines=True),
        actor_kwargs=actor_kwargs,
    )
    ctx.snapshot = world.snapshot()
    return world, ctx, HazardInterceptor(ctx)


class TestShrinePriority:
    """Test the shrine priority rules."""

    def test_curse_breaker_wins_over_closer_health_shrine(self, make_world, make_area):
        objects = [shrine(1, ShrineType.HEALTH, 6, 5), shrine(2, ShrineType.ARMOR, 15, 5)]
        _, _, hazards = setup(make_world, make_area, objects, hp=40, states=frozenset({"decrepify"}))

        state = NavigationState()
        assert hazards.intercept(state, MoveOptions()).id == 2

    def test_armor_shrine_ignored_without_curse(self, make_world, make_area):
        objects = [shrine(2, ShrineType.ARMOR, 7, 5)]
        _, _, hazards = setup(make_world, make_area, objects)
        assert hazards.intercept(NavigationState(), MoveOptions()) is None

    def test_health_shrine_suppressed_when_hp_near_full(self, make_world, make_area):
        objects = [shrine(1, ShrineType.HEALTH, 6, 5)]
        _, _, hazards = setup(make_world, make_area, objects, hp=96)
        assert hazards.intercept(NavigationState(), MoveOptions()) is None

    def test_health_shrine_taken_when_hurt(self, make_world, make_area):
        objects = [shrine(1, ShrineType.HEALTH, 6, 5)]
        _, _, hazards = setup(make_world, make_area, objects, hp=95)
        assert hazards.intercept(NavigationState(), MoveOptions()).id == 1

    def test_mana_shrine_suppressed_when_mana_near_full(self, make_world, make_area):
        objects = [shrine(1, ShrineType.MANA, 6, 5)]
        _, _, hazards = setup(make_world, make_area, objects, mana=100)
        assert hazards.intercept(NavigationState(), MoveOptions()) is None

    def test_refill_needs_both_resources_full_to_skip(self, make_world, make_area):
        objects = [shrine(1, ShrineType.REFILL, 6, 5)]
        _, _, hazards = setup(make_world, make_area, objects, hp=100, mana=50)
        assert hazards.intercept(NavigationState(), MoveOptions()).id == 1

        _, _, hazards = setup(make_world, make_area, objects, hp=100, mana=100)
        assert hazards.intercept(NavigationState(), MoveOptions()) is None

    def test_always_take_beats_prioritized(self, make_world, make_area):
        objects = [shrine(1, ShrineType.EXPERIENCE, 6, 5), shrine(2, ShrineType.HEALTH, 20, 5)]
        _, _, hazards = setup(make_world, make_area, objects, hp=50)
        assert hazards.intercept(NavigationState(), MoveOptions()).id == 2

    def test_better_buff_is_taken(self, make_world, make_area):
        objects = [shrine(1, ShrineType.EXPERIENCE, 8, 5)]
        _, _, hazards = setup(make_world, make_area, objects, states=frozenset({"shrine_stamina"}))
        assert hazards.intercept(NavigationState(), MoveOptions()).id == 1

    def test_equal_or_worse_buff_is_skipped(self, make_world, make_area):
        objects = [shrine(1, ShrineType.STAMINA, 8, 5), shrine(2, ShrineType.SKILL, 9, 5)]
        _, _, hazards = setup(make_world, make_area, objects, states=frozenset({"shrine_stamina"}))
        assert hazards.intercept(NavigationState(), MoveOptions()) is None

    def test_out_of_scan_range(self, make_world, make_area):
        objects = [shrine(1, ShrineType.HEALTH, 70, 5)]
        _, _, hazards = setup(make_world, make_area, objects, area_kwargs={"width": 80}, hp=10)
        assert hazards.intercept(NavigationState(), MoveOptions()) is None

    def test_unselectable_shrine_skipped(self, make_world, make_area):
        objects = [shrine(1, ShrineType.HEALTH, 6, 5, selectable=False)]
        _, _, hazards = setup(make_world, make_area, objects, hp=10)
        assert hazards.intercept(NavigationState(), MoveOptions()) is None


class TestShrineSuppression:
    """Test the conditions under which shrines are never searched."""

    def test_ignore_shrines_option(self, make_world, make_area):
        objects = [shrine(1, ShrineType.HEALTH, 6, 5)]
        _, _, hazards = setup(make_world, make_area, objects, hp=10)
        assert hazards.intercept(NavigationState(), MoveOptions(ignore_shrines=True)) is None

    def test_shrines_disabled_in_config(self, make_world, make_area):
        objects = [shrine(1, ShrineType.HEALTH, 6, 5)]
        _, _, hazards = setup(
            make_world, make_area, objects, character=CharacterConfig(interact_with_shrines=False), hp=10
        )
        assert hazards.intercept(NavigationState(), MoveOptions()) is None

    def test_shrine_free_area(self, make_world, make_area):
        objects = [shrine(1, ShrineType.HEALTH, 6, 5)]
        area = make_area("tower_cellar_5", objects=objects)
        world, ctx = make_world(
            areas=[area], character=CharacterConfig(interact_with_shrines=True), actor_kwargs={"hp": 10}
        )
        ctx.snapshot = world.snapshot()
        assert HazardInterceptor(ctx).intercept(NavigationState(), MoveOptions()) is None

    def test_chickened_actor_skips_shrines(self, make_world, make_area):
        objects = [shrine(1, ShrineType.HEALTH, 6, 5)]
        _, _, hazards = setup(
            make_world,
            make_area,
            objects,
            character=CharacterConfig(interact_with_shrines=True, chicken_at=30),
            hp=20,
        )
        assert hazards.intercept(NavigationState(), MoveOptions()) is None

    def test_nothing_in_town(self, make_world, make_area):
        objects = [shrine(1, ShrineType.HEALTH, 6, 5)]
        _, _, hazards = setup(make_world, make_area, objects, area_kwargs={"is_town": True}, hp=10)
        assert hazards.intercept(NavigationState(), MoveOptions()) is None


class TestChests:
    """Test chest selection modes."""

    def test_chests_off_by_default(self, make_world, make_area):
        _, _, hazards = setup(make_world, make_area, [chest(5, 7, 5)])
        assert hazards.intercept(NavigationState(), MoveOptions()) is None

    def test_all_chests_mode(self, make_world, make_area):
        character = CharacterConfig(interact_with_chests=True)
        _, _, hazards = setup(make_world, make_area, [chest(5, 7, 5)], character=character)
        assert hazards.intercept(NavigationState(), MoveOptions()).id == 5

    def test_super_chests_only_mode(self, make_world, make_area):
        character = CharacterConfig(interact_with_super_chests=True)
        objects = [chest(5, 6, 5), chest(6, 9, 5, super_chest=True)]
        _, _, hazards = setup(make_world, make_area, objects, character=character)
        assert hazards.intercept(NavigationState(), MoveOptions()).id == 6

    def test_all_chests_mode_wins_over_super_only(self, make_world, make_area):
        character = CharacterConfig(interact_with_chests=True, interact_with_super_chests=True)
        objects = [chest(5, 6, 5), chest(6, 9, 5, super_chest=True)]
        _, _, hazards = setup(make_world, make_area, objects, character=character)
        assert hazards.intercept(NavigationState(), MoveOptions()).id == 5

    def test_shrine_replaces_active_chest(self, make_world, make_area):
        character = CharacterConfig(interact_with_shrines=True, interact_with_chests=True)
        world, ctx, hazards = setup(make_world, make_area, [chest(5, 7, 5)], character=character, hp=30)
        state = NavigationState()
        assert hazards.intercept(state, MoveOptions()).id == 5

        world.area.objects.append(shrine(1, ShrineType.HEALTH, 12, 5))
        ctx.snapshot = world.snapshot()
        assert hazards.intercept(state, MoveOptions()).id == 1
        assert state.active_hazard.id == 1


class TestMutualExclusionAndNoRepeat:
    """Test that one detour is active at a time and none is taken twice."""

    def test_one_active_shrine_per_tick(self, make_world, make_area):
        objects = [shrine(1, ShrineType.HEALTH, 8, 5), shrine(2, ShrineType.MANA, 12, 5)]
        _, _, hazards = setup(make_world, make_area, objects, hp=10, mana=10)
        state = NavigationState()

        first = hazards.intercept(state, MoveOptions())
        again = hazards.intercept(state, MoveOptions())

        assert first.id == 1
        assert again is first
        assert state.active_hazard is first

    def test_completed_shrine_never_reselected(self, make_world, make_area):
        objects = [shrine(1, ShrineType.HEALTH, 8, 5), shrine(2, ShrineType.MANA, 12, 5)]
        _, _, hazards = setup(make_world, make_area, objects, hp=10, mana=10)
        state = NavigationState()

        first = hazards.intercept(state, MoveOptions())
        hazards.complete(state, first)
        second = hazards.intercept(state, MoveOptions())
        hazards.complete(state, second)

        assert second.id == 2
        assert state.blacklist == {1, 2}
        assert hazards.intercept(state, MoveOptions()) is None

    def test_unselectable_active_hazard_is_dropped_and_blacklisted(self, make_world, make_area):
        objects = [shrine(1, ShrineType.HEALTH, 8, 5)]
        world, ctx, hazards = setup(make_world, make_area, objects, hp=10)
        state = NavigationState()
        hazards.intercept(state, MoveOptions())

        world.area.objects[0] = shrine(1, ShrineType.HEALTH, 8, 5, selectable=False)
        ctx.snapshot = world.snapshot()

        assert hazards.intercept(state, MoveOptions()) is None
        assert 1 in state.blacklist

    def test_blacklisted_chest_not_selected(self, make_world, make_area):
        character = CharacterConfig(interact_with_chests=True)
        _, _, hazards = setup(make_world, make_area, [chest(5, 7, 5)], character=character)
        state = NavigationState(blacklist={5})
        assert hazards.intercept(state, MoveOptions()) is None
