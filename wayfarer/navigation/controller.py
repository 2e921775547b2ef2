"""
Navigation controller.

The main movement loop. Every tick it re-reads the target, decides whether a
detour (shrine, chest, teleport pad) overrides it, cuts the cached path into
a screen-sized step, issues one movement primitive and classifies the
result through the recovery policy.

Example usage:
    controller = NavigationController(ctx)
    result = await controller.move_to_coords(Position(120, 84), MoveOptions(finish_distance=3))
    if not result:
        logger.warning(f"Could not get there: {result.detail}")
"""

import logging
from typing import Optional

from wayfarer.api.models import Monster, Position, Snapshot
from wayfarer.api.results import NavErrorKind, NavResult

from .context import ActorContext
from .hazards import HazardInterceptor
from .options import MoveOptions
from .recovery import RecoveryAction, RecoveryPolicy
from .state import NavigationState
from .sync import ensure_area_sync
from .targets import FixedTarget, TargetProvider
from .teleport_pads import TeleportPadWalker

logger = logging.getLogger(__name__)


def _unselectable(obj_id: int):
    """Completion predicate: the object is still there but can't be selected anymore."""

    def check(snapshot: Snapshot) -> bool:
        obj = snapshot.find_object(obj_id)
        return obj is not None and not obj.selectable

    return check


class NavigationController:
    """Drives one actor towards a (possibly moving) target."""

    def __init__(self, ctx: ActorContext, policy: Optional[RecoveryPolicy] = None):
        self.ctx = ctx
        self.policy = policy or RecoveryPolicy(ctx.navigation.max_path_errors, ctx.navigation.max_monster_blocks)
        self.hazards = HazardInterceptor(ctx)

    async def move_to_coords(self, position: Position, options: Optional[MoveOptions] = None) -> NavResult:
        """Move to a fixed position."""
        return await self.move_to(FixedTarget(position), options)

    async def move_to(self, provider: TargetProvider, options: Optional[MoveOptions] = None) -> NavResult:
        """
        Run the navigation loop until the provider's target is reached.

        Args:
            provider: Asked for the destination on every tick
            options: Per-call movement options

        Returns:
            NavResult.ok() on arrival or when the provider stops; otherwise
            the first error the recovery policy could not absorb
        """
        options = options or MoveOptions()
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

        state = NavigationState()
        walker = TeleportPadWalker(ctx)
        started_in_town = ctx.in_town
        default_finish = nav.finish_distance
        finish_distance = options.resolved_finish_distance(default_finish)
        clear_radius = (
            options.clear_path_override
            if options.clear_path_override is not None
            else ctx.character.clear_path_dist
        )

        while True:
            state.ticks += 1

            await ctx.wait_for_priority()
            interrupted = ctx.check_interrupt()
            if interrupted is not None:
                return interrupted

            snapshot = await ctx.refresh()
            fatal = ctx.check_fatal()
            if fatal is not None:
                return fatal

            target, keep_going = provider.next_target()
            if not keep_going:
                return NavResult.ok()
            if target is None:
                raise ValueError(f"{provider!r} returned no target but asked to continue")
            state.target = target

            # Something sent us to town mid-route; wait for the actor to come back out
            if not started_in_town and snapshot.area.is_town and not snapshot.area.is_inside(target):
                await ctx.sleep(nav.town_wait_delay)
                continue

            safe = True
            if not snapshot.area.is_town:
                fatal = await self._clear_threats(state, options, clear_radius)
                if fatal is not None:
                    return fatal
                snapshot = ctx.snapshot

                self.hazards.intercept(state, options)
                safe = not self._enemies_near(snapshot, max(clear_radius * 2, nav.safety_scan_min))

            effective = state.effective_target
            if state.previous_target != effective or not state.path_found:
                state.previous_target = effective
                found = ctx.path.get_path(effective)
                state.path = found.path
                state.path_found = found.found

            if not state.path_found:
                if snapshot.area.is_town and not snapshot.area.is_inside(target):
                    logger.info(f"{ctx.name}: in town with target {target} outside, taking the portal")
                    portal = await ctx.input.use_portal_in_town()
                    if portal.is_fatal:
                        return portal
                    if not portal.success:
                        return NavResult.error(
                            NavErrorKind.TOWN_PORTAL_FAILED,
                            f"no path from town to {target} and no portal: {portal.detail}",
                        )
                    continue

                if state.active_hazard is not None:
                    logger.debug(f"{ctx.name}: no path to detour {state.active_hazard.id}, dropping it")
                    self.hazards.complete(state, state.active_hazard)
                    continue

                if snapshot.area.id in nav.teleport_pad_areas:
                    pad = walker.next_pad()
                    if isinstance(pad, NavResult):
                        return pad
                    state.active_pad = pad
                    continue

                decision = self.policy.on_path_not_found(state)
                if decision.action == RecoveryAction.PROPAGATE:
                    return NavResult.error(
                        NavErrorKind.PATH_NOT_FOUND,
                        f"path could not be calculated. Current area: [{snapshot.area.id}]. "
                        f"Trying to path to destination: [{effective.x},{effective.y}]",
                    )
                logger.warning(f"{ctx.name}: no path found, trying random movement to fix ({decision.reason})")
                await self._nudge(state)
                continue

            self.policy.on_path_found(state)

            # Detours always finish at the default distance
            on_detour = effective != target
            arrive_within = default_finish if on_detour else finish_distance
            move_options = options
            if on_detour and options.finish_distance is not None:
                move_options = options.with_finish_distance(default_finish)

            distance = ctx.path.distance_from_me(effective)
            threshold = arrive_within * 2 if state.widen_arrival else arrive_within
            state.widen_arrival = False

            if distance <= threshold:
                if state.active_hazard is not None and effective == state.active_hazard.position:
                    fatal = await self._take_hazard(state, options)
                    if fatal is not None:
                        return fatal
                    continue

                if state.active_pad is not None and effective == state.active_pad.position:
                    pad_result = await walker.use_pad(state.active_pad)
                    state.active_pad = None
                    state.invalidate_path()
                    if not pad_result.success:
                        return pad_result
                    continue

                logger.debug(f"{ctx.name}: arrived at {target} (distance {distance}) after {state.ticks} ticks")
                return NavResult.ok()

            if options.stationary_range is not None and not on_detour:
                low, high = options.stationary_range
                if low <= distance <= high:
                    logger.debug(f"{ctx.name}: {distance} from {target}, inside stationary range")
                    return NavResult.ok()

            path = state.path
            path_step = 0
            next_position = effective
            if not snapshot.area.is_town:
                if ctx.can_teleport:
                    max_step = min(nav.teleport_step, ctx.path.last_path_index_on_screen(path))
                elif safe and not state.stuck:
                    max_step = nav.walk_step
                else:
                    # Baby steps for safety
                    max_step = nav.baby_step
            else:
                # Fixed chunks so town geometry doesn't stall the walk
                max_step = nav.town_step

            path_step = min(max_step, len(path) - 1)
            if path_step > 0:
                next_position = path.world(path_step)
                if next_position.distance_to(effective) <= arrive_within:
                    next_position = effective

            if not ctx.can_teleport:
                door_error = await self._open_door(state, next_position)
                if door_error is not None:
                    return door_error

            result = await ctx.input.move(next_position, move_options)
            await ctx.sleep(nav.move_delay)

            decision = self.policy.on_move_result(result, path_step)
            if decision.action != RecoveryAction.CONTINUE:
                state.invalidate_path()

                if decision.action == RecoveryAction.PROPAGATE:
                    logger.debug(f"{ctx.name}: movement failed, giving up ({decision.reason})")
                    return result
                if decision.action == RecoveryAction.CLEAR:
                    decision = self.policy.on_monsters_blocking(state)
                    if decision.action == RecoveryAction.PROPAGATE:
                        logger.warning(f"{ctx.name}: {decision.reason}, giving up")
                        return NavResult.error(
                            NavErrorKind.MONSTERS_IN_PATH, f"{decision.reason} on the way to {effective}"
                        )
                    if decision.mark_stuck:
                        state.stuck = True
                    fatal = await self._clear_threats(state, options, clear_radius, force=True)
                    if fatal is not None:
                        return fatal
                    continue

                logger.debug(f"{ctx.name}: {decision.reason}, nudging")
                if decision.mark_stuck:
                    state.stuck = True
                await self._nudge(state)
                continue

            self.policy.on_move_success(state)
            if self.policy.on_position(state, snapshot.position):
                state.widen_arrival = True
                state.stuck = True
                await self._nudge(state)
                state.invalidate_path()
                continue

            state.stuck = False
            state.path = path.advance(path_step)

    async def _nudge(self, state: NavigationState) -> None:
        state.nudges += 1
        await self.ctx.path.random_movement()
        await self.ctx.sleep(self.ctx.navigation.nudge_delay)

    def _enemies_near(self, snapshot: Snapshot, radius: int) -> bool:
        position = snapshot.position
        return any(position.distance_to(m.position) <= radius for m in snapshot.enemies())

    def _stuck_aware_filter(self, state: NavigationState):
        """Drop monsters the actor ignores, unless it is stuck and has to fight its way out."""
        ignore = self.ctx.ignore_monster

        def not_ignored(monsters: list[Monster]) -> list[Monster]:
            if ignore is None or state.stuck:
                return monsters
            return [m for m in monsters if not ignore(m)]

        return not_ignored

    async def _clear_threats(
        self, state: NavigationState, options: MoveOptions, radius: int, force: bool = False
    ) -> Optional[NavResult]:
        """
        Rate-limited threat clear around the actor, followed by loot pickup.

        Returns a fatal result if the actor died while fighting, else None.
        ``force`` skips the option and cooldown checks (monsters reported in
        the way of the last step).
        """
        ctx = self.ctx
        if not force:
            if options.ignore_monsters:
                return None
            # Teleporters skip past monsters unless a clear radius was requested
            if ctx.can_teleport and options.clear_path_override is None:
                return None
            now = ctx.clock()
            if state.last_threat_clear is not None and now - state.last_threat_clear <= ctx.navigation.monster_handle_cooldown:
                return None

        state.last_threat_clear = ctx.clock()
        filters = list(options.monster_filters) + [self._stuck_aware_filter(state)]
        result = await ctx.combat.clear_area_around_position(ctx.snapshot.position, radius, filters)
        if result.is_fatal:
            return result
        if not result.success:
            logger.debug(f"{ctx.name}: threat clear incomplete: {result.detail}")

        if not options.ignore_items:
            fatal = await self._pickup()
            if fatal is not None:
                return fatal

        await ctx.refresh()
        return ctx.check_fatal()

    async def _pickup(self) -> Optional[NavResult]:
        result = await self.ctx.loot.item_pickup(self.ctx.navigation.loot_radius)
        if result.is_fatal:
            return result
        if not result.success:
            logger.warning(f"{self.ctx.name}: error picking up items: {result.detail}")
        return None

    async def _take_hazard(self, state: NavigationState, options: MoveOptions) -> Optional[NavResult]:
        """Interact with the active detour; it is blacklisted whatever happens."""
        ctx = self.ctx
        hazard = state.active_hazard
        result = await ctx.input.interact_object(hazard, _unselectable(hazard.id))
        if result.is_fatal:
            return result
        if not result.success:
            logger.warning(f"{ctx.name}: failed to interact with {hazard.kind.value} {hazard.id}: {result.detail}")
        else:
            logger.debug(f"{ctx.name}: took {hazard.kind.value} {hazard.name} at {hazard.position}")

        self.hazards.complete(state, hazard)
        await ctx.sleep(ctx.navigation.interaction_delay)

        if not options.ignore_items:
            return await self._pickup()
        return None

    async def _open_door(self, state: NavigationState, destination: Position) -> Optional[NavResult]:
        """Open a closed door between the actor and ``destination``, if there is one."""
        ctx = self.ctx
        found, door = ctx.path.has_door_between(ctx.snapshot.position, destination)
        if not found or door is None:
            return None

        result = NavResult.ok()
        for attempt in range(ctx.navigation.max_door_attempts):
            result = await ctx.input.interact_object(door, _unselectable(door.id))
            if result.success:
                await ctx.refresh()
                return None
            if result.is_fatal:
                return result
            logger.warning(f"{ctx.name}: door {door.id} did not open (attempt {attempt + 1}): {result.detail}")
            await self._nudge(state)

        return NavResult.error(NavErrorKind.INTERACTION_FAILED, f"could not open door {door.id}: {result.detail}")
