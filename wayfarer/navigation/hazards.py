"""
Hazard interceptor.

Picks at most one opportunistic detour (a shrine or a chest) to take on the
way to the real destination. Priority, highest first:

1. A curse-breaking shrine while the actor is cursed
2. An always-take shrine (health/mana/refill) unless that resource is near full
3. A state-prioritized shrine better than the buff the actor already holds
4. A chest, only when no shrine is pending

Every interactable handled during a call is blacklisted for the rest of it,
so no detour is ever attempted twice.
"""

import logging
from typing import Iterable, Optional

from wayfarer.api.models import (
    ALWAYS_TAKE_SHRINES,
    CURSE_BREAKING_SHRINES,
    CURSE_STATES,
    PRIORITIZED_SHRINES,
    InteractableObject,
    ShrineType,
)

from .context import ActorContext
from .options import MoveOptions
from .state import NavigationState

logger = logging.getLogger(__name__)

NEAR_FULL_PERCENT = 95


class HazardInterceptor:
    """Selects and tracks the single active detour for a navigation call."""

    def __init__(self, ctx: ActorContext):
        self.ctx = ctx

    def intercept(self, state: NavigationState, options: MoveOptions) -> Optional[InteractableObject]:
        """
        Update ``state.active_hazard`` for this tick and return it.

        A shrine found while a chest is active replaces the chest; an active
        shrine is kept until it is handled.
        """
        snapshot = self.ctx.snapshot
        if snapshot is None or snapshot.area.is_town:
            return state.active_hazard

        self._drop_stale(state)

        shrines_enabled = self.ctx.character.interact_with_shrines and not options.ignore_shrines
        active = state.active_hazard
        if shrines_enabled and (active is None or not active.is_shrine):
            shrine = self.find_shrine(state)
            if shrine is not None:
                if active is not None:
                    logger.debug(f"hazards: shrine {shrine.id} preempts chest {active.id}")
                state.active_hazard = shrine

        if state.active_hazard is None:
            chest = self.find_chest(state)
            if chest is not None:
                state.active_hazard = chest

        if state.active_hazard is not None and state.active_hazard is not active:
            logger.debug(
                f"hazards: detouring to {state.active_hazard.kind.value} {state.active_hazard.id} "
                f"at {state.active_hazard.position}"
            )
        return state.active_hazard

    def complete(self, state: NavigationState, obj: InteractableObject) -> None:
        """Mark a detour handled, whether the interaction worked or not."""
        state.blacklist_object(obj)
        if state.active_hazard is not None and state.active_hazard.id == obj.id:
            state.active_hazard = None

    def _drop_stale(self, state: NavigationState) -> None:
        """Forget the active detour once it can no longer be selected."""
        active = state.active_hazard
        if active is None:
            return
        current = self.ctx.snapshot.find_object(active.id)
        if current is None or not current.selectable:
            logger.debug(f"hazards: {active.kind.value} {active.id} no longer selectable")
            self.complete(state, active)

    def _candidates(self, state: NavigationState, types: Iterable[ShrineType]) -> list[InteractableObject]:
        wanted = set(types)
        return [
            obj
            for obj in self.ctx.snapshot.objects
            if obj.is_shrine
            and obj.selectable
            and obj.shrine_type in wanted
            and not state.is_blacklisted(obj)
        ]

    def _closest(self, objects: Iterable[InteractableObject]) -> Optional[InteractableObject]:
        closest = None
        min_distance = self.ctx.navigation.shrine_scan_distance
        for obj in objects:
            distance = self.ctx.path.distance_from_me(obj.position)
            if distance < min_distance:
                min_distance = distance
                closest = obj
        return closest

    def find_shrine(self, state: NavigationState) -> Optional[InteractableObject]:
        snapshot = self.ctx.snapshot
        actor = snapshot.actor
        chicken_at = self.ctx.character.chicken_at

        if actor.is_dead or snapshot.area.is_town or (chicken_at > 0 and actor.hp_percent <= chicken_at):
            return None
        if snapshot.area.id in self.ctx.navigation.shrine_free_areas:
            return None

        if any(actor.has_state(curse) for curse in CURSE_STATES):
            curse_breaker = self._closest(self._candidates(state, CURSE_BREAKING_SHRINES))
            if curse_breaker is not None:
                logger.debug(f"hazards: cursed, heading to {curse_breaker.shrine_type.value} shrine")
                return curse_breaker

        always_take = []
        for obj in self._candidates(state, ALWAYS_TAKE_SHRINES):
            if obj.shrine_type == ShrineType.HEALTH and actor.hp_percent > NEAR_FULL_PERCENT:
                continue
            if obj.shrine_type == ShrineType.MANA and actor.mana_percent > NEAR_FULL_PERCENT:
                continue
            if (
                obj.shrine_type == ShrineType.REFILL
                and actor.hp_percent > NEAR_FULL_PERCENT
                and actor.mana_percent > NEAR_FULL_PERCENT
            ):
                continue
            always_take.append(obj)

        closest = self._closest(always_take)
        if closest is not None:
            return closest

        current_priority = -1
        for i, (_, buff_state) in enumerate(PRIORITIZED_SHRINES):
            if actor.has_state(buff_state):
                current_priority = i
                break

        priority_of = {shrine_type: i for i, (shrine_type, _) in enumerate(PRIORITIZED_SHRINES)}
        prioritized = [
            obj
            for obj in self._candidates(state, priority_of)
            if current_priority == -1 or priority_of[obj.shrine_type] < current_priority
        ]
        return self._closest(prioritized)

    def find_chest(self, state: NavigationState) -> Optional[InteractableObject]:
        character = self.ctx.character
        position = self.ctx.snapshot.position

        # Super-chest-only mode applies while the generic chest mode is off
        if character.interact_with_super_chests and not character.interact_with_chests:
            chest = self.ctx.path.closest_super_chest(position, True)
        elif character.interact_with_chests:
            chest = self.ctx.path.closest_chest(position, True)
        else:
            return None

        if chest is None or state.is_blacklisted(chest):
            return None
        return chest
