"""
Retry/recovery policy for the navigation loop.

Classifies path-search and movement-primitive failures and decides how the
controller reacts: carry on, nudge the actor with a random movement, clear
threats first, or give up and hand the error to the caller.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from wayfarer.api.models import Position
from wayfarer.api.results import NavErrorKind, NavResult

from .state import NavigationState

logger = logging.getLogger(__name__)


class RecoveryAction(Enum):
    """What the controller should do after a failure."""

    CONTINUE = "continue"
    NUDGE = "nudge"
    CLEAR = "clear"
    PROPAGATE = "propagate"


@dataclass(frozen=True)
class RecoveryDecision:
    action: RecoveryAction
    mark_stuck: bool = False
    reason: str = ""


class RecoveryPolicy:
    """
    Bounded local recovery.

    Fatal and interrupt results always propagate. PathNotFound is retried
    with a random-movement nudge until the path-error budget is spent.
    Stuck and round-trip reports nudge once and shrink the next step.
    Monsters in the path trigger a clear pass and never count against the
    path budget; they have their own. Anything else propagates.
    """

    def __init__(self, max_path_errors: int = 5, max_monster_blocks: int = 3):
        self.max_path_errors = max_path_errors
        self.max_monster_blocks = max_monster_blocks

    def on_path_found(self, state: NavigationState) -> None:
        state.path_errors = 0

    def on_monsters_blocking(self, state: NavigationState) -> RecoveryDecision:
        """
        Escalate repeated monster blocks.

        The first blocks only clear. Past the limit the actor counts as
        stuck, so the next clear also fights monsters it normally ignores.
        Past twice the limit the error goes to the caller.
        """
        state.monster_blocks += 1
        blocks = state.monster_blocks
        if blocks > self.max_monster_blocks * 2:
            return RecoveryDecision(
                RecoveryAction.PROPAGATE,
                reason=f"still blocked by monsters after {blocks - 1} clears",
            )
        if blocks > self.max_monster_blocks:
            return RecoveryDecision(
                RecoveryAction.CLEAR,
                mark_stuck=True,
                reason=f"blocked by monsters {blocks} times in a row, fighting everything",
            )
        return RecoveryDecision(RecoveryAction.CLEAR, reason="monsters blocking the step")

    def on_move_success(self, state: NavigationState) -> None:
        state.monster_blocks = 0

    def on_path_not_found(self, state: NavigationState) -> RecoveryDecision:
        state.path_errors += 1
        if state.path_errors > self.max_path_errors:
            return RecoveryDecision(
                RecoveryAction.PROPAGATE,
                reason=f"path not found {state.path_errors} times in a row",
            )
        return RecoveryDecision(
            RecoveryAction.NUDGE,
            reason=f"path not found ({state.path_errors}/{self.max_path_errors})",
        )

    def on_move_result(self, result: NavResult, path_step: int) -> RecoveryDecision:
        """Classify the movement primitive's result."""
        kind = result.kind

        if kind == NavErrorKind.OK:
            return RecoveryDecision(RecoveryAction.CONTINUE)
        if result.is_fatal:
            return RecoveryDecision(RecoveryAction.PROPAGATE, reason=kind.value)
        if kind == NavErrorKind.MONSTERS_IN_PATH:
            return RecoveryDecision(RecoveryAction.CLEAR, reason="monsters blocking the step")
        if kind in (NavErrorKind.STUCK, NavErrorKind.ROUND_TRIP):
            return RecoveryDecision(RecoveryAction.NUDGE, mark_stuck=True, reason=kind.value)
        if kind == NavErrorKind.NO_PATH and path_step > 0:
            # Intermediate waypoint unreachable, the full path may still be fine
            return RecoveryDecision(RecoveryAction.NUDGE, reason="intermediate waypoint unreachable")

        return RecoveryDecision(RecoveryAction.PROPAGATE, reason=f"unrecoverable: {kind.value}")

    def on_position(self, state: NavigationState, position: Position) -> bool:
        """
        Record the position reported this tick.

        Returns True when the actor didn't move since the previous tick; the
        caller then widens the next arrival check and nudges.
        """
        stalled = state.previous_position is not None and state.previous_position == position
        state.previous_position = position
        if stalled:
            logger.debug(f"recovery: no displacement at {position}")
        return stalled
