"""Navigation controller, detours, teleport pads, area transitions and recovery."""

from .context import ActorContext, PriorityGate
from .controller import NavigationController
from .hazards import HazardInterceptor
from .options import DEFAULT_FINISH_DISTANCE, MoveOptions
from .recovery import RecoveryAction, RecoveryDecision, RecoveryPolicy
from .state import NavigationState
from .sync import ensure_area_sync
from .targets import CallableTarget, FixedTarget, TargetProvider
from .teleport_pads import TeleportPadWalker
from .transitions import (
    DEFAULT_TRANSITIONS,
    AreaTargetProvider,
    AreaTransitionManager,
    PortalTransition,
    ProbeTarget,
    StaticTarget,
    TransitionRule,
    TransitionTable,
)

__all__ = [
    # Context
    "ActorContext",
    "PriorityGate",
    # Controller
    "NavigationController",
    "MoveOptions",
    "DEFAULT_FINISH_DISTANCE",
    "NavigationState",
    "CallableTarget",
    "FixedTarget",
    "TargetProvider",
    # Components
    "HazardInterceptor",
    "TeleportPadWalker",
    "RecoveryAction",
    "RecoveryDecision",
    "RecoveryPolicy",
    # Transitions
    "AreaTargetProvider",
    "AreaTransitionManager",
    "DEFAULT_TRANSITIONS",
    "PortalTransition",
    "ProbeTarget",
    "StaticTarget",
    "TransitionRule",
    "TransitionTable",
    "ensure_area_sync",
]
