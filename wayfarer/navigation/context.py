"""
Per-actor navigation context.

Each managed actor owns one ActorContext: its services, its configuration,
its priority gate and the latest perception snapshot. The context is passed
explicitly into every navigation component; nothing is process-global, so
many actors can navigate concurrently as independent asyncio tasks.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional

from wayfarer.api.models import Monster, Snapshot
from wayfarer.api.results import NavErrorKind, NavResult
from wayfarer.api.services import CombatService, InputService, LootService, PathService, Perception
from wayfarer.config import CharacterConfig, NavigationConfig

logger = logging.getLogger(__name__)

AreaEnteredHook = Callable[["ActorContext", str], Awaitable[None]]


class PriorityGate:
    """
    Cooperative yield point shared between an actor and its scheduler.

    Several actors may share one input surface; the scheduler pauses the
    ones that don't currently hold priority. A pending higher-priority task
    is signalled with request_interrupt(), which navigation observes at the
    top of every tick and unwinds from.
    """

    def __init__(self) -> None:
        self._granted = asyncio.Event()
        self._granted.set()
        self._interrupt_reason: Optional[str] = None

    @property
    def has_priority(self) -> bool:
        return self._granted.is_set()

    def pause(self) -> None:
        self._granted.clear()

    def resume(self) -> None:
        self._granted.set()

    async def wait(self) -> None:
        """Block until the actor holds priority."""
        await self._granted.wait()

    def request_interrupt(self, reason: str = "higher-priority task pending") -> None:
        self._interrupt_reason = reason
        # Let a paused actor wake up and observe the interrupt
        self._granted.set()

    def clear_interrupt(self) -> None:
        self._interrupt_reason = None

    @property
    def interrupt_reason(self) -> Optional[str]:
        return self._interrupt_reason


@dataclass
class ActorContext:
    """Everything a navigation call needs to know about one actor."""

    name: str
    perception: Perception
    path: PathService
    input: InputService
    combat: CombatService
    loot: LootService
    character: CharacterConfig = field(default_factory=CharacterConfig)
    navigation: NavigationConfig = field(default_factory=NavigationConfig)
    gate: PriorityGate = field(default_factory=PriorityGate)
    clock: Callable[[], float] = time.monotonic
    on_area_entered: list[AreaEnteredHook] = field(default_factory=list)
    # Monsters the actor normally walks past; ignored only while not stuck
    ignore_monster: Optional[Callable[[Monster], bool]] = None
    snapshot: Optional[Snapshot] = None

    async def refresh(self) -> Snapshot:
        """Resync the perception snapshot (single writer: this actor)."""
        self.snapshot = await self.perception.refresh()
        return self.snapshot

    async def wait_for_priority(self) -> None:
        await self.gate.wait()

    async def sleep(self, seconds: float) -> None:
        """Scheduled delay; a zero delay still yields to the event loop."""
        await asyncio.sleep(max(seconds, 0.0))

    @property
    def can_teleport(self) -> bool:
        return self.character.can_teleport

    @property
    def in_town(self) -> bool:
        return self.snapshot is not None and self.snapshot.area.is_town

    def check_fatal(self) -> Optional[NavResult]:
        """Death or chicken, as reported by the latest snapshot."""
        snapshot = self.snapshot
        if snapshot is None or not snapshot.in_game:
            # Avoid false death checks while data isn't valid yet
            return None
        if snapshot.area.is_town:
            return None
        actor = snapshot.actor
        if actor.is_dead:
            return NavResult.error(NavErrorKind.DIED, f"{self.name} died in {actor.area_id} at {actor.position}")
        if self.character.chicken_at > 0 and actor.hp_percent <= self.character.chicken_at:
            return NavResult.error(
                NavErrorKind.CHICKEN,
                f"{self.name} HP at {actor.hp_percent}% (chicken at {self.character.chicken_at}%)",
            )
        return None

    def check_interrupt(self) -> Optional[NavResult]:
        reason = self.gate.interrupt_reason
        if reason is not None:
            return NavResult.error(NavErrorKind.INTERRUPTED, reason)
        return None

    def check_abort(self) -> Optional[NavResult]:
        """Interrupt first, then death; either one wins over any other work."""
        interrupted = self.check_interrupt()
        if interrupted is not None:
            return interrupted
        return self.check_fatal()

    async def notify_area_entered(self, area_id: str) -> None:
        for hook in self.on_area_entered:
            await hook(self, area_id)
