"""
Target providers for the navigation loop.

The controller asks its provider for a destination on every tick, so a
target can move between evaluations ("wherever is safe right now") or
signal that movement should stop.
"""

from typing import Callable, Optional, Protocol

from wayfarer.api.models import Position


class TargetProvider(Protocol):
    def next_target(self) -> tuple[Optional[Position], bool]:
        """Return ``(position, should_continue)``; ``False`` ends the call successfully."""
        ...


class FixedTarget:
    """A static destination."""

    def __init__(self, position: Position):
        self.position = position

    def next_target(self) -> tuple[Optional[Position], bool]:
        return self.position, True

    def __repr__(self) -> str:
        return f"FixedTarget({self.position})"


class CallableTarget:
    """Adapts a plain function returning ``(position, should_continue)``."""

    def __init__(self, fn: Callable[[], tuple[Optional[Position], bool]]):
        self._fn = fn

    def next_target(self) -> tuple[Optional[Position], bool]:
        return self._fn()
