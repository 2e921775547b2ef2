"""Area-sync barrier shared by the controller and the transition manager."""

import logging

from wayfarer.api.results import NavErrorKind, NavResult

from .context import ActorContext

logger = logging.getLogger(__name__)


async def ensure_area_sync(ctx: ActorContext, area_id: str) -> NavResult:
    """
    Poll perception until the actor is in ``area_id`` with a usable grid.

    Matching the area alone is not enough: the walkability grid for it must
    be loaded as well. When the match only shows up after the first poll,
    one more refresh is taken so adjacent-level data can catch up.
    """
    interrupted = ctx.check_interrupt()
    if interrupted is not None:
        return interrupted

    attempts = ctx.navigation.max_area_sync_attempts
    for attempt in range(attempts):
        snapshot = await ctx.refresh()

        fatal = ctx.check_fatal()
        if fatal is not None:
            return fatal

        if snapshot.actor.area_id == area_id and snapshot.area.has_valid_grid():
            if attempt > 0:
                logger.debug(f"area sync: {area_id} ready after {attempt + 1} polls, taking one more refresh")
                await ctx.sleep(ctx.navigation.area_sync_delay)
                await ctx.refresh()
            return NavResult.ok()

        await ctx.sleep(ctx.navigation.area_sync_delay)

    current = ctx.snapshot.actor.area_id if ctx.snapshot is not None else "unknown"
    logger.warning(f"area sync: timed out waiting for {area_id} (current: {current})")
    return NavResult.error(
        NavErrorKind.AREA_SYNC_TIMEOUT,
        f"area sync timeout - expected: {area_id}, current: {current}",
    )
