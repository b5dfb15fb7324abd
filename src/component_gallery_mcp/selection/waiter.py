from __future__ import annotations

import asyncio

from loguru import logger

from component_gallery_mcp.models import SelectionResult
from component_gallery_mcp.selection.settlement import Settlement
from component_gallery_mcp.selection.source import SelectionSource


class SessionWaiter:
    """Turns a notification source into a single awaitable outcome per session.

    Every call to ``wait`` owns its own settlement and source task; nothing is
    shared between concurrent waits.
    """

    def __init__(self, source: SelectionSource):
        self._source = source

    async def wait(self, session_id: str) -> SelectionResult:
        settlement = Settlement(session_id)
        task = asyncio.create_task(
            self._source.wait_for_selection(session_id, settlement),
            name=f"selection:{session_id}",
        )
        task.add_done_callback(lambda t: _fail_on_crash(t, settlement))

        try:
            return await settlement.wait()
        finally:
            settlement.cancel()
            if not task.done():
                task.cancel()
            # Wait for the source to release its timer and subscription.
            await asyncio.wait([task])


def _fail_on_crash(task: asyncio.Task, settlement: Settlement) -> None:
    if task.cancelled():
        return
    error = task.exception()
    if error is None:
        if not settlement.settled:
            logger.error(f"Session {settlement.session_id}: selection source stopped without an outcome")
            settlement.fail(RuntimeError("selection source stopped without an outcome"))
        return
    if settlement.fail(error):
        logger.error(f"Session {settlement.session_id}: selection source crashed: {error!r}")
