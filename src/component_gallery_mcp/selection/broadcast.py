from __future__ import annotations

import asyncio
import contextlib
from collections.abc import AsyncIterator, Callable
from typing import Any

from loguru import logger

from component_gallery_mcp.errors import SelectionTimeoutError
from component_gallery_mcp.models import SelectionResult
from component_gallery_mcp.selection.settlement import Settlement
from component_gallery_mcp.selection.source import BroadcastChannel, Subscription


@contextlib.asynccontextmanager
async def subscribed(
    channel: BroadcastChannel,
    topic: str,
    event: str,
    on_event: Callable[[dict[str, Any]], None],
    on_error: Callable[[BaseException], None],
) -> AsyncIterator[Subscription]:
    subscription = await channel.subscribe(topic, event, on_event, on_error)
    try:
        yield subscription
    finally:
        await subscription.unsubscribe()
        logger.debug(f"Unsubscribed from {topic}")


class BroadcastSelectionSource:
    """Waits for a ``component_selected`` broadcast on the session's channel, bounded by a timer."""

    def __init__(
        self,
        channel: BroadcastChannel,
        *,
        timeout_seconds: float = 3600.0,
        event: str = "component_selected",
        topic_prefix: str = "session:",
    ):
        self._channel = channel
        self._timeout_seconds = timeout_seconds
        self._event = event
        self._topic_prefix = topic_prefix

    @property
    def timeout_seconds(self) -> float:
        return self._timeout_seconds

    async def wait_for_selection(self, session_id: str, settlement: Settlement) -> None:
        topic = f"{self._topic_prefix}{session_id}"

        def on_event(payload: dict[str, Any]) -> None:
            if settlement.settled:
                logger.debug(f"Session {session_id}: duplicate '{self._event}' event ignored")
                return
            try:
                result = SelectionResult.from_event_payload(payload)
            except ValueError as ex:
                logger.warning(f"Session {session_id}: malformed '{self._event}' payload ignored: {ex}")
                return
            if settlement.resolve(result):
                logger.info(f"Session {session_id}: component selected, variation {result.variation_index}")

        def on_error(error: BaseException) -> None:
            if settlement.fail(error):
                logger.error(f"Session {session_id}: broadcast channel failed: {error}")

        def on_timeout() -> None:
            if settlement.fail(SelectionTimeoutError(session_id, self._timeout_seconds)):
                logger.warning(f"Session {session_id}: no selection within {self._timeout_seconds:g}s")

        timer = asyncio.get_running_loop().call_later(self._timeout_seconds, on_timeout)
        try:
            async with subscribed(self._channel, topic, self._event, on_event, on_error):
                logger.info(f"Session {session_id}: listening on {topic}")
                await settlement.wait_settled()
        finally:
            timer.cancel()
