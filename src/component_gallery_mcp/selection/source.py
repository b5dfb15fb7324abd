from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

from component_gallery_mcp.selection.settlement import Settlement


@runtime_checkable
class SelectionSource(Protocol):
    async def wait_for_selection(self, session_id: str, settlement: Settlement) -> None:
        """Drive ``settlement`` to a terminal outcome for ``session_id``.

        Returns once the settlement is settled. Must release everything it
        acquired when cancelled.
        """
        ...


@runtime_checkable
class Subscription(Protocol):
    async def unsubscribe(self) -> None: ...


@runtime_checkable
class BroadcastChannel(Protocol):
    async def subscribe(
        self,
        topic: str,
        event: str,
        on_event: Callable[[dict[str, Any]], None],
        on_error: Callable[[BaseException], None],
    ) -> Subscription: ...
