from __future__ import annotations

import asyncio

from loguru import logger

from component_gallery_mcp.models import SelectionResult


class Settlement:
    """One-shot outcome of a single wait. The first resolve/fail/cancel wins."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        self._future: asyncio.Future[SelectionResult] = asyncio.get_running_loop().create_future()

    @property
    def settled(self) -> bool:
        return self._future.done()

    def resolve(self, result: SelectionResult) -> bool:
        if self.settled:
            logger.debug(f"Session {self.session_id}: ignoring late selection (variation {result.variation_index})")
            return False
        self._future.set_result(result)
        return True

    def fail(self, error: BaseException) -> bool:
        if self.settled:
            logger.debug(f"Session {self.session_id}: ignoring late failure {type(error).__name__}")
            return False
        self._future.set_exception(error)
        return True

    def cancel(self) -> bool:
        return self._future.cancel()

    async def wait_settled(self) -> None:
        """Block until settled without consuming or cancelling the outcome."""
        await asyncio.wait([self._future])

    async def wait(self) -> SelectionResult:
        # Cancelling the awaiting task cancels the future too, which settles it.
        return await self._future
