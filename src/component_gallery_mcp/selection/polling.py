from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

from loguru import logger

from component_gallery_mcp.errors import (
    GalleryApiError,
    GalleryError,
    GalleryUnavailableError,
    RemoteGenerationError,
    SelectionTimeoutError,
    SessionExpiredError,
    TransientTransportError,
)
from component_gallery_mcp.gallery_client import GalleryClient
from component_gallery_mcp.models import (
    VARIATION_COUNT,
    SelectionResult,
    Session,
    SessionStatus,
    VariationStatus,
)
from component_gallery_mcp.selection.settlement import Settlement

_SELECTED_STATUSES = (SessionStatus.COMPLETED, SessionStatus.SELECTED)


class PollingSelectionSource:
    """Polls the session status endpoint until a selection, a terminal failure or the attempt ceiling.

    The overall bound is ``max_attempts * poll_interval_seconds``. Up to
    ``max_transient_failures`` consecutive transport failures are tolerated;
    one more escalates to GalleryUnavailableError.
    """

    def __init__(
        self,
        client: GalleryClient,
        *,
        poll_interval_seconds: float = 5.0,
        max_attempts: int = 60,
        max_transient_failures: int = 5,
        progress_every: int = 12,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._client = client
        self._poll_interval_seconds = poll_interval_seconds
        self._max_attempts = max(1, max_attempts)
        self._max_transient_failures = max(0, max_transient_failures)
        self._progress_every = max(1, progress_every)
        self._sleep = sleep

    @property
    def timeout_seconds(self) -> float:
        return self._max_attempts * self._poll_interval_seconds

    async def wait_for_selection(self, session_id: str, settlement: Settlement) -> None:
        consecutive_failures = 0

        for attempt in range(self._max_attempts):
            if settlement.settled:
                return

            try:
                session = await self._client.get_session(session_id)
            except TransientTransportError as ex:
                consecutive_failures += 1
                if consecutive_failures > self._max_transient_failures:
                    logger.error(f"Session {session_id}: giving up after {consecutive_failures} consecutive poll failures")
                    error = GalleryUnavailableError(session_id, consecutive_failures)
                    error.__cause__ = ex
                    settlement.fail(error)
                    return
                logger.warning(
                    f"Session {session_id}: poll failed ({ex}); "
                    f"tolerating {consecutive_failures}/{self._max_transient_failures}"
                )
            except GalleryError as ex:
                settlement.fail(ex)
                return
            else:
                consecutive_failures = 0
                if self._settle_from_status(session, settlement):
                    return
                if attempt % self._progress_every == 0:
                    logger.info(
                        f"Session {session_id}: {session.ready_count()}/{VARIATION_COUNT} variations ready, "
                        "waiting for selection..."
                    )

            await self._sleep(self._poll_interval_seconds)

        logger.warning(f"Session {session_id}: no selection after {self._max_attempts} polls")
        settlement.fail(SelectionTimeoutError(session_id, self.timeout_seconds))

    @staticmethod
    def _settle_from_status(session: Session, settlement: Settlement) -> bool:
        """Settle if ``session`` is terminal. Returns True once settled by this call."""
        selected = session.selected_variation()

        if selected is not None and session.status in _SELECTED_STATUSES:
            if selected.status is VariationStatus.FAILED:
                return settlement.fail(
                    RemoteGenerationError(
                        f"Selected variation {selected.index} failed to generate for session {session.id}",
                        session_id=session.id,
                    )
                )
            if selected.code:
                try:
                    result = SelectionResult.from_variation(selected)
                except ValueError as ex:
                    return settlement.fail(GalleryApiError(f"Invalid selected variation: {ex}", session_id=session.id))
                logger.info(f"Session {session.id}: component selected, variation {selected.index}")
                return settlement.resolve(result)

        if session.status is SessionStatus.EXPIRED:
            return settlement.fail(SessionExpiredError(session.id))

        if selected is None and session.failed_count() >= VARIATION_COUNT:
            return settlement.fail(
                RemoteGenerationError(f"All variations failed to generate for session {session.id}", session_id=session.id)
            )

        return False
