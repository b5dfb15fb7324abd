import asyncio
import unittest

from component_gallery_mcp.errors import (
    AuthenticationError,
    GalleryApiError,
    GalleryUnavailableError,
    RemoteGenerationError,
    SelectionTimeoutError,
    SessionExpiredError,
    SessionNotFoundError,
    TransientTransportError,
)
from component_gallery_mcp.models import Session
from component_gallery_mcp.selection.polling import PollingSelectionSource
from component_gallery_mcp.selection.waiter import SessionWaiter


def _status(status: str, selected: str | None = None, *, failed: tuple[int, ...] = (), code: str = "") -> Session:
    variations = []
    for i in range(5):
        variations.append({
            "id": f"v{i}",
            "variationIndex": i,
            "status": "failed" if i in failed else "ready",
            "code": code or f"export const Card{i} = () => null;",
        })
    return Session.from_status_response("s1", {
        "session": {"status": status, "selectedVariationId": selected},
        "variations": variations,
    })


class _ScriptedClient:
    """Returns (or raises) scripted items; repeats the last one once exhausted."""

    def __init__(self, *items: object):
        self._items = list(items)
        self.calls = 0

    async def get_session(self, session_id: str) -> Session:
        self.calls += 1
        item = self._items.pop(0) if len(self._items) > 1 else self._items[0]
        if isinstance(item, BaseException):
            raise item
        return item


class _VirtualClock:
    def __init__(self):
        self.now = 0.0
        self.sleeps: list[float] = []

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)


def _run(client: _ScriptedClient, clock: _VirtualClock, **kwargs) -> object:
    source = PollingSelectionSource(client, sleep=clock.sleep, **kwargs)
    return asyncio.run(SessionWaiter(source).wait("s1"))


class PollingSelectionSourceTests(unittest.TestCase):
    def test_resolves_on_third_poll(self) -> None:
        client = _ScriptedClient(
            _status("pending"),
            _status("generating"),
            _status("completed", selected="v2"),
            _status("completed", selected="v4"),
        )
        clock = _VirtualClock()

        result = _run(client, clock)

        self.assertEqual(3, client.calls)
        self.assertEqual(2, result.variation_index)
        self.assertEqual("export const Card2 = () => null;", result.code)
        self.assertEqual([5.0, 5.0], clock.sleeps)

    def test_selected_status_also_resolves(self) -> None:
        result = _run(_ScriptedClient(_status("selected", selected="v0")), _VirtualClock())
        self.assertEqual(0, result.variation_index)

    def test_selection_without_code_keeps_polling(self) -> None:
        no_code = Session.from_status_response("s1", {
            "session": {"status": "completed", "selectedVariationId": "v1"},
            "variations": [{"id": "v1", "variationIndex": 1, "status": "ready", "code": ""}],
        })
        client = _ScriptedClient(no_code, _status("completed", selected="v1"))

        result = _run(client, _VirtualClock())

        self.assertEqual(2, client.calls)
        self.assertEqual(1, result.variation_index)

    def test_times_out_at_exactly_the_configured_bound(self) -> None:
        client = _ScriptedClient(_status("generating"))
        clock = _VirtualClock()

        with self.assertRaises(SelectionTimeoutError) as ctx:
            _run(client, clock, poll_interval_seconds=5.0, max_attempts=60)

        self.assertEqual(60, client.calls)
        self.assertEqual(300.0, clock.now)
        self.assertEqual(300.0, ctx.exception.timeout_seconds)
        self.assertEqual("s1", ctx.exception.session_id)
        self.assertIn("5 minutes", str(ctx.exception))

    def test_no_outcome_before_the_bound(self) -> None:
        observed: list[bool] = []
        client = _ScriptedClient(_status("pending"))
        clock = _VirtualClock()

        async def scenario() -> None:
            source = PollingSelectionSource(client, poll_interval_seconds=1.0, max_attempts=4, sleep=clock.sleep)
            waiter_task = asyncio.create_task(SessionWaiter(source).wait("s1"))
            while not waiter_task.done():
                observed.append(clock.now)
                await asyncio.sleep(0)
            with self.assertRaises(SelectionTimeoutError):
                waiter_task.result()

        asyncio.run(scenario())
        self.assertEqual(4.0, clock.now)
        self.assertTrue(all(t <= 4.0 for t in observed))

    def test_two_transient_errors_then_success_resolves(self) -> None:
        client = _ScriptedClient(
            TransientTransportError("connection reset"),
            TransientTransportError("503"),
            _status("completed", selected="v3"),
        )

        result = _run(client, _VirtualClock())

        self.assertEqual(3, client.calls)
        self.assertEqual(3, result.variation_index)

    def test_transient_errors_beyond_grace_window_escalate(self) -> None:
        error = TransientTransportError("connection refused")
        client = _ScriptedClient(error)

        with self.assertRaises(GalleryUnavailableError) as ctx:
            _run(client, _VirtualClock(), max_transient_failures=5)

        self.assertEqual(6, client.calls)
        self.assertIs(error, ctx.exception.__cause__)
        self.assertEqual("s1", ctx.exception.session_id)

    def test_successful_poll_resets_failure_count(self) -> None:
        flaky = TransientTransportError("flaky")
        client = _ScriptedClient(
            flaky, flaky, _status("pending"), flaky, flaky, _status("completed", selected="v1"),
        )

        result = _run(client, _VirtualClock(), max_transient_failures=2)

        self.assertEqual(1, result.variation_index)

    def test_expired_session_fails_fast_with_session_expired(self) -> None:
        client = _ScriptedClient(_status("pending"), _status("expired"))

        with self.assertRaises(SessionExpiredError) as ctx:
            _run(client, _VirtualClock())

        self.assertEqual(2, client.calls)
        self.assertEqual("s1", ctx.exception.session_id)

    def test_not_found_and_auth_errors_are_not_retried(self) -> None:
        for error in (SessionNotFoundError("s1"), AuthenticationError("API key rejected")):
            client = _ScriptedClient(error)
            with self.assertRaises(type(error)):
                _run(client, _VirtualClock())
            self.assertEqual(1, client.calls)

    def test_failed_selected_variation_is_remote_generation_error(self) -> None:
        client = _ScriptedClient(_status("completed", selected="v2", failed=(2,)))

        with self.assertRaises(RemoteGenerationError):
            _run(client, _VirtualClock())

    def test_all_variations_failed_is_remote_generation_error(self) -> None:
        client = _ScriptedClient(_status("generating", failed=(0, 1, 2, 3, 4)))

        with self.assertRaises(RemoteGenerationError):
            _run(client, _VirtualClock())
        self.assertEqual(1, client.calls)

    def test_out_of_range_selected_variation_is_api_error(self) -> None:
        bad = Session.from_status_response("s1", {
            "session": {"status": "completed", "selectedVariationId": "v7"},
            "variations": [{"id": "v7", "variationIndex": 7, "status": "ready", "code": "<X />"}],
        })

        with self.assertRaises(GalleryApiError):
            _run(_ScriptedClient(bad), _VirtualClock())

    def test_cancelled_wait_stops_polling(self) -> None:
        client = _ScriptedClient(_status("generating"))
        sleeps: list[float] = []

        async def scenario() -> None:
            sleeping = asyncio.Event()

            async def blocking_sleep(seconds: float) -> None:
                sleeps.append(seconds)
                sleeping.set()
                await asyncio.Event().wait()

            source = PollingSelectionSource(client, sleep=blocking_sleep)
            waiter_task = asyncio.create_task(SessionWaiter(source).wait("s1"))
            await sleeping.wait()
            waiter_task.cancel()
            with self.assertRaises(asyncio.CancelledError):
                await waiter_task
            await asyncio.sleep(0.01)

        asyncio.run(scenario())
        self.assertEqual(1, client.calls)
        self.assertEqual([5.0], sleeps)


if __name__ == "__main__":
    unittest.main()
