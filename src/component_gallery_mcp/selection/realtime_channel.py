from __future__ import annotations

import asyncio
import contextlib
import itertools
import json
from collections.abc import Awaitable, Callable
from typing import Any
from urllib.parse import urlencode, urlsplit, urlunsplit

from loguru import logger
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential
from websockets.asyncio.client import connect as ws_connect
from websockets.exceptions import ConnectionClosed, InvalidStatus, WebSocketException

from component_gallery_mcp.errors import AuthenticationError, GalleryError, TransientTransportError

_PHOENIX_TOPIC = "phoenix"
_TRANSIENT_ERRORS = (OSError, asyncio.TimeoutError, WebSocketException)


def realtime_url(supabase_url: str, api_key: str) -> str:
    parts = urlsplit(supabase_url.rstrip("/"))
    scheme = "ws" if parts.scheme == "http" else "wss"
    query = urlencode({"apikey": api_key, "vsn": "1.0.0"})
    return urlunsplit((scheme, parts.netloc, f"{parts.path}/realtime/v1/websocket", query, ""))


def _on_retry(retry_state) -> None:
    attempt = retry_state.attempt_number
    wait = retry_state.next_action.sleep if retry_state.next_action else 0
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    reason = type(exc).__name__ if exc else "Unknown"
    logger.warning(f"Realtime connect failed ({reason}). Retrying in {wait:.0f}s (attempt {attempt})...")


class RealtimeBroadcastChannel:
    """Supabase Realtime broadcast subscriptions over the Phoenix websocket protocol."""

    def __init__(
        self,
        supabase_url: str,
        api_key: str,
        *,
        heartbeat_interval: float = 25.0,
        connect_attempts: int = 5,
        join_timeout: float = 10.0,
        retry_wait_min: float = 1.0,
        retry_wait_max: float = 30.0,
        connect: Callable[[str], Awaitable[Any]] = ws_connect,
    ):
        self._url = realtime_url(supabase_url, api_key)
        self._api_key = api_key
        self._heartbeat_interval = heartbeat_interval
        self._connect_attempts = max(1, connect_attempts)
        self._join_timeout = join_timeout
        self._retry_wait_min = retry_wait_min
        self._retry_wait_max = retry_wait_max
        self._connect = connect
        self._refs = itertools.count(1)

    @property
    def heartbeat_interval(self) -> float:
        return self._heartbeat_interval

    @property
    def connect_attempts(self) -> int:
        return self._connect_attempts

    def next_ref(self) -> str:
        return str(next(self._refs))

    async def subscribe(
        self,
        topic: str,
        event: str,
        on_event: Callable[[dict[str, Any]], None],
        on_error: Callable[[BaseException], None],
    ) -> RealtimeSubscription:
        subscription = RealtimeSubscription(self, topic, event, on_event, on_error)
        await subscription.start()
        return subscription

    async def open(self, topic: str, on_message: Callable[[dict[str, Any]], None]) -> Any:
        """Connect and join ``topic``, retrying transport failures. Returns the joined connection."""
        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception_type(_TRANSIENT_ERRORS),
                stop=stop_after_attempt(self._connect_attempts),
                wait=wait_exponential(multiplier=self._retry_wait_min, min=self._retry_wait_min, max=self._retry_wait_max),
                before_sleep=_on_retry,
                reraise=True,
            ):
                with attempt:
                    return await self._connect_and_join(topic, on_message)
        except _TRANSIENT_ERRORS as ex:
            raise TransientTransportError(
                f"Could not subscribe to {topic} after {self._connect_attempts} attempts: {ex}"
            ) from ex

    async def _connect_and_join(self, topic: str, on_message: Callable[[dict[str, Any]], None]) -> Any:
        try:
            connection = await self._connect(self._url)
        except InvalidStatus as ex:
            status = ex.response.status_code
            if status in (401, 403):
                raise AuthenticationError(f"Realtime connection rejected (HTTP {status})") from ex
            raise

        try:
            await self._join(connection, topic, on_message)
        except BaseException:
            await connection.close()
            raise
        return connection

    async def _join(self, connection: Any, topic: str, on_message: Callable[[dict[str, Any]], None]) -> None:
        ref = self.next_ref()
        await connection.send(json.dumps({
            "topic": f"realtime:{topic}",
            "event": "phx_join",
            "payload": {
                "config": {
                    "broadcast": {"self": False, "ack": False},
                    "presence": {"key": ""},
                    "postgres_changes": [],
                },
                "access_token": self._api_key,
            },
            "ref": ref,
            "join_ref": ref,
        }))

        async with asyncio.timeout(self._join_timeout):
            while True:
                message = _decode(await connection.recv())
                if message is None:
                    continue
                if message.get("event") == "phx_reply" and message.get("ref") == ref:
                    payload = message.get("payload") or {}
                    if payload.get("status") == "ok":
                        logger.debug(f"Joined realtime:{topic}")
                        return
                    raise AuthenticationError(f"Realtime join rejected for {topic}: {payload.get('response')}")
                on_message(message)


class RealtimeSubscription:
    def __init__(
        self,
        channel: RealtimeBroadcastChannel,
        topic: str,
        event: str,
        on_event: Callable[[dict[str, Any]], None],
        on_error: Callable[[BaseException], None],
    ):
        self._channel = channel
        self._topic = topic
        self._event = event
        self._on_event = on_event
        self._on_error = on_error
        self._connection: Any = None
        self._reader: asyncio.Task | None = None
        self._heartbeat: asyncio.Task | None = None
        self._closed = False

    @property
    def active(self) -> bool:
        return not self._closed

    async def start(self) -> None:
        self._connection = await self._channel.open(self._topic, self._dispatch)
        self._reader = asyncio.create_task(self._read_loop())
        self._heartbeat = asyncio.create_task(self._heartbeat_loop())

    async def unsubscribe(self) -> None:
        if self._closed:
            return
        self._closed = True

        tasks = [t for t in (self._reader, self._heartbeat) if t is not None]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        if self._connection is not None:
            with contextlib.suppress(ConnectionClosed):
                await self._connection.send(json.dumps({
                    "topic": f"realtime:{self._topic}",
                    "event": "phx_leave",
                    "payload": {},
                    "ref": self._channel.next_ref(),
                }))
            await self._connection.close()
            self._connection = None
        logger.debug(f"Left realtime:{self._topic}")

    def _dispatch(self, message: dict[str, Any]) -> None:
        if message.get("topic") != f"realtime:{self._topic}" or message.get("event") != "broadcast":
            return
        body = message.get("payload")
        if not isinstance(body, dict) or body.get("event") != self._event:
            return
        payload = body.get("payload")
        if not isinstance(payload, dict):
            logger.warning(f"Ignoring '{self._event}' broadcast on {self._topic} with a non-object payload")
            return
        self._on_event(payload)

    def _channel_lost(self, message: dict[str, Any]) -> bool:
        return message.get("topic") == f"realtime:{self._topic}" and message.get("event") in ("phx_error", "phx_close")

    async def _read_loop(self) -> None:
        # Consecutive server-side channel errors; any other frame on the topic resets it.
        channel_errors = 0
        while not self._closed:
            try:
                async for raw in self._connection:
                    message = _decode(raw)
                    if message is None:
                        continue
                    if self._channel_lost(message):
                        channel_errors += 1
                        logger.warning(f"Realtime channel {self._topic} reported {message.get('event')}")
                        break
                    if message.get("topic") == f"realtime:{self._topic}":
                        channel_errors = 0
                    self._dispatch(message)
            except ConnectionClosed as ex:
                logger.warning(f"Realtime connection for {self._topic} dropped: {ex}")
            except Exception as ex:
                logger.exception(f"Realtime subscription {self._topic} failed while dispatching")
                self._on_error(ex)
                return

            if self._closed:
                return
            if channel_errors >= self._channel.connect_attempts:
                self._on_error(TransientTransportError(
                    f"Realtime channel {self._topic} reported {channel_errors} consecutive channel errors"
                ))
                return

            with contextlib.suppress(ConnectionClosed):
                await self._connection.close()
            try:
                self._connection = await self._channel.open(self._topic, self._dispatch)
            except GalleryError as ex:
                self._on_error(ex)
                return

    async def _heartbeat_loop(self) -> None:
        while not self._closed:
            await asyncio.sleep(self._channel.heartbeat_interval)
            with contextlib.suppress(ConnectionClosed):
                await self._connection.send(json.dumps({
                    "topic": _PHOENIX_TOPIC,
                    "event": "heartbeat",
                    "payload": {},
                    "ref": self._channel.next_ref(),
                }))


def _decode(raw: str | bytes) -> dict[str, Any] | None:
    try:
        message = json.loads(raw)
    except (TypeError, ValueError):
        logger.debug("Ignoring non-JSON realtime frame")
        return None
    return message if isinstance(message, dict) else None
