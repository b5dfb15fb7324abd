from __future__ import annotations

from dataclasses import dataclass

import httpx
from loguru import logger

from component_gallery_mcp.app_config import AppConfig, RuntimeEnv, effective_base_url
from component_gallery_mcp.dispatcher import RequestDispatcher
from component_gallery_mcp.gallery_client import GalleryClient
from component_gallery_mcp.selection.broadcast import BroadcastSelectionSource
from component_gallery_mcp.selection.polling import PollingSelectionSource
from component_gallery_mcp.selection.realtime_channel import RealtimeBroadcastChannel
from component_gallery_mcp.selection.source import BroadcastChannel, SelectionSource
from component_gallery_mcp.selection.waiter import SessionWaiter
from component_gallery_mcp.tools.generate_component_tool import GenerateComponentTool


@dataclass
class AppRuntime:
    client: GalleryClient
    tool: GenerateComponentTool
    strategy: str
    validate_api_key_on_startup: bool = False

    async def startup(self) -> None:
        if self.validate_api_key_on_startup:
            user_id = await self.client.validate_api_key()
            logger.info(f"API key validated (user: {user_id or 'unknown'})")

    async def close(self) -> None:
        await self.client.close()


def create_selection_source(
    app: AppConfig,
    env: RuntimeEnv,
    client: GalleryClient,
    *,
    channel: BroadcastChannel | None = None,
) -> SelectionSource:
    if app.selection_strategy == "broadcast":
        if channel is None:
            channel = RealtimeBroadcastChannel(
                env.supabase_url or "",
                env.supabase_anon_key or "",
                connect_attempts=app.max_transient_failures + 1,
            )
        return BroadcastSelectionSource(channel, timeout_seconds=app.broadcast_timeout_seconds)
    return PollingSelectionSource(
        client,
        poll_interval_seconds=app.poll_interval_seconds,
        max_attempts=app.poll_max_attempts,
        max_transient_failures=app.max_transient_failures,
    )


def build_runtime(
    app: AppConfig,
    env: RuntimeEnv,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
    channel: BroadcastChannel | None = None,
) -> AppRuntime:
    """Wire client, dispatcher, waiter and tool from validated configuration."""
    base_url = effective_base_url(app, env)
    client = GalleryClient(base_url, env.api_key, timeout=app.request_timeout_seconds, transport=transport)
    dispatcher = RequestDispatcher(
        client,
        base_url,
        allowed_frameworks=app.allowed_frameworks,
        open_browser=app.open_browser,
    )
    waiter = SessionWaiter(create_selection_source(app, env, client, channel=channel))
    return AppRuntime(
        client=client,
        tool=GenerateComponentTool(dispatcher, waiter),
        strategy=app.selection_strategy,
        validate_api_key_on_startup=app.validate_api_key_on_startup,
    )
