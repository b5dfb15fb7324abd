import asyncio
from typing import Any

from loguru import logger

from component_gallery_mcp.dispatcher import RequestDispatcher
from component_gallery_mcp.errors import GalleryError
from component_gallery_mcp.formatter import format_failure, format_selection
from component_gallery_mcp.selection.waiter import SessionWaiter


class GenerateComponentTool:
    def __init__(self, dispatcher: RequestDispatcher, waiter: SessionWaiter):
        self._dispatcher = dispatcher
        self._waiter = waiter

    @property
    def name(self) -> str:
        return "generate_component"

    @property
    def description(self) -> str:
        frameworks = ", ".join(f.value for f in self._dispatcher.allowed_frameworks)
        return (
            "Generate 5 variations of a UI component and open a gallery for selection. "
            "Waits for the user to select their preferred variation and returns its code. "
            f"Frameworks: {frameworks}. Styling: tailwind, css, styled-components."
        )

    async def execute(self, tool_input: dict[str, Any]) -> str:
        gallery_url: str | None = None
        try:
            request = self._dispatcher.validate(tool_input)
            gallery = await self._dispatcher.submit(request)
            gallery_url = gallery.gallery_url

            # The wait is running before the browser opens so an early selection is seen.
            wait_task = asyncio.create_task(self._waiter.wait(gallery.session_id))
            try:
                await self._dispatcher.open_gallery(gallery_url)
                result = await wait_task
            finally:
                if not wait_task.done():
                    wait_task.cancel()
                    await asyncio.wait([wait_task])
        except GalleryError as ex:
            logger.error(f"generate_component failed: {ex}")
            return format_failure(ex, gallery_url)
        except Exception as ex:
            logger.exception(f"generate_component failed unexpectedly: {ex}")
            return format_failure(ex, gallery_url)

        return format_selection(result, request, gallery.session_id, gallery_url)
