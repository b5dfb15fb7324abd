from __future__ import annotations

import asyncio
import webbrowser
from collections.abc import Callable, Iterable
from typing import Any

from loguru import logger

from component_gallery_mcp.errors import GalleryApiError, ValidationError
from component_gallery_mcp.gallery_client import GalleryClient
from component_gallery_mcp.models import Framework, GallerySession, GenerationRequest, Styling


class RequestDispatcher:
    def __init__(
        self,
        client: GalleryClient,
        base_url: str,
        *,
        allowed_frameworks: Iterable[str] | None = None,
        open_browser: bool = True,
        browser_opener: Callable[[str], bool] = webbrowser.open,
    ):
        self._client = client
        self._base_url = base_url.rstrip("/")
        allowed = allowed_frameworks or [f.value for f in Framework]
        self._allowed_frameworks = tuple(Framework(f) for f in allowed)
        self._open_browser = open_browser
        self._browser_opener = browser_opener

    @property
    def allowed_frameworks(self) -> tuple[Framework, ...]:
        return self._allowed_frameworks

    def validate(self, arguments: dict[str, Any]) -> GenerationRequest:
        description = arguments.get("description")
        if not isinstance(description, str) or not description.strip():
            raise ValidationError("Description is required")

        framework_value = _normalise(arguments.get("framework"), Framework.REACT.value)
        if framework_value not in {f.value for f in self._allowed_frameworks}:
            raise ValidationError(
                f"Unsupported framework {framework_value!r}. "
                f"Allowed: {', '.join(f.value for f in self._allowed_frameworks)}"
            )

        styling_value = _normalise(arguments.get("styling"), Styling.TAILWIND.value)
        try:
            styling = Styling(styling_value)
        except ValueError:
            raise ValidationError(
                f"Unsupported styling {styling_value!r}. Allowed: {', '.join(s.value for s in Styling)}"
            ) from None

        return GenerationRequest(
            description=description.strip(),
            framework=Framework(framework_value),
            styling=styling,
        )

    async def submit(self, request: GenerationRequest) -> GallerySession:
        logger.info(f"Generating component: {request.description} ({request.framework}, {request.styling})")
        data = await self._client.create_session(request)

        session_id = data.get("sessionId")
        if not session_id:
            raise GalleryApiError("Generation endpoint did not return a sessionId")
        session_id = str(session_id)

        gallery_url = self._absolute_url(data.get("galleryUrl") or f"/gallery/{session_id}")
        logger.info(f"Session created: {session_id}")
        return GallerySession(session_id=session_id, gallery_url=gallery_url)

    async def open_gallery(self, gallery_url: str) -> bool:
        """Best-effort browser launch. Never raises."""
        if not self._open_browser:
            return False
        logger.info(f"Opening gallery: {gallery_url}")
        try:
            opened = await asyncio.to_thread(self._browser_opener, gallery_url)
        except Exception as ex:
            logger.warning(f"Failed to open gallery in browser: {ex}")
            return False
        if not opened:
            logger.warning(f"No browser available to open gallery: {gallery_url}")
            return False
        return True

    def _absolute_url(self, url: str) -> str:
        if url.startswith(("http://", "https://")):
            return url
        return f"{self._base_url}/{url.lstrip('/')}"


def _normalise(value: object, default: str) -> str:
    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    return str(value).strip().lower()
