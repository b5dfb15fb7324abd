from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from component_gallery_mcp.errors import (
    AuthenticationError,
    GalleryApiError,
    SessionExpiredError,
    SessionNotFoundError,
    TransientTransportError,
)
from component_gallery_mcp.models import GenerationRequest, Session

_GALLERY_PATH = "/api/mcp/component-gallery"
_VALIDATE_PATH = "/api/mcp/validate"
_MAX_ERROR_CHARS = 500


class GalleryClient:
    """Authenticated HTTP client for the remote component generation service."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._api_key = api_key
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> GalleryClient:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def create_session(self, request: GenerationRequest) -> dict[str, Any]:
        data = await self._request("POST", _GALLERY_PATH, json=request.to_payload())
        if not isinstance(data, dict):
            raise GalleryApiError("Generation endpoint returned a non-object body")
        return data

    async def get_session(self, session_id: str) -> Session:
        data = await self._request("GET", f"{_GALLERY_PATH}/{session_id}", session_id=session_id)
        if not isinstance(data, dict):
            raise GalleryApiError("Session endpoint returned a non-object body", session_id=session_id)
        return Session.from_status_response(session_id, data)

    async def validate_api_key(self) -> str | None:
        """Check the configured key with the service. Returns the owning user id, if reported."""
        data = await self._request("POST", _VALIDATE_PATH, json={"apiKey": self._api_key})
        if not isinstance(data, dict) or not data.get("valid"):
            error = data.get("error") if isinstance(data, dict) else None
            raise AuthenticationError(error or "Invalid API key")
        return data.get("userId")

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        session_id: str | None = None,
    ) -> Any:
        logger.debug(f"Gallery API request: {method} {path}")
        try:
            response = await self._client.request(method, path, json=json)
        except httpx.TimeoutException as ex:
            raise TransientTransportError(f"Request to {path} timed out: {ex}", session_id=session_id) from ex
        except httpx.TransportError as ex:
            raise TransientTransportError(f"Request to {path} failed: {ex}", session_id=session_id) from ex

        _raise_for_status(response, path, session_id)

        try:
            return response.json()
        except ValueError as ex:
            raise GalleryApiError(
                f"Invalid JSON from {path}", status_code=response.status_code, session_id=session_id
            ) from ex


def _raise_for_status(response: httpx.Response, path: str, session_id: str | None) -> None:
    status = response.status_code
    if status < 400:
        return

    detail = response.text[:_MAX_ERROR_CHARS]
    logger.debug(f"Gallery API error: HTTP {status} from {path} -- {detail}")

    if status in (401, 403):
        raise AuthenticationError(f"API key rejected (HTTP {status}): {detail}", session_id=session_id)
    if status == 404 and session_id is not None:
        raise SessionNotFoundError(session_id)
    if status == 410 and session_id is not None:
        raise SessionExpiredError(session_id)
    if status == 429 or status >= 500:
        raise TransientTransportError(f"API call failed: {status} - {detail}", session_id=session_id)
    raise GalleryApiError(f"API call failed: {status} - {detail}", status_code=status, session_id=session_id)
