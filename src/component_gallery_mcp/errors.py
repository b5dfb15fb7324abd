from __future__ import annotations


class GalleryError(Exception):
    """Base class for every failure surfaced by the component gallery client."""

    def __init__(self, message: str, *, session_id: str | None = None):
        super().__init__(message)
        self.session_id = session_id


class ConfigurationError(GalleryError):
    pass


class ValidationError(GalleryError):
    pass


class AuthenticationError(GalleryError):
    pass


class GalleryApiError(GalleryError):
    def __init__(self, message: str, *, status_code: int | None = None, session_id: str | None = None):
        super().__init__(message, session_id=session_id)
        self.status_code = status_code


class SessionNotFoundError(GalleryError):
    def __init__(self, session_id: str):
        super().__init__(f"Session not found: {session_id}", session_id=session_id)


class SessionExpiredError(GalleryError):
    def __init__(self, session_id: str):
        super().__init__(f"Session expired: {session_id}", session_id=session_id)


class TransientTransportError(GalleryError):
    """Network failure, request timeout or 5xx/429 response. Safe to retry."""


class GalleryUnavailableError(GalleryError):
    def __init__(self, session_id: str, failures: int):
        super().__init__(
            f"Gallery service unavailable for session {session_id} after {failures} consecutive failures",
            session_id=session_id,
        )
        self.failures = failures


class SelectionTimeoutError(GalleryError):
    def __init__(self, session_id: str, timeout_seconds: float):
        super().__init__(
            f"Timeout: no component selected for session {session_id} within {_describe_seconds(timeout_seconds)}",
            session_id=session_id,
        )
        self.timeout_seconds = timeout_seconds


class RemoteGenerationError(GalleryError):
    pass


def _describe_seconds(seconds: float) -> str:
    if seconds >= 3600 and seconds % 3600 == 0:
        hours = int(seconds // 3600)
        return f"{hours} hour" + ("s" if hours != 1 else "")
    if seconds >= 60 and seconds % 60 == 0:
        minutes = int(seconds // 60)
        return f"{minutes} minute" + ("s" if minutes != 1 else "")
    return f"{seconds:g} seconds"
