from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from component_gallery_mcp.errors import GalleryApiError

VARIATION_COUNT = 5


class Framework(StrEnum):
    REACT = "react"
    VUE = "vue"
    ANGULAR = "angular"


class Styling(StrEnum):
    TAILWIND = "tailwind"
    CSS = "css"
    STYLED_COMPONENTS = "styled-components"


class SessionStatus(StrEnum):
    PENDING = "pending"
    GENERATING = "generating"
    COMPLETED = "completed"
    SELECTED = "selected"
    EXPIRED = "expired"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: object) -> SessionStatus:
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            return cls.UNKNOWN


class VariationStatus(StrEnum):
    GENERATING = "generating"
    READY = "ready"
    FAILED = "failed"

    @classmethod
    def parse(cls, value: object) -> VariationStatus:
        text = str(value or "").strip().lower()
        if text == "completed":
            return cls.READY
        try:
            return cls(text)
        except ValueError:
            return cls.GENERATING


@dataclass(frozen=True)
class GenerationRequest:
    description: str
    framework: Framework = Framework.REACT
    styling: Styling = Styling.TAILWIND

    def to_payload(self) -> dict[str, str]:
        return {
            "description": self.description,
            "framework": self.framework.value,
            "styling": self.styling.value,
        }


@dataclass(frozen=True)
class GallerySession:
    session_id: str
    gallery_url: str


@dataclass(frozen=True)
class Variation:
    id: str
    index: int
    status: VariationStatus
    code: str = ""
    name: str = ""
    description: str = ""
    dependencies: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Variation:
        return cls(
            id=str(data.get("id", "")),
            index=int(data.get("variationIndex", data.get("sandboxIndex", 0)) or 0),
            status=VariationStatus.parse(data.get("status")),
            code=data.get("code") or data.get("componentCode") or "",
            name=data.get("name") or data.get("componentName") or "",
            description=data.get("description") or data.get("componentDescription") or "",
            dependencies=tuple(data.get("dependencies") or ()),
        )


@dataclass(frozen=True)
class Session:
    id: str
    status: SessionStatus
    selected_variation_id: str | None = None
    created_at: str | None = None
    expires_at: str | None = None
    variations: tuple[Variation, ...] = ()

    @classmethod
    def from_status_response(cls, session_id: str, data: dict[str, Any]) -> Session:
        session = data.get("session") or {}
        raw_variations = data.get("variations") or []
        if not isinstance(session, dict) or not isinstance(raw_variations, list):
            raise GalleryApiError("Malformed session status response", session_id=session_id)
        try:
            variations = sorted((Variation.from_dict(v) for v in raw_variations), key=lambda v: v.index)
        except (AttributeError, TypeError, ValueError) as ex:
            raise GalleryApiError(f"Malformed variation in session status response: {ex}", session_id=session_id) from ex
        return cls(
            id=str(session.get("id") or session_id),
            status=SessionStatus.parse(session.get("status")),
            selected_variation_id=session.get("selectedVariationId") or None,
            created_at=session.get("createdAt"),
            expires_at=session.get("expiresAt"),
            variations=tuple(variations),
        )

    def selected_variation(self) -> Variation | None:
        if not self.selected_variation_id:
            return None
        return next((v for v in self.variations if v.id == self.selected_variation_id), None)

    def ready_count(self) -> int:
        return sum(1 for v in self.variations if v.status is VariationStatus.READY)

    def failed_count(self) -> int:
        return sum(1 for v in self.variations if v.status is VariationStatus.FAILED)


@dataclass(frozen=True)
class SelectionResult:
    code: str
    variation_index: int
    variation_id: str | None = None
    name: str = ""
    dependencies: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_variation(cls, variation: Variation) -> SelectionResult:
        if not 0 <= variation.index < VARIATION_COUNT:
            raise ValueError(f"variation index out of range: {variation.index}")
        return cls(
            code=variation.code,
            variation_index=variation.index,
            variation_id=variation.id or None,
            name=variation.name,
            dependencies=variation.dependencies,
        )

    @classmethod
    def from_event_payload(cls, payload: dict[str, Any]) -> SelectionResult:
        """Build a result from a broadcast ``component_selected`` payload.

        Raises ValueError when the payload is not an object, has no code, has an
        out-of-range index or has dependencies that are not a list of strings.
        """
        if not isinstance(payload, dict):
            raise ValueError(f"selection payload is not an object: {type(payload).__name__}")
        code = payload.get("code") or payload.get("componentCode") or ""
        if not isinstance(code, str) or not code.strip():
            raise ValueError("selection payload has no code")
        raw_index = payload.get("variationIndex", payload.get("sandboxIndex"))
        try:
            index = int(raw_index)
        except (TypeError, ValueError):
            raise ValueError(f"selection payload has invalid variation index: {raw_index!r}") from None
        if not 0 <= index < VARIATION_COUNT:
            raise ValueError(f"variation index out of range: {index}")
        dependencies = payload.get("dependencies") or ()
        if not isinstance(dependencies, (list, tuple)) or not all(isinstance(d, str) for d in dependencies):
            raise ValueError(f"selection payload has invalid dependencies: {dependencies!r}")
        variation_id = payload.get("variationId") or payload.get("componentId")
        return cls(
            code=code,
            variation_index=index,
            variation_id=str(variation_id) if variation_id else None,
            name=payload.get("componentName") or payload.get("name") or "",
            dependencies=tuple(dependencies),
        )
