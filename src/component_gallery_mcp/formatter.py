from __future__ import annotations

from component_gallery_mcp.errors import GalleryError
from component_gallery_mcp.models import Framework, GenerationRequest, SelectionResult

STYLE_NAMES = (
    "Modern & Minimalist",
    "Bold & Vibrant",
    "Elegant & Professional",
    "Playful & Colorful",
    "Clean & Simple",
)


def style_name(variation_index: int) -> str:
    if 0 <= variation_index < len(STYLE_NAMES):
        return STYLE_NAMES[variation_index]
    return f"Variation {variation_index + 1}"


def code_fence_language(framework: Framework) -> str:
    return "vue" if framework is Framework.VUE else "tsx"


def format_selection(
    result: SelectionResult,
    request: GenerationRequest,
    session_id: str,
    gallery_url: str,
) -> str:
    framework = request.framework.value
    title = style_name(result.variation_index)
    if result.name:
        title = f"{title} ({result.name})"

    lines = [
        f"**Component Selected: {title}**",
        "",
        f"**{framework.capitalize()} Component Code** ({request.styling.value}):",
        "",
        f"```{code_fence_language(request.framework)}",
        result.code.rstrip("\n"),
        "```",
        "",
    ]

    if result.dependencies:
        lines.append("**Dependencies:**")
        lines.extend(f"- {dep}" for dep in result.dependencies)
        lines.append("")

    lines.extend([
        "**Implementation:**",
        "1. Copy the code above into your project",
        "2. Install dependencies if needed (usually already available)",
        "3. Import and use the component",
        "4. Customize as needed",
        "",
        f"Session: {session_id}",
        f"Gallery: {gallery_url}",
    ])
    return "\n".join(lines)


def format_failure(error: BaseException, gallery_url: str | None = None) -> str:
    message = str(error) or type(error).__name__
    lines = [f"Error: {message}"]

    session_id = error.session_id if isinstance(error, GalleryError) else None
    if session_id and session_id not in message:
        lines.append(f"Session: {session_id}")
    if gallery_url:
        lines.append(f"You can still open the gallery at {gallery_url}")
    return "\n".join(lines)
