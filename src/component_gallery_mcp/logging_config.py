import sys
from collections.abc import Iterable
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from loguru import logger

from component_gallery_mcp.errors import ConfigurationError

_REDACTED = "***"


@runtime_checkable
class LogSink(Protocol):
    def attach(self, level: str) -> int: ...
    def describe(self, level: str) -> str: ...


class StderrLogSink:
    # stdout carries the MCP stdio transport; nothing else may write to it.
    def __init__(self, colorize: bool | None = None):
        self._colorize = colorize

    def attach(self, level: str) -> int:
        return logger.add(
            sys.stderr,
            level=level,
            colorize=self._colorize,
            diagnose=False,
            format="<level>{level:<8}</level> | <cyan>{name}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        )

    def describe(self, level: str) -> str:
        return f"stderr ({level})"


class RotatingFileLogSink:
    def __init__(
        self,
        path: str = "logs/component_gallery.log",
        rotation: str = "10 MB",
        retention: int = 3,
    ):
        self._path = Path(path).expanduser()
        self._rotation = rotation
        self._retention = retention

    def attach(self, level: str) -> int:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        return logger.add(
            self._path,
            level=level,
            diagnose=False,
            format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<8} | {name}:{function}:{line} - {message}",
            rotation=self._rotation,
            retention=self._retention,
            enqueue=True,
        )

    def describe(self, level: str) -> str:
        return f"file ({self._path}, {level})"


_SINK_TYPES: dict[str, type] = {
    "console": StderrLogSink,
    "file": RotatingFileLogSink,
}


def _redactor(secrets: Iterable[str]):
    values = [s for s in secrets if s]

    def patch(record: dict[str, Any]) -> None:
        message = record["message"]
        for secret in values:
            message = message.replace(secret, _REDACTED)
        record["message"] = message

    return patch


def setup_logging(
    level: str = "INFO",
    consumers: list[dict[str, Any]] | None = None,
    *,
    secrets: Iterable[str] = (),
) -> list[str]:
    """Replace loguru's default handler with the configured sinks.

    ``consumers`` entries look like ``{"type": "file", "path": ..., "level": ...}``;
    without any, logging goes to stderr only. Occurrences of ``secrets`` in
    messages are masked before any sink sees them. Returns a description of
    each attached sink.
    """
    logger.remove()
    logger.configure(patcher=_redactor(secrets))

    descriptions: list[str] = []
    for config in consumers or [{"type": "console"}]:
        sink_type = config.get("type", "")
        cls = _SINK_TYPES.get(sink_type)
        if cls is None:
            raise ConfigurationError(
                f"Unknown LogConsumers type {sink_type!r}. Supported: {', '.join(_SINK_TYPES)}"
            )

        options = {k: v for k, v in config.items() if k not in ("type", "level")}
        sink_level = str(config.get("level", level)).upper()
        try:
            sink = cls(**options)
        except TypeError as ex:
            raise ConfigurationError(f"Invalid options for {sink_type} log consumer: {ex}") from ex

        sink.attach(sink_level)
        descriptions.append(sink.describe(sink_level))

    return descriptions
