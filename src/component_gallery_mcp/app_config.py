from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

from component_gallery_mcp.errors import ConfigurationError
from component_gallery_mcp.models import Framework

DEFAULT_BASE_URL = "http://localhost:3000"
SELECTION_STRATEGIES = ("poll", "broadcast")


@dataclass
class RuntimeEnv:
    api_key: str
    base_url: str | None
    supabase_url: str | None
    supabase_anon_key: str | None


@dataclass
class AppConfig:
    base_url: str
    selection_strategy: str
    poll_interval_seconds: float
    poll_max_attempts: int
    max_transient_failures: int
    broadcast_timeout_seconds: float
    allowed_frameworks: list[str]
    open_browser: bool
    validate_api_key_on_startup: bool
    request_timeout_seconds: float
    log_level: str
    log_consumers: list | None


def load_json_config() -> dict:
    config_path = Path.cwd() / "config.json"
    if config_path.exists():
        with open(config_path) as f:
            return json.load(f)
    return {}


def _to_bool(value: object, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"1", "true", "yes", "on"}:
            return True
        if lowered in {"0", "false", "no", "off"}:
            return False
    return bool(value)


def parse_app_config(config: dict) -> AppConfig:
    allowed = config.get("AllowedFrameworks") or [f.value for f in Framework]
    return AppConfig(
        base_url=str(config.get("BaseUrl", DEFAULT_BASE_URL)).rstrip("/"),
        selection_strategy=str(config.get("SelectionStrategy", "poll")).strip().lower(),
        poll_interval_seconds=float(config.get("PollIntervalSeconds", 5)),
        poll_max_attempts=int(config.get("PollMaxAttempts", 60)),
        max_transient_failures=int(config.get("MaxTransientFailures", 5)),
        broadcast_timeout_seconds=float(config.get("BroadcastTimeoutSeconds", 3600)),
        allowed_frameworks=[str(f).strip().lower() for f in allowed],
        open_browser=_to_bool(config.get("OpenBrowser", True), default=True),
        validate_api_key_on_startup=_to_bool(config.get("ValidateApiKeyOnStartup", False), default=False),
        request_timeout_seconds=float(config.get("RequestTimeoutSeconds", 30)),
        log_level=config.get("LogLevel", "INFO"),
        log_consumers=config.get("LogConsumers"),
    )


def resolve_runtime_env() -> RuntimeEnv:
    return RuntimeEnv(
        api_key=os.environ.get("ADORABLE_API_KEY", "").strip(),
        base_url=os.environ.get("ADORABLE_BASE_URL") or None,
        supabase_url=os.environ.get("SUPABASE_URL") or None,
        supabase_anon_key=os.environ.get("SUPABASE_ANON_KEY") or None,
    )


def effective_base_url(app: AppConfig, env: RuntimeEnv) -> str:
    return (env.base_url or app.base_url).rstrip("/")


def validate_config(app: AppConfig, env: RuntimeEnv) -> None:
    if not env.api_key:
        raise ConfigurationError("ADORABLE_API_KEY environment variable is required")
    if app.selection_strategy not in SELECTION_STRATEGIES:
        raise ConfigurationError(
            f"Unknown SelectionStrategy {app.selection_strategy!r}. Supported: {', '.join(SELECTION_STRATEGIES)}"
        )
    if app.poll_interval_seconds <= 0 or app.poll_max_attempts <= 0:
        raise ConfigurationError("PollIntervalSeconds and PollMaxAttempts must be positive")
    if app.max_transient_failures < 0:
        raise ConfigurationError("MaxTransientFailures must not be negative")
    if app.broadcast_timeout_seconds <= 0:
        raise ConfigurationError("BroadcastTimeoutSeconds must be positive")
    known = {f.value for f in Framework}
    unknown = [f for f in app.allowed_frameworks if f not in known]
    if unknown or not app.allowed_frameworks:
        raise ConfigurationError(
            f"AllowedFrameworks must be a non-empty subset of {sorted(known)}, got {app.allowed_frameworks}"
        )
    if app.selection_strategy == "broadcast" and not (env.supabase_url and env.supabase_anon_key):
        raise ConfigurationError(
            "SelectionStrategy 'broadcast' requires SUPABASE_URL and SUPABASE_ANON_KEY"
        )
