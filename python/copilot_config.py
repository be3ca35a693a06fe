"""Settings for the completion engine, read from host settings and the environment."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from ollama_transport import DEFAULT_API_HOST, DEFAULT_DEBUG_LOG

SETTINGS_NAMESPACE = "ollama"


class ConfigError(RuntimeError):
    """Raised when a settings file cannot be parsed."""


@dataclass
class CopilotConfig:
    """Recognized options; ``default_model`` must be set before any request is sent."""

    default_model: Optional[str] = None
    api_host: str = DEFAULT_API_HOST
    options: Dict[str, Any] = field(default_factory=dict)
    debug: bool = False
    debug_log_file: str = DEFAULT_DEBUG_LOG


def _setting(settings: Mapping[str, Any], key: str) -> Any:
    """Look up ``ollama.<key>``, a nested ``ollama`` mapping, or the bare key."""
    dotted = f"{SETTINGS_NAMESPACE}.{key}"
    if dotted in settings:
        return settings[dotted]
    nested = settings.get(SETTINGS_NAMESPACE)
    if isinstance(nested, Mapping) and key in nested:
        return nested[key]
    return settings.get(key)


def _as_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def load_config(settings: Optional[Mapping[str, Any]] = None, env: Optional[Mapping[str, str]] = None) -> CopilotConfig:
    """Merge host settings with ``OLLAMA_*`` environment variables; settings win."""
    settings = settings or {}
    env = os.environ if env is None else env

    options = _setting(settings, "options")
    if options is not None and not isinstance(options, Mapping):
        raise ConfigError("ollama.options must be a mapping")

    debug = _setting(settings, "debug")
    return CopilotConfig(
        default_model=_as_str(_setting(settings, "defaultModel")) or _as_str(env.get("OLLAMA_COPILOT_MODEL")),
        api_host=_as_str(_setting(settings, "apiHost")) or _as_str(env.get("OLLAMA_HOST")) or DEFAULT_API_HOST,
        options=dict(options or {}),
        debug=_as_bool(debug) if debug is not None else env.get("OLLAMA_COPILOT_DEBUG", "") == "1",
        debug_log_file=_as_str(_setting(settings, "debugLogFile"))
        or _as_str(env.get("OLLAMA_COPILOT_DEBUG_LOG"))
        or DEFAULT_DEBUG_LOG,
    )


def load_config_file(path: Path, env: Optional[Mapping[str, str]] = None) -> CopilotConfig:
    """Load a JSON settings file; a missing file yields defaults."""
    if not path.exists():
        return load_config({}, env)

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Failed to parse {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain an object at the root")
    return load_config(data, env)


__all__ = ["ConfigError", "CopilotConfig", "load_config", "load_config_file"]
