"""Collector settings for cli_telemetry.

Priority (highest to lowest):
1. Explicit ``Settings(...)`` arguments passed by the host application
2. Environment variables (CLI_TELEMETRY_*)
3. Built-in defaults
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from typing import Any, Optional

logger = logging.getLogger("cli_telemetry.settings")

# Default collector values
DEFAULTS: dict[str, Any] = {
    "posthog_key": "",
    "posthog_host": "https://app.posthog.com",
    "otlp_endpoint": None,
    "export_timeout": 2.0,
    "shutdown_timeout": 3.0,
    "vendor": "cli-telemetry",
}

# Mapping of env vars to settings fields
ENV_VAR_MAP = {
    "CLI_TELEMETRY_POSTHOG_KEY": "posthog_key",
    "CLI_TELEMETRY_POSTHOG_HOST": "posthog_host",
    "CLI_TELEMETRY_OTLP_ENDPOINT": "otlp_endpoint",
    "CLI_TELEMETRY_EXPORT_TIMEOUT": "export_timeout",
    "CLI_TELEMETRY_SHUTDOWN_TIMEOUT": "shutdown_timeout",
    "CLI_TELEMETRY_VENDOR": "vendor",
}


@dataclass(frozen=True)
class Settings:
    """Where and how telemetry is delivered.

    ``vendor`` only affects the macOS default config directory
    (``~/Library/Application Support/<vendor>/<app>``).
    """

    posthog_key: str = DEFAULTS["posthog_key"]
    posthog_host: str = DEFAULTS["posthog_host"]
    otlp_endpoint: Optional[str] = DEFAULTS["otlp_endpoint"]
    export_timeout: float = DEFAULTS["export_timeout"]
    shutdown_timeout: float = DEFAULTS["shutdown_timeout"]
    vendor: str = DEFAULTS["vendor"]

    @classmethod
    def from_env(cls, **overrides: Any) -> "Settings":
        """Build settings from defaults, env vars, then explicit overrides."""
        values = dict(DEFAULTS)
        for env_var, name in ENV_VAR_MAP.items():
            raw = os.environ.get(env_var)
            if raw is None or raw == "":
                continue
            values[name] = _coerce(name, raw)

        known = {f.name for f in fields(cls)}
        for name, value in overrides.items():
            if name not in known:
                raise TypeError(f"Unknown telemetry setting: {name}")
            values[name] = value
        return cls(**values)


def _coerce(name: str, raw: str) -> Any:
    """Convert an env var string to the type of its default."""
    default = DEFAULTS[name]
    if isinstance(default, float):
        try:
            value = float(raw)
        except ValueError:
            logger.warning("Ignoring invalid value %r for %s", raw, name)
            return default
        if value <= 0:
            logger.warning("Ignoring non-positive value %r for %s", raw, name)
            return default
        return value
    return raw
