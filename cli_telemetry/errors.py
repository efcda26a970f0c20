"""Custom exception hierarchy for cli_telemetry.

All library exceptions derive from TelemetryError. Each exception
carries a machine-readable ``code`` and an optional ``context`` dict
with structured metadata (config path, event name, connector name)
that the CLI error handler can render.

Exception hierarchy::

    TelemetryError
    ├── ConfigSaveError
    ├── ConfigPathError
    ├── EventTrackingError
    └── ConnectorUnavailableError
"""
from __future__ import annotations

from typing import Optional


class TelemetryError(Exception):
    """Base class for all cli_telemetry exceptions.

    Args:
        message: Human-readable error description.
        code: Stable machine-readable error code.
        context: Optional dict of structured metadata.
    """

    exit_code: int = 1
    default_code: str = "TELEMETRY_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[dict] = None,
    ):
        self.code = code or self.default_code
        self.context = context or {}
        super().__init__(message)


# ── Config Errors ──────────────────────────────────────────────────

class ConfigSaveError(TelemetryError):
    """Raised when a consent record cannot be written to disk."""

    default_code = "CONFIG_SAVE_ERROR"

    def __init__(self, path: str, reason: str = ""):
        self.path = path
        msg = f"Failed to save telemetry config to {path}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg, context={"path": path})


class ConfigPathError(TelemetryError):
    """Raised when consent is updated on a config with no persistence location."""

    default_code = "CONFIG_PATH_ERROR"

    def __init__(self, message: str = "No config path specified"):
        super().__init__(message)


# ── Dispatch Errors ────────────────────────────────────────────────

class EventTrackingError(TelemetryError):
    """Raised when an analytics event could not be dispatched."""

    default_code = "EVENT_TRACKING_ERROR"

    def __init__(self, event_name: str, reason: str = ""):
        msg = f"Failed to track event '{event_name}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg, context={"event": event_name})


class ConnectorUnavailableError(TelemetryError):
    """Raised when a backend connector cannot be opened or has no live handle."""

    default_code = "CONNECTOR_UNAVAILABLE"

    def __init__(self, connector: str, reason: str = ""):
        msg = f"Connector '{connector}' is unavailable"
        if reason:
            msg += f": {reason}"
        super().__init__(msg, context={"connector": connector})
