"""cli_telemetry - opt-in usage analytics and error reporting for CLIs."""

from cli_telemetry.client import Telemetry
from cli_telemetry.config import TelemetryConfig, default_config_path, load_config, update_consent
from cli_telemetry.errors import (
    ConfigPathError,
    ConfigSaveError,
    ConnectorUnavailableError,
    EventTrackingError,
    TelemetryError,
)
from cli_telemetry.sanitize import sanitize
from cli_telemetry.settings import Settings

__version__ = "0.1.0"

__all__ = [
    "ConfigPathError",
    "ConfigSaveError",
    "ConnectorUnavailableError",
    "EventTrackingError",
    "Settings",
    "Telemetry",
    "TelemetryConfig",
    "TelemetryError",
    "default_config_path",
    "load_config",
    "sanitize",
    "update_consent",
]
