"""Backend connectors for the analytics and error-reporting collectors."""

from cli_telemetry.connectors.analytics import PostHogConnector
from cli_telemetry.connectors.base import (
    AnalyticsEvent,
    BackendConnector,
    BaseConnector,
    ConnectorState,
    ErrorReport,
)
from cli_telemetry.connectors.error_reporting import OpenTelemetryConnector

__all__ = [
    "AnalyticsEvent",
    "BackendConnector",
    "BaseConnector",
    "ConnectorState",
    "ErrorReport",
    "OpenTelemetryConnector",
    "PostHogConnector",
]
