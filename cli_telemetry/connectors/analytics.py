"""PostHog analytics connector."""
from __future__ import annotations

import logging

from posthog import Posthog

from cli_telemetry.connectors.base import AnalyticsEvent, BaseConnector
from cli_telemetry.errors import ConnectorUnavailableError
from cli_telemetry.settings import Settings

logger = logging.getLogger("cli_telemetry.connectors.analytics")


class PostHogConnector(BaseConnector):
    """Sends usage events to PostHog with a private client instance."""

    name = "analytics"

    def __init__(self, settings: Settings):
        super().__init__()
        self._settings = settings

    def _open(self) -> Posthog:
        if not self._settings.posthog_key:
            raise ConnectorUnavailableError(self.name, "no PostHog project key configured")
        return Posthog(
            project_api_key=self._settings.posthog_key,
            host=self._settings.posthog_host,
            timeout=int(max(1, self._settings.export_timeout)),
        )

    def _deliver(self, handle: Posthog, payload: AnalyticsEvent) -> None:
        handle.capture(
            distinct_id=payload.distinct_id,
            event=payload.name,
            properties=payload.properties,
        )

    def _release(self, handle: Posthog) -> None:
        # shutdown() flushes the queue and joins the consumer threads
        handle.shutdown()
