"""Error-reporting connector - OpenTelemetry traces exported over OTLP.

Every report becomes one short span: static tags live on the Resource,
per-report extras become ``extra.*`` span attributes and the exception is
attached with ``record_exception``. The TracerProvider is private to the
connector and never installed as the global provider.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.trace import Status, StatusCode, Tracer

from cli_telemetry.connectors.base import BaseConnector, ErrorReport
from cli_telemetry.settings import Settings

logger = logging.getLogger("cli_telemetry.connectors.error_reporting")

_PRIMITIVES = (str, bool, int, float)


def _attribute_value(value: Any) -> Any:
    """Coerce a value into something OpenTelemetry accepts as an attribute."""
    if isinstance(value, _PRIMITIVES):
        return value
    if isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value):
        return list(value)
    return str(value)


@dataclass
class _Reporter:
    provider: TracerProvider
    tracer: Tracer


class OpenTelemetryConnector(BaseConnector):
    """Reports captured exceptions as error spans."""

    name = "error_reporting"

    def __init__(self, settings: Settings, tags: dict[str, str]):
        super().__init__()
        self._settings = settings
        self._tags = dict(tags)

    def _open(self) -> _Reporter:
        resource = Resource.create(
            {
                "service.name": self._tags.get("app", "unknown"),
                "service.version": self._tags.get("version", "unknown"),
                **{key: _attribute_value(value) for key, value in self._tags.items()},
            }
        )
        provider = TracerProvider(resource=resource)

        exporter_kwargs: dict[str, Any] = {"timeout": self._settings.export_timeout}
        if self._settings.otlp_endpoint:
            exporter_kwargs["endpoint"] = self._settings.otlp_endpoint
        exporter = OTLPSpanExporter(**exporter_kwargs)

        provider.add_span_processor(
            BatchSpanProcessor(
                exporter,
                max_queue_size=100,
                max_export_batch_size=50,
                schedule_delay_millis=1000,
            )
        )
        return _Reporter(provider=provider, tracer=provider.get_tracer("cli_telemetry"))

    def _deliver(self, handle: _Reporter, payload: ErrorReport) -> None:
        error = payload.error
        span = handle.tracer.start_span(
            f"{self._tags.get('app', 'cli')}.error",
            attributes={
                **{f"tag.{k}": _attribute_value(v) for k, v in payload.tags.items()},
                **{f"extra.{k}": _attribute_value(v) for k, v in payload.extras.items()},
            },
        )
        try:
            span.record_exception(error)
            span.set_status(Status(StatusCode.ERROR, type(error).__name__))
        finally:
            span.end()

    def _release(self, handle: _Reporter) -> None:
        timeout_millis = int(self._settings.shutdown_timeout * 1000)
        if not handle.provider.force_flush(timeout_millis=timeout_millis):
            logger.debug("Error reports not fully flushed within %sms", timeout_millis)
        handle.provider.shutdown()
