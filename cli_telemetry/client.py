"""Telemetry client - consent-gated, best-effort, designed for short-lived CLIs.

Key constraints:
- Zero overhead when disabled (no SDK client is ever created)
- A broken collector never crashes or hangs the host: connection and
  error-report failures are logged, never raised
- Broken connectors heal lazily: one reconnection attempt at the start of
  the next call that needs them, events are dropped rather than queued
- Only an explicit ``track_event`` dispatch failure reaches the caller
"""
from __future__ import annotations

import asyncio
import logging
import platform
import sys
import threading
from collections.abc import Coroutine, Mapping
from pathlib import Path
from typing import Any, Optional, Union

from cli_telemetry import config as config_store
from cli_telemetry.config import TelemetryConfig
from cli_telemetry.connectors import (
    AnalyticsEvent,
    BackendConnector,
    ConnectorState,
    ErrorReport,
    OpenTelemetryConnector,
    PostHogConnector,
)
from cli_telemetry.errors import ConfigSaveError, EventTrackingError
from cli_telemetry.sanitize import sanitize
from cli_telemetry.settings import Settings

logger = logging.getLogger("cli_telemetry.client")


def _get_version(app_name: str) -> str:
    """Get the host application's installed version safely."""
    try:
        from importlib.metadata import version

        return version(app_name)
    except Exception:
        return "unknown"


class Telemetry:
    """Usage analytics and error reporting for one CLI process.

    Use :meth:`initialize` rather than the constructor; it resolves consent
    and opens the collectors. Call :meth:`shutdown` before the process exits.

    Not thread-safe: callers serialize access to an instance.
    """

    def __init__(
        self,
        config: TelemetryConfig,
        app_name: str = "unknown",
        settings: Optional[Settings] = None,
        *,
        version: Optional[str] = None,
        analytics: Optional[BackendConnector] = None,
        error_reporting: Optional[BackendConnector] = None,
    ):
        self._config = config
        self._app_name = app_name
        self._settings = settings or Settings.from_env()
        self._version = version or _get_version(app_name)
        self._analytics = analytics or PostHogConnector(self._settings)
        self._error_reporting = error_reporting or OpenTelemetryConnector(
            self._settings, tags=self._tags()
        )
        self._tasks: set[asyncio.Task] = set()
        self._threads: set[threading.Thread] = set()
        self._reconnect_pending = False
        self._shut_down = False

    @classmethod
    async def initialize(
        cls,
        app_name: str,
        custom_config_path: Optional[Union[str, Path]] = None,
        settings: Optional[Settings] = None,
        *,
        version: Optional[str] = None,
        analytics: Optional[BackendConnector] = None,
        error_reporting: Optional[BackendConnector] = None,
    ) -> "Telemetry":
        """Load consent for ``app_name`` and connect the collectors if enabled.

        Always returns a usable client. If the first-run consent answer
        cannot be saved, telemetry stays disabled for this process.
        """
        settings = settings or Settings.from_env()
        try:
            config = config_store.load_config(app_name, custom_config_path, vendor=settings.vendor)
        except ConfigSaveError as e:
            logger.warning("%s; telemetry disabled for this run", e)
            config = TelemetryConfig(enabled=False, config_path=Path(e.path))

        telemetry = cls(
            config,
            app_name,
            settings,
            version=version,
            analytics=analytics,
            error_reporting=error_reporting,
        )
        if config.enabled:
            await telemetry._connect_all()
        return telemetry

    # ── State ──────────────────────────────────────────────────────

    @property
    def config(self) -> TelemetryConfig:
        return self._config

    @property
    def enabled(self) -> bool:
        return self._config.enabled

    @property
    def app_name(self) -> str:
        return self._app_name

    @property
    def version(self) -> str:
        return self._version

    def states(self) -> dict[str, ConnectorState]:
        """Current state of each connector, keyed by connector name."""
        return {
            self._analytics.name: self._analytics.state,
            self._error_reporting.name: self._error_reporting.state,
        }

    def _tags(self) -> dict[str, str]:
        return {
            "app": self._app_name,
            "platform": sys.platform,
            "version": self._version,
        }

    # ── Connections ────────────────────────────────────────────────

    async def _connect(self, connector: BackendConnector) -> bool:
        """Make one connection attempt if needed; report whether it is connected."""
        if self._shut_down or not self._config.enabled or connector.is_connected():
            return connector.is_connected()
        try:
            await connector.connect()
        except Exception as e:
            logger.warning("Failed to connect to %s collector: %s", connector.name, e)
            logger.debug("Connection failure details", exc_info=True)
        return connector.is_connected()

    async def _connect_all(self) -> None:
        await asyncio.gather(
            self._connect(self._analytics),
            self._connect(self._error_reporting),
        )

    # ── Background work ────────────────────────────────────────────

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> None:
        """Run ``coro`` without making the caller wait for it."""
        if self._shut_down:
            coro.close()
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Synchronous host: give the work its own loop on a daemon thread
            thread = threading.Thread(
                target=self._run_in_thread, args=(coro,), name="cli-telemetry", daemon=True
            )
            self._threads.add(thread)
            thread.start()
            return
        task = loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _run_in_thread(self, coro: Coroutine[Any, Any, Any]) -> None:
        try:
            asyncio.run(coro)
        finally:
            self._threads.discard(threading.current_thread())

    async def flush(self, timeout: Optional[float] = None) -> None:
        """Wait (bounded) for fire-and-forget work started by this client."""
        timeout = timeout if timeout is not None else self._settings.shutdown_timeout
        loop = asyncio.get_running_loop()
        tasks = [t for t in self._tasks if not t.done() and t.get_loop() is loop]
        if tasks:
            _, pending = await asyncio.wait(tasks, timeout=timeout)
            if pending:
                logger.debug("%d telemetry task(s) still running after %ss", len(pending), timeout)

        # finished threads remove themselves, so work on a snapshot
        for thread in list(self._threads):
            await asyncio.to_thread(thread.join, timeout)

    # ── Public API ─────────────────────────────────────────────────

    async def track_event(self, name: str, properties: Optional[Mapping[str, Any]] = None) -> None:
        """Send a usage event to the analytics collector.

        Dropped silently when disabled or when the collector stays
        unreachable after one reconnection attempt.

        Raises:
            EventTrackingError: the collector was connected but dispatch failed.
        """
        if not self._config.enabled:
            return

        if not self._analytics.is_connected():
            if not await self._connect(self._analytics):
                logger.debug("Analytics unavailable, dropping event '%s'", name)
                return

        enriched = {
            **sanitize(properties),
            "distinct_id": self._config.instance_id,
            "platform": sys.platform,
            "version": self._version,
            "runtime_version": platform.python_version(),
        }
        event = AnalyticsEvent(name=name, distinct_id=self._config.instance_id, properties=enriched)
        try:
            await self._analytics.send(event)
        except Exception as e:
            raise EventTrackingError(name, str(e)) from e

    def track_error(self, error: BaseException, context: Optional[Mapping[str, Any]] = None) -> None:
        """Report an exception in the background. Never raises, never blocks.

        If the error collector is not connected, a reconnection is started
        and this report is dropped.
        """
        if not self._config.enabled:
            return

        if not self._error_reporting.is_connected():
            if not self._reconnect_pending:
                self._reconnect_pending = True
                self._spawn(self._reconnect_error_reporting())
            logger.debug("Error reporting unavailable, dropping %s", type(error).__name__)
            return

        report = ErrorReport(
            error=error,
            extras={
                **sanitize(context),
                "platform": sys.platform,
                "version": self._version,
                "instance_id": self._config.instance_id,
            },
            tags=self._tags(),
        )
        self._spawn(self._dispatch_error(report))

    async def _reconnect_error_reporting(self) -> None:
        try:
            await self._connect(self._error_reporting)
        finally:
            self._reconnect_pending = False

    async def _dispatch_error(self, report: ErrorReport) -> None:
        try:
            await self._error_reporting.send(report)
        except Exception as e:
            logger.warning("Failed to report %s: %s", type(report.error).__name__, e)
            logger.debug("Error report failure details", exc_info=True)

    async def update_consent(self, enabled: bool) -> None:
        """Persist a new consent choice and apply it to this process.

        Enabling connects both collectors straight away. Disabling leaves
        them open but idle.

        Raises:
            ConfigPathError: the config has nowhere to be saved.
            ConfigSaveError: the config file could not be written.
        """
        config_store.update_consent(self._config, enabled)
        if enabled:
            await self._connect_all()

    async def shutdown(self) -> None:
        """Flush and close every open connector. Safe to call more than once."""
        if self._shut_down:
            return
        await self.flush()
        self._shut_down = True

        for connector in (self._analytics, self._error_reporting):
            if not connector.is_connected():
                continue
            try:
                await connector.close()
            except Exception as e:
                logger.warning("Failed to close %s collector: %s", connector.name, e)
