"""Connector Protocol and Base Class."""
from __future__ import annotations

import asyncio
import enum
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol, runtime_checkable

from cli_telemetry.errors import ConnectorUnavailableError

logger = logging.getLogger("cli_telemetry.connectors")


class ConnectorState(str, enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    CLOSED = "closed"


@dataclass
class AnalyticsEvent:
    """A usage event bound for the analytics collector."""

    name: str
    distinct_id: str
    properties: dict[str, Any] = field(default_factory=dict)


@dataclass
class ErrorReport:
    """A captured exception plus its scope (extras and static tags)."""

    error: BaseException
    extras: dict[str, Any] = field(default_factory=dict)
    tags: dict[str, str] = field(default_factory=dict)


@runtime_checkable
class BackendConnector(Protocol):
    """Protocol that both telemetry backends must satisfy."""

    name: str

    @property
    def state(self) -> ConnectorState: ...
    def is_connected(self) -> bool: ...
    async def connect(self) -> None: ...
    async def send(self, payload: Any) -> None: ...
    async def close(self) -> None: ...


class BaseConnector:
    """Common base owning at most one SDK handle for a single backend.

    Having no handle is the normal DISCONNECTED state; ``connect()`` can
    be retried any number of times until ``close()`` makes the connector
    CLOSED for good. SDK calls run on a worker thread so the event loop
    never blocks on them.

    Subclasses implement ``_open``, ``_deliver`` and ``_release``.
    """

    name: str = "backend"

    def __init__(self) -> None:
        self._handle: Optional[Any] = None
        self._closed = False
        # connect() may run on several event loops at once (background threads)
        self._lock = threading.Lock()

    @property
    def state(self) -> ConnectorState:
        if self._closed:
            return ConnectorState.CLOSED
        if self._handle is not None:
            return ConnectorState.CONNECTED
        return ConnectorState.DISCONNECTED

    def is_connected(self) -> bool:
        return self._handle is not None

    async def connect(self) -> None:
        """Open the SDK handle. Raises if the backend cannot be reached."""
        if self._closed or self._handle is not None:
            return
        handle = await asyncio.to_thread(self._open)
        with self._lock:
            adopted = not self._closed and self._handle is None
            if adopted:
                self._handle = handle
        if not adopted:
            # closed meanwhile, or a concurrent connect() got there first
            await asyncio.to_thread(self._release, handle)
            return
        logger.debug("Connector '%s' connected", self.name)

    async def send(self, payload: Any) -> None:
        handle = self._handle
        if handle is None:
            raise ConnectorUnavailableError(self.name, "not connected")
        await asyncio.to_thread(self._deliver, handle, payload)

    async def close(self) -> None:
        """Flush and release the handle. Safe to call more than once."""
        with self._lock:
            handle, self._handle = self._handle, None
            self._closed = True
        if handle is not None:
            await asyncio.to_thread(self._release, handle)
            logger.debug("Connector '%s' closed", self.name)

    def _open(self) -> Any:
        """Create the SDK client. Runs on a worker thread."""
        raise NotImplementedError

    def _deliver(self, handle: Any, payload: Any) -> None:
        """Hand one payload to the SDK. Runs on a worker thread."""
        raise NotImplementedError

    def _release(self, handle: Any) -> None:
        """Flush and shut down the SDK client. Runs on a worker thread."""
        raise NotImplementedError
