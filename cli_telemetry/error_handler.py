"""Unified CLI error handler for cli-telemetry commands."""

from __future__ import annotations

import functools
import logging
import os
import traceback

import typer

from cli_telemetry.errors import ConfigPathError, ConfigSaveError, TelemetryError
from cli_telemetry.ui import console

logger = logging.getLogger("cli_telemetry.error_handler")


def _debug_mode() -> bool:
    """Check if debug output is enabled via CLI_TELEMETRY_DEBUG env var."""
    return os.environ.get("CLI_TELEMETRY_DEBUG", "").lower() in ("1", "true", "yes")


def _render_telemetry_error(e: TelemetryError) -> None:
    """Render a TelemetryError with Rich formatting and context."""
    console.print(f"\n[error]Error:[/error] {e} [muted]({e.code})[/muted]")

    # Context details (only in debug mode)
    if e.context and _debug_mode():
        context_parts = [
            f"  [muted]{key}:[/muted] {value}" for key, value in e.context.items() if value
        ]
        if context_parts:
            console.print("[muted]Context:[/muted]")
            for part in context_parts:
                console.print(part)

    # Actionable hints based on error type
    if isinstance(e, ConfigSaveError):
        console.print("[muted]Check that the config directory exists and is writable, or pass --config.[/muted]")
    elif isinstance(e, ConfigPathError):
        console.print("[muted]Pass --config with the path of the telemetry record.[/muted]")


def _print_traceback() -> None:
    """Print the traceback being handled in debug mode, otherwise say how to get it."""
    if _debug_mode():
        console.print(f"\n[muted]{traceback.format_exc()}[/muted]")
    else:
        console.print("[muted]Set CLI_TELEMETRY_DEBUG=1 for full traceback.[/muted]")


def handle_errors(func):
    """Render failures of a management command and exit non-zero.

    A ``TelemetryError`` exits with its own ``exit_code``; anything else
    is reported as unexpected and exits with 1.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except TelemetryError as e:
            _render_telemetry_error(e)
            _print_traceback()
            raise typer.Exit(e.exit_code)
        except Exception as e:
            logger.debug("Unhandled error in %s", func.__name__, exc_info=True)
            console.print(f"\n[error]Unexpected error:[/error] {e}")
            _print_traceback()
            raise typer.Exit(1)

    return wrapper
