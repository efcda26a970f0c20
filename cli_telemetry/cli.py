"""CLI commands for inspecting and changing telemetry consent."""
from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.panel import Panel

from cli_telemetry import config as config_store
from cli_telemetry.config import TelemetryConfig
from cli_telemetry.consent import COLLECTED, NEVER_COLLECTED
from cli_telemetry.error_handler import handle_errors
from cli_telemetry.settings import Settings
from cli_telemetry.ui import console

app = typer.Typer(
    name="cli-telemetry",
    help="Inspect and change telemetry consent for a CLI tool.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

APP_OPTION = typer.Option(..., "--app", "-a", help="Application name the record belongs to")
CONFIG_OPTION = typer.Option(None, "--config", "-c", help="Explicit path of the telemetry record")


def _resolve_path(app_name: str, config_path: Optional[Path]) -> Path:
    if config_path:
        return config_path
    return config_store.default_config_path(app_name, Settings.from_env().vendor)


def _set_consent(app_name: str, config_path: Optional[Path], enabled: bool) -> TelemetryConfig:
    path = _resolve_path(app_name, config_path)
    config = config_store.read_config(path) or TelemetryConfig(enabled=False, config_path=path)
    config_store.update_consent(config, enabled)
    return config


@app.command()
@handle_errors
def status(app_name: str = APP_OPTION, config_path: Optional[Path] = CONFIG_OPTION):
    """Show telemetry status and what's collected."""
    path = _resolve_path(app_name, config_path)
    config = config_store.read_config(path)

    if config is None:
        status_text = "[warning]not decided yet[/warning]"
    elif config.enabled:
        status_text = "[success]enabled[/success]"
    else:
        status_text = "[error]disabled[/error]"

    lines = [f"Status: {status_text}"]
    if config is not None:
        lines.append(f"Instance ID: {config.instance_id}")
        lines.append(f"Created: {config.created_at.isoformat()}")
    lines.append(f"Config file: {path}")
    lines.append("")
    lines.append("[bold]What we collect:[/bold]")
    for item in COLLECTED:
        lines.append(f"  [success]+[/success] {item}")

    lines.append("")
    lines.append("[bold]What we NEVER collect:[/bold]")
    for item in NEVER_COLLECTED:
        lines.append(f"  [error]-[/error] {item}")

    console.print(Panel("\n".join(lines), title=f"Telemetry: {app_name}", border_style="info"))


@app.command()
@handle_errors
def enable(app_name: str = APP_OPTION, config_path: Optional[Path] = CONFIG_OPTION):
    """Opt in to anonymous telemetry."""
    console.print(f"[bold]Telemetry helps improve {app_name} by collecting:[/bold]")
    for item in COLLECTED:
        console.print(f"  [success]+[/success] {item}")
    console.print()

    config = _set_consent(app_name, config_path, True)
    console.print("[success]Telemetry enabled.[/success] Thank you!")
    console.print(f"[muted]Saved to {config.config_path}[/muted]")


@app.command()
@handle_errors
def disable(app_name: str = APP_OPTION, config_path: Optional[Path] = CONFIG_OPTION):
    """Opt out of telemetry."""
    config = _set_consent(app_name, config_path, False)
    console.print("[warning]Telemetry disabled.[/warning] No data will be collected.")
    console.print(f"[muted]Saved to {config.config_path}[/muted]")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
