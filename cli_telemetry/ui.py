"""Shared console for cli_telemetry prompts and CLI output."""

from rich.console import Console
from rich.theme import Theme

# ── Theme ──
TELEMETRY_THEME = Theme({
    "info": "cyan",
    "success": "bold green",
    "warning": "yellow",
    "error": "bold red",
    "muted": "dim",
})

console = Console(theme=TELEMETRY_THEME)
