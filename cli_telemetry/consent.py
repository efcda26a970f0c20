"""Telemetry consent resolution - opt-in only, asked once per installation."""
from __future__ import annotations

import logging
import os
import sys

from rich.prompt import Prompt

from cli_telemetry.ui import console

logger = logging.getLogger("cli_telemetry.consent")

# Any of these being set means we are running under a CI system
CI_ENV_VARS = (
    "CI",
    "CONTINUOUS_INTEGRATION",
    "BUILD_NUMBER",
    "GITHUB_ACTIONS",
)

# What we collect (shown to users during opt-in prompt)
COLLECTED = [
    "Basic usage statistics (command and event names)",
    "Error reports (exception type and message)",
    "Platform information (OS, Python version, tool version)",
    "A random installation ID, not linked to you",
]

# What we NEVER collect
NEVER_COLLECTED = [
    "Personal information (names, emails, usernames)",
    "Sensitive configuration (anything named like a key, token or password)",
    "Private keys, credentials or wallet addresses",
    "File contents",
]


def is_ci_environment() -> bool:
    """Check whether a well-known CI indicator variable is set."""
    return any(os.environ.get(name) for name in CI_ENV_VARS)


def _isatty(stream) -> bool:
    if stream is None:
        return False
    try:
        return stream.isatty()
    except (AttributeError, ValueError, OSError):
        # Closed or replaced streams
        return False


def is_interactive() -> bool:
    """True only when both stdin and stdout are terminals and we are not in CI."""
    return _isatty(sys.stdin) and _isatty(sys.stdout) and not is_ci_environment()


def prompt_yes_no(message: str) -> bool:
    """Ask a yes/no question on the terminal.

    Blocks until one line is read. Any answer starting with "y" or "Y"
    counts as yes; everything else, including end of input, is no.
    """
    try:
        answer = Prompt.ask(f"{message} (y/n)", console=console, default="", show_default=False)
    except EOFError:
        logger.debug("No answer on stdin, treating as 'no'")
        return False
    return answer.strip().lower().startswith("y")


def show_consent_notice(app_name: str) -> None:
    """Explain what telemetry would send before asking for consent."""
    console.print(f"Help us improve [bold]{app_name}[/bold] by sending anonymous usage data.")
    console.print("[bold]We collect:[/bold]")
    for item in COLLECTED:
        console.print(f"  [success]+[/success] {item}")
    console.print()
    console.print("[bold]We DO NOT collect:[/bold]")
    for item in NEVER_COLLECTED:
        console.print(f"  [error]-[/error] {item}")
    console.print()
