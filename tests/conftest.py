"""Shared fixtures for cli_telemetry tests."""
import asyncio
import time

import pytest

from cli_telemetry.connectors.base import BaseConnector
from cli_telemetry.consent import CI_ENV_VARS


def run(coro):
    """Helper to run async client methods in sync tests."""
    return asyncio.run(coro)


class FakeConnector(BaseConnector):
    """In-memory connector that records every call.

    ``fail_connect`` is the number of connect attempts that should fail
    (use a large number for "always"). ``fail_send`` makes every send raise.
    """

    def __init__(self, name="fake", fail_connect=0, fail_send=False):
        super().__init__()
        self.name = name
        self.fail_connect = fail_connect
        self.fail_send = fail_send
        self.open_calls = 0
        self.release_calls = 0
        self.sent = []

    def _open(self):
        self.open_calls += 1
        if self.fail_connect > 0:
            self.fail_connect -= 1
            raise ConnectionError(f"{self.name} unreachable")
        return object()

    def _deliver(self, handle, payload):
        if self.fail_send:
            raise RuntimeError(f"{self.name} rejected payload")
        self.sent.append(payload)

    def _release(self, handle):
        self.release_calls += 1


class SlowConnector(FakeConnector):
    """FakeConnector whose open takes long enough for connects to overlap.

    ``handles`` lists every handle that was successfully opened.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.handles = []

    def _open(self):
        time.sleep(0.05)
        handle = super()._open()
        self.handles.append(handle)
        return handle


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Keep tests away from the real home directory and CI variables."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home / ".config"))
    monkeypatch.setattr("pathlib.Path.home", lambda: home)
    for name in CI_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return home


@pytest.fixture
def interactive(monkeypatch):
    """Pretend we run in a terminal and answer the consent prompt.

    Set ``interactive.answer`` to change the reply; ``interactive.prompts``
    counts how often the user was asked.
    """
    from cli_telemetry import consent

    class _Terminal:
        answer = True
        prompts = 0

    terminal = _Terminal()

    def _prompt(message):
        terminal.prompts += 1
        return terminal.answer

    monkeypatch.setattr(consent, "is_interactive", lambda: True)
    monkeypatch.setattr(consent, "prompt_yes_no", _prompt)
    monkeypatch.setattr(consent, "show_consent_notice", lambda app_name: None)
    return terminal


@pytest.fixture
def non_interactive(monkeypatch):
    from cli_telemetry import consent

    monkeypatch.setattr(consent, "is_interactive", lambda: False)


@pytest.fixture
def config_path(tmp_path):
    return tmp_path / "config" / "telemetry.json"


@pytest.fixture
def analytics():
    return FakeConnector("analytics")


@pytest.fixture
def error_reporting():
    return FakeConnector("error_reporting")
