"""Persisted telemetry consent and installation identity.

One small JSON record per application::

    {
      "enabled": true,
      "instanceId": "6f1c...",
      "createdAt": "2026-01-01T12:00:00+00:00",
      "configPath": "/home/me/.config/mytool/telemetry.json"
    }

The record is created on first run. Interactive runs ask for consent and
persist the answer; non-interactive runs (pipes, CI) get a disabled record
that is never written unless the caller persists it explicitly.
"""
from __future__ import annotations

import json
import logging
import os
import sys
import tempfile
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from cli_telemetry import consent
from cli_telemetry.errors import ConfigPathError, ConfigSaveError
from cli_telemetry.settings import DEFAULTS

logger = logging.getLogger("cli_telemetry.config")

CONFIG_FILENAME = "telemetry.json"

PathLike = Union[str, Path]


@dataclass
class TelemetryConfig:
    """Consent flag plus the stable anonymous identity of this installation."""

    enabled: bool
    instance_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    config_path: Optional[Path] = None

    def to_dict(self) -> dict:
        return {
            "enabled": self.enabled,
            "instanceId": self.instance_id,
            "createdAt": self.created_at.isoformat(),
            "configPath": str(self.config_path) if self.config_path else "",
        }

    @classmethod
    def from_dict(cls, data: dict, config_path: Optional[Path] = None) -> "TelemetryConfig":
        """Build a config from its JSON form.

        Raises ValueError/TypeError/KeyError on malformed records.
        """
        enabled = data["enabled"]
        instance_id = data["instanceId"]
        if not isinstance(enabled, bool):
            raise TypeError("'enabled' must be a boolean")
        if not isinstance(instance_id, str) or not instance_id:
            raise TypeError("'instanceId' must be a non-empty string")
        raw_created = data["createdAt"]
        if isinstance(raw_created, str) and raw_created.endswith("Z"):
            raw_created = raw_created[:-1] + "+00:00"
        created_at = datetime.fromisoformat(raw_created)
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        return cls(
            enabled=enabled,
            instance_id=instance_id,
            created_at=created_at,
            config_path=config_path,
        )


def default_config_path(app_name: str, vendor: str = DEFAULTS["vendor"]) -> Path:
    """Return the per-user location of the telemetry record for ``app_name``."""
    home = Path.home()
    if sys.platform == "darwin":
        config_dir = home / "Library" / "Application Support" / vendor / app_name
    elif sys.platform == "win32":
        appdata = os.environ.get("APPDATA")
        base = Path(appdata) if appdata else home / "AppData" / "Roaming"
        config_dir = base / app_name
    else:
        xdg = os.environ.get("XDG_CONFIG_HOME")
        base = Path(xdg) if xdg else home / ".config"
        config_dir = base / app_name
    return config_dir / CONFIG_FILENAME


def read_config(path: PathLike) -> Optional[TelemetryConfig]:
    """Read a record from disk, returning None if missing or unusable."""
    path = Path(path)
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise TypeError("config root must be an object")
        return TelemetryConfig.from_dict(data, config_path=path)
    except OSError as e:
        logger.warning("Failed to read %s: %s", path, e)
    except (ValueError, TypeError, KeyError) as e:
        logger.warning("Ignoring malformed telemetry config %s: %s", path, e)
    return None


def _write_atomic(path: Path, payload: str) -> None:
    """Write to a temp file beside ``path`` and rename it into place."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(payload)
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise


def save_config(config: TelemetryConfig) -> None:
    """Persist ``config`` to its own ``config_path``."""
    if not config.config_path:
        raise ConfigPathError()
    _save_record(config.config_path, config.to_dict())


def _save_record(path: Path, record: dict) -> None:
    try:
        _write_atomic(path, json.dumps(record, indent=2) + "\n")
    except OSError as e:
        raise ConfigSaveError(str(path), str(e)) from e
    logger.debug("Saved telemetry config to %s", path)


def load_config(
    app_name: str,
    custom_path: Optional[PathLike] = None,
    vendor: str = DEFAULTS["vendor"],
) -> TelemetryConfig:
    """Load the record for ``app_name``, creating one on first run.

    A missing, unreadable or corrupted file is never fatal: it is treated
    as a first run. Raises ConfigSaveError if the user's answer cannot be
    persisted.
    """
    path = Path(custom_path) if custom_path else default_config_path(app_name, vendor)

    existing = read_config(path)
    if existing is not None:
        return existing

    if not consent.is_interactive():
        logger.debug("Non-interactive first run, telemetry disabled for this process")
        return TelemetryConfig(enabled=False, config_path=path)

    consent.show_consent_notice(app_name)
    enabled = consent.prompt_yes_no("Would you like to enable telemetry?")

    config = TelemetryConfig(enabled=enabled, config_path=path)
    save_config(config)
    logger.info("Telemetry %s", "enabled" if enabled else "disabled")
    return config


def update_consent(config: TelemetryConfig, enabled: bool) -> None:
    """Change the consent flag and rewrite the record at ``config.config_path``.

    The in-memory flag only changes once the write succeeded.
    """
    if not config.config_path:
        raise ConfigPathError()

    record = config.to_dict()
    record["enabled"] = enabled
    _save_record(config.config_path, record)
    config.enabled = enabled
    logger.info("Telemetry %s", "enabled" if enabled else "disabled")
