"""Tests for the telemetry config store."""

import json
import sys
import uuid
from datetime import datetime, timezone
from pathlib import Path

import pytest

from cli_telemetry.config import (
    CONFIG_FILENAME,
    TelemetryConfig,
    default_config_path,
    load_config,
    read_config,
    save_config,
    update_consent,
)
from cli_telemetry.errors import ConfigPathError, ConfigSaveError


# ─── Record format ───


class TestTelemetryConfig:
    def test_new_config_has_uuid(self):
        config = TelemetryConfig(enabled=False)
        assert uuid.UUID(config.instance_id)
        assert config.created_at.tzinfo is not None

    def test_ids_are_unique(self):
        assert TelemetryConfig(enabled=False).instance_id != TelemetryConfig(enabled=False).instance_id

    def test_to_dict_field_names(self, config_path):
        config = TelemetryConfig(enabled=True, config_path=config_path)
        data = config.to_dict()
        assert set(data) == {"enabled", "instanceId", "createdAt", "configPath"}
        assert data["configPath"] == str(config_path)
        assert datetime.fromisoformat(data["createdAt"]) == config.created_at

    def test_from_dict_accepts_z_suffix(self):
        config = TelemetryConfig.from_dict(
            {"enabled": True, "instanceId": "abc", "createdAt": "2024-03-01T10:00:00.000Z"}
        )
        assert config.created_at == datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc)

    def test_from_dict_rejects_bad_enabled(self):
        with pytest.raises(TypeError):
            TelemetryConfig.from_dict({"enabled": "yes", "instanceId": "abc", "createdAt": "2024-03-01"})


class TestDefaultConfigPath:
    def test_linux_uses_xdg(self, monkeypatch, tmp_path):
        monkeypatch.setattr(sys, "platform", "linux")
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
        assert default_config_path("mytool") == tmp_path / "xdg" / "mytool" / CONFIG_FILENAME

    def test_linux_without_xdg(self, monkeypatch, isolated_env):
        monkeypatch.setattr(sys, "platform", "linux")
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
        assert default_config_path("mytool") == isolated_env / ".config" / "mytool" / CONFIG_FILENAME

    def test_macos(self, monkeypatch, isolated_env):
        monkeypatch.setattr(sys, "platform", "darwin")
        path = default_config_path("mytool", vendor="acme")
        assert path == isolated_env / "Library" / "Application Support" / "acme" / "mytool" / CONFIG_FILENAME

    def test_windows(self, monkeypatch, tmp_path):
        monkeypatch.setattr(sys, "platform", "win32")
        monkeypatch.setenv("APPDATA", str(tmp_path / "Roaming"))
        assert default_config_path("mytool") == tmp_path / "Roaming" / "mytool" / CONFIG_FILENAME


# ─── Reading and writing ───


class TestReadConfig:
    def test_missing_file(self, config_path):
        assert read_config(config_path) is None

    def test_corrupted_json(self, config_path):
        config_path.parent.mkdir(parents=True)
        config_path.write_text("{not json")
        assert read_config(config_path) is None

    def test_wrong_root_type(self, config_path):
        config_path.parent.mkdir(parents=True)
        config_path.write_text("[1, 2]")
        assert read_config(config_path) is None

    def test_missing_fields(self, config_path):
        config_path.parent.mkdir(parents=True)
        config_path.write_text(json.dumps({"enabled": True}))
        assert read_config(config_path) is None

    def test_path_comes_from_location_not_content(self, config_path):
        config_path.parent.mkdir(parents=True)
        config_path.write_text(json.dumps({
            "enabled": True,
            "instanceId": "abc",
            "createdAt": "2024-01-01T00:00:00+00:00",
            "configPath": "/somewhere/else.json",
        }))
        config = read_config(config_path)
        assert config.config_path == config_path


class TestSaveConfig:
    def test_creates_parent_dirs(self, tmp_path):
        path = tmp_path / "a" / "b" / "telemetry.json"
        save_config(TelemetryConfig(enabled=True, config_path=path))
        assert json.loads(path.read_text())["enabled"] is True

    def test_leaves_no_temp_files(self, config_path):
        save_config(TelemetryConfig(enabled=True, config_path=config_path))
        assert [p.name for p in config_path.parent.iterdir()] == [CONFIG_FILENAME]

    def test_requires_path(self):
        with pytest.raises(ConfigPathError):
            save_config(TelemetryConfig(enabled=True))

    def test_write_failure(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("a file, not a directory")
        with pytest.raises(ConfigSaveError) as exc_info:
            save_config(TelemetryConfig(enabled=True, config_path=blocker / "telemetry.json"))
        assert exc_info.value.path == str(blocker / "telemetry.json")


# ─── load_config ───


class TestLoadConfig:
    def test_non_interactive_first_run(self, non_interactive, config_path):
        config = load_config("tool", config_path)
        assert config.enabled is False
        assert uuid.UUID(config.instance_id)
        assert config.config_path == config_path
        assert not config_path.exists()

    def test_non_interactive_runs_get_fresh_ids(self, non_interactive, config_path):
        first = load_config("tool", config_path)
        second = load_config("tool", config_path)
        assert first.instance_id != second.instance_id

    def test_interactive_yes_persists(self, interactive, config_path):
        config = load_config("tool", config_path)
        assert config.enabled is True
        data = json.loads(config_path.read_text())
        assert data["enabled"] is True
        assert data["instanceId"] == config.instance_id
        assert data["configPath"] == str(config_path)

    def test_interactive_no_persists(self, interactive, config_path):
        interactive.answer = False
        config = load_config("tool", config_path)
        assert config.enabled is False
        assert json.loads(config_path.read_text())["enabled"] is False

    def test_reload_does_not_prompt_again(self, interactive, config_path):
        first = load_config("tool", config_path)
        second = load_config("tool", config_path)
        assert interactive.prompts == 1
        assert second.enabled == first.enabled
        assert second.instance_id == first.instance_id
        assert second.created_at == first.created_at
        assert second.config_path == first.config_path

    def test_default_path_used(self, interactive, isolated_env):
        config = load_config("tool")
        assert config.config_path == default_config_path("tool")
        assert config.config_path.exists()

    def test_corrupted_file_goes_through_creation(self, interactive, config_path):
        config_path.parent.mkdir(parents=True)
        config_path.write_text("{{{ corrupted")
        config = load_config("tool", config_path)
        assert interactive.prompts == 1
        assert json.loads(config_path.read_text())["instanceId"] == config.instance_id

    def test_save_failure_raises(self, interactive, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("x")
        with pytest.raises(ConfigSaveError):
            load_config("tool", blocker / "telemetry.json")

    def test_accepts_string_path(self, interactive, config_path):
        config = load_config("tool", str(config_path))
        assert isinstance(config.config_path, Path)


# ─── update_consent ───


class TestUpdateConsent:
    def test_requires_path(self):
        config = TelemetryConfig(enabled=False)
        with pytest.raises(ConfigPathError):
            update_consent(config, True)
        assert config.enabled is False

    def test_rewrites_record(self, interactive, config_path):
        interactive.answer = False
        config = load_config("tool", config_path)
        update_consent(config, True)
        assert config.enabled is True
        data = json.loads(config_path.read_text())
        assert data["enabled"] is True
        assert data["instanceId"] == config.instance_id

    def test_persists_ephemeral_config(self, non_interactive, config_path):
        config = load_config("tool", config_path)
        update_consent(config, True)
        assert read_config(config_path).instance_id == config.instance_id

    def test_failed_write_keeps_memory_state(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("x")
        config = TelemetryConfig(enabled=False, config_path=blocker / "telemetry.json")
        with pytest.raises(ConfigSaveError):
            update_consent(config, True)
        assert config.enabled is False
