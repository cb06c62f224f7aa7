"""Tests for AppConfig and DaemonSettings."""

from pathlib import Path
from typing import Any

import pytest

from oid_daemon.app_config import DEFAULT_BASE_OID, AppConfig, DaemonSettings
from oid_daemon.errors import ConfigurationError


def test_defaults_without_config_file(tmp_path: Path, monkeypatch: Any) -> None:
    monkeypatch.chdir(tmp_path)
    config = AppConfig()
    assert config.config_path is None
    assert config.get("base_oid") == DEFAULT_BASE_OID
    assert config.get("engine.read_timeout") == 1.0
    assert config.get("logger")["tag"] == "snmpd-oid-daemon"
    assert config.get("missing.key", "fallback") == "fallback"


def test_default_file_under_data(tmp_path: Path, monkeypatch: Any) -> None:
    monkeypatch.chdir(tmp_path)
    (tmp_path / "data").mkdir()
    (tmp_path / "data" / "oid_daemon.yaml").write_text('base_oid: ".1.3.6.1.4.1.99999"\n')
    config = AppConfig()
    assert config.config_path == str(Path("data") / "oid_daemon.yaml")
    assert config.get("base_oid") == ".1.3.6.1.4.1.99999"


def test_explicit_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError, match="not found"):
        AppConfig(str(tmp_path / "nope.yaml"))


def test_singleton(tmp_path: Path) -> None:
    path = tmp_path / "cfg.yaml"
    path.write_text("scheduler:\n  tick_seconds: 2.5\n")
    first = AppConfig(str(path))
    second = AppConfig("ignored.yaml")
    assert first is second
    assert second.get("scheduler.tick_seconds") == 2.5


class TestDaemonSettings:
    def test_from_config(self, tmp_path: Path) -> None:
        path = tmp_path / "cfg.yaml"
        path.write_text(
            'base_oid: ".1.3.6.1.4.1.99999"\n'
            "channel:\n  capacity: 16\n"
            "engine:\n  read_timeout: 0.5\n"
        )
        settings = DaemonSettings.from_config(AppConfig(str(path)))
        assert settings.base_oid == ".1.3.6.1.4.1.99999"
        assert settings.channel_capacity == 16
        assert settings.read_timeout == 0.5
        assert settings.tick_seconds == 1.0

    def test_overrides_win_unless_none(self, tmp_path: Path, monkeypatch: Any) -> None:
        monkeypatch.chdir(tmp_path)
        settings = DaemonSettings.from_config(
            AppConfig(), base_oid=".1.3.6.1.4.1.1", overload_script=None
        )
        assert settings.base_oid == ".1.3.6.1.4.1.1"
        assert settings.overload_script == "oid_daemon-overload.yaml"

    def test_default_overload_next_to_config_file(self, tmp_path: Path) -> None:
        path = tmp_path / "cfg.yaml"
        path.write_text("overload_script: null\n")
        settings = DaemonSettings.from_config(AppConfig(str(path)))
        assert settings.overload_script == str(tmp_path / "oid_daemon-overload.yaml")

    def test_explicit_overload_wins(self, tmp_path: Path, monkeypatch: Any) -> None:
        monkeypatch.chdir(tmp_path)
        settings = DaemonSettings.from_config(AppConfig(), overload_script="/etc/site.yaml")
        assert settings.overload_script == "/etc/site.yaml"

    def test_invalid_base_oid(self, tmp_path: Path, monkeypatch: Any) -> None:
        monkeypatch.chdir(tmp_path)
        with pytest.raises(ConfigurationError, match="invalid base OID"):
            DaemonSettings.from_config(AppConfig(), base_oid="1.3.6")
