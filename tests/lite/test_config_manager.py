"""Unit tests for config_manager module."""

import logging
import os
from pathlib import Path
from types import SimpleNamespace
from typing import Any

import pytest

from insightbot_lite.core.config_manager import (
    DEFAULT_DATABASE_PATH,
    DEFAULT_ERROR_REFRESH_RATE_SECONDS,
    DEFAULT_REFRESH_RATE_SECONDS,
    DEFAULT_SERVER_PORT,
    ConfigManager,
    get_config_value,
    parse_env_file,
)

pytestmark = pytest.mark.unit


class TestParseEnvFile:
    """Tests for parse_env_file."""

    def test_parse_env_file_when_comments_and_quotes_then_clean_pairs(self, tmp_path: Path) -> None:
        """Should skip comments and blank lines and strip quotes."""
        env_file = tmp_path / ".env"
        env_file.write_text(
            "# comment\n\nTRMNL_CLIENT_ID='abc'\nDB_PATH = \"/data/x.sqlite\"\nnot a pair\n",
            encoding="utf-8",
        )

        assert parse_env_file(env_file) == {
            "TRMNL_CLIENT_ID": "abc",
            "DB_PATH": "/data/x.sqlite",
        }

    def test_parse_env_file_when_missing_then_empty(self, tmp_path: Path) -> None:
        """Should return an empty dict for a missing file."""
        assert parse_env_file(tmp_path / "missing.env") == {}


class TestConfigManager:
    """Tests for ConfigManager class."""

    def test_build_config_from_env_when_nothing_set_then_defaults(self) -> None:
        """Should fill every key with its default."""
        cfg = ConfigManager().build_config_from_env()

        assert cfg["server_bind"] == "0.0.0.0"
        assert cfg["server_port"] == DEFAULT_SERVER_PORT
        assert cfg["database_path"] == DEFAULT_DATABASE_PATH
        assert cfg["trmnl_client_id"] is None
        assert cfg["trmnl_client_secret"] is None
        assert cfg["refresh_rate_seconds"] == DEFAULT_REFRESH_RATE_SECONDS == 1800
        assert cfg["error_refresh_rate_seconds"] == DEFAULT_ERROR_REFRESH_RATE_SECONDS == 300
        assert cfg["debug_logging"] is False

    def test_build_config_from_env_when_overrides_set_then_applied(self, monkeypatch: Any) -> None:
        """Should read every recognised variable."""
        monkeypatch.setenv("INSIGHTBOT_WEB_HOST", "127.0.0.1")
        monkeypatch.setenv("INSIGHTBOT_WEB_PORT", "8080")
        monkeypatch.setenv("INSIGHTBOT_DB_PATH", "/tmp/i.sqlite")
        monkeypatch.setenv("TRMNL_CLIENT_ID", "client")
        monkeypatch.setenv("TRMNL_CLIENT_SECRET", "secret")
        monkeypatch.setenv("INSIGHTBOT_REFRESH_RATE", "600")
        monkeypatch.setenv("INSIGHTBOT_ERROR_REFRESH_RATE", "60")
        monkeypatch.setenv("INSIGHTBOT_DEBUG", "yes")

        cfg = ConfigManager().build_config_from_env()

        assert cfg["server_bind"] == "127.0.0.1"
        assert cfg["server_port"] == 8080
        assert cfg["database_path"] == "/tmp/i.sqlite"
        assert cfg["trmnl_client_id"] == "client"
        assert cfg["trmnl_client_secret"] == "secret"
        assert cfg["refresh_rate_seconds"] == 600
        assert cfg["error_refresh_rate_seconds"] == 60
        assert cfg["debug_logging"] is True

    def test_build_config_from_env_when_only_port_and_db_path_then_platform_names_used(
        self, monkeypatch: Any
    ) -> None:
        """Should fall back to the PORT and DB_PATH names used by hosting platforms."""
        monkeypatch.setenv("PORT", "5000")
        monkeypatch.setenv("DB_PATH", "/var/data/db.sqlite")

        cfg = ConfigManager().build_config_from_env()

        assert cfg["server_port"] == 5000
        assert cfg["database_path"] == "/var/data/db.sqlite"

    def test_build_config_from_env_when_invalid_int_then_default_and_warning(
        self, monkeypatch: Any, caplog: Any
    ) -> None:
        """Should keep the default and warn on a non-numeric port."""
        monkeypatch.setenv("INSIGHTBOT_WEB_PORT", "abc")

        with caplog.at_level(logging.WARNING):
            cfg = ConfigManager().build_config_from_env()

        assert cfg["server_port"] == DEFAULT_SERVER_PORT
        assert "Invalid INSIGHTBOT_WEB_PORT='abc'" in caplog.text

    def test_load_env_file_when_var_already_set_then_not_overridden(
        self, tmp_path: Path, monkeypatch: Any
    ) -> None:
        """Should only set variables that are not already in the environment."""
        env_file = tmp_path / ".env"
        env_file.write_text("TRMNL_CLIENT_ID=from-file\nTRMNL_CLIENT_SECRET=file-secret\n")
        monkeypatch.setattr(os, "environ", os.environ.copy())
        monkeypatch.setenv("TRMNL_CLIENT_ID", "from-env")

        loaded = ConfigManager(env_file_path=env_file).load_env_file()

        assert loaded == ["TRMNL_CLIENT_SECRET"]
        assert os.environ["TRMNL_CLIENT_ID"] == "from-env"
        assert os.environ["TRMNL_CLIENT_SECRET"] == "file-secret"

    def test_load_env_file_when_file_missing_then_empty_list(self, tmp_path: Path) -> None:
        """Should handle a missing .env file gracefully."""
        manager = ConfigManager(env_file_path=tmp_path / "nope.env")

        assert manager.load_env_file() == []

    def test_load_full_config_when_env_file_then_values_in_config(
        self, tmp_path: Path, monkeypatch: Any
    ) -> None:
        """Should combine .env values with defaults."""
        monkeypatch.setattr(os, "environ", os.environ.copy())
        env_file = tmp_path / ".env"
        env_file.write_text("INSIGHTBOT_REFRESH_RATE=900\n")

        cfg = ConfigManager(env_file_path=env_file).load_full_config()

        assert cfg["refresh_rate_seconds"] == 900


class TestGetConfigValue:
    """Tests for get_config_value helper."""

    def test_get_config_value_when_dict_then_key_or_default(self) -> None:
        """Should read dict keys."""
        assert get_config_value({"a": 1}, "a") == 1
        assert get_config_value({"a": 1}, "b", 2) == 2

    def test_get_config_value_when_object_then_attribute_or_default(self) -> None:
        """Should read attributes of non-dict configs."""
        config = SimpleNamespace(server_port=9000)

        assert get_config_value(config, "server_port") == 9000
        assert get_config_value(config, "missing", "x") == "x"
