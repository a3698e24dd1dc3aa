"""Tests for the SQLite installation store."""

import sqlite3
from pathlib import Path

import pytest

from insightbot_lite.storage.installations import InstallationStore

pytestmark = pytest.mark.unit

SHARE_URL = "https://us.posthog.com/shared/AbCdEf123"


class TestInstallationStore:
    """CRUD behaviour of InstallationStore."""

    async def test_upsert_installation_when_new_then_row_with_timestamps(
        self, installation_store: InstallationStore
    ) -> None:
        """Test inserting a fresh installation."""
        await installation_store.upsert_installation("42", "tok-1")

        installation = await installation_store.get_installation("42")

        assert installation is not None
        assert installation.access_token == "tok-1"
        assert installation.posthog_url is None
        assert installation.created_at is not None
        assert installation.updated_at >= installation.created_at

    async def test_upsert_installation_when_reinstalled_then_token_replaced_url_kept(
        self, installation_store: InstallationStore
    ) -> None:
        """Test that a reinstall keeps the configured share URL."""
        await installation_store.upsert_installation("42", "tok-1")
        await installation_store.set_posthog_url("42", SHARE_URL)

        await installation_store.upsert_installation("42", "tok-2")
        installation = await installation_store.get_installation("42")

        assert installation is not None
        assert installation.access_token == "tok-2"
        assert installation.posthog_url == SHARE_URL

    async def test_set_posthog_url_when_installation_missing_then_false(
        self, installation_store: InstallationStore
    ) -> None:
        """Test that no row is created for an unknown id."""
        assert await installation_store.set_posthog_url("missing", SHARE_URL) is False
        assert await installation_store.get_installation("missing") is None

    async def test_get_installation_by_token_when_known_then_installation(
        self, installation_store: InstallationStore
    ) -> None:
        """Test the access token lookup."""
        await installation_store.upsert_installation("7", "secret-token")

        found = await installation_store.get_installation_by_token("secret-token")
        missing = await installation_store.get_installation_by_token("other")

        assert found is not None
        assert found.plugin_setting_id == "7"
        assert missing is None

    async def test_delete_installation_when_present_then_removed(
        self, installation_store: InstallationStore
    ) -> None:
        """Test deletion and its return value."""
        await installation_store.upsert_installation("9", "tok")

        assert await installation_store.delete_installation("9") is True
        assert await installation_store.get_installation("9") is None
        assert await installation_store.delete_installation("9") is False

    async def test_store_when_nested_path_then_parent_created_and_wal_enabled(
        self, tmp_path: Path
    ) -> None:
        """Test directory creation and the journal mode."""
        db_path = tmp_path / "nested" / "dir" / "data.sqlite"
        store = InstallationStore(db_path)

        await store.upsert_installation("1", "tok")

        assert db_path.exists()
        with sqlite3.connect(db_path) as conn:
            mode = conn.execute("PRAGMA journal_mode").fetchone()[0]
        assert mode == "wal"

    async def test_store_when_reopened_then_rows_persist(self, tmp_path: Path) -> None:
        """Test that data survives a new store instance on the same file."""
        db_path = tmp_path / "data.sqlite"
        await InstallationStore(db_path).upsert_installation("1", "tok")

        installation = await InstallationStore(db_path).get_installation("1")

        assert installation is not None
        assert installation.access_token == "tok"
