"""SQLite persistence for TRMNL plugin installations."""

import asyncio
import logging
import time
from pathlib import Path
from typing import Any, Optional, Union

import aiosqlite

from ..domain.models import Installation

logger = logging.getLogger(__name__)

INSTALLATIONS_SCHEMA = """
    CREATE TABLE IF NOT EXISTS installations (
        plugin_setting_id TEXT PRIMARY KEY,
        access_token      TEXT NOT NULL,
        posthog_url       TEXT,
        created_at        INTEGER,
        updated_at        INTEGER
    )
"""


def _now() -> int:
    return int(time.time())


def _row_to_installation(row: Optional[aiosqlite.Row]) -> Optional[Installation]:
    if row is None:
        return None
    return Installation(**dict(row))


class InstallationStore:
    """Stores one row per plugin installation, keyed by ``plugin_setting_id``.

    The schema is created lazily on first use. Every operation opens its own
    connection, so a store instance is safe to share between request handlers.
    """

    def __init__(self, database_path: Union[Path, str]):
        """Initialize the store.

        Args:
            database_path: Path to the SQLite database file
        """
        self.database_path = Path(database_path)
        self.database_path.parent.mkdir(parents=True, exist_ok=True)
        self._initialized = False
        self._initialization_lock: Optional[asyncio.Lock] = None

        logger.info("Installation store initialized (lazy): %s", self.database_path)

    async def _ensure_initialized(self) -> None:
        if self._initialized:
            return

        if self._initialization_lock is None:
            self._initialization_lock = asyncio.Lock()

        async with self._initialization_lock:
            # Double-check after acquiring lock
            if self._initialized:
                return

            try:
                async with aiosqlite.connect(str(self.database_path)) as db:
                    await db.execute("PRAGMA journal_mode=WAL")
                    await db.execute(INSTALLATIONS_SCHEMA)
                    await db.execute(
                        """
                        CREATE INDEX IF NOT EXISTS idx_installations_access_token
                        ON installations(access_token)
                        """
                    )
                    await db.commit()
            except aiosqlite.Error:
                logger.exception("Failed to initialize installation database")
                raise

            self._initialized = True
            logger.debug("Installation schema ready in %s", self.database_path)

    async def _execute(self, sql: str, params: tuple[Any, ...]) -> int:
        await self._ensure_initialized()
        async with aiosqlite.connect(str(self.database_path)) as db:
            cursor = await db.execute(sql, params)
            await db.commit()
            return cursor.rowcount

    async def _fetch_one(self, sql: str, params: tuple[Any, ...]) -> Optional[Installation]:
        await self._ensure_initialized()
        async with aiosqlite.connect(str(self.database_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(sql, params)
            row = await cursor.fetchone()
            return _row_to_installation(row)

    async def upsert_installation(self, plugin_setting_id: str, access_token: str) -> None:
        """Insert an installation or replace the access token of an existing one.

        An existing ``posthog_url`` is preserved across reinstalls.
        """
        now = _now()
        await self._execute(
            """
            INSERT INTO installations (plugin_setting_id, access_token, created_at, updated_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(plugin_setting_id) DO UPDATE SET
                access_token = excluded.access_token,
                updated_at   = excluded.updated_at
            """,
            (plugin_setting_id, access_token, now, now),
        )
        logger.debug("Upserted installation %s", plugin_setting_id)

    async def set_posthog_url(self, plugin_setting_id: str, posthog_url: str) -> bool:
        """Save the share URL for an installation.

        Returns:
            True if an installation row was updated, False if none exists
        """
        updated = await self._execute(
            """
            UPDATE installations
            SET posthog_url = ?, updated_at = ?
            WHERE plugin_setting_id = ?
            """,
            (posthog_url, _now(), plugin_setting_id),
        )
        if not updated:
            logger.warning("No installation %s to attach a PostHog URL to", plugin_setting_id)
        return bool(updated)

    async def get_installation(self, plugin_setting_id: str) -> Optional[Installation]:
        return await self._fetch_one(
            "SELECT * FROM installations WHERE plugin_setting_id = ?", (plugin_setting_id,)
        )

    async def get_installation_by_token(self, access_token: str) -> Optional[Installation]:
        return await self._fetch_one(
            "SELECT * FROM installations WHERE access_token = ?", (access_token,)
        )

    async def delete_installation(self, plugin_setting_id: str) -> bool:
        """Remove an installation; returns True if a row was deleted."""
        deleted = await self._execute(
            "DELETE FROM installations WHERE plugin_setting_id = ?", (plugin_setting_id,)
        )
        return bool(deleted)
