"""
Database schema + migrations for the musidex catalog.

- Connection management and the public `CatalogDb` facade live in
  `musidex.core.catalog_db`
- Schema creation, schema versioning, and forward-only migrations live here

Design notes:
- We use SQLite `PRAGMA user_version` as the schema version.
- Migrations are forward-only (no downgrade support).
- Every CREATE is guarded (`IF NOT EXISTS`), so running this twice is a no-op.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Final

import aiosqlite

from musidex.core import SchemaError

logger = logging.getLogger(__name__)

# Bump when you change the schema and add a migration in `migrate()`.
SCHEMA_VERSION: Final[int] = 1

TABLES: Final[tuple[str, ...]] = (
    "music_directories",
    "artists",
    "albums",
    "tracks",
    "track_metadata",
)


async def ensure_schema(conn: aiosqlite.Connection) -> None:
    """
    Create or migrate schema to current version.

    This function assumes:
    - `conn` is an open aiosqlite connection
    - foreign_keys pragma is enabled by the caller

    Raises:
        SchemaError: if the schema cannot be created. Callers must treat this as
        fatal; no partial-schema operation is supported.
    """
    try:
        cursor = await conn.execute("PRAGMA user_version;")
        row = await cursor.fetchone()
        current = int(row[0]) if row is not None else 0

        if current > SCHEMA_VERSION:
            raise SchemaError(
                f"Database schema version {current} is newer than supported {SCHEMA_VERSION}."
            )

        if current == SCHEMA_VERSION:
            return

        await migrate(conn, from_version=current, to_version=SCHEMA_VERSION)
        await conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION};")
        await conn.commit()
    except sqlite3.Error as e:
        logger.error("Error initialising the catalog schema: %s", e)
        raise SchemaError(f"Cannot initialise catalog schema: {e}") from e


async def migrate(conn: aiosqlite.Connection, *, from_version: int, to_version: int) -> None:
    """
    Perform forward-only migrations.

    Keep migrations small. If you need a big refactor, create a new DB.
    """
    # v0 -> v1
    if from_version == 0 and to_version >= 1:
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS music_directories (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                path TEXT NOT NULL UNIQUE
            )
            """
        )
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS artists (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL UNIQUE
            )
            """
        )
        # UNIQUE(name, artist_id) does not collapse NULL artist ids in SQLite;
        # insert-or-get matches the "no artist" slot with IS NULL instead.
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS albums (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                artist_id INTEGER REFERENCES artists(id),
                UNIQUE(name, artist_id)
            )
            """
        )
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS tracks (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                path TEXT NOT NULL UNIQUE,
                directory_id INTEGER NOT NULL REFERENCES music_directories(id)
            )
            """
        )
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS track_metadata (
                track_id INTEGER PRIMARY KEY REFERENCES tracks(id) ON DELETE CASCADE,
                title TEXT NOT NULL,
                track_number INTEGER,
                artist_id INTEGER REFERENCES artists(id),
                album_id INTEGER REFERENCES albums(id)
            )
            """
        )

        # Indexes: FK columns used by cascades and browse queries.
        await conn.execute("CREATE INDEX IF NOT EXISTS idx_albums_artist_id ON albums(artist_id);")
        await conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_tracks_directory_id ON tracks(directory_id);"
        )
        await conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_track_metadata_artist_id ON track_metadata(artist_id);"
        )
        await conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_track_metadata_album_id ON track_metadata(album_id);"
        )

        await conn.commit()
        from_version = 1

    if from_version != to_version:
        raise SchemaError(f"No migration path from {from_version} to {to_version}.")
