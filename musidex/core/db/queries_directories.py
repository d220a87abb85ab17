"""
Music directory queries.

Design:
- Functions are *pure DB helpers*: they take an open `aiosqlite.Connection`
  and return rows/materialized dataclasses.
- Paths passed in are expected to be canonical already; canonicalization and
  filesystem checks belong to `CatalogDb`.
- These functions assume `conn.row_factory = aiosqlite.Row`.
"""

from __future__ import annotations

import aiosqlite

from musidex.core.db.models import MusicDirectoryRow


async def is_valid_music_directory_id(conn: aiosqlite.Connection, directory_id: int) -> bool:
    cursor = await conn.execute(
        "SELECT EXISTS(SELECT 1 FROM music_directories WHERE id = ?) AS e;",
        (int(directory_id),),
    )
    row = await cursor.fetchone()
    return bool(row["e"])


async def get_music_directory_id(conn: aiosqlite.Connection, path: str) -> int | None:
    cursor = await conn.execute("SELECT id FROM music_directories WHERE path = ?;", (path,))
    row = await cursor.fetchone()
    return int(row["id"]) if row is not None else None


async def get_music_directory_by_id(
    conn: aiosqlite.Connection, directory_id: int
) -> MusicDirectoryRow | None:
    cursor = await conn.execute(
        "SELECT id, path FROM music_directories WHERE id = ?;",
        (int(directory_id),),
    )
    row = await cursor.fetchone()
    if row is None:
        return None
    return MusicDirectoryRow(id=int(row["id"]), path=row["path"])


async def list_music_directories(conn: aiosqlite.Connection) -> list[MusicDirectoryRow]:
    cursor = await conn.execute("SELECT id, path FROM music_directories ORDER BY id;")
    rows = await cursor.fetchall()
    return [MusicDirectoryRow(id=int(r["id"]), path=r["path"]) for r in rows]


async def count_music_directories(conn: aiosqlite.Connection) -> int:
    cursor = await conn.execute("SELECT COUNT(*) AS c FROM music_directories;")
    row = await cursor.fetchone()
    return int(row["c"]) if row else 0


async def insert_music_directory(conn: aiosqlite.Connection, path: str) -> int:
    """Insert-or-get a directory row by canonical path. Returns the directory id."""
    existing = await get_music_directory_id(conn, path)
    if existing is not None:
        return existing

    await conn.execute("INSERT OR IGNORE INTO music_directories (path) VALUES (?);", (path,))
    directory_id = await get_music_directory_id(conn, path)
    if directory_id is None:
        raise RuntimeError("Insert failed: directory row not found after insert.")
    return directory_id


async def delete_music_directory_cascade(conn: aiosqlite.Connection, directory_id: int) -> int:
    """
    Delete metadata, tracks and the directory row, in that order.

    Does not manage the transaction; `CatalogDb.remove_music_directory` wraps this
    in a savepoint. Returns the number of deleted tracks.
    """
    await conn.execute(
        """
        DELETE FROM track_metadata
        WHERE track_id IN (SELECT id FROM tracks WHERE directory_id = ?);
        """,
        (int(directory_id),),
    )
    cursor = await conn.execute("DELETE FROM tracks WHERE directory_id = ?;", (int(directory_id),))
    tracks_deleted = cursor.rowcount
    await conn.execute("DELETE FROM music_directories WHERE id = ?;", (int(directory_id),))
    return tracks_deleted
