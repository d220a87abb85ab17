"""
Artist-related DB queries.

Design:
- Functions are *pure DB helpers*: they take an open `aiosqlite.Connection`
  and return rows/materialized dataclasses.
- These functions assume `conn.row_factory = aiosqlite.Row`.

Important:
- Do NOT interpolate user input into SQL.
"""

from __future__ import annotations

import aiosqlite

from musidex.core.db.models import ArtistRow


async def is_valid_artist_id(conn: aiosqlite.Connection, artist_id: int) -> bool:
    cursor = await conn.execute(
        "SELECT EXISTS(SELECT 1 FROM artists WHERE id = ?) AS e;",
        (int(artist_id),),
    )
    row = await cursor.fetchone()
    return bool(row["e"])


async def get_artist_id(conn: aiosqlite.Connection, name: str) -> int | None:
    cursor = await conn.execute("SELECT id FROM artists WHERE name = ?;", (name,))
    row = await cursor.fetchone()
    return int(row["id"]) if row is not None else None


async def get_artist_by_id(conn: aiosqlite.Connection, artist_id: int) -> ArtistRow | None:
    cursor = await conn.execute(
        "SELECT id, name FROM artists WHERE id = ?;",
        (int(artist_id),),
    )
    row = await cursor.fetchone()
    if row is None:
        return None
    return ArtistRow(id=int(row["id"]), name=row["name"])


async def list_artists(conn: aiosqlite.Connection) -> list[ArtistRow]:
    cursor = await conn.execute(
        """
        SELECT id, name
        FROM artists
        ORDER BY name COLLATE NOCASE ASC, id ASC;
        """
    )
    rows = await cursor.fetchall()
    return [ArtistRow(id=int(r["id"]), name=r["name"]) for r in rows]


async def count_artists(conn: aiosqlite.Connection) -> int:
    cursor = await conn.execute("SELECT COUNT(*) AS c FROM artists;")
    row = await cursor.fetchone()
    return int(row["c"]) if row else 0


async def insert_artist(conn: aiosqlite.Connection, name: str) -> int:
    """Get or create an artist by name, return ID."""
    existing = await get_artist_id(conn, name)
    if existing is not None:
        return existing

    await conn.execute("INSERT OR IGNORE INTO artists (name) VALUES (?);", (name,))
    artist_id = await get_artist_id(conn, name)
    if artist_id is None:
        raise RuntimeError("Insert failed: artist row not found after insert.")
    return artist_id


async def delete_artist(conn: aiosqlite.Connection, artist_id: int) -> bool:
    """Delete an artist row. Raises sqlite3.IntegrityError while it is still referenced."""
    cursor = await conn.execute("DELETE FROM artists WHERE id = ?;", (int(artist_id),))
    return cursor.rowcount > 0


async def delete_orphan_artists(conn: aiosqlite.Connection) -> int:
    """Delete artists referenced by no album and no track metadata row."""
    cursor = await conn.execute(
        """
        DELETE FROM artists
        WHERE id NOT IN (SELECT artist_id FROM albums WHERE artist_id IS NOT NULL)
          AND id NOT IN (SELECT artist_id FROM track_metadata WHERE artist_id IS NOT NULL)
        """
    )
    return cursor.rowcount
