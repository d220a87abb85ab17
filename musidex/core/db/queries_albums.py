"""
Album-related DB queries.

Design:
- Functions are *pure DB helpers*: they take an open `aiosqlite.Connection`
  and return rows/materialized dataclasses.
- These functions assume `conn.row_factory = aiosqlite.Row`.

The natural key is `(name, artist_id)`. SQL `=` never matches NULL, so lookups
for albums without an artist use `IS NULL` explicitly.
"""

from __future__ import annotations

import aiosqlite

from musidex.core.db.models import AlbumRow


def _row_to_album(row: aiosqlite.Row) -> AlbumRow:
    artist_id = row["artist_id"]
    return AlbumRow(
        id=int(row["id"]),
        name=row["name"],
        artist_id=int(artist_id) if artist_id is not None else None,
    )


async def is_valid_album_id(conn: aiosqlite.Connection, album_id: int) -> bool:
    cursor = await conn.execute(
        "SELECT EXISTS(SELECT 1 FROM albums WHERE id = ?) AS e;",
        (int(album_id),),
    )
    row = await cursor.fetchone()
    return bool(row["e"])


async def get_album_id(
    conn: aiosqlite.Connection, name: str, artist_id: int | None
) -> int | None:
    if artist_id is not None:
        cursor = await conn.execute(
            "SELECT id FROM albums WHERE name = ? AND artist_id = ?;",
            (name, int(artist_id)),
        )
    else:
        cursor = await conn.execute(
            "SELECT id FROM albums WHERE name = ? AND artist_id IS NULL;",
            (name,),
        )
    row = await cursor.fetchone()
    return int(row["id"]) if row is not None else None


async def get_album_by_id(conn: aiosqlite.Connection, album_id: int) -> AlbumRow | None:
    cursor = await conn.execute(
        "SELECT id, name, artist_id FROM albums WHERE id = ?;",
        (int(album_id),),
    )
    row = await cursor.fetchone()
    if row is None:
        return None
    return _row_to_album(row)


async def list_albums(conn: aiosqlite.Connection) -> list[AlbumRow]:
    cursor = await conn.execute(
        """
        SELECT id, name, artist_id
        FROM albums
        ORDER BY name COLLATE NOCASE ASC, id ASC;
        """
    )
    rows = await cursor.fetchall()
    return [_row_to_album(r) for r in rows]


async def list_albums_by_artist(conn: aiosqlite.Connection, artist_id: int) -> list[AlbumRow]:
    cursor = await conn.execute(
        """
        SELECT id, name, artist_id
        FROM albums
        WHERE artist_id = ?
        ORDER BY name COLLATE NOCASE ASC, id ASC;
        """,
        (int(artist_id),),
    )
    rows = await cursor.fetchall()
    return [_row_to_album(r) for r in rows]


async def count_albums(conn: aiosqlite.Connection) -> int:
    cursor = await conn.execute("SELECT COUNT(*) AS c FROM albums;")
    row = await cursor.fetchone()
    return int(row["c"]) if row else 0


async def insert_album(conn: aiosqlite.Connection, name: str, artist_id: int | None) -> int:
    """
    Get or create an album by name + artist_id, return ID.

    The caller is responsible for checking that `artist_id` exists.
    """
    existing = await get_album_id(conn, name, artist_id)
    if existing is not None:
        return existing

    await conn.execute(
        "INSERT OR IGNORE INTO albums (name, artist_id) VALUES (?, ?);",
        (name, artist_id),
    )
    album_id = await get_album_id(conn, name, artist_id)
    if album_id is None:
        raise RuntimeError("Insert failed: album row not found after insert.")
    return album_id


async def delete_album(conn: aiosqlite.Connection, album_id: int) -> bool:
    """Delete an album row. Raises sqlite3.IntegrityError while it is still referenced."""
    cursor = await conn.execute("DELETE FROM albums WHERE id = ?;", (int(album_id),))
    return cursor.rowcount > 0


async def delete_orphan_albums(conn: aiosqlite.Connection) -> int:
    """Delete albums no track metadata row points to."""
    cursor = await conn.execute(
        """
        DELETE FROM albums
        WHERE id NOT IN (SELECT album_id FROM track_metadata WHERE album_id IS NOT NULL)
        """
    )
    return cursor.rowcount
