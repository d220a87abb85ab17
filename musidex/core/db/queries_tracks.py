"""
Track and track-metadata DB queries.

Design:
- Functions are *pure DB helpers*: they take an open `aiosqlite.Connection`
  and return rows/materialized dataclasses.
- These functions assume `conn.row_factory = aiosqlite.Row`.

Important:
- Do NOT interpolate user input into SQL.
"""

from __future__ import annotations

import aiosqlite

from musidex.core.db.models import TrackMetadataRow, TrackRow, TrackWithMetadata


def _opt_int(value: object) -> int | None:
    return int(value) if value is not None else None  # type: ignore[arg-type]


def _row_to_metadata(row: aiosqlite.Row) -> TrackMetadataRow:
    return TrackMetadataRow(
        track_id=int(row["track_id"]),
        title=row["title"],
        track_number=_opt_int(row["track_number"]),
        artist_id=_opt_int(row["artist_id"]),
        album_id=_opt_int(row["album_id"]),
    )


# ---------------------------------------------------------------------------
# Tracks
# ---------------------------------------------------------------------------


async def is_valid_track_id(conn: aiosqlite.Connection, track_id: int) -> bool:
    cursor = await conn.execute(
        "SELECT EXISTS(SELECT 1 FROM tracks WHERE id = ?) AS e;",
        (int(track_id),),
    )
    row = await cursor.fetchone()
    return bool(row["e"])


async def get_track_id(conn: aiosqlite.Connection, path: str) -> int | None:
    cursor = await conn.execute("SELECT id FROM tracks WHERE path = ?;", (path,))
    row = await cursor.fetchone()
    return int(row["id"]) if row is not None else None


async def get_track_by_id(conn: aiosqlite.Connection, track_id: int) -> TrackRow | None:
    cursor = await conn.execute(
        "SELECT id, path, directory_id FROM tracks WHERE id = ?;",
        (int(track_id),),
    )
    row = await cursor.fetchone()
    if row is None:
        return None
    return TrackRow(id=int(row["id"]), path=row["path"], directory_id=int(row["directory_id"]))


async def list_tracks(conn: aiosqlite.Connection) -> list[TrackRow]:
    cursor = await conn.execute("SELECT id, path, directory_id FROM tracks ORDER BY id;")
    rows = await cursor.fetchall()
    return [
        TrackRow(id=int(r["id"]), path=r["path"], directory_id=int(r["directory_id"]))
        for r in rows
    ]


async def list_tracks_with_metadata(conn: aiosqlite.Connection) -> list[TrackWithMetadata]:
    """All tracks, LEFT JOINed with their metadata (None when no metadata row exists)."""
    cursor = await conn.execute(
        """
        SELECT
            t.id, t.path, t.directory_id,
            tm.track_id, tm.title, tm.track_number, tm.artist_id, tm.album_id
        FROM tracks t
        LEFT JOIN track_metadata tm ON tm.track_id = t.id
        ORDER BY t.id;
        """
    )
    rows = await cursor.fetchall()
    out: list[TrackWithMetadata] = []
    for r in rows:
        track = TrackRow(id=int(r["id"]), path=r["path"], directory_id=int(r["directory_id"]))
        metadata = _row_to_metadata(r) if r["track_id"] is not None else None
        out.append(TrackWithMetadata(track=track, metadata=metadata))
    return out


async def list_track_ids_of_music_directory(
    conn: aiosqlite.Connection, directory_id: int
) -> list[int]:
    cursor = await conn.execute(
        "SELECT id FROM tracks WHERE directory_id = ? ORDER BY id;",
        (int(directory_id),),
    )
    rows = await cursor.fetchall()
    return [int(r["id"]) for r in rows]


async def list_tracks_of_music_directory(
    conn: aiosqlite.Connection, directory_id: int
) -> list[TrackRow]:
    cursor = await conn.execute(
        "SELECT id, path, directory_id FROM tracks WHERE directory_id = ? ORDER BY id;",
        (int(directory_id),),
    )
    rows = await cursor.fetchall()
    return [
        TrackRow(id=int(r["id"]), path=r["path"], directory_id=int(r["directory_id"]))
        for r in rows
    ]


async def count_tracks(conn: aiosqlite.Connection) -> int:
    cursor = await conn.execute("SELECT COUNT(*) AS c FROM tracks;")
    row = await cursor.fetchone()
    return int(row["c"]) if row else 0


async def insert_track(conn: aiosqlite.Connection, path: str, directory_id: int) -> int:
    """
    Insert-or-get a track row by canonical path. Returns the track id.

    The caller verifies the directory id and the file itself beforehand.
    """
    existing = await get_track_id(conn, path)
    if existing is not None:
        return existing

    await conn.execute(
        "INSERT OR IGNORE INTO tracks (path, directory_id) VALUES (?, ?);",
        (path, int(directory_id)),
    )
    track_id = await get_track_id(conn, path)
    if track_id is None:
        raise RuntimeError("Insert failed: track row not found after insert.")
    return track_id


async def delete_track(conn: aiosqlite.Connection, track_id: int) -> None:
    """Delete metadata first, then the track row."""
    await conn.execute("DELETE FROM track_metadata WHERE track_id = ?;", (int(track_id),))
    await conn.execute("DELETE FROM tracks WHERE id = ?;", (int(track_id),))


# ---------------------------------------------------------------------------
# Track metadata
# ---------------------------------------------------------------------------


async def get_track_metadata(
    conn: aiosqlite.Connection, track_id: int
) -> TrackMetadataRow | None:
    cursor = await conn.execute(
        """
        SELECT track_id, title, track_number, artist_id, album_id
        FROM track_metadata
        WHERE track_id = ?;
        """,
        (int(track_id),),
    )
    row = await cursor.fetchone()
    if row is None:
        return None
    return _row_to_metadata(row)


async def count_track_metadata(conn: aiosqlite.Connection) -> int:
    cursor = await conn.execute("SELECT COUNT(*) AS c FROM track_metadata;")
    row = await cursor.fetchone()
    return int(row["c"]) if row else 0


async def upsert_track_metadata(conn: aiosqlite.Connection, metadata: TrackMetadataRow) -> None:
    await conn.execute(
        """
        INSERT INTO track_metadata (track_id, title, track_number, artist_id, album_id)
        VALUES (:track_id, :title, :track_number, :artist_id, :album_id)
        ON CONFLICT(track_id) DO UPDATE SET
            title        = excluded.title,
            track_number = excluded.track_number,
            artist_id    = excluded.artist_id,
            album_id     = excluded.album_id
        """,
        {
            "track_id": int(metadata.track_id),
            "title": metadata.title,
            "track_number": metadata.track_number,
            "artist_id": metadata.artist_id,
            "album_id": metadata.album_id,
        },
    )
