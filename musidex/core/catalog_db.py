"""
Music catalog database access layer (the "catalog store").

Goals:
- SQLite + aiosqlite, async/await friendly.
- One explicitly owned handle (`open -> use -> close`), injected into the
  components that need it. No module-level connection.
- Every insert is insert-or-get on the natural key, so re-scans are idempotent.

Note:
- Models/DTOs and normalization helpers live in `musidex.core.db.models`
- Schema/migrations live in `musidex.core.db.schema`
- Query functions live in `musidex.core.db.queries_*` modules
- `CatalogDb` adds the precondition checks (filesystem, foreign keys) and the
  translation of storage errors into absent results.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

import aiosqlite

from musidex.core.db import queries_albums, queries_artists, queries_directories, queries_tracks
from musidex.core.db.models import (
    AlbumRow,
    ArtistRow,
    MusicDirectoryRow,
    TrackMetadataRow,
    TrackRow,
    TrackWithMetadata,
    canonical_path,
    normalize_text,
    normalize_track_number,
)
from musidex.core.db.schema import ensure_schema as ensure_schema_sql

logger = logging.getLogger(__name__)


class CatalogDb:
    """
    Async access layer for the music catalog DB.

    Usage:
        db = CatalogDb("musidex.db")
        await db.open()
        await db.ensure_schema()
        ... queries ...
        await db.close()

    Notes:
    - This class is designed to be injected into other components.
    - A single connection, no internal locking: callers serialize access.
    - Recoverable failures (missing paths, unknown foreign keys) return None/False
      and are logged; only schema initialization raises (`SchemaError`).
    """

    def __init__(self, db_path: str | Path) -> None:
        self._db_path = str(db_path)
        self._conn: aiosqlite.Connection | None = None

    @property
    def db_path(self) -> str:
        return self._db_path

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    async def open(self) -> None:
        if self._conn is not None:
            return
        if self._db_path != ":memory:":
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = await aiosqlite.connect(self._db_path)
        self._conn.row_factory = aiosqlite.Row
        await self._conn.execute("PRAGMA foreign_keys = ON;")

    async def close(self) -> None:
        if self._conn is None:
            return
        await self._conn.close()
        self._conn = None

    def _require_conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise RuntimeError("CatalogDb is not open. Call await db.open() first.")
        return self._conn

    async def ensure_schema(self) -> None:
        """Create or migrate schema to current version. Raises SchemaError on failure."""
        conn = self._require_conn()
        await ensure_schema_sql(conn)

    # ===========================================================================
    # Music directories
    # ===========================================================================

    async def is_valid_music_directory_id(self, directory_id: int) -> bool:
        return await queries_directories.is_valid_music_directory_id(
            self._require_conn(), directory_id
        )

    async def get_music_directory_id(self, path: str | Path) -> int | None:
        return await queries_directories.get_music_directory_id(
            self._require_conn(), str(canonical_path(path))
        )

    async def get_music_directory(self, directory_id: int) -> MusicDirectoryRow | None:
        return await queries_directories.get_music_directory_by_id(
            self._require_conn(), directory_id
        )

    async def list_music_directories(self) -> list[MusicDirectoryRow]:
        return await queries_directories.list_music_directories(self._require_conn())

    async def count_music_directories(self) -> int:
        return await queries_directories.count_music_directories(self._require_conn())

    async def insert_music_directory(self, path: str | Path) -> int | None:
        """
        Register a scan root (insert-or-get on the canonical path).

        Returns None if the path does not exist or is not a directory.
        """
        conn = self._require_conn()
        abs_path = canonical_path(path)
        if not abs_path.is_dir():
            logger.warning("Path doesn't exist or is not a directory: %s", path)
            return None

        directory_id = await queries_directories.insert_music_directory(conn, str(abs_path))
        await conn.commit()
        return directory_id

    async def remove_music_directory(self, path: str | Path) -> bool:
        """
        Remove a registered directory with all its tracks and their metadata.

        Requires the path to exist on disk as a directory and to be registered.
        The three deletes run in one savepoint; on error everything is rolled
        back and False is returned. Artists and albums are left in place.
        """
        conn = self._require_conn()
        abs_path = canonical_path(path)
        if not abs_path.is_dir():
            logger.warning("Path doesn't exist or is not a directory: %s", path)
            return False

        directory_id = await queries_directories.get_music_directory_id(conn, str(abs_path))
        if directory_id is None:
            logger.warning("Trying to remove a directory that is not in the catalog: %s", path)
            return False

        await conn.execute("SAVEPOINT remove_music_directory_sp;")
        try:
            tracks_deleted = await queries_directories.delete_music_directory_cascade(
                conn, directory_id
            )
            await conn.execute("RELEASE SAVEPOINT remove_music_directory_sp;")
        except sqlite3.Error as e:
            await conn.execute("ROLLBACK TO SAVEPOINT remove_music_directory_sp;")
            await conn.execute("RELEASE SAVEPOINT remove_music_directory_sp;")
            logger.error("Failed to remove music directory %s: %s", abs_path, e)
            return False

        await conn.commit()
        logger.info("Removed music directory %s (%d tracks)", abs_path, tracks_deleted)
        return True

    # ===========================================================================
    # Artists
    # ===========================================================================

    async def is_valid_artist_id(self, artist_id: int) -> bool:
        return await queries_artists.is_valid_artist_id(self._require_conn(), artist_id)

    async def get_artist_id(self, name: str) -> int | None:
        return await queries_artists.get_artist_id(self._require_conn(), name)

    async def get_artist(self, artist_id: int) -> ArtistRow | None:
        return await queries_artists.get_artist_by_id(self._require_conn(), artist_id)

    async def list_artists(self) -> list[ArtistRow]:
        return await queries_artists.list_artists(self._require_conn())

    async def count_artists(self) -> int:
        return await queries_artists.count_artists(self._require_conn())

    async def insert_artist(self, name: str) -> int | None:
        """Get or create an artist by name. Returns None for an empty name."""
        conn = self._require_conn()
        clean = normalize_text(name)
        if clean is None:
            return None
        artist_id = await queries_artists.insert_artist(conn, clean)
        await conn.commit()
        return artist_id

    async def delete_artist(self, artist_id: int) -> bool:
        """Delete an artist. Refused (False) while albums or tracks still reference it."""
        conn = self._require_conn()
        try:
            deleted = await queries_artists.delete_artist(conn, artist_id)
        except sqlite3.IntegrityError:
            await conn.rollback()
            logger.warning("Artist %d is still referenced; not deleted", artist_id)
            return False
        await conn.commit()
        return deleted

    # ===========================================================================
    # Albums
    # ===========================================================================

    async def is_valid_album_id(self, album_id: int) -> bool:
        return await queries_albums.is_valid_album_id(self._require_conn(), album_id)

    async def get_album_id(self, name: str, artist_id: int | None = None) -> int | None:
        return await queries_albums.get_album_id(self._require_conn(), name, artist_id)

    async def get_album(self, album_id: int) -> AlbumRow | None:
        return await queries_albums.get_album_by_id(self._require_conn(), album_id)

    async def list_albums(self) -> list[AlbumRow]:
        return await queries_albums.list_albums(self._require_conn())

    async def list_albums_by_artist(self, artist_id: int) -> list[AlbumRow]:
        return await queries_albums.list_albums_by_artist(self._require_conn(), artist_id)

    async def count_albums(self) -> int:
        return await queries_albums.count_albums(self._require_conn())

    async def insert_album(self, name: str, artist_id: int | None = None) -> int | None:
        """
        Get or create an album by (name, artist_id).

        Returns None, without writing anything, if `artist_id` is given but no
        such artist exists, or if the name is empty.
        """
        conn = self._require_conn()
        clean = normalize_text(name)
        if clean is None:
            return None
        if artist_id is not None and not await queries_artists.is_valid_artist_id(
            conn, artist_id
        ):
            logger.warning("Refusing album %r for unknown artist id %d", clean, artist_id)
            return None
        album_id = await queries_albums.insert_album(conn, clean, artist_id)
        await conn.commit()
        return album_id

    async def delete_album(self, album_id: int) -> bool:
        """Delete an album. Refused (False) while track metadata still references it."""
        conn = self._require_conn()
        try:
            deleted = await queries_albums.delete_album(conn, album_id)
        except sqlite3.IntegrityError:
            await conn.rollback()
            logger.warning("Album %d is still referenced; not deleted", album_id)
            return False
        await conn.commit()
        return deleted

    # ===========================================================================
    # Tracks
    # ===========================================================================

    async def is_valid_track_id(self, track_id: int) -> bool:
        return await queries_tracks.is_valid_track_id(self._require_conn(), track_id)

    async def get_track_id(self, path: str | Path) -> int | None:
        return await queries_tracks.get_track_id(self._require_conn(), str(canonical_path(path)))

    async def get_track(self, track_id: int) -> TrackRow | None:
        return await queries_tracks.get_track_by_id(self._require_conn(), track_id)

    async def list_tracks(self) -> list[TrackRow]:
        return await queries_tracks.list_tracks(self._require_conn())

    async def list_tracks_with_metadata(self) -> list[TrackWithMetadata]:
        return await queries_tracks.list_tracks_with_metadata(self._require_conn())

    async def list_track_ids_of_music_directory(self, directory_id: int) -> list[int]:
        return await queries_tracks.list_track_ids_of_music_directory(
            self._require_conn(), directory_id
        )

    async def list_tracks_of_music_directory(self, directory_id: int) -> list[TrackRow]:
        return await queries_tracks.list_tracks_of_music_directory(
            self._require_conn(), directory_id
        )

    async def count_tracks(self) -> int:
        return await queries_tracks.count_tracks(self._require_conn())

    async def insert_track(self, path: str | Path, directory_id: int | None) -> int | None:
        """
        Insert-or-get a track by canonical path.

        Both preconditions are checked before any row is written:
        - `directory_id` must name a registered music directory
        - the path must exist and be a regular file
        Returns None when either fails; the caller decides whether to skip or abort.
        """
        conn = self._require_conn()
        if directory_id is None or not await queries_directories.is_valid_music_directory_id(
            conn, directory_id
        ):
            logger.warning("Unknown music directory id %s for %s", directory_id, path)
            return None

        abs_path = canonical_path(path)
        if not abs_path.is_file():
            logger.warning("Path doesn't exist or is not a regular file: %s", path)
            return None

        track_id = await queries_tracks.insert_track(conn, str(abs_path), directory_id)
        await conn.commit()
        return track_id

    async def remove_track(self, track_id: int) -> bool:
        """
        Delete a track and its metadata (metadata first).

        Always True once attempted; an unknown id is not reported as a failure.
        """
        conn = self._require_conn()
        await queries_tracks.delete_track(conn, track_id)
        await conn.commit()
        return True

    # ===========================================================================
    # Track metadata
    # ===========================================================================

    async def get_track_metadata(self, track_id: int) -> TrackMetadataRow | None:
        return await queries_tracks.get_track_metadata(self._require_conn(), track_id)

    async def count_track_metadata(self) -> int:
        return await queries_tracks.count_track_metadata(self._require_conn())

    async def upsert_track_metadata(self, metadata: TrackMetadataRow) -> int | None:
        """
        Insert or replace the metadata row of a track.

        Returns the track id, or None if the track (or a referenced artist/album)
        does not exist.
        """
        conn = self._require_conn()
        track = await queries_tracks.get_track_by_id(conn, metadata.track_id)
        if track is None:
            logger.warning("Refusing metadata for unknown track id %d", metadata.track_id)
            return None

        row = TrackMetadataRow(
            track_id=metadata.track_id,
            title=normalize_text(metadata.title) or Path(track.path).stem,
            track_number=normalize_track_number(metadata.track_number),
            artist_id=metadata.artist_id,
            album_id=metadata.album_id,
        )
        try:
            await queries_tracks.upsert_track_metadata(conn, row)
        except sqlite3.IntegrityError as e:
            await conn.rollback()
            logger.warning("Refusing metadata for track %d: %s", metadata.track_id, e)
            return None
        await conn.commit()
        return metadata.track_id

    # ===========================================================================
    # Maintenance
    # ===========================================================================

    async def delete_orphans(self) -> dict[str, int]:
        """
        Remove albums and artists that nothing references any more.

        Never called implicitly: scans and removals leave orphans in place.
        Albums go first, so artists only referenced by orphan albums are freed too.
        """
        conn = self._require_conn()
        result: dict[str, int] = {}
        result["orphan_albums_deleted"] = await queries_albums.delete_orphan_albums(conn)
        result["orphan_artists_deleted"] = await queries_artists.delete_orphan_artists(conn)
        await conn.commit()
        return result
