from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from musidex.core.artwork import ArtCache
from musidex.core.catalog_db import CatalogDb
from musidex.core.db.models import (
    AlbumRow,
    ArtistRow,
    MusicDirectoryRow,
    TrackMetadataRow,
    TrackWithMetadata,
)
from musidex.core.scanner import LibraryScanner, ScanReport

logger = logging.getLogger(__name__)


@dataclass
class ScanStatus:
    """Status of a running or completed background rebuild."""

    is_running: bool = False
    progress: float = 0.0  # 0.0 to 1.0, by directory
    current_directory: str = ""
    directories_total: int = 0
    directories_done: int = 0
    files_done: int = 0
    errors: int = 0
    last_reports: list[ScanReport] = field(default_factory=list)


class MusicCatalogError(RuntimeError):
    """Base error for MusicCatalog operations."""


class MusicCatalogNotReadyError(MusicCatalogError):
    """Raised when operations are attempted before the catalog is initialized."""


class MusicCatalog:
    """
    Command/query boundary between front-ends and the catalog core.

    Front-ends (TUI, GUI, CLI) only talk to this class:
    - commands: register/remove directories, scan, remove tracks
    - queries: list/get directories, artists, albums, tracks and metadata
    - validity predicates for user-supplied ids

    Dependencies (injected, owned by the caller):
    - `CatalogDb` for persistence
    - `ArtCache` for cover art files

    The store has no internal locking. At most one scan runs at a time
    (`start_rebuild` refuses a second one); callers serialize everything else.
    """

    def __init__(self, *, db: CatalogDb, art_cache: ArtCache) -> None:
        self._db = db
        self._art_cache = art_cache
        self._scanner = LibraryScanner(db=db, art_cache=art_cache)
        self._initialized = False
        self._scan_status = ScanStatus()
        self._scan_task: asyncio.Task[list[ScanReport]] | None = None

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def db(self) -> CatalogDb:
        return self._db

    @property
    def art_cache(self) -> ArtCache:
        return self._art_cache

    @property
    def scan_status(self) -> ScanStatus:
        return self._scan_status

    @property
    def is_scanning(self) -> bool:
        return self._scan_status.is_running

    async def initialize(self) -> None:
        """
        Prepare the catalog.

        Contract:
        - `CatalogDb` must already be open.
        - the schema is ensured here; `SchemaError` propagates and is fatal.
        """
        if not self._db.is_open:
            raise MusicCatalogError(
                "CatalogDb is not open. Open it before initializing MusicCatalog."
            )

        await self._db.ensure_schema()
        self._initialized = True

    # ---- Commands ----

    async def register_directory(self, path: str | Path) -> int | None:
        """Register a scan root. Same canonical path, same id. None if not a directory."""
        self._require_initialized()
        directory_id = await self._db.insert_music_directory(path)
        if directory_id is not None:
            logger.info("Registered music directory %s (id=%d)", path, directory_id)
        return directory_id

    async def remove_directory(self, path: str | Path) -> bool:
        self._require_initialized()
        self._require_idle()
        return await self._db.remove_music_directory(path)

    async def remove_track(self, track_id: int) -> bool:
        self._require_initialized()
        return await self._db.remove_track(track_id)

    async def scan_directory(
        self, path: str | Path, *, prune_missing: bool = False
    ) -> ScanReport | None:
        """Register `path` (if needed) and index it."""
        self._require_initialized()
        self._require_idle()
        return await self._scanner.scan_directory(path, prune_missing=prune_missing)

    async def scan(
        self, target: int | Literal["all"] = "all", *, prune_missing: bool = False
    ) -> list[ScanReport]:
        """
        Scan one registered directory by id, or all of them with "all".

        An unknown directory id scans nothing and returns an empty list.
        """
        self._require_initialized()
        self._require_idle()
        if target == "all":
            return await self._scanner.rebuild(prune_missing=prune_missing)

        directory = await self._db.get_music_directory(int(target))
        if directory is None:
            logger.warning("Unknown music directory id: %s", target)
            return []
        report = await self._scanner.scan_directory(directory.path, prune_missing=prune_missing)
        return [report] if report is not None else []

    async def scan_all(self, *, prune_missing: bool = False) -> list[ScanReport]:
        return await self.scan("all", prune_missing=prune_missing)

    async def prune_orphans(self) -> dict[str, int]:
        """Delete albums and artists that no track references any more."""
        self._require_initialized()
        self._require_idle()
        result = await self._db.delete_orphans()
        logger.info(
            "Pruned %d orphan albums, %d orphan artists",
            result["orphan_albums_deleted"],
            result["orphan_artists_deleted"],
        )
        return result

    # ---- Queries ----

    async def list_music_directories(self) -> list[MusicDirectoryRow]:
        self._require_initialized()
        return await self._db.list_music_directories()

    async def list_artists(self) -> list[ArtistRow]:
        self._require_initialized()
        return await self._db.list_artists()

    async def list_albums(self, *, artist_id: int | None = None) -> list[AlbumRow]:
        self._require_initialized()
        if artist_id is None:
            return await self._db.list_albums()
        return await self._db.list_albums_by_artist(artist_id)

    async def list_tracks_with_metadata(self) -> list[TrackWithMetadata]:
        self._require_initialized()
        return await self._db.list_tracks_with_metadata()

    async def get_artist(self, artist_id: int) -> ArtistRow | None:
        self._require_initialized()
        return await self._db.get_artist(artist_id)

    async def get_album(self, album_id: int) -> AlbumRow | None:
        self._require_initialized()
        return await self._db.get_album(album_id)

    async def get_track_metadata(self, track_id: int) -> TrackMetadataRow | None:
        self._require_initialized()
        return await self._db.get_track_metadata(track_id)

    async def list_track_ids_under_directory(self, directory_id: int) -> list[int]:
        self._require_initialized()
        return await self._db.list_track_ids_of_music_directory(directory_id)

    def album_art_path(self, album_id: int) -> Path | None:
        """Location of the cached cover of an album, or None if none was cached."""
        path = self._art_cache.path_for(album_id)
        return path if path.exists() else None

    # ---- Validity predicates ----

    async def is_valid_directory_id(self, directory_id: int) -> bool:
        self._require_initialized()
        return await self._db.is_valid_music_directory_id(directory_id)

    async def is_valid_artist_id(self, artist_id: int) -> bool:
        self._require_initialized()
        return await self._db.is_valid_artist_id(artist_id)

    async def is_valid_album_id(self, album_id: int) -> bool:
        self._require_initialized()
        return await self._db.is_valid_album_id(album_id)

    async def is_valid_track_id(self, track_id: int) -> bool:
        self._require_initialized()
        return await self._db.is_valid_track_id(track_id)

    # ---- Background rebuild ----

    async def start_rebuild(self, *, prune_missing: bool = False) -> bool:
        """
        Start a background rebuild of all registered directories.

        Returns:
            True if the rebuild started, False if one is already running or
            no directory is registered.
        """
        self._require_initialized()

        if self._scan_status.is_running:
            logger.warning("Scan already in progress")
            return False

        directories = await self._db.list_music_directories()
        if not directories:
            logger.warning("No music directories registered")
            return False

        self._scan_status = ScanStatus(is_running=True, directories_total=len(directories))
        self._scan_task = asyncio.create_task(self._run_rebuild(directories, prune_missing))
        self._scan_task.add_done_callback(self._log_rebuild_failure)
        return True

    @staticmethod
    def _log_rebuild_failure(task: asyncio.Task[list[ScanReport]]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Background rebuild failed: %s", exc, exc_info=exc)

    async def wait_for_scan(self) -> list[ScanReport]:
        """Wait for the running background rebuild (if any) and return its reports."""
        if self._scan_task is None:
            return list(self._scan_status.last_reports)
        try:
            return await self._scan_task
        finally:
            self._scan_task = None

    async def _run_rebuild(
        self, directories: list[MusicDirectoryRow], prune_missing: bool
    ) -> list[ScanReport]:
        status = self._scan_status
        reports: list[ScanReport] = []

        def _on_progress(_directory: str, files_done: int) -> None:
            status.files_done = files_done

        try:
            for i, directory in enumerate(directories):
                status.current_directory = directory.path
                status.directories_done = i
                status.progress = i / len(directories)

                logger.info("Scanning directory %d/%d: %s", i + 1, len(directories), directory.path)

                report = await self._scanner.scan_directory(
                    directory.path, prune_missing=prune_missing, on_progress=_on_progress
                )
                if report is None:
                    status.errors += 1
                    continue
                status.errors += len(report.failures)
                reports.append(report)

            status.directories_done = len(directories)
            status.progress = 1.0
            status.last_reports = reports
            logger.info(
                "Rebuild complete: %d directories, %d tracks added, %d errors",
                len(reports),
                sum(r.tracks_added for r in reports),
                status.errors,
            )
            return reports
        finally:
            status.is_running = False
            status.current_directory = ""

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise MusicCatalogNotReadyError(
                "MusicCatalog is not initialized. Call await MusicCatalog.initialize() first."
            )

    def _require_idle(self) -> None:
        if self._scan_status.is_running:
            raise MusicCatalogError("A background rebuild is running; wait for it first.")
