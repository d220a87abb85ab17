from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from musidex.core.artwork import ArtCache
from musidex.core.catalog_db import CatalogDb
from musidex.core.db.models import TrackMetadataRow, canonical_path
from musidex.core.metadata import extract_metadata, is_supported_file

logger = logging.getLogger(__name__)

# Called after every indexed file with (directory path, files handled so far).
ProgressCallback = Callable[[str, int], None]


@dataclass(slots=True)
class ScanReport:
    """Counters for one `scan_directory` call."""

    directory_id: int
    path: str
    files_seen: int = 0
    tracks_added: int = 0
    tracks_existing: int = 0
    tracks_without_metadata: int = 0
    tracks_pruned: int = 0
    art_written: int = 0
    failures: list[str] = field(default_factory=list)


def _walk_audio_files(root: Path) -> list[Path]:
    """
    Every regular file under `root` with a supported suffix.

    Order is whatever the filesystem enumerates; nothing is sorted.
    """
    paths: list[Path] = []
    for p in root.rglob("*"):
        try:
            if not p.is_file():
                continue
        except OSError:
            # Broken permissions/paths: skip, the scan goes on.
            continue
        if is_supported_file(p.name):
            paths.append(p)
    return paths


class LibraryScanner:
    """
    Walks music directories and feeds the catalog.

    Per file: insert-or-get the track row; only for a newly inserted track,
    extract its tags, resolve artist/album names into ids, write the metadata
    row and hand any cover art to the art cache. Already indexed files are
    no-ops, so rescans are idempotent-additive.

    Everything runs sequentially: one file at a time, one store call at a time.
    """

    def __init__(self, *, db: CatalogDb, art_cache: ArtCache) -> None:
        self._db = db
        self._art_cache = art_cache

    async def add_track(self, path: str | Path, directory_id: int | None) -> int | None:
        """Register one file (and its metadata). Returns the track id or None."""
        track_id, _created = await self._add_track(Path(path), directory_id, report=None)
        return track_id

    async def _add_track(
        self, path: Path, directory_id: int | None, *, report: ScanReport | None
    ) -> tuple[int | None, bool]:
        existing = await self._db.get_track_id(path)
        if existing is not None:
            return existing, False

        track_id = await self._db.insert_track(path, directory_id)
        if track_id is None:
            return None, False

        # Tags come from the path as found; a symlink keeps its own name and suffix.
        tags = await asyncio.to_thread(extract_metadata, path.expanduser())
        if tags is None:
            # Still indexed, just without a metadata row.
            if report is not None:
                report.tracks_without_metadata += 1
            return track_id, True

        artist_id = await self._db.insert_artist(tags.artist) if tags.artist else None
        album_id = await self._db.insert_album(tags.album, artist_id) if tags.album else None

        await self._db.upsert_track_metadata(
            TrackMetadataRow(
                track_id=track_id,
                title=tags.title,
                track_number=tags.track_number,
                artist_id=artist_id,
                album_id=album_id,
            )
        )

        if album_id is not None and tags.cover_art is not None:
            written = await asyncio.to_thread(self._art_cache.store, album_id, tags.cover_art)
            if written and report is not None:
                report.art_written += 1

        return track_id, True

    async def scan_directory(
        self,
        path: str | Path,
        *,
        prune_missing: bool = False,
        on_progress: ProgressCallback | None = None,
    ) -> ScanReport | None:
        """
        Register `path` as a music directory and index every supported file under it.

        Returns None, with nothing registered, if `path` is not an existing
        directory. A file that cannot be indexed is recorded in the report and
        the scan goes on.

        With `prune_missing=True`, tracks of this directory whose file is gone
        from disk are removed first. The default never removes anything.
        """
        root = canonical_path(path)
        if not root.is_dir():
            logger.warning("Path doesn't exist or is not a directory: %s", path)
            return None

        directory_id = await self._db.insert_music_directory(root)
        if directory_id is None:
            return None

        report = ScanReport(directory_id=directory_id, path=str(root))
        logger.info("Scanning %s", root)

        if prune_missing:
            report.tracks_pruned = await self._prune_missing(directory_id)

        files = await asyncio.to_thread(_walk_audio_files, root)
        for file_path in files:
            report.files_seen += 1
            track_id, created = await self._add_track(file_path, directory_id, report=report)
            if track_id is None:
                report.failures.append(str(file_path))
            elif created:
                report.tracks_added += 1
                logger.debug("%d - INSERTED: %s", report.files_seen, file_path)
            else:
                report.tracks_existing += 1
            if on_progress is not None:
                on_progress(str(root), report.files_seen)

        logger.info(
            "Scan of %s done: %d files, %d added, %d already indexed, %d failed",
            root,
            report.files_seen,
            report.tracks_added,
            report.tracks_existing,
            len(report.failures),
        )
        return report

    async def rebuild(
        self,
        *,
        prune_missing: bool = False,
        on_progress: ProgressCallback | None = None,
    ) -> list[ScanReport]:
        """Re-run `scan_directory` for every registered music directory."""
        reports: list[ScanReport] = []
        for directory in await self._db.list_music_directories():
            report = await self.scan_directory(
                directory.path, prune_missing=prune_missing, on_progress=on_progress
            )
            if report is not None:
                reports.append(report)
        return reports

    async def _prune_missing(self, directory_id: int) -> int:
        removed = 0
        for track in await self._db.list_tracks_of_music_directory(directory_id):
            if Path(track.path).is_file():
                continue
            await self._db.remove_track(track.id)
            removed += 1
            logger.info("Pruned missing file %s", track.path)
        return removed
