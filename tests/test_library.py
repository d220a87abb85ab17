"""
Tests for musidex.core.library.MusicCatalog (the front-end facade).
"""

from __future__ import annotations

from pathlib import Path

import pytest

from musidex.core.artwork import ArtCache
from musidex.core.catalog_db import CatalogDb
from musidex.core.library import (
    MusicCatalog,
    MusicCatalogError,
    MusicCatalogNotReadyError,
)

COVER = b"\x89PNG\r\n\x1a\n" + b"\x02" * 24


class TestMusicCatalog:
    """Tests for the MusicCatalog facade."""

    @pytest.fixture
    async def catalog(self, tmp_path: Path) -> MusicCatalog:
        """Create a MusicCatalog with in-memory DB."""
        db = CatalogDb(":memory:")
        await db.open()

        cat = MusicCatalog(db=db, art_cache=ArtCache(tmp_path / "art"))
        await cat.initialize()

        yield cat

        await db.close()

    @pytest.fixture
    def music(self, tmp_path: Path, make_flac, make_mp3) -> Path:
        root = tmp_path / "music"
        make_flac(root / "a.flac", title="T", artist="X", album="Y", track="2", covers=[COVER])
        make_mp3(root / "b.mp3")
        return root

    async def test_not_initialized_raises(self, tmp_path: Path) -> None:
        """Test that operations fail before initialization."""
        db = CatalogDb(":memory:")
        cat = MusicCatalog(db=db, art_cache=ArtCache(tmp_path / "art"))

        with pytest.raises(MusicCatalogNotReadyError):
            await cat.list_artists()

    async def test_initialize_requires_open_db(self, tmp_path: Path) -> None:
        """Test that initialize fails if DB is not open."""
        db = CatalogDb(":memory:")
        cat = MusicCatalog(db=db, art_cache=ArtCache(tmp_path / "art"))

        with pytest.raises(MusicCatalogError):
            await cat.initialize()
        assert not cat.initialized

    async def test_empty_catalog(self, catalog: MusicCatalog) -> None:
        assert catalog.initialized
        assert await catalog.list_music_directories() == []
        assert await catalog.list_artists() == []
        assert await catalog.list_albums() == []
        assert await catalog.list_tracks_with_metadata() == []

    async def test_register_directory(self, catalog: MusicCatalog, music: Path) -> None:
        directory_id = await catalog.register_directory(music)

        assert directory_id is not None
        assert await catalog.register_directory(music) == directory_id
        assert await catalog.is_valid_directory_id(directory_id)

    async def test_register_missing_directory(
        self, catalog: MusicCatalog, tmp_path: Path
    ) -> None:
        assert await catalog.register_directory(tmp_path / "missing") is None
        assert await catalog.list_music_directories() == []

    async def test_scan_directory_and_queries(self, catalog: MusicCatalog, music: Path) -> None:
        report = await catalog.scan_directory(music)
        assert report is not None

        artists = await catalog.list_artists()
        albums = await catalog.list_albums(artist_id=artists[0].id)
        assert [al.name for al in albums] == ["Y"]
        assert await catalog.list_albums(artist_id=artists[0].id + 1) == []

        assert await catalog.is_valid_artist_id(artists[0].id)
        assert await catalog.is_valid_album_id(albums[0].id)
        assert (await catalog.get_artist(artists[0].id)).name == "X"
        assert (await catalog.get_album(albums[0].id)).name == "Y"

        track_ids = await catalog.list_track_ids_under_directory(report.directory_id)
        assert len(track_ids) == 2
        titles = set()
        for track_id in track_ids:
            assert await catalog.is_valid_track_id(track_id)
            meta = await catalog.get_track_metadata(track_id)
            titles.add(meta.title)
        assert titles == {"T", "b"}

        art = catalog.album_art_path(albums[0].id)
        assert art is not None
        assert art.read_bytes() == COVER

    async def test_album_art_path_missing(self, catalog: MusicCatalog) -> None:
        assert catalog.album_art_path(12345) is None

    async def test_scan_by_id(self, catalog: MusicCatalog, music: Path) -> None:
        directory_id = await catalog.register_directory(music)

        reports = await catalog.scan(directory_id)

        assert len(reports) == 1
        assert reports[0].directory_id == directory_id
        assert reports[0].tracks_added == 2

    async def test_scan_unknown_id(self, catalog: MusicCatalog) -> None:
        assert await catalog.scan(99) == []

    async def test_scan_all(
        self, catalog: MusicCatalog, music: Path, tmp_path: Path, make_mp3
    ) -> None:
        other = tmp_path / "other"
        make_mp3(other / "c.mp3", title="C")
        await catalog.register_directory(music)
        await catalog.register_directory(other)

        reports = await catalog.scan("all")

        assert sorted(r.tracks_added for r in reports) == [1, 2]
        assert len(await catalog.list_tracks_with_metadata()) == 3
        assert await catalog.scan_all() != []

    async def test_remove_directory(self, catalog: MusicCatalog, music: Path) -> None:
        report = await catalog.scan_directory(music)

        assert await catalog.remove_directory(music) is True

        assert not await catalog.is_valid_directory_id(report.directory_id)
        assert await catalog.list_tracks_with_metadata() == []
        # Removal leaves artists/albums until an explicit prune.
        assert len(await catalog.list_artists()) == 1
        result = await catalog.prune_orphans()
        assert result == {"orphan_albums_deleted": 1, "orphan_artists_deleted": 1}
        assert await catalog.list_artists() == []

    async def test_remove_track(self, catalog: MusicCatalog, music: Path) -> None:
        report = await catalog.scan_directory(music)
        track_id = (await catalog.list_track_ids_under_directory(report.directory_id))[0]

        assert await catalog.remove_track(track_id) is True

        assert not await catalog.is_valid_track_id(track_id)
        assert await catalog.get_track_metadata(track_id) is None

    async def test_background_rebuild(self, catalog: MusicCatalog, music: Path) -> None:
        await catalog.register_directory(music)

        assert await catalog.start_rebuild() is True
        assert catalog.is_scanning
        assert await catalog.start_rebuild() is False
        with pytest.raises(MusicCatalogError):
            await catalog.remove_directory(music)

        reports = await catalog.wait_for_scan()

        assert not catalog.is_scanning
        assert [r.tracks_added for r in reports] == [2]
        status = catalog.scan_status
        assert status.progress == 1.0
        assert status.directories_done == 1
        assert status.files_done == 2
        assert status.errors == 0
        assert await catalog.wait_for_scan() == reports

    async def test_rebuild_without_directories(self, catalog: MusicCatalog) -> None:
        assert await catalog.start_rebuild() is False
        assert await catalog.wait_for_scan() == []

    async def test_background_rebuild_failure_is_logged(
        self, catalog: MusicCatalog, music: Path, caplog
    ) -> None:
        await catalog.register_directory(music)
        assert await catalog.start_rebuild() is True
        # The task has not run yet; closing the store makes it fail.
        await catalog.db.close()

        with pytest.raises(RuntimeError):
            await catalog.wait_for_scan()

        assert not catalog.is_scanning
        assert "Background rebuild failed" in caplog.text
