"""
DB models (DTOs) and small normalization helpers for the catalog store.

This module is intentionally lightweight:
- No DB connection knowledge
- No SQL
- Pure dataclasses + helper functions
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class MusicDirectoryRow:
    """A registered scan root. `path` is canonical (absolute, symlinks resolved)."""

    id: int
    path: str


@dataclass(frozen=True, slots=True)
class ArtistRow:
    id: int
    name: str


@dataclass(frozen=True, slots=True)
class AlbumRow:
    """
    Album record as stored in SQLite.

    `(name, artist_id)` is the natural key; `artist_id=None` is its own slot,
    so the same title can exist once per artist and once without an artist.
    """

    id: int
    name: str
    artist_id: int | None


@dataclass(frozen=True, slots=True)
class TrackRow:
    """One file on disk. `path` is canonical and unique across the catalog."""

    id: int
    path: str
    directory_id: int


@dataclass(frozen=True, slots=True)
class TrackMetadataRow:
    """
    Metadata of a single track (1:1 with `TrackRow`, keyed by `track_id`).

    Notes:
    - `title` is never None; the extractor falls back to the filename stem.
    - `track_number` is None when the tag is missing or holds the sentinel 0.
    """

    track_id: int
    title: str
    track_number: int | None = None
    artist_id: int | None = None
    album_id: int | None = None


@dataclass(frozen=True, slots=True)
class TrackWithMetadata:
    """A track joined with its (optional) metadata row."""

    track: TrackRow
    metadata: TrackMetadataRow | None


def canonical_path(path: str | Path) -> Path:
    """Absolute path with `~`, symlinks and relative segments resolved."""
    return Path(path).expanduser().resolve()


def normalize_text(value: str | None) -> str | None:
    """
    Normalize optional text fields:
    - strip whitespace
    - coerce empty strings to None
    """
    if value is None:
        return None
    v = value.strip()
    return v if v else None


def normalize_track_number(value: int | None) -> int | None:
    """Tag formats use 0 for "not set"; we store that as None (lossy by convention)."""
    if value is None:
        return None
    n = int(value)
    return n if n != 0 else None
