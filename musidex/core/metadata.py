"""
Embedded metadata extraction (read-only) for the supported containers.

Only two containers are recognized: FLAC (Vorbis comments + picture blocks)
and MP3 (ID3v2). Extraction is a pure function of the file contents; nothing
here touches the catalog or writes to the file.

All functions are synchronous. Callers on the event loop run them through
`asyncio.to_thread`.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Final, Protocol

from mutagen import File as mutagen_file
from mutagen import MutagenError
from mutagen.flac import FLAC
from mutagen.id3 import ID3, ID3NoHeaderError

logger = logging.getLogger(__name__)

# Case-sensitive suffix match, like the file names on disk.
SUPPORTED_EXTENSIONS: Final[tuple[str, ...]] = (".flac", ".mp3")


@dataclass(frozen=True, slots=True)
class CoverArt:
    """An embedded picture payload."""

    data: bytes
    mime: str


@dataclass(frozen=True, slots=True)
class TrackTags:
    """
    Normalized tags of one audio file.

    Names, not ids: resolving artist/album names to catalog rows is the store's job.
    """

    title: str
    track_number: int | None = None
    artist: str | None = None
    album: str | None = None
    cover_art: CoverArt | None = None


def is_supported_file(path: str | Path) -> bool:
    return str(path).endswith(SUPPORTED_EXTENSIONS)


# ---------------------------------------------------------------------------
# Tag value helpers
# ---------------------------------------------------------------------------


def _clean_str(value: str | None) -> str | None:
    if value is None:
        return None
    s = value.strip()
    return s if s else None


def _first_text(value: Any) -> str | None:
    """
    Mutagen returns different shapes depending on container/tag type:
    - ID3 frames
    - lists of strings
    - plain strings
    - objects with `.text`
    We normalize to a single string (first item if multiple).
    """
    if value is None:
        return None

    if isinstance(value, (list, tuple)):
        if not value:
            return None
        return _first_text(value[0])

    # ID3 frames keep their values in `.text`
    text = getattr(value, "text", None)
    if text is not None:
        return _first_text(text)

    try:
        s = str(value)
    except Exception:
        return None

    return _clean_str(s)


def _parse_track_number(value: Any) -> int | None:
    """
    Parse things like "3", "3/12", ["3/12"] or a TRCK frame.

    0 is the "not set" sentinel of most tag formats and maps to None, so a
    genuine track number 0 cannot be represented.
    """
    s = _first_text(value)
    if not s:
        return None

    if "/" in s:
        s = s.split("/", 1)[0].strip()

    try:
        n = int(s)
    except ValueError:
        return None
    return n if n != 0 else None


def _tags_get(tags: dict[str, Any] | None, keys: Iterable[str]) -> Any:
    if not tags:
        return None
    for k in keys:
        if k in tags:
            return tags.get(k)
    return None


# ---------------------------------------------------------------------------
# Cover art readers
# ---------------------------------------------------------------------------


class CoverArtReader(Protocol):
    """Reads the embedded cover of one container family."""

    def read(self, path: Path) -> CoverArt | None: ...


class FlacCoverArtReader:
    """Front-most entry of the FLAC picture list."""

    def read(self, path: Path) -> CoverArt | None:
        audio = FLAC(path)
        if not audio.pictures:
            return None
        pic = audio.pictures[0]
        return CoverArt(data=bytes(pic.data), mime=pic.mime or "image/jpeg")


class Id3CoverArtReader:
    """Payload of the first APIC (attached picture) frame of the ID3v2 tag."""

    def read(self, path: Path) -> CoverArt | None:
        try:
            tags = ID3(path)
        except ID3NoHeaderError:
            return None
        frames = tags.getall("APIC")
        if not frames:
            return None
        frame = frames[0]
        return CoverArt(data=bytes(frame.data), mime=frame.mime or "image/jpeg")


COVER_ART_READERS: Final[dict[str, CoverArtReader]] = {
    ".flac": FlacCoverArtReader(),
    ".mp3": Id3CoverArtReader(),
}


def read_cover_art(path: str | Path) -> CoverArt | None:
    """Dispatch to the reader of the file's container; None if none applies or on error."""
    p = Path(path)
    reader = COVER_ART_READERS.get(p.suffix)
    if reader is None:
        return None
    try:
        return reader.read(p)
    except (MutagenError, OSError) as e:
        logger.debug("Cover art extraction failed for %s: %s", p, e)
        return None


# ---------------------------------------------------------------------------
# Tags
# ---------------------------------------------------------------------------


def extract_metadata(path: str | Path) -> TrackTags | None:
    """
    Extract normalized tags using mutagen.

    Returns None when mutagen cannot open the container ("no information
    available", not an error). A readable file without any tags still yields
    a record whose title is the filename without its extension.
    """
    p = Path(path)
    try:
        audio = mutagen_file(p)
    except (MutagenError, OSError) as e:
        logger.debug("Cannot read tags of %s: %s", p, e)
        return None
    if audio is None:
        logger.debug("Unsupported or unreadable audio file: %s", p)
        return None

    tags: dict[str, Any] | None = None
    if audio.tags is not None:
        # mutagen tags behave like a dict (VComment keys are lower-cased)
        tags = dict(audio.tags)

    # Keys: ID3=TIT2, Vorbis=title
    title = _first_text(_tags_get(tags, ("TIT2", "title", "TITLE"))) or p.stem
    # Keys: ID3=TRCK, Vorbis=tracknumber
    track_number = _parse_track_number(_tags_get(tags, ("TRCK", "tracknumber", "TRACKNUMBER")))
    # Keys: ID3=TPE1, Vorbis=artist
    artist = _first_text(_tags_get(tags, ("TPE1", "artist", "ARTIST")))
    # Keys: ID3=TALB, Vorbis=album
    album = _first_text(_tags_get(tags, ("TALB", "album", "ALBUM")))

    return TrackTags(
        title=title,
        track_number=track_number,
        artist=artist,
        album=album,
        cover_art=read_cover_art(p),
    )
