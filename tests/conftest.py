"""
Shared fixtures: tiny but valid FLAC/MP3 files written with mutagen.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest
from mutagen.flac import FLAC, Picture
from mutagen.id3 import APIC, TALB, TIT2, TPE1, TRCK
from mutagen.mp3 import MP3

# MPEG1 Layer3 128kbps 44100Hz frame = 417 bytes; need several for a valid sync
_MP3_FRAME = b"\xff\xfb\x90\x00" + b"\x00" * 413

# "fLaC" + last-block STREAMINFO header (length 34):
# 4096 blocksize, unknown frame sizes, 44100 Hz, stereo, 16 bit, 0 samples, no MD5
_FLAC_HEADER = (
    b"fLaC"
    + b"\x80\x00\x00\x22"
    + b"\x10\x00\x10\x00"
    + b"\x00\x00\x00\x00\x00\x00"
    + b"\x0a\xc4\x42\xf0\x00\x00\x00\x00"
    + b"\x00" * 16
)

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


def write_mp3(
    path: Path,
    *,
    title: str | None = None,
    artist: str | None = None,
    album: str | None = None,
    track: str | None = None,
    cover: bytes | None = None,
) -> Path:
    """Write a silent MP3; ID3 frames are only added for the given values."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(_MP3_FRAME * 10)

    frames = []
    if title is not None:
        frames.append(TIT2(encoding=3, text=[title]))
    if artist is not None:
        frames.append(TPE1(encoding=3, text=[artist]))
    if album is not None:
        frames.append(TALB(encoding=3, text=[album]))
    if track is not None:
        frames.append(TRCK(encoding=3, text=[track]))
    if cover is not None:
        frames.append(APIC(encoding=3, mime="image/png", type=3, desc="Cover", data=cover))

    if frames:
        mp3 = MP3(path)
        mp3.add_tags()
        for frame in frames:
            mp3.tags.add(frame)
        mp3.save()
    return path


def write_flac(
    path: Path,
    *,
    title: str | None = None,
    artist: str | None = None,
    album: str | None = None,
    track: str | None = None,
    covers: list[bytes] | None = None,
) -> Path:
    """Write a metadata-only FLAC with Vorbis comments and picture blocks."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(_FLAC_HEADER)

    audio = FLAC(path)
    audio.add_tags()
    for key, value in (("title", title), ("artist", artist), ("album", album)):
        if value is not None:
            audio[key] = value
    if track is not None:
        audio["tracknumber"] = track
    for data in covers or []:
        pic = Picture()
        pic.type = 3
        pic.mime = "image/png"
        pic.data = data
        audio.add_picture(pic)
    audio.save()
    return path


@pytest.fixture
def make_mp3() -> Callable[..., Path]:
    return write_mp3


@pytest.fixture
def make_flac() -> Callable[..., Path]:
    return write_flac
