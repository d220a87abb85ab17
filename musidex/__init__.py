"""
musidex - a persistent catalog of local audio files.

musidex discovers FLAC and MP3 files under registered directories, extracts
their embedded tags and cover art, and stores normalized artist/album/track
records in SQLite so front-ends can browse without rescanning the disk.
"""

__version__ = "0.1.0"
__license__ = "GPL-2.0"

from musidex.core.library import MusicCatalog

__all__ = ["MusicCatalog", "__version__"]
