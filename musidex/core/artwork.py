import logging
from pathlib import Path
from typing import Optional

from musidex.core.metadata import CoverArt

logger = logging.getLogger(__name__)


class ArtCache:
    """
    Write-once on-disk store of album cover art.

    One file per album, named by the album id: `{cache_dir}/{album_id}`.
    Front-ends rebuild the same location from an album id (`path_for`), so the
    core never needs a read operation.

    Once a file exists for an album it is never rewritten, which makes art
    extraction effectively write-once across repeated rescans.
    """

    def __init__(self, cache_dir: Path):
        self.cache_dir = Path(cache_dir)
        self.cache_dir.mkdir(parents=True, exist_ok=True)

    def path_for(self, album_id: int) -> Path:
        return self.cache_dir / str(int(album_id))

    def has(self, album_id: int) -> bool:
        return self.path_for(album_id).exists()

    def store(self, album_id: int, cover: Optional[CoverArt]) -> bool:
        """
        Persist `cover` for `album_id` unless art is already cached.

        Returns:
            True if a file was written, False otherwise (nothing to write,
            already cached, or the write failed).
        """
        if cover is None or not cover.data:
            return False

        target = self.path_for(album_id)
        if target.exists():
            return False

        # A partially written file must never appear at `target`.
        tmp = target.with_name(f".{target.name}.tmp")
        try:
            tmp.write_bytes(cover.data)
            tmp.replace(target)
        except OSError as e:
            logger.error("Failed to write cover art for album %d: %s", album_id, e)
            tmp.unlink(missing_ok=True)
            return False

        logger.debug(
            "Cached cover art for album %d (%s, %d bytes)", album_id, cover.mime, len(cover.data)
        )
        return True
