"""
musidex - command line entry point

Run with: python -m musidex <command>
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from musidex import __version__
from musidex.config import CatalogConfig, ConfigError, load_config
from musidex.core import SchemaError
from musidex.core.artwork import ArtCache
from musidex.core.catalog_db import CatalogDb
from musidex.core.library import MusicCatalog

logger = logging.getLogger("musidex")


def setup_logging(verbose: bool = False, level: str = "INFO") -> None:
    """Configure logging for the application."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Reduce noise from third-party libraries
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="musidex",
        description="musidex - index local FLAC/MP3 files into a browsable catalog",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("-c", "--config", type=Path, help="Path to a TOML config file")
    parser.add_argument("--db", type=Path, help="Catalog database file (overrides config)")
    parser.add_argument("--art-dir", type=Path, help="Cover art directory (overrides config)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("add-dir", help="Register a music directory")
    p.add_argument("path", type=Path)

    p = sub.add_parser("remove-dir", help="Remove a music directory and its tracks")
    p.add_argument("path", type=Path)

    p = sub.add_parser("scan", help="Scan a registered directory id, a path, or 'all'")
    p.add_argument("target", nargs="?", default="all")
    p.add_argument(
        "--prune-missing",
        action="store_true",
        help="Remove tracks whose file no longer exists",
    )

    p = sub.add_parser("remove-track", help="Remove one track by id")
    p.add_argument("track_id", type=int)

    sub.add_parser("dirs", help="List music directories")
    sub.add_parser("artists", help="List artists")
    sub.add_parser("albums", help="List albums")
    sub.add_parser("tracks", help="List tracks with their metadata")
    sub.add_parser("prune-orphans", help="Delete albums/artists without tracks")

    return parser.parse_args(argv)


async def _dispatch(catalog: MusicCatalog, args: argparse.Namespace) -> int:
    command = args.command

    if command == "add-dir":
        directory_id = await catalog.register_directory(args.path)
        if directory_id is None:
            return 1
        print(directory_id)
        return 0

    if command == "remove-dir":
        return 0 if await catalog.remove_directory(args.path) else 1

    if command == "scan":
        target: str = args.target
        if target == "all":
            reports = await catalog.scan("all", prune_missing=args.prune_missing)
        elif target.isdigit():
            reports = await catalog.scan(int(target), prune_missing=args.prune_missing)
            if not reports:
                return 1
        else:
            report = await catalog.scan_directory(target, prune_missing=args.prune_missing)
            if report is None:
                return 1
            reports = [report]
        for r in reports:
            print(
                f"{r.directory_id}\t{r.path}\tfiles={r.files_seen}\tadded={r.tracks_added}"
                f"\tfailed={len(r.failures)}\tpruned={r.tracks_pruned}"
            )
        return 0

    if command == "remove-track":
        if not await catalog.is_valid_track_id(args.track_id):
            logger.warning("Unknown track id: %d", args.track_id)
            return 1
        await catalog.remove_track(args.track_id)
        return 0

    if command == "dirs":
        for d in await catalog.list_music_directories():
            print(f"{d.id}\t{d.path}")
        return 0

    if command == "artists":
        for a in await catalog.list_artists():
            print(f"{a.id}\t{a.name}")
        return 0

    if command == "albums":
        for al in await catalog.list_albums():
            artist = "" if al.artist_id is None else str(al.artist_id)
            print(f"{al.id}\t{al.name}\t{artist}")
        return 0

    if command == "tracks":
        for t in await catalog.list_tracks_with_metadata():
            m = t.metadata
            if m is None:
                print(f"{t.track.id}\t{t.track.path}")
                continue
            track_no = "" if m.track_number is None else str(m.track_number)
            print(f"{t.track.id}\t{t.track.path}\t{track_no}\t{m.title}")
        return 0

    if command == "prune-orphans":
        result = await catalog.prune_orphans()
        albums, artists = result["orphan_albums_deleted"], result["orphan_artists_deleted"]
        print(f"albums={albums}\tartists={artists}")
        return 0

    raise ValueError(f"Unknown command: {command}")


async def run_command(args: argparse.Namespace, config: CatalogConfig) -> int:
    """Open the catalog, run one command, close the catalog."""
    db = CatalogDb(args.db or config.database_path)
    await db.open()
    try:
        catalog = MusicCatalog(db=db, art_cache=ArtCache(args.art_dir or config.art_cache_dir))
        await catalog.initialize()

        for directory in config.music_directories:
            await catalog.register_directory(directory)

        return await _dispatch(catalog, args)
    finally:
        await db.close()


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the application."""
    args = parse_args(argv)

    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"musidex: {e}", file=sys.stderr)
        return 1

    setup_logging(verbose=args.verbose, level=config.log_level)

    try:
        return asyncio.run(run_command(args, config))
    except SchemaError as e:
        # No catalog operation is supported without a valid schema.
        logger.critical("Fatal: %s", e)
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130


if __name__ == "__main__":
    sys.exit(main())
