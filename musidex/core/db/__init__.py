"""
Internal DB subpackage for musidex.

This package splits the catalog store into focused units (models,
schema/migrations, and query groups) while keeping `CatalogDb` as the single
public interface that the rest of the codebase imports.

Re-exports here are primarily for convenience inside the `core` package.
External code should import `CatalogDb` from `musidex.core.catalog_db`.
"""

from __future__ import annotations

# Models / DTOs
from .models import (
    AlbumRow,
    ArtistRow,
    MusicDirectoryRow,
    TrackMetadataRow,
    TrackRow,
    TrackWithMetadata,
)

# Schema / migrations
from .schema import SCHEMA_VERSION, TABLES, ensure_schema, migrate

__all__ = [
    # models
    "MusicDirectoryRow",
    "ArtistRow",
    "AlbumRow",
    "TrackRow",
    "TrackMetadataRow",
    "TrackWithMetadata",
    # schema
    "SCHEMA_VERSION",
    "TABLES",
    "ensure_schema",
    "migrate",
]
