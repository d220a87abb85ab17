"""
Core domain package.

This package contains the indexing and persistence logic of musidex: the
catalog store, the metadata extractor, the scanner and the art cache. It is
independent of any front-end (TUI, GUI, CLI).

We intentionally keep exports minimal; consumers should usually import from the
specific module they need (e.g. `musidex.core.library`).
"""

from __future__ import annotations

__all__: list[str] = [
    "CoreError",
    "SchemaError",
]


class CoreError(Exception):
    """Base class for core-layer exceptions."""


class SchemaError(CoreError):
    """Raised when the catalog schema cannot be created or migrated."""
