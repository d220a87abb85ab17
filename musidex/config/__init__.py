"""
Configuration management for musidex.

This module loads the catalog configuration (database location, cover art
cache location, scan roots, log level) from TOML files. The packaged
`defaults.toml` is always read first; a user file overrides its keys.
"""

from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

# Path to the config directory
CONFIG_DIR = Path(__file__).parent

DEFAULT_CONFIG_PATH = CONFIG_DIR / "defaults.toml"


class ConfigError(ValueError):
    """Raised when a configuration file is unreadable or has invalid values."""


@dataclass
class CatalogConfig:
    """Loaded catalog configuration. All paths are absolute."""

    data_dir: Path
    database_path: Path
    art_cache_dir: Path
    music_directories: list[Path] = field(default_factory=list)
    log_level: str = "INFO"


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {path}: {e}") from e


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge `override` into a copy of `base` (tables merge, values replace)."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _resolve(value: str, base: Path) -> Path:
    p = Path(value).expanduser()
    if not p.is_absolute():
        p = base / p
    return p


def load_config(config_path: Path | None = None) -> CatalogConfig:
    """
    Load catalog configuration.

    Args:
        config_path: Optional user TOML file. Its keys override the packaged
            defaults. If None, only the defaults are used.

    Returns:
        Loaded CatalogConfig instance.
    """
    data = _read_toml(DEFAULT_CONFIG_PATH)
    if config_path is not None:
        logger.debug("Loading config from %s", config_path)
        data = _merge(data, _read_toml(config_path))

    catalog = data.get("catalog", {})
    logging_section = data.get("logging", {})

    data_dir = Path(str(catalog.get("data_dir", "~/.local/share/musidex"))).expanduser()
    if not data_dir.is_absolute():
        data_dir = data_dir.resolve()

    raw_dirs = catalog.get("music_directories", [])
    if not isinstance(raw_dirs, list):
        raise ConfigError("catalog.music_directories must be a list of paths")

    level = str(logging_section.get("level", "INFO")).upper()
    if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        raise ConfigError(f"Unknown log level: {level}")

    return CatalogConfig(
        data_dir=data_dir,
        database_path=_resolve(str(catalog.get("database", "musidex.db")), data_dir),
        art_cache_dir=_resolve(str(catalog.get("art_cache_dir", "album_art")), data_dir),
        music_directories=[Path(str(d)).expanduser() for d in raw_dirs],
        log_level=level,
    )
