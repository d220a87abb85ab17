"""
Tests for musidex.config (TOML loading and validation).
"""

from __future__ import annotations

from pathlib import Path

import pytest

from musidex.config import ConfigError, load_config


def _write(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


class TestLoadConfig:
    def test_defaults(self) -> None:
        config = load_config()

        assert config.data_dir == Path("~/.local/share/musidex").expanduser()
        assert config.database_path == config.data_dir / "musidex.db"
        assert config.art_cache_dir == config.data_dir / "album_art"
        assert config.music_directories == []
        assert config.log_level == "INFO"

    def test_user_file_overrides(self, tmp_path: Path) -> None:
        cfg = _write(
            tmp_path / "musidex.toml",
            f"""
[catalog]
data_dir = "{tmp_path.as_posix()}/data"
art_cache_dir = "/var/cache/covers"
music_directories = ["{tmp_path.as_posix()}/music"]

[logging]
level = "debug"
""",
        )

        config = load_config(cfg)

        assert config.data_dir == tmp_path / "data"
        # Untouched key keeps its default, resolved against the new data_dir.
        assert config.database_path == tmp_path / "data" / "musidex.db"
        assert config.art_cache_dir == Path("/var/cache/covers")
        assert config.music_directories == [tmp_path / "music"]
        assert config.log_level == "DEBUG"

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="Cannot read"):
            load_config(tmp_path / "absent.toml")

    def test_invalid_toml(self, tmp_path: Path) -> None:
        cfg = _write(tmp_path / "bad.toml", "[catalog\ndata_dir = ")
        with pytest.raises(ConfigError, match="Invalid TOML"):
            load_config(cfg)

    def test_music_directories_must_be_list(self, tmp_path: Path) -> None:
        cfg = _write(tmp_path / "c.toml", '[catalog]\nmusic_directories = "/music"\n')
        with pytest.raises(ConfigError):
            load_config(cfg)

    def test_unknown_log_level(self, tmp_path: Path) -> None:
        cfg = _write(tmp_path / "c.toml", '[logging]\nlevel = "LOUD"\n')
        with pytest.raises(ConfigError, match="log level"):
            load_config(cfg)
