"""Loading of the TOML configuration file."""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

DEFAULT_DB_PATH = "~/.mempal/palace.db"
DEFAULT_EMBED_BACKEND = "model2vec"


class ConfigError(Exception):
    """The configuration file could not be read or parsed."""

    def __init__(self, message: str, path: Path | None = None) -> None:
        super().__init__(message)
        self.path = path


@dataclass
class EmbedConfig:
    """Embedding backend settings."""

    backend: str = DEFAULT_EMBED_BACKEND
    model: str | None = None
    api_endpoint: str | None = None
    api_model: str | None = None

    @classmethod
    def _from_mapping(cls, data: Any) -> EmbedConfig:
        if not isinstance(data, dict):
            raise ConfigError("failed to parse config TOML")
        config = cls()
        if "backend" in data:
            config.backend = _require_str(data["backend"])
        for name in ("model", "api_endpoint", "api_model"):
            if name in data:
                setattr(config, name, _require_str(data[name]))
        return config


@dataclass
class Config:
    """Top-level settings; every field has a default."""

    db_path: str = DEFAULT_DB_PATH
    embed: EmbedConfig = field(default_factory=EmbedConfig)

    @classmethod
    def load(cls) -> Config:
        """Load from the default location under the home directory."""
        return cls.load_from(default_config_path())

    @classmethod
    def load_from(cls, path: str | os.PathLike[str]) -> Config:
        """Load from ``path``; a missing file yields the defaults."""
        path = Path(path)
        try:
            contents = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return cls()
        except (OSError, UnicodeDecodeError) as exc:
            raise ConfigError(f"failed to read config from {path}", path) from exc

        try:
            data = tomllib.loads(contents)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError("failed to parse config TOML", path) from exc
        return cls._from_mapping(data)

    @classmethod
    def _from_mapping(cls, data: dict[str, Any]) -> Config:
        config = cls()
        if "db_path" in data:
            config.db_path = _require_str(data["db_path"])
        if "embed" in data:
            config.embed = EmbedConfig._from_mapping(data["embed"])
        return config


def default_config_path() -> Path:
    home = os.environ.get("HOME")
    if home is None:
        return Path("~/.mempal/config.toml")
    return Path(home) / ".mempal" / "config.toml"


def _require_str(value: Any) -> str:
    if not isinstance(value, str):
        raise ConfigError("failed to parse config TOML")
    return value