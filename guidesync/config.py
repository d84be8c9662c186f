"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

APP_VERSION = "0.1.0"


def default_config_dir() -> Path:
    """Return ``$XDG_CONFIG_HOME/guidesync``, falling back to ``~/.config/guidesync``."""
    xdg_config_home = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config_home:
        return Path(xdg_config_home) / "guidesync"
    return Path.home() / ".config" / "guidesync"


class Settings(BaseSettings):
    """guidesync settings."""

    model_config = SettingsConfigDict(
        env_prefix="GUIDESYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Core
    debug: bool = False
    log_file: Path | None = None

    # Paths
    config_dir: Path = Field(default_factory=default_config_dir)
    resources_file: Path | None = None

    # Synchronization
    http_timeout: float = Field(default=30.0, gt=0)

    # Resolution: ambiguous sets up to this size are loaded together
    ambiguous_autoload_limit: int = Field(default=3, ge=0, le=10)

    # Server
    host: str = "127.0.0.1"
    port: int = Field(default=8000, ge=1, le=65535)

    @property
    def resources_dir(self) -> Path:
        """Directory holding one folder per namespace."""
        return self.config_dir / "resources"
