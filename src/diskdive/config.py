"""Configuration loading for diskdive."""

import json
import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError

from diskdive.models import LARGE_FILE_THRESHOLD
from diskdive.patterns import OVERVIEW_ROOTS

log = logging.getLogger(__name__)

CONFIG_FILE_NAME = "config.json"
APP_DIR_NAME = "diskdive"

DAY = 24 * 60 * 60


def expand_path(path: str) -> Path:
    """Expand ~ and environment variables in path."""
    return Path(os.path.expanduser(os.path.expandvars(path)))


def absolute_path(path: Path | str) -> str:
    """Return the absolute, ~-expanded form of path (used as cache key)."""
    return os.path.abspath(os.path.expanduser(os.fspath(path)))


def xdg_cache_home() -> Path:
    """Return XDG_CACHE_HOME, defaulting to ~/.cache."""
    return Path(os.environ.get("XDG_CACHE_HOME", Path.home() / ".cache"))


def xdg_config_home() -> Path:
    """Return XDG_CONFIG_HOME, defaulting to ~/.config."""
    return Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))


class Settings(BaseModel):
    """Tunable limits and cache policies.

    Durations are in seconds. Every value has a default, so an empty or
    missing config file yields a working configuration.
    """

    # Size estimation bounds
    size_timeout: float = Field(0.5, gt=0, description="Wall-clock budget per directory estimate")
    max_depth: int = Field(3, ge=0, description="Deepest level walked below a child directory")
    max_files: int = Field(10_000, gt=0, description="Files counted per estimate before stopping")

    # Scan fan-out
    max_workers: int = Field(32, gt=0, description="Upper bound on scan worker threads")
    large_file_threshold: int = Field(
        LARGE_FILE_THRESHOLD, gt=0, description="Files at least this big are listed as large"
    )

    # Cache policies
    cache_ttl: float = Field(7 * DAY, gt=0, description="Hard ceiling on full record age")
    stale_ttl: float = Field(1 * DAY, gt=0, description="Age limit for display-only stale reads")
    overview_ttl: float = Field(7 * DAY, gt=0, description="Age limit for overview snapshots")
    mtime_grace: float = Field(
        2.0, ge=0, description="Tolerated directory mtime advance (0 disables)"
    )
    reuse_window: float = Field(
        30.0, ge=0, description="Record age within which mtime changes are ignored (0 disables)"
    )

    cache_dir: Optional[str] = Field(None, description="Cache directory (default: XDG cache)")
    overview_roots: list[str] = Field(
        default_factory=lambda: list(OVERVIEW_ROOTS),
        description="Paths listed in overview mode",
    )

    def resolved_cache_dir(self) -> Path:
        """Return the cache directory, honouring DISKDIVE_CACHE_DIR."""
        override = os.environ.get("DISKDIVE_CACHE_DIR")
        if override:
            return expand_path(override)
        if self.cache_dir:
            return expand_path(self.cache_dir)
        return xdg_cache_home() / APP_DIR_NAME

    def existing_overview_roots(self) -> list[Path]:
        """Return overview roots that exist, expanded and de-duplicated."""
        roots: list[Path] = []
        seen: set[str] = set()
        for raw in self.overview_roots:
            path = expand_path(raw)
            key = str(path)
            if key in seen or not path.is_dir():
                continue
            seen.add(key)
            roots.append(path)
        return roots


def default_config_path() -> Path:
    """Return the default location of the config file."""
    return xdg_config_home() / APP_DIR_NAME / CONFIG_FILE_NAME


def load_settings(path: Path | None = None) -> Settings:
    """
    Load settings from a JSON config file.

    A missing file gives the defaults. An unreadable or invalid file is
    logged and also gives the defaults, so a bad config never stops the tool.

    Args:
        path: Config file to read (default: XDG config location)

    Returns:
        Validated Settings
    """
    config_path = path or default_config_path()
    if not config_path.exists():
        return Settings()

    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as e:
        log.warning("Could not load settings from %s: %s", config_path, e)
        return Settings()

    if not isinstance(data, dict):
        log.warning("Ignoring settings in %s: expected a JSON object", config_path)
        return Settings()

    try:
        return Settings.model_validate(data)
    except ValidationError as e:
        log.warning("Invalid settings in %s: %s", config_path, e)
        return Settings()
