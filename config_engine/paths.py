"""
Filesystem path policy for the configuration engine.

This module decides where engine state lives and where the managed client
keeps its configuration by default:

- Engine state (profile database, settings pointer, preferences, default
  backups) lives under a "data root".
- The default live configuration file is the client's conventional location
  inside the platform's application-data directory.

Overrides
---------
``MCPCFG_DATA_ROOT`` replaces the data root and ``MCPCFG_CONFIG_PATH``
replaces the default live configuration path. Explicit arguments win over both.
"""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path

from .errors import ValidationError

logger = logging.getLogger(__name__)

APP_DIR_NAME = "mcpcfg"
CLIENT_DIR_NAME = "Claude"
CLIENT_CONFIG_FILE_NAME = "claude_desktop_config.json"

DATA_ROOT_ENV = "MCPCFG_DATA_ROOT"
CONFIG_PATH_ENV = "MCPCFG_CONFIG_PATH"


@dataclass(frozen=True, slots=True)
class EnginePaths:
    """
    Concrete resolved paths used by the engine.

    Attributes
    ----------
    data_root:
        Root directory for all engine state.
    store_db:
        SQLite database holding profiles and configuration snapshots.
    settings_file:
        JSON file holding the settings pointer.
    preferences_file:
        JSON file holding editor preferences (last opened file).
    default_config_path:
        Live configuration file used by the bootstrap "Default" profile.
    default_backup_dir:
        Backup directory used when the settings pointer names none.
    """

    data_root: Path
    store_db: Path
    settings_file: Path
    preferences_file: Path
    default_config_path: Path
    default_backup_dir: Path


def app_data_dir() -> Path:
    """
    Return the platform's per-user application data directory.

    Preference order
    ----------------
    - Windows: %APPDATA% (Roaming), then %LOCALAPPDATA%
    - macOS: ~/Library/Application Support
    - Others: $XDG_CONFIG_HOME, then ~/.config
    """
    if sys.platform == "win32":
        for var in ("APPDATA", "LOCALAPPDATA"):
            value = os.environ.get(var)
            if value:
                return Path(value)
        return Path.home() / "AppData" / "Roaming"

    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg)
    return Path.home() / ".config"


def default_data_root() -> Path:
    """Resolve the engine data root, honoring ``MCPCFG_DATA_ROOT``."""
    override = os.environ.get(DATA_ROOT_ENV)
    if override:
        return Path(override).expanduser()
    return app_data_dir() / APP_DIR_NAME


def default_client_config_path() -> Path:
    """Resolve the client's default live configuration path."""
    override = os.environ.get(CONFIG_PATH_ENV)
    if override:
        return Path(override).expanduser()
    return app_data_dir() / CLIENT_DIR_NAME / CLIENT_CONFIG_FILE_NAME


def resolve_engine_paths(
    data_root: Path | None = None, config_path: Path | None = None
) -> EnginePaths:
    """
    Resolve every path the engine reads or writes.

    Parameters
    ----------
    data_root:
        Optional override for the data root.
    config_path:
        Optional override for the default live configuration path.

    Returns
    -------
    EnginePaths
        Resolved absolute paths. Nothing is created on disk.
    """
    root = (data_root or default_data_root()).expanduser().resolve()
    live = (config_path or default_client_config_path()).expanduser().absolute()
    paths = EnginePaths(
        data_root=root,
        store_db=root / "database" / "profiles.db",
        settings_file=root / "settings.json",
        preferences_file=root / "preferences.json",
        default_config_path=live,
        default_backup_dir=root / "config-backups",
    )
    logger.debug("Resolved engine paths: %s", paths)
    return paths


def ensure_engine_directories(paths: EnginePaths) -> None:
    """Create the data root and database directory. Creates directories only."""
    for directory in (paths.data_root, paths.store_db.parent):
        directory.mkdir(parents=True, exist_ok=True)


def normalize_user_path(value: str | os.PathLike[str], *, field: str) -> Path:
    """
    Normalize a user-supplied path into an absolute path.

    Parameters
    ----------
    value:
        Raw path from a form, CLI argument or stored record.
    field:
        Field name used in error messages.

    Returns
    -------
    pathlib.Path
        Absolute path with ``~`` expanded. Symlinks are not resolved.

    Raises
    ------
    ValidationError
        If the value is empty.
    """
    text = os.fspath(value).strip()
    if not text:
        raise ValidationError(f"{field} must not be empty.")
    return Path(text).expanduser().absolute()
