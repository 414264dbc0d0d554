"""Engine construction from a data root.

This module wires the profile store, settings pointer, preferences, backup
manager and path lock registry into a ready SyncEngine. Opening an engine on an
empty store creates the "Default" profile.

No file deletion is performed by this module.
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from pathlib import Path

from .backup_manager import BackupManager
from .clock import Clock, SystemClock
from .path_locks import PathLockRegistry
from .paths import EnginePaths, ensure_engine_directories, resolve_engine_paths
from .preferences import PreferencesStore
from .profile_store.sqlite_store import open_profile_store
from .settings_pointer import ActivePaths, SettingsPointer
from .sync_engine import SyncEngine

logger = logging.getLogger(__name__)


def open_sync_engine(
    data_root: Path | None = None,
    *,
    config_path: Path | None = None,
    clock: Clock | None = None,
) -> SyncEngine:
    """
    Build a SyncEngine rooted at `data_root`.

    Parameters
    ----------
    data_root:
        Optional override for the engine data root.
    config_path:
        Optional override for the default live configuration path (used by the
        settings defaults and the bootstrap "Default" profile).
    clock:
        Optional clock shared by the store and the backup manager.

    Returns
    -------
    SyncEngine
        Engine with the "Default" profile guaranteed to exist.
    """
    paths = resolve_engine_paths(data_root=data_root, config_path=config_path)
    ensure_engine_directories(paths)
    clock = clock or SystemClock()

    store = open_profile_store(paths.store_db, clock=clock)
    created = store.ensure_default_profile(paths.default_config_path, paths.default_backup_dir)
    if created is not None:
        logger.info("Initialized profile store %s with default profile id=%s", paths.store_db, created)

    settings = SettingsPointer(
        settings_file=paths.settings_file,
        defaults=ActivePaths(
            config_path=paths.default_config_path,
            backup_path=paths.default_backup_dir,
            client_path=None,
        ),
    )
    return SyncEngine(
        store=store,
        settings=settings,
        backups=BackupManager(
            default_backup_dir=paths.default_backup_dir, settings=settings, clock=clock
        ),
        preferences=PreferencesStore(preferences_file=paths.preferences_file),
        locks=PathLockRegistry(),
    )


def engine_paths_as_text(paths: EnginePaths) -> str:
    """Render EnginePaths as a readable multi-line string."""
    items = asdict(paths)
    return "\n".join(f"{key}: {items[key]}" for key in items)
