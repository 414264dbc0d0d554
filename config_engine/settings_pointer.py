"""
Settings pointer: the currently effective config/backup/client paths.

The pointer is derived state. The synchronization engine overwrites it after a
successful profile switch, and the user may edit it directly (for example from
a settings form) without switching profiles. It is deliberately not tied to a
profile id so that profiles can be created and deleted independently.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

from .errors import ReadIOError, SettingsIOError, WriteIOError
from .file_io import read_text_if_exists, write_json_atomic

logger = logging.getLogger(__name__)


class _Unset:
    """Marker for fields omitted from a partial update."""

    def __repr__(self) -> str:
        return "UNSET"


UNSET: Any = _Unset()


@dataclass(frozen=True, slots=True)
class ActivePaths:
    """
    The paths the engine currently treats as active.

    Attributes
    ----------
    config_path:
        Live configuration file.
    backup_path:
        Directory receiving backups.
    client_path:
        Companion client executable, or None for auto-detection by the caller.
    """

    config_path: Path
    backup_path: Path
    client_path: Path | None

    def to_dict(self) -> dict[str, str | None]:
        """Convert to the on-disk JSON payload."""
        return {
            "configPath": str(self.config_path),
            "backupPath": str(self.backup_path),
            "clientPath": str(self.client_path) if self.client_path is not None else None,
        }


def _path_or_none(value: object) -> Path | None:
    if isinstance(value, str) and value.strip():
        return Path(value)
    return None


@dataclass(frozen=True, slots=True)
class SettingsPointer:
    """
    JSON-file-backed settings pointer.

    Parameters
    ----------
    settings_file:
        Location of the JSON file.
    defaults:
        Paths reported when the file is missing, unreadable or incomplete.
    """

    settings_file: Path
    defaults: ActivePaths

    def load(self) -> ActivePaths:
        """
        Load the pointer from disk.

        Returns
        -------
        ActivePaths
            Persisted paths. Missing or invalid fields fall back to defaults;
            an unreadable file yields the defaults entirely.
        """
        try:
            raw = read_text_if_exists(self.settings_file)
        except ReadIOError as exc:
            logger.warning("Settings file unreadable, using defaults: %s", exc)
            return self.defaults
        if raw is None:
            return self.defaults

        try:
            payload = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Settings file is not valid JSON, using defaults: %s", self.settings_file)
            return self.defaults
        if not isinstance(payload, dict):
            return self.defaults

        return ActivePaths(
            config_path=_path_or_none(payload.get("configPath")) or self.defaults.config_path,
            backup_path=_path_or_none(payload.get("backupPath")) or self.defaults.backup_path,
            client_path=_path_or_none(payload.get("clientPath")),
        )

    def overwrite(self, paths: ActivePaths) -> None:
        """
        Overwrite all three paths.

        Raises
        ------
        SettingsIOError
            If the settings file cannot be written.
        """
        try:
            write_json_atomic(self.settings_file, paths.to_dict())
        except WriteIOError as exc:
            raise SettingsIOError(f"Failed to save settings: {self.settings_file}") from exc
        logger.debug("Settings pointer now %s", paths)

    def update(
        self,
        *,
        config_path: Path = UNSET,
        backup_path: Path = UNSET,
        client_path: Path | None = UNSET,
    ) -> ActivePaths:
        """
        Partially update the pointer, preserving omitted fields.

        Passing ``client_path=None`` clears the client path; omitting it keeps
        the current value.

        Returns
        -------
        ActivePaths
            The paths after the update.
        """
        changes: dict[str, Any] = {}
        if config_path is not UNSET:
            changes["config_path"] = Path(config_path)
        if backup_path is not UNSET:
            changes["backup_path"] = Path(backup_path)
        if client_path is not UNSET:
            changes["client_path"] = Path(client_path) if client_path is not None else None

        updated = replace(self.load(), **changes)
        self.overwrite(updated)
        return updated
