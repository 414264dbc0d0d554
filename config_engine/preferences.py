"""Editor preferences (the last opened configuration file)."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path

from .errors import ReadIOError, SettingsIOError, WriteIOError
from .file_io import read_text_if_exists, write_json_atomic

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Preferences:
    """Persisted editor preferences."""

    last_opened_file: Path | None = None


@dataclass(frozen=True, slots=True)
class PreferencesStore:
    """JSON-file-backed preferences. Unreadable content loads as defaults."""

    preferences_file: Path

    def load(self) -> Preferences:
        try:
            raw = read_text_if_exists(self.preferences_file)
            payload = json.loads(raw) if raw is not None else {}
        except (ReadIOError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable preferences %s: %s", self.preferences_file, exc)
            return Preferences()
        if not isinstance(payload, dict):
            return Preferences()
        value = payload.get("lastOpenedFile")
        if isinstance(value, str) and value.strip():
            return Preferences(last_opened_file=Path(value))
        return Preferences()

    def record_opened(self, path: Path) -> None:
        """
        Remember `path` as the last opened configuration file.

        Raises
        ------
        SettingsIOError
            If the preferences file cannot be written.
        """
        try:
            write_json_atomic(self.preferences_file, {"lastOpenedFile": str(path)})
        except WriteIOError as exc:
            raise SettingsIOError(f"Failed to save preferences: {self.preferences_file}") from exc
