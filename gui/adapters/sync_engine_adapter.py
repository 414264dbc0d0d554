"""Qt adapter for the configuration SyncEngine.

The engine owns persistence and the live file. A desktop UI talks to this
adapter via signals/slots so that file and database I/O never blocks the UI
thread, and so that widgets never see SQLite or engine internals.

Threading model
--------------
- A single worker QObject lives on a dedicated QThread.
- The worker owns the SyncEngine; every engine call runs on that thread, one
  request at a time, which also serializes operations on the live file.
- The GUI communicates with the worker via queued Qt signals.
"""

from __future__ import annotations

import logging
from pathlib import Path

from PySide6.QtCore import QObject, Qt, QThread, Signal, Slot

from config_engine.bootstrap import open_sync_engine
from config_engine.errors import ConfigEngineError, ProfileNotFoundError
from config_engine.sync_engine import SyncEngine

logger = logging.getLogger(__name__)


class SyncEngineWorker(QObject):
    """Worker that owns the SyncEngine and runs in a background thread."""

    profiles_loaded = Signal(object)  # list[Profile]
    profile_created = Signal(int)  # profile_id
    profile_remixed = Signal(int, int)  # source_id, new_id
    profile_switched = Signal(object)  # SwitchResult
    profile_deleted = Signal(int)  # profile_id
    configuration_loaded = Signal(int, str)  # profile_id, raw text
    configuration_saved = Signal(object)  # SaveResult
    profile_not_found = Signal(int)  # profile_id
    warning = Signal(str)  # message
    error = Signal(str, str)  # operation, message

    def __init__(self, engine: SyncEngine) -> None:
        super().__init__()
        self._engine = engine

    def _fail(self, operation: str, exc: Exception) -> None:
        if isinstance(exc, ProfileNotFoundError):
            self.profile_not_found.emit(exc.profile_id)
            return
        if not isinstance(exc, ConfigEngineError):
            logger.exception("Unexpected failure in %s", operation)
        self.error.emit(operation, str(exc))

    def _emit_warnings(self, warnings: tuple[str, ...]) -> None:
        for message in warnings:
            self.warning.emit(message)

    @Slot()
    def list_profiles(self) -> None:
        """List profiles and emit results."""
        try:
            profiles = list(self._engine.list_profiles())
        except Exception as e:
            self._fail("list_profiles", e)
            return
        self.profiles_loaded.emit(profiles)

    @Slot(str, str, str, str)
    def create_profile(self, name: str, config_path: str, backup_path: str, client_path: str) -> None:
        """Create a profile and emit the new id. An empty client path means none."""
        try:
            profile_id = self._engine.create_profile(
                name, config_path, backup_path, client_path or None
            )
        except Exception as e:
            self._fail("create_profile", e)
            return
        self.profile_created.emit(profile_id)

    @Slot(int, str)
    def remix_profile(self, source_id: int, new_name: str) -> None:
        """Clone source_id under new_name and emit both ids."""
        try:
            new_id = self._engine.remix_profile(source_id, new_name)
        except Exception as e:
            self._fail("remix_profile", e)
            return
        self.profile_remixed.emit(source_id, new_id)

    @Slot(int)
    def switch_profile(self, profile_id: int) -> None:
        """Switch to profile_id and emit the result."""
        try:
            result = self._engine.switch_profile(profile_id)
        except Exception as e:
            self._fail("switch_profile", e)
            return
        self._emit_warnings(result.warnings)
        self.profile_switched.emit(result)

    @Slot(int)
    def delete_profile(self, profile_id: int) -> None:
        """Delete profile_id and emit completion."""
        try:
            self._engine.delete_profile(profile_id)
        except Exception as e:
            self._fail("delete_profile", e)
            return
        self.profile_deleted.emit(profile_id)

    @Slot(int)
    def load_latest(self, profile_id: int) -> None:
        """Load the latest raw configuration of profile_id and emit it."""
        try:
            text = self._engine.get_latest_configuration(profile_id)
        except Exception as e:
            self._fail("load_latest", e)
            return
        self.configuration_loaded.emit(profile_id, text)

    @Slot(str, str, object)
    def save_raw(self, text: str, target_path: str, active_profile_id: object) -> None:
        """Validate and save raw text; active_profile_id may be None."""
        try:
            profile_id = int(active_profile_id) if active_profile_id is not None else None
            result = self._engine.save_raw_configuration(text, target_path, profile_id)
        except Exception as e:
            self._fail("save_raw", e)
            return
        self._emit_warnings(result.warnings)
        self.configuration_saved.emit(result)


class SyncEngineAdapter(QObject):
    """Qt adapter that marshals SyncEngine calls onto a worker thread."""

    # Requests (GUI emits these; wired as queued connections to worker slots)
    request_list_profiles = Signal()
    request_create_profile = Signal(str, str, str, str)
    request_remix_profile = Signal(int, str)
    request_switch_profile = Signal(int)
    request_delete_profile = Signal(int)
    request_load_latest = Signal(int)
    request_save_raw = Signal(str, str, object)

    # Results (worker emits; adapter forwards)
    profiles_loaded = Signal(object)
    profile_created = Signal(int)
    profile_remixed = Signal(int, int)
    profile_switched = Signal(object)
    profile_deleted = Signal(int)
    configuration_loaded = Signal(int, str)
    configuration_saved = Signal(object)
    profile_not_found = Signal(int)
    warning = Signal(str)
    error = Signal(str, str)

    def __init__(self, data_root: Path | None = None, engine: SyncEngine | None = None) -> None:
        super().__init__()

        self._thread = QThread()
        self._worker = SyncEngineWorker(engine or open_sync_engine(data_root=data_root))
        self._worker.moveToThread(self._thread)

        queued = Qt.ConnectionType.QueuedConnection
        self.request_list_profiles.connect(self._worker.list_profiles, type=queued)
        self.request_create_profile.connect(self._worker.create_profile, type=queued)
        self.request_remix_profile.connect(self._worker.remix_profile, type=queued)
        self.request_switch_profile.connect(self._worker.switch_profile, type=queued)
        self.request_delete_profile.connect(self._worker.delete_profile, type=queued)
        self.request_load_latest.connect(self._worker.load_latest, type=queued)
        self.request_save_raw.connect(self._worker.save_raw, type=queued)

        for name in (
            "profiles_loaded",
            "profile_created",
            "profile_remixed",
            "profile_switched",
            "profile_deleted",
            "configuration_loaded",
            "configuration_saved",
            "profile_not_found",
            "warning",
            "error",
        ):
            getattr(self._worker, name).connect(getattr(self, name))

        self._thread.start()

    def shutdown(self) -> None:
        """Stop the worker thread cleanly."""
        self._thread.quit()
        self._thread.wait()
