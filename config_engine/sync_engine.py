"""
Profile and configuration synchronization engine.

The engine keeps three resources consistent:

- the versioned configuration history in the profile store,
- the live configuration file that an external client reads,
- the settings pointer naming the currently effective paths.

Ordering rules
--------------
- A live file that already exists is backed up before it is overwritten. If the
  backup fails, nothing is written.
- The settings pointer is updated only after the live file write succeeded.
- The content actually written is appended to the history as a new snapshot;
  snapshots are never edited in place.
- A store or settings failure after a successful live write does not undo the
  write. It is logged and returned as a warning, because the live file is what
  the client consumes.

Merge-preserve rule
-------------------
When switching profiles, a stored configuration with an empty server map never
erases a live file that has servers: the live server map is carried into the
written document instead. A stored non-empty configuration always wins.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from os import PathLike
from pathlib import Path
from typing import Sequence

from .backup_manager import BackupManager
from .document import (
    ConfigDocument,
    empty_document,
    is_effectively_empty,
    parse_document,
    serialize_document,
    validate_document,
    with_servers,
)
from .errors import (
    BackupFailedError,
    BackupIOError,
    ConfigEngineError,
    CorruptConfigurationError,
    NoConfigurationError,
    ParseError,
    ReadIOError,
    SettingsIOError,
)
from .file_io import read_text_if_exists, write_text_atomic
from .path_locks import PathLockRegistry
from .paths import normalize_user_path
from .preferences import PreferencesStore
from .profile_store.api import Profile, ProfileId, ProfileStore, Snapshot
from .settings_pointer import UNSET, ActivePaths, SettingsPointer

logger = logging.getLogger(__name__)

PathInput = str | PathLike[str]


@dataclass(frozen=True, slots=True)
class SwitchResult:
    """
    Outcome of a profile switch.

    Attributes
    ----------
    profile:
        The profile that is now active.
    document:
        The document written to the live file.
    backup_path:
        Backup of the previous live file, or None if there was no live file.
    merged:
        True if the merge-preserve rule carried the live server map over.
    warnings:
        Post-write inconsistencies (store or settings failures).
    """

    profile: Profile
    document: ConfigDocument
    backup_path: Path | None
    merged: bool
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class SaveResult:
    """Outcome of saving raw configuration text to a file."""

    path: Path
    document: ConfigDocument
    backup_path: Path | None
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class LoadedConfiguration:
    """A configuration file read from disk."""

    path: Path
    text: str
    document: ConfigDocument
    normalized: bool
    warnings: tuple[str, ...] = ()


def _optional_path(value: PathInput | None, *, field: str) -> Path | None:
    if value is None or not str(value).strip():
        return None
    return normalize_user_path(value, field=field)


@dataclass(frozen=True, slots=True)
class SyncEngine:
    """
    Orchestrates profile switch, creation, remix and raw-edit save flows.

    Parameters
    ----------
    store:
        Profile and snapshot persistence.
    settings:
        Settings pointer updated after successful switches.
    backups:
        Backup manager invoked before any overwrite of an existing file.
    preferences:
        Records the last opened configuration file.
    locks:
        Per-path lock registry; one instance per engine.
    """

    store: ProfileStore
    settings: SettingsPointer
    backups: BackupManager
    preferences: PreferencesStore
    locks: PathLockRegistry = field(default_factory=PathLockRegistry)

    # -- profile switch -------------------------------------------------

    def switch_profile(self, profile_id: ProfileId) -> SwitchResult:
        """
        Make `profile_id` the active profile.

        Raises
        ------
        ProfileNotFoundError
            If the profile does not exist.
        NoConfigurationError
            If the profile has no snapshot.
        CorruptConfigurationError
            If the latest snapshot is not a JSON object.
        BackupFailedError
            If the existing live file could not be backed up. Nothing is written.
        WriteIOError
            If the live file could not be written. The pointer is untouched.
        """
        profile = self.store.get_profile(profile_id)
        content = self.store.get_latest_configuration(profile_id)
        if content is None:
            raise NoConfigurationError(profile_id)

        try:
            parsed = parse_document(content)
        except ParseError as exc:
            raise CorruptConfigurationError(profile_id, str(exc)) from exc
        if parsed.normalized:
            logger.warning(
                "Normalized stored configuration of profile %s: %s",
                profile_id,
                "; ".join(parsed.issues),
            )
        incoming = parsed.document

        live_path = profile.config_path
        backup_path: Path | None = None
        merged = False

        with self.locks.hold(live_path):
            if live_path.exists():
                backup_path = self._backup_before_write(live_path, reason=f"profile {profile_id}")
                existing = self._existing_document(live_path)
                if not is_effectively_empty(existing) and is_effectively_empty(incoming):
                    logger.warning(
                        "Preserving %d existing server(s) in %s; profile %s has none",
                        len(existing.servers),
                        live_path,
                        profile_id,
                    )
                    incoming = with_servers(incoming, existing.servers)
                    merged = True

            final_text = serialize_document(incoming)
            write_text_atomic(live_path, final_text)

            warnings: list[str] = []
            warnings.extend(self._activate(profile))
            try:
                self.store.save_configuration(profile_id, final_text)
            except ConfigEngineError as exc:
                warnings.append(
                    self._warn(f"Wrote {live_path} but could not record it for profile {profile_id}: {exc}")
                )

        logger.info("Switched to profile %r (id=%s)", profile.name, profile_id)
        return SwitchResult(
            profile=profile,
            document=incoming,
            backup_path=backup_path,
            merged=merged,
            warnings=tuple(warnings),
        )

    def _backup_before_write(self, path: Path, *, reason: str) -> Path:
        try:
            return self.backups.backup(path)
        except BackupIOError as exc:
            raise BackupFailedError(
                f"Failed to create backup of {path} ({reason}); nothing was written: {exc}"
            ) from exc

    def _existing_document(self, path: Path) -> ConfigDocument:
        """
        Parse the live file for the merge check.

        An unreadable or unparsable file counts as empty here. It has already
        been backed up byte for byte, and it is about to be replaced.
        """
        try:
            text = read_text_if_exists(path)
        except ReadIOError as exc:
            logger.warning("Existing configuration %s is unreadable, treating as empty: %s", path, exc)
            return empty_document()
        if text is None:
            return empty_document()
        try:
            return parse_document(text).document
        except ParseError as exc:
            logger.warning("Existing configuration %s is not valid, treating as empty: %s", path, exc)
            return empty_document()

    def _activate(self, profile: Profile) -> list[str]:
        warnings: list[str] = []
        try:
            self.settings.overwrite(
                ActivePaths(
                    config_path=profile.config_path,
                    backup_path=profile.backup_path,
                    client_path=profile.client_path,
                )
            )
        except SettingsIOError as exc:
            warnings.append(self._warn(f"Settings pointer not updated for profile {profile.id}: {exc}"))
        warnings.extend(self._remember_opened(profile.config_path))
        return warnings

    def _remember_opened(self, path: Path) -> list[str]:
        try:
            self.preferences.record_opened(path)
        except SettingsIOError as exc:
            return [self._warn(f"Last opened file not recorded: {exc}")]
        return []

    @staticmethod
    def _warn(message: str) -> str:
        logger.warning(message)
        return message

    # -- profile creation -----------------------------------------------

    def create_profile(
        self,
        name: str,
        config_path: PathInput,
        backup_path: PathInput,
        client_path: PathInput | None = None,
    ) -> ProfileId:
        """
        Create a profile seeded from whatever configuration is at `config_path`.

        A readable, parsable, non-empty configuration becomes the first
        snapshot; anything else seeds an empty document. The profile and its
        first snapshot are written in one store transaction.

        Raises
        ------
        DuplicateNameError
            If the name is taken. No snapshot is written.
        InvalidProfileError
            If the name is empty.
        ValidationError
            If a required path is empty.
        """
        live = normalize_user_path(config_path, field="config_path")
        backups = normalize_user_path(backup_path, field="backup_path")
        client = _optional_path(client_path, field="client_path")

        seed = self._seed_document(live)
        return self.store.create_profile(
            name,
            live,
            backups,
            client,
            initial_configuration=serialize_document(seed),
        )

    def _seed_document(self, path: Path) -> ConfigDocument:
        try:
            text = read_text_if_exists(path)
        except ReadIOError as exc:
            logger.warning("Could not load existing configuration %s: %s", path, exc)
            return empty_document()
        if text is None:
            return empty_document()
        try:
            document = parse_document(text).document
        except ParseError as exc:
            logger.warning("Existing configuration %s is not valid, seeding empty: %s", path, exc)
            return empty_document()
        if is_effectively_empty(document):
            return empty_document()
        logger.info("Using existing configuration at %s for new profile", path)
        return document

    def remix_profile(self, source_id: ProfileId, new_name: str) -> ProfileId:
        """
        Clone a profile's paths and latest configuration under a new name.

        The clone is point-in-time: later changes to either profile do not
        affect the other.

        Raises
        ------
        ProfileNotFoundError
            If the source profile does not exist.
        NoConfigurationError
            If the source profile has no snapshot.
        DuplicateNameError
            If `new_name` is taken.
        """
        source = self.store.get_profile(source_id)
        content = self.store.get_latest_configuration(source_id)
        if content is None:
            raise NoConfigurationError(source_id)

        new_id = self.store.create_profile(
            new_name,
            Path(source.config_path),
            Path(source.backup_path),
            Path(source.client_path) if source.client_path is not None else None,
            initial_configuration=content,
        )
        logger.info("Remixed profile %r (id=%s) into %r (id=%s)", source.name, source_id, new_name, new_id)
        return new_id

    # -- raw editing ----------------------------------------------------

    def save_raw_configuration(
        self,
        text: str,
        target_path: PathInput,
        active_profile_id: ProfileId | None = None,
    ) -> SaveResult:
        """
        Validate and write raw configuration text to a file.

        Unlike a profile switch, a missing server map is rejected, not repaired.
        The text is written verbatim.

        Parameters
        ----------
        text:
            Raw JSON from the editor.
        target_path:
            File to write.
        active_profile_id:
            When given, the text is also appended to this profile's history.

        Raises
        ------
        ValidationError
            If the text is not a well-formed configuration document.
        ProfileNotFoundError
            If `active_profile_id` is given but unknown. Nothing is written.
        BackupFailedError
            If the existing target could not be backed up. Nothing is written.
        WriteIOError
            If the target could not be written.
        """
        document = validate_document(text)
        target = normalize_user_path(target_path, field="target_path")
        if active_profile_id is not None:
            self.store.get_profile(active_profile_id)

        backup_path: Path | None = None
        with self.locks.hold(target):
            if target.exists():
                backup_path = self._backup_before_write(target, reason="raw save")
            write_text_atomic(target, text)

            warnings = self._remember_opened(target)
            if active_profile_id is not None:
                try:
                    self.store.save_configuration(active_profile_id, text)
                except ConfigEngineError as exc:
                    warnings.append(
                        self._warn(
                            f"Wrote {target} but could not record it for profile {active_profile_id}: {exc}"
                        )
                    )

        logger.info("Saved configuration to %s", target)
        return SaveResult(
            path=target, document=document, backup_path=backup_path, warnings=tuple(warnings)
        )

    def save_profile_configuration(self, profile_id: ProfileId, text: str) -> int:
        """
        Validate `text` and append it to a profile's history without touching
        any live file. Returns the new snapshot id.
        """
        validate_document(text)
        return self.store.save_configuration(profile_id, text)

    def load_configuration(self, path: PathInput) -> LoadedConfiguration:
        """
        Read and leniently parse a configuration file.

        Raises
        ------
        ReadIOError
            If the file does not exist or cannot be read.
        ParseError
            If the content is not a JSON object.
        """
        target = normalize_user_path(path, field="path")
        text = read_text_if_exists(target)
        if text is None:
            raise ReadIOError(f"Configuration file not found: {target}")
        parsed = parse_document(text)
        warnings = self._remember_opened(target)
        return LoadedConfiguration(
            path=target,
            text=text,
            document=parsed.document,
            normalized=parsed.normalized,
            warnings=tuple(warnings),
        )

    def create_backup(self, path: PathInput) -> Path:
        """Back up an existing file on demand and return the backup path."""
        target = normalize_user_path(path, field="path")
        with self.locks.hold(target):
            return self.backups.backup(target)

    # -- store access surface -------------------------------------------

    def list_profiles(self) -> Sequence[Profile]:
        return self.store.list_profiles()

    def get_profile(self, profile_id: ProfileId) -> Profile:
        return self.store.get_profile(profile_id)

    def delete_profile(self, profile_id: ProfileId) -> None:
        self.store.delete_profile(profile_id)

    def update_profile_paths(
        self,
        profile_id: ProfileId,
        config_path: PathInput,
        backup_path: PathInput,
        client_path: PathInput | None = None,
    ) -> Profile:
        """Update a profile's paths. Snapshots and the live file are untouched."""
        self.store.update_profile_paths(
            profile_id,
            normalize_user_path(config_path, field="config_path"),
            normalize_user_path(backup_path, field="backup_path"),
            _optional_path(client_path, field="client_path"),
        )
        return self.store.get_profile(profile_id)

    def get_latest_configuration(self, profile_id: ProfileId) -> str:
        """
        Return the raw latest configuration text of a profile.

        Raises
        ------
        ProfileNotFoundError, NoConfigurationError
        """
        self.store.get_profile(profile_id)
        content = self.store.get_latest_configuration(profile_id)
        if content is None:
            raise NoConfigurationError(profile_id)
        return content

    def get_latest_document(self, profile_id: ProfileId) -> ConfigDocument:
        """
        Return the parsed latest configuration of a profile.

        Raises
        ------
        ProfileNotFoundError, NoConfigurationError, CorruptConfigurationError
        """
        content = self.get_latest_configuration(profile_id)
        try:
            return parse_document(content).document
        except ParseError as exc:
            raise CorruptConfigurationError(profile_id, str(exc)) from exc

    def configuration_history(self, profile_id: ProfileId) -> Sequence[Snapshot]:
        return self.store.list_configurations(profile_id)

    # -- settings pointer access surface --------------------------------

    def current_settings(self) -> ActivePaths:
        return self.settings.load()

    def update_settings(
        self,
        *,
        config_path: PathInput = UNSET,
        backup_path: PathInput = UNSET,
        client_path: PathInput | None = UNSET,
    ) -> ActivePaths:
        """Partially update the settings pointer without switching profiles."""
        changes = {}
        if config_path is not UNSET:
            changes["config_path"] = normalize_user_path(config_path, field="config_path")
        if backup_path is not UNSET:
            changes["backup_path"] = normalize_user_path(backup_path, field="backup_path")
        if client_path is not UNSET:
            changes["client_path"] = _optional_path(client_path, field="client_path")
        return self.settings.update(**changes)
