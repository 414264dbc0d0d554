"""
Profile store public API.

This module defines the persistence surface the synchronization engine and UI
adapters are allowed to call. Callers speak in typed records only and never see
SQLite details.

Notes
-----
- Configuration snapshots are append-only. There is no update-in-place.
- The store does not validate snapshot content; callers decide when to validate.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, Sequence

ProfileId = int

DEFAULT_PROFILE_NAME = "Default"


@dataclass(frozen=True, slots=True)
class Profile:
    """
    A named association between a live config file, a backup directory and an
    optional companion client executable.

    Attributes
    ----------
    id:
        Store-assigned, monotonic identifier.
    name:
        Unique, non-empty display name.
    config_path:
        Live configuration file controlled by this profile.
    backup_path:
        Directory that receives backups.
    client_path:
        Optional companion client executable.
    created_at, updated_at:
        UTC timestamps set by the store.
    """

    id: ProfileId
    name: str
    config_path: Path
    backup_path: Path
    client_path: Path | None
    created_at: str
    updated_at: str


@dataclass(frozen=True, slots=True)
class Snapshot:
    """One immutable version of a profile's configuration content."""

    id: int
    profile_id: ProfileId
    content: str
    created_at: str


class ProfileStore(Protocol):
    """Persistence API for profiles and their configuration history."""

    def create_profile(
        self,
        name: str,
        config_path: Path,
        backup_path: Path,
        client_path: Path | None,
        *,
        initial_configuration: str | None = None,
    ) -> ProfileId:
        """
        Create a profile, optionally with its first snapshot.

        Raises
        ------
        DuplicateNameError
            If `name` is already used. No snapshot is written.
        InvalidProfileError
            If `name` is empty.
        """
        raise NotImplementedError

    def get_profile(self, profile_id: ProfileId) -> Profile:
        """
        Return a profile.

        Raises
        ------
        ProfileNotFoundError
            If the id is not known.
        """
        raise NotImplementedError

    def find_profile_by_name(self, name: str) -> Profile | None:
        """Return the profile named `name`, or None."""
        raise NotImplementedError

    def list_profiles(self) -> Sequence[Profile]:
        """Return all profiles, newest-created first."""
        raise NotImplementedError

    def count_profiles(self) -> int:
        """Return the number of profiles."""
        raise NotImplementedError

    def save_configuration(self, profile_id: ProfileId, content: str) -> int:
        """Append a snapshot and return its id. Content is not validated."""
        raise NotImplementedError

    def get_latest_configuration(self, profile_id: ProfileId) -> str | None:
        """Return the latest snapshot content, or None if there is none."""
        raise NotImplementedError

    def list_configurations(self, profile_id: ProfileId) -> Sequence[Snapshot]:
        """Return the snapshot history of a profile, newest first."""
        raise NotImplementedError

    def delete_profile(self, profile_id: ProfileId) -> None:
        """Delete a profile and its snapshots. Unknown ids are a no-op."""
        raise NotImplementedError

    def update_profile_paths(
        self,
        profile_id: ProfileId,
        config_path: Path,
        backup_path: Path,
        client_path: Path | None,
    ) -> None:
        """Update the three path fields and ``updated_at``."""
        raise NotImplementedError
