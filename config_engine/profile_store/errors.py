"""Domain exceptions for the profile store."""

from __future__ import annotations

from ..errors import ConfigEngineError


class ProfileStoreError(ConfigEngineError):
    """Base error for profile store operations."""


class DuplicateNameError(ProfileStoreError):
    """Raised when a profile name is already taken."""

    def __init__(self, name: str) -> None:
        super().__init__(f"A profile named {name!r} already exists")
        self.name = name


class InvalidProfileError(ProfileStoreError):
    """Raised when profile fields violate invariants (e.g. an empty name)."""


class StoreIOError(ProfileStoreError):
    """Raised when the underlying database cannot be read or written."""
