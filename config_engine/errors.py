"""
Domain exceptions for the configuration engine.

Notes
-----
Engine code does not raise generic exceptions for expected failure modes.
Low-level errors (OSError, sqlite3.Error, json.JSONDecodeError) are chained
onto one of the classes below so callers can tell what failed and where.
"""

from __future__ import annotations


class ConfigEngineError(RuntimeError):
    """Base exception for all configuration engine failures."""


class ValidationError(ConfigEngineError):
    """Raised when a configuration document supplied for saving is malformed."""


class ParseError(ConfigEngineError):
    """Raised when text is not JSON or its top-level value is not an object."""


class CorruptConfigurationError(ParseError):
    """Raised when a stored snapshot cannot be parsed."""

    def __init__(self, profile_id: int, detail: str) -> None:
        super().__init__(f"Stored configuration for profile {profile_id} is corrupt: {detail}")
        self.profile_id = profile_id


class NotFoundError(ConfigEngineError):
    """Raised when a profile or snapshot does not exist."""


class ProfileNotFoundError(NotFoundError):
    """Raised when a profile id is not known to the store."""

    def __init__(self, profile_id: int) -> None:
        super().__init__(f"Profile not found: {profile_id}")
        self.profile_id = profile_id


class NoConfigurationError(NotFoundError):
    """Raised when a profile has never been given a configuration."""

    def __init__(self, profile_id: int) -> None:
        super().__init__(f"No configuration found for profile {profile_id}")
        self.profile_id = profile_id


class BackupIOError(ConfigEngineError):
    """Raised when a backup copy cannot be read or written."""


class BackupFailedError(ConfigEngineError):
    """Raised when a write is aborted because its mandatory backup failed."""


class LiveFileIOError(ConfigEngineError):
    """Base error for reading or writing a live configuration file."""


class ReadIOError(LiveFileIOError):
    """Raised when a configuration file exists but cannot be read."""


class WriteIOError(LiveFileIOError):
    """Raised when a configuration file cannot be written."""


class SettingsIOError(ConfigEngineError):
    """Raised when the settings pointer or preferences cannot be persisted."""
