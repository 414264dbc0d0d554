"""
Time sources for the configuration engine.

Notes
-----
Store timestamps and backup file names are both derived from time. Engine code
takes a Clock instead of reading the wall clock so that tests can pin both.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Protocol

STORE_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"
BACKUP_TIMESTAMP_FORMAT = "%Y-%m-%dT%H-%M-%S"


class Clock(Protocol):
    """A source of timezone-aware UTC time."""

    def now(self) -> datetime:
        """
        Return the current time.

        Returns
        -------
        datetime
            A timezone-aware datetime.
        """
        ...


@dataclass(frozen=True, slots=True)
class SystemClock:
    """Clock backed by the system time in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class FixedClock:
    """Clock pinned to one instant. Naive values are taken as UTC."""

    fixed_time: datetime

    def now(self) -> datetime:
        if self.fixed_time.tzinfo is None:
            return self.fixed_time.replace(tzinfo=timezone.utc)
        return self.fixed_time


def store_timestamp(moment: datetime) -> str:
    """
    Render a datetime for the profile store.

    The fixed-width format with microseconds sorts lexicographically in the
    same order as the instants it represents, which the store relies on for
    "latest snapshot" queries.

    Parameters
    ----------
    moment:
        A timezone-aware datetime.

    Returns
    -------
    str
        UTC timestamp such as ``2026-01-01T12:00:00.000000Z``.

    Raises
    ------
    ValueError
        If `moment` is naive.
    """
    if moment.tzinfo is None:
        raise ValueError("datetime must be timezone-aware")
    return moment.astimezone(timezone.utc).strftime(STORE_TIMESTAMP_FORMAT)


def backup_timestamp(moment: datetime) -> str:
    """Render a second-resolution, filename-safe UTC timestamp."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).strftime(BACKUP_TIMESTAMP_FORMAT)
