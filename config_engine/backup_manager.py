"""
Timestamped, non-overwriting backups of configuration files.

Backups are plain byte-identical copies named ``<stem>_<timestamp><ext>`` in
the active backup directory, where the timestamp is UTC to the second. The
manager is format-agnostic: it never inspects what it copies.

Collision policy
----------------
Two backups of the same source within the same second would share a name.
The second one receives a counter suffix (``<stem>_<timestamp>_1<ext>``,
``_2``, ...). An existing backup file is never overwritten.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from .clock import Clock, SystemClock, backup_timestamp
from .errors import BackupIOError
from .settings_pointer import SettingsPointer

logger = logging.getLogger(__name__)

MAX_NAME_ATTEMPTS = 1000


def backup_file_name(source: Path, stamp: str, counter: int = 0) -> str:
    """
    Build a backup file name for `source`.

    Parameters
    ----------
    source:
        File being backed up.
    stamp:
        Second-resolution timestamp.
    counter:
        Collision counter; 0 means no suffix.

    Returns
    -------
    str
        File name such as ``claude_desktop_config_2026-01-01T12-00-00.json``.
    """
    suffix = f"_{counter}" if counter else ""
    return f"{source.stem}_{stamp}{suffix}{source.suffix}"


@dataclass(frozen=True, slots=True)
class BackupManager:
    """
    Creates backups before destructive writes.

    Parameters
    ----------
    default_backup_dir:
        Directory used when neither the caller nor the settings pointer names one.
    settings:
        Optional settings pointer whose ``backup_path`` is the active directory.
    clock:
        Time source for backup names.
    """

    default_backup_dir: Path
    settings: SettingsPointer | None = None
    clock: Clock = field(default_factory=SystemClock)

    def resolve_backup_dir(self, backup_dir: Path | None = None) -> Path:
        """Return the directory a backup would be written to."""
        if backup_dir is not None:
            return backup_dir
        if self.settings is not None:
            return self.settings.load().backup_path
        return self.default_backup_dir

    def backup(self, path: Path, *, backup_dir: Path | None = None) -> Path:
        """
        Copy `path` into the backup directory.

        Parameters
        ----------
        path:
            Existing, readable source file.
        backup_dir:
            Optional explicit destination directory.

        Returns
        -------
        pathlib.Path
            The created backup file.

        Raises
        ------
        BackupIOError
            If the source cannot be read, the directory cannot be created, or
            the copy cannot be written. A failed copy leaves no backup file.
        """
        target_dir = self.resolve_backup_dir(backup_dir)

        try:
            content = path.read_bytes()
        except OSError as exc:
            raise BackupIOError(f"Cannot read file to back up: {path} ({exc!s})") from exc

        try:
            target_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise BackupIOError(f"Cannot create backup directory: {target_dir} ({exc!s})") from exc

        stamp = backup_timestamp(self.clock.now())
        for counter in range(MAX_NAME_ATTEMPTS):
            candidate = target_dir / backup_file_name(path, stamp, counter)
            try:
                handle = candidate.open("xb")
            except FileExistsError:
                continue
            except OSError as exc:
                raise BackupIOError(f"Cannot create backup file: {candidate} ({exc!s})") from exc

            try:
                with handle:
                    handle.write(content)
            except OSError as exc:
                candidate.unlink(missing_ok=True)
                raise BackupIOError(f"Failed to write backup: {candidate} ({exc!s})") from exc

            if counter:
                logger.warning("Backup name collision for %s; wrote %s", path, candidate.name)
            logger.info("Backed up %s to %s", path, candidate)
            return candidate

        raise BackupIOError(
            f"No free backup name for {path} in {target_dir} at {stamp} "
            f"after {MAX_NAME_ATTEMPTS} attempts"
        )

    def list_backups(self, path: Path, *, backup_dir: Path | None = None) -> list[Path]:
        """
        Return backups of `path` in the backup directory, newest first.

        Ordering is by file name, which sorts by timestamp and then counter.
        """
        target_dir = self.resolve_backup_dir(backup_dir)
        if not target_dir.is_dir():
            return []
        matches = [
            p
            for p in target_dir.glob(f"{path.stem}_*{path.suffix}")
            if p.is_file() and _is_backup_of(path, p)
        ]
        return sorted(matches, key=_backup_sort_key, reverse=True)


def _is_backup_of(source: Path, candidate: Path) -> bool:
    if candidate.suffix != source.suffix:
        return False
    rest = candidate.stem[len(source.stem) + 1 :]
    stamp, _, counter = rest.partition("_")
    return len(stamp) == 19 and stamp[4] == "-" and stamp[10] == "T" and (
        not counter or counter.isdigit()
    )


def _backup_sort_key(candidate: Path) -> tuple[str, int]:
    # Timestamps contain no underscores, so the last one or two parts are
    # the stamp and the optional counter.
    parts = candidate.stem.split("_")
    if parts[-1].isdigit():
        return parts[-2], int(parts[-1])
    return parts[-1], 0
