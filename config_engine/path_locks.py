"""
Per-path locking for live configuration files.

The engine does not support two in-flight operations against the same live
file. A PathLockRegistry is constructed once, owned by the engine instance, and
maps each normalized file path to its own mutex. Operations on different files
do not block each other.

Notes
-----
This is an in-process guard. It does not coordinate separate processes; the
engine assumes a single process owns the profile store.
"""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

logger = logging.getLogger(__name__)


def normalize_lock_key(path: Path) -> str:
    """
    Return the registry key for `path`.

    The key is the absolute, case-normalized path, so that ``C:\\A\\x.json``
    and ``c:/a/x.json`` share a lock on Windows.
    """
    return os.path.normcase(os.path.abspath(os.fspath(path.expanduser())))


class PathLockRegistry:
    """Map from normalized file path to a mutual-exclusion handle."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def lock_for(self, path: Path) -> threading.Lock:
        """Return the lock for `path`, creating it on first use."""
        key = normalize_lock_key(path)
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, path: Path) -> Iterator[None]:
        """
        Hold the lock for `path` for the duration of the block.

        Parameters
        ----------
        path:
            File whose operations must be serialized.
        """
        lock = self.lock_for(path)
        lock.acquire()
        logger.debug("Acquired path lock: %s", path)
        try:
            yield
        finally:
            lock.release()
            logger.debug("Released path lock: %s", path)

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
