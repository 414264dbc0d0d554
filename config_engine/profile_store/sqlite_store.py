"""
SQLite implementation of ProfileStore.

This module owns the on-disk persistence format for profiles and their
append-only configuration history.

Threading
---------
Every call opens its own short-lived sqlite3 connection and closes it before
returning, so a store instance may be used from any single thread at a time
(for example the Qt adapter's worker thread). SQLite serializes writers, which
keeps snapshot append order equal to call order.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

from ..clock import Clock, SystemClock, store_timestamp
from ..document import empty_document, parse_document, serialize_document
from ..errors import ConfigEngineError, ProfileNotFoundError
from ..file_io import read_text_if_exists
from .api import DEFAULT_PROFILE_NAME, Profile, ProfileId, ProfileStore, Snapshot
from .errors import DuplicateNameError, InvalidProfileError, StoreIOError
from .schema import SCHEMA_V1

logger = logging.getLogger(__name__)

_PROFILE_COLUMNS = "id, name, config_path, backup_path, mcp_client_path, created_at, updated_at"


def _row_to_profile(row: sqlite3.Row) -> Profile:
    client = row["mcp_client_path"]
    return Profile(
        id=int(row["id"]),
        name=str(row["name"]),
        config_path=Path(row["config_path"]),
        backup_path=Path(row["backup_path"]),
        client_path=Path(client) if client else None,
        created_at=str(row["created_at"]),
        updated_at=str(row["updated_at"]),
    )


def _clean_name(name: str) -> str:
    cleaned = name.strip()
    if not cleaned:
        raise InvalidProfileError("Profile name must not be empty.")
    return cleaned


def _path_text(value: Path | None) -> str | None:
    return str(value) if value is not None else None


@dataclass(frozen=True, slots=True)
class SqliteProfileStore(ProfileStore):
    """
    SQLite-backed ProfileStore.

    Parameters
    ----------
    db_path:
        Path to the SQLite database.
    clock:
        Source of ``created_at`` / ``updated_at`` timestamps.

    Notes
    -----
    The database file and its parent directory are created if absent.
    """

    db_path: Path
    clock: Clock = field(default_factory=SystemClock)

    def __post_init__(self) -> None:
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StoreIOError(f"Cannot create store directory: {self.db_path.parent}") from exc
        with self._transaction() as conn:
            conn.executescript(SCHEMA_V1)

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """
        Yield a connection inside one transaction, then close it.

        The transaction commits when the block exits normally and rolls back on
        any exception. sqlite3 failures are re-raised as StoreIOError; engine
        errors raised by the block pass through unchanged.
        """
        try:
            conn = sqlite3.connect(self.db_path)
        except sqlite3.Error as exc:
            raise StoreIOError(f"Cannot open profile store: {self.db_path} ({exc})") from exc
        conn.row_factory = sqlite3.Row
        try:
            conn.execute("PRAGMA foreign_keys = ON")
            with conn:
                yield conn
        except sqlite3.Error as exc:
            raise StoreIOError(f"Profile store failure: {self.db_path} ({exc})") from exc
        finally:
            conn.close()

    def _require_profile(self, conn: sqlite3.Connection, profile_id: ProfileId) -> sqlite3.Row:
        row = conn.execute(
            f"SELECT {_PROFILE_COLUMNS} FROM profiles WHERE id = ?", (profile_id,)
        ).fetchone()
        if row is None:
            raise ProfileNotFoundError(profile_id)
        return row

    def _append(self, conn: sqlite3.Connection, profile_id: ProfileId, content: str) -> int:
        cur = conn.execute(
            "INSERT INTO configurations(profile_id, content, created_at) VALUES(?, ?, ?)",
            (profile_id, content, store_timestamp(self.clock.now())),
        )
        return int(cur.lastrowid)

    def create_profile(
        self,
        name: str,
        config_path: Path,
        backup_path: Path,
        client_path: Path | None,
        *,
        initial_configuration: str | None = None,
    ) -> ProfileId:
        """See ProfileStore.create_profile."""
        cleaned = _clean_name(name)
        now = store_timestamp(self.clock.now())
        with self._transaction() as conn:
            try:
                cur = conn.execute(
                    "INSERT INTO profiles(name, config_path, backup_path, mcp_client_path, "
                    "created_at, updated_at) VALUES(?, ?, ?, ?, ?, ?)",
                    (
                        cleaned,
                        str(config_path),
                        str(backup_path),
                        _path_text(client_path),
                        now,
                        now,
                    ),
                )
            except sqlite3.IntegrityError as exc:
                if "profiles.name" in str(exc):
                    raise DuplicateNameError(cleaned) from exc
                raise StoreIOError(f"Cannot create profile {cleaned!r}: {exc}") from exc
            profile_id = int(cur.lastrowid)
            if initial_configuration is not None:
                self._append(conn, profile_id, initial_configuration)
        logger.info("Created profile %r (id=%s)", cleaned, profile_id)
        return profile_id

    def get_profile(self, profile_id: ProfileId) -> Profile:
        """See ProfileStore.get_profile."""
        with self._transaction() as conn:
            return _row_to_profile(self._require_profile(conn, profile_id))

    def find_profile_by_name(self, name: str) -> Profile | None:
        """See ProfileStore.find_profile_by_name."""
        with self._transaction() as conn:
            row = conn.execute(
                f"SELECT {_PROFILE_COLUMNS} FROM profiles WHERE name = ?", (name.strip(),)
            ).fetchone()
        return _row_to_profile(row) if row is not None else None

    def list_profiles(self) -> Sequence[Profile]:
        """See ProfileStore.list_profiles."""
        with self._transaction() as conn:
            rows = conn.execute(
                f"SELECT {_PROFILE_COLUMNS} FROM profiles ORDER BY created_at DESC, id DESC"
            ).fetchall()
        return [_row_to_profile(r) for r in rows]

    def count_profiles(self) -> int:
        """See ProfileStore.count_profiles."""
        with self._transaction() as conn:
            row = conn.execute("SELECT COUNT(*) AS n FROM profiles").fetchone()
        return int(row["n"])

    def save_configuration(self, profile_id: ProfileId, content: str) -> int:
        """See ProfileStore.save_configuration."""
        with self._transaction() as conn:
            self._require_profile(conn, profile_id)
            return self._append(conn, profile_id, content)

    def get_latest_configuration(self, profile_id: ProfileId) -> str | None:
        """See ProfileStore.get_latest_configuration."""
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT content FROM configurations WHERE profile_id = ? "
                "ORDER BY created_at DESC, id DESC LIMIT 1",
                (profile_id,),
            ).fetchone()
        return str(row["content"]) if row is not None else None

    def list_configurations(self, profile_id: ProfileId) -> Sequence[Snapshot]:
        """See ProfileStore.list_configurations."""
        with self._transaction() as conn:
            self._require_profile(conn, profile_id)
            rows = conn.execute(
                "SELECT id, profile_id, content, created_at FROM configurations "
                "WHERE profile_id = ? ORDER BY created_at DESC, id DESC",
                (profile_id,),
            ).fetchall()
        return [
            Snapshot(
                id=int(r["id"]),
                profile_id=int(r["profile_id"]),
                content=str(r["content"]),
                created_at=str(r["created_at"]),
            )
            for r in rows
        ]

    def delete_profile(self, profile_id: ProfileId) -> None:
        """See ProfileStore.delete_profile."""
        with self._transaction() as conn:
            conn.execute("DELETE FROM configurations WHERE profile_id = ?", (profile_id,))
            cur = conn.execute("DELETE FROM profiles WHERE id = ?", (profile_id,))
        if cur.rowcount:
            logger.info("Deleted profile id=%s", profile_id)

    def update_profile_paths(
        self,
        profile_id: ProfileId,
        config_path: Path,
        backup_path: Path,
        client_path: Path | None,
    ) -> None:
        """See ProfileStore.update_profile_paths."""
        with self._transaction() as conn:
            cur = conn.execute(
                "UPDATE profiles SET config_path = ?, backup_path = ?, mcp_client_path = ?, "
                "updated_at = ? WHERE id = ?",
                (
                    str(config_path),
                    str(backup_path),
                    _path_text(client_path),
                    store_timestamp(self.clock.now()),
                    profile_id,
                ),
            )
            if cur.rowcount == 0:
                raise ProfileNotFoundError(profile_id)

    def ensure_default_profile(self, config_path: Path, backup_path: Path) -> ProfileId | None:
        """
        Create the "Default" profile when the store is empty.

        The profile is seeded with the content already at `config_path` when
        that content parses with a well-formed server map; otherwise it is
        seeded with an empty document.

        Returns
        -------
        int | None
            Id of the created profile, or None if profiles already existed.
        """
        if self.count_profiles() > 0:
            return None

        seed = serialize_document(empty_document())
        try:
            existing = read_text_if_exists(config_path)
            if existing is not None:
                result = parse_document(existing)
                if result.normalized:
                    logger.warning(
                        "Ignoring existing configuration at %s: %s",
                        config_path,
                        "; ".join(result.issues),
                    )
                else:
                    seed = existing
                    logger.info("Using existing configuration at %s for default profile", config_path)
        except ConfigEngineError as exc:
            logger.warning("Error reading existing config file %s: %s", config_path, exc)

        profile_id = self.create_profile(
            DEFAULT_PROFILE_NAME,
            config_path,
            backup_path,
            None,
            initial_configuration=seed,
        )
        return profile_id


def open_profile_store(db_path: Path, clock: Clock | None = None) -> SqliteProfileStore:
    """
    Convenience constructor.

    Parameters
    ----------
    db_path:
        Location of the SQLite database.
    clock:
        Optional clock; defaults to the system clock.

    Returns
    -------
    SqliteProfileStore
        Ready-to-use SQLite-backed store.
    """
    return SqliteProfileStore(db_path=db_path, clock=clock or SystemClock())
