"""SQLite schema for the profile store.

Notes
-----
``configurations`` is append-only. The latest configuration of a profile is
the row with the greatest ``created_at``; rows written within the same
timestamp are ordered by ``id``.
"""

from __future__ import annotations

SCHEMA_V1 = """
PRAGMA journal_mode = WAL;

CREATE TABLE IF NOT EXISTS profiles (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    name            TEXT NOT NULL UNIQUE,
    config_path     TEXT NOT NULL,
    backup_path     TEXT NOT NULL,
    mcp_client_path TEXT NULL,
    created_at      TEXT NOT NULL,
    updated_at      TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS configurations (
    id         INTEGER PRIMARY KEY AUTOINCREMENT,
    profile_id INTEGER NOT NULL,
    content    TEXT NOT NULL,
    created_at TEXT NOT NULL,
    FOREIGN KEY (profile_id) REFERENCES profiles(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_configurations_profile_created
    ON configurations(profile_id, created_at);
"""
