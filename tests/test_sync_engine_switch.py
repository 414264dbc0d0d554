from __future__ import annotations

import json
from pathlib import Path

import pytest

from config_engine.errors import (
    BackupFailedError,
    CorruptConfigurationError,
    NoConfigurationError,
    ProfileNotFoundError,
)
from config_engine.settings_pointer import ActivePaths
from config_engine.sync_engine import SyncEngine

from conftest import read_servers, write_config

SERVER_A = {"command": "npx", "args": ["-y", "server-a"]}
SERVER_B = {"command": "uvx", "args": ["server-b"], "env": {"TOKEN": "t"}}


def _empty_profile(engine: SyncEngine, live_path: Path, name: str = "Empty") -> int:
    # No live file exists yet, so the profile is seeded empty.
    return engine.create_profile(name, live_path, live_path.parent / "bk")


def _profile_with(engine: SyncEngine, live_path: Path, name: str, servers: dict) -> int:
    profile_id = _empty_profile(engine, live_path, name)
    engine.save_profile_configuration(profile_id, json.dumps({"mcpServers": servers}))
    return profile_id


def _backups(engine: SyncEngine, live_path: Path) -> list[Path]:
    # Backups land in the directory active before the switch, which for a
    # fresh engine is the default backup directory.
    return engine.backups.list_backups(live_path, backup_dir=engine.backups.default_backup_dir)


def test_empty_profile_preserves_live_servers_and_backs_up(engine: SyncEngine, live_path: Path) -> None:
    profile_id = _empty_profile(engine, live_path)
    original = write_config(live_path, {"a": SERVER_A})

    result = engine.switch_profile(profile_id)

    assert result.merged is True
    assert read_servers(live_path) == {"a": SERVER_A}
    assert result.backup_path is not None
    assert result.backup_path.read_text(encoding="utf-8") == original
    assert result.warnings == ()


def test_non_empty_profile_replaces_live_servers(engine: SyncEngine, live_path: Path) -> None:
    profile_id = _profile_with(engine, live_path, "B", {"b": SERVER_B})
    original = write_config(live_path, {"a": SERVER_A})

    result = engine.switch_profile(profile_id)

    assert result.merged is False
    assert read_servers(live_path) == {"b": SERVER_B}
    assert [p.read_text(encoding="utf-8") for p in _backups(engine, live_path)] == [original]


def test_switch_without_live_file_writes_and_skips_backup(engine: SyncEngine, live_path: Path) -> None:
    profile_id = _profile_with(engine, live_path, "B", {"b": SERVER_B})

    result = engine.switch_profile(profile_id)

    assert result.backup_path is None
    assert read_servers(live_path) == {"b": SERVER_B}
    assert _backups(engine, live_path) == []


def test_switch_output_is_pretty_printed_without_trailing_newline(
    engine: SyncEngine, live_path: Path
) -> None:
    profile_id = _profile_with(engine, live_path, "B", {"b": SERVER_B})
    engine.switch_profile(profile_id)

    text = live_path.read_text(encoding="utf-8")
    assert text.startswith('{\n  "mcpServers": {\n    "b": {')
    assert not text.endswith("\n")


def test_switch_updates_pointer_and_history(engine: SyncEngine, live_path: Path) -> None:
    client = live_path.parent / "client.exe"
    profile_id = engine.create_profile("C", live_path, live_path.parent / "bk", client)
    engine.save_profile_configuration(profile_id, json.dumps({"mcpServers": {"b": SERVER_B}}))
    before = len(engine.configuration_history(profile_id))

    engine.switch_profile(profile_id)

    profile = engine.get_profile(profile_id)
    assert engine.current_settings() == ActivePaths(profile.config_path, profile.backup_path, client)
    history = engine.configuration_history(profile_id)
    assert len(history) == before + 1
    assert history[0].content == live_path.read_text(encoding="utf-8")
    assert engine.preferences.load().last_opened_file == profile.config_path


def test_merged_content_becomes_latest_snapshot(engine: SyncEngine, live_path: Path) -> None:
    profile_id = _empty_profile(engine, live_path)
    write_config(live_path, {"a": SERVER_A})

    engine.switch_profile(profile_id)

    assert engine.get_latest_document(profile_id).servers.keys() == {"a"}


def test_unparsable_live_file_counts_as_empty(engine: SyncEngine, live_path: Path) -> None:
    profile_id = _empty_profile(engine, live_path)
    live_path.parent.mkdir(parents=True, exist_ok=True)
    live_path.write_text("{garbage", encoding="utf-8")

    result = engine.switch_profile(profile_id)

    assert result.merged is False
    assert read_servers(live_path) == {}
    assert result.backup_path is not None
    assert result.backup_path.read_text(encoding="utf-8") == "{garbage"


def test_stored_document_missing_server_map_is_normalized(engine: SyncEngine, live_path: Path) -> None:
    profile_id = _empty_profile(engine, live_path)
    engine.store.save_configuration(profile_id, '{"theme": "dark"}')

    engine.switch_profile(profile_id)

    assert json.loads(live_path.read_text(encoding="utf-8")) == {"mcpServers": {}, "theme": "dark"}


def test_corrupt_snapshot_aborts_before_any_write(engine: SyncEngine, live_path: Path) -> None:
    profile_id = _empty_profile(engine, live_path)
    engine.store.save_configuration(profile_id, "{this is not json")
    original = write_config(live_path, {"a": SERVER_A})

    with pytest.raises(CorruptConfigurationError):
        engine.switch_profile(profile_id)

    assert live_path.read_text(encoding="utf-8") == original
    assert _backups(engine, live_path) == []


def test_profile_without_snapshot_raises(engine: SyncEngine, live_path: Path) -> None:
    profile_id = engine.store.create_profile("bare", live_path, live_path.parent / "bk", None)

    with pytest.raises(NoConfigurationError) as excinfo:
        engine.switch_profile(profile_id)
    assert excinfo.value.profile_id == profile_id


def test_unknown_profile_raises(engine: SyncEngine) -> None:
    with pytest.raises(ProfileNotFoundError):
        engine.switch_profile(9999)


def test_backup_failure_aborts_switch(engine: SyncEngine, live_path: Path, tmp_path: Path) -> None:
    profile_id = _profile_with(engine, live_path, "B", {"b": SERVER_B})
    original = write_config(live_path, {"a": SERVER_A})
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")
    engine.update_settings(backup_path=blocker / "bk")
    pointer_before = engine.current_settings()
    history_before = len(engine.configuration_history(profile_id))

    with pytest.raises(BackupFailedError):
        engine.switch_profile(profile_id)

    assert live_path.read_text(encoding="utf-8") == original
    assert engine.current_settings() == pointer_before
    assert len(engine.configuration_history(profile_id)) == history_before


def test_settings_failure_after_write_is_a_warning(
    engine: SyncEngine, live_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    from config_engine.errors import SettingsIOError
    from config_engine.settings_pointer import SettingsPointer

    profile_id = _profile_with(engine, live_path, "B", {"b": SERVER_B})

    def _fail(self, paths):
        raise SettingsIOError("disk full")

    monkeypatch.setattr(SettingsPointer, "overwrite", _fail)

    result = engine.switch_profile(profile_id)

    assert read_servers(live_path) == {"b": SERVER_B}
    assert any("disk full" in w for w in result.warnings)


def test_switching_back_and_forth(engine: SyncEngine, live_path: Path) -> None:
    first = _profile_with(engine, live_path, "one", {"a": SERVER_A})
    second = _profile_with(engine, live_path, "two", {"b": SERVER_B})

    engine.switch_profile(first)
    engine.switch_profile(second)
    engine.switch_profile(first)

    assert read_servers(live_path) == {"a": SERVER_A}
    # The first switch made the profiles' shared backup directory active.
    assert len(engine.backups.list_backups(live_path)) == 2
    assert engine.current_settings().backup_path == live_path.parent / "bk"


def test_undecodable_live_file_counts_as_empty(engine: SyncEngine, live_path: Path) -> None:
    profile_id = _profile_with(engine, live_path, "B", {"b": SERVER_B})
    raw = b'{"mcpServers": {"\xff": 1}}'
    live_path.parent.mkdir(parents=True, exist_ok=True)
    live_path.write_bytes(raw)

    result = engine.switch_profile(profile_id)

    assert result.merged is False
    assert read_servers(live_path) == {"b": SERVER_B}
    assert result.backup_path is not None
    assert result.backup_path.read_bytes() == raw


def test_undecodable_live_file_is_replaced_by_empty_profile(engine: SyncEngine, live_path: Path) -> None:
    profile_id = _empty_profile(engine, live_path)
    live_path.parent.mkdir(parents=True, exist_ok=True)
    live_path.write_bytes(b"\xff\xfe")

    result = engine.switch_profile(profile_id)

    assert result.merged is False
    assert read_servers(live_path) == {}


def test_snapshot_failure_after_write_is_a_warning(
    engine: SyncEngine, live_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    from config_engine.profile_store.errors import StoreIOError
    from config_engine.profile_store.sqlite_store import SqliteProfileStore

    profile_id = _profile_with(engine, live_path, "B", {"b": SERVER_B})
    write_config(live_path, {"a": SERVER_A})
    history_before = len(engine.configuration_history(profile_id))

    def _fail(self, profile_id, content):
        raise StoreIOError("db locked")

    monkeypatch.setattr(SqliteProfileStore, "save_configuration", _fail)

    result = engine.switch_profile(profile_id)

    assert read_servers(live_path) == {"b": SERVER_B}
    assert any("db locked" in w for w in result.warnings)
    assert engine.current_settings().config_path == live_path
    assert len(engine.configuration_history(profile_id)) == history_before
