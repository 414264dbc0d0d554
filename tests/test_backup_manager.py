from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pytest

from config_engine.backup_manager import BackupManager, backup_file_name
from config_engine.clock import FixedClock
from config_engine.errors import BackupIOError
from config_engine.settings_pointer import ActivePaths, SettingsPointer

from conftest import StepClock

NOON = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def _source(tmp_path: Path, content: bytes = b'{"mcpServers": {}}') -> Path:
    source = tmp_path / "claude_desktop_config.json"
    source.write_bytes(content)
    return source


def test_backup_file_name() -> None:
    source = Path("claude_desktop_config.json")
    assert backup_file_name(source, "2026-01-01T12-00-00") == "claude_desktop_config_2026-01-01T12-00-00.json"
    assert backup_file_name(source, "2026-01-01T12-00-00", 2) == (
        "claude_desktop_config_2026-01-01T12-00-00_2.json"
    )


def test_backup_is_byte_identical_copy(tmp_path: Path) -> None:
    source = _source(tmp_path, b"not even json \xe2\x9c\x93")
    manager = BackupManager(default_backup_dir=tmp_path / "bk", clock=FixedClock(NOON))

    created = manager.backup(source)

    assert created == tmp_path / "bk" / "claude_desktop_config_2026-01-01T12-00-00.json"
    assert created.read_bytes() == source.read_bytes()


def test_same_second_backups_never_overwrite(tmp_path: Path) -> None:
    source = _source(tmp_path, b"first")
    manager = BackupManager(default_backup_dir=tmp_path / "bk", clock=FixedClock(NOON))

    first = manager.backup(source)
    source.write_bytes(b"second")
    second = manager.backup(source)

    assert first != second
    assert second.name == "claude_desktop_config_2026-01-01T12-00-00_1.json"
    assert first.read_bytes() == b"first"
    assert second.read_bytes() == b"second"


def test_backups_in_distinct_seconds_are_separate_copies(tmp_path: Path) -> None:
    source = _source(tmp_path)
    manager = BackupManager(default_backup_dir=tmp_path / "bk", clock=StepClock())

    first = manager.backup(source)
    second = manager.backup(source)

    assert first != second
    assert first.read_bytes() == second.read_bytes() == source.read_bytes()


def test_missing_source_raises_and_creates_nothing(tmp_path: Path) -> None:
    manager = BackupManager(default_backup_dir=tmp_path / "bk", clock=FixedClock(NOON))

    with pytest.raises(BackupIOError):
        manager.backup(tmp_path / "missing.json")

    assert manager.list_backups(tmp_path / "missing.json") == []


def test_uncreatable_backup_directory_raises(tmp_path: Path) -> None:
    source = _source(tmp_path)
    blocker = tmp_path / "blocker"
    blocker.write_text("file, not a directory", encoding="utf-8")
    manager = BackupManager(default_backup_dir=blocker / "bk", clock=FixedClock(NOON))

    with pytest.raises(BackupIOError):
        manager.backup(source)


def test_backup_dir_follows_settings_pointer(tmp_path: Path) -> None:
    source = _source(tmp_path)
    settings = SettingsPointer(
        settings_file=tmp_path / "settings.json",
        defaults=ActivePaths(source, tmp_path / "default-bk", None),
    )
    manager = BackupManager(
        default_backup_dir=tmp_path / "unused", settings=settings, clock=FixedClock(NOON)
    )

    assert manager.backup(source).parent == tmp_path / "default-bk"

    settings.update(backup_path=tmp_path / "chosen")
    assert manager.backup(source).parent == tmp_path / "chosen"
    assert manager.backup(source, backup_dir=tmp_path / "explicit").parent == tmp_path / "explicit"


def test_list_backups_newest_first(tmp_path: Path) -> None:
    source = _source(tmp_path)
    backup_dir = tmp_path / "bk"
    stepping = BackupManager(default_backup_dir=backup_dir, clock=StepClock())
    older = stepping.backup(source)
    newer = stepping.backup(source)
    (backup_dir / "unrelated.json").write_text("{}", encoding="utf-8")
    (backup_dir / "claude_desktop_config_notes.json").write_text("{}", encoding="utf-8")

    listed = stepping.list_backups(source)

    assert listed == [newer, older]


def test_list_backups_orders_collision_counters(tmp_path: Path) -> None:
    source = _source(tmp_path)
    manager = BackupManager(default_backup_dir=tmp_path / "bk", clock=FixedClock(NOON))
    created = [manager.backup(source) for _ in range(3)]

    assert manager.list_backups(source) == list(reversed(created))


def test_list_backups_of_missing_directory_is_empty(tmp_path: Path) -> None:
    manager = BackupManager(default_backup_dir=tmp_path / "nowhere")
    assert manager.list_backups(tmp_path / "x.json") == []
