from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import pytest

from config_engine.bootstrap import open_sync_engine
from config_engine.sync_engine import SyncEngine

T0 = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


@dataclass
class StepClock:
    """Clock that advances by `step` on every call."""

    start: datetime = T0
    step: timedelta = timedelta(seconds=1)
    calls: int = field(default=0)

    def now(self) -> datetime:
        moment = self.start + self.step * self.calls
        self.calls += 1
        return moment


def write_config(path: Path, servers: dict[str, Any], **extra: Any) -> str:
    """Write a configuration file and return its text."""
    payload: dict[str, Any] = {"mcpServers": servers}
    payload.update(extra)
    text = json.dumps(payload, indent=2)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return text


def read_servers(path: Path) -> dict[str, Any]:
    return json.loads(path.read_text(encoding="utf-8"))["mcpServers"]


@pytest.fixture
def live_path(tmp_path: Path) -> Path:
    return tmp_path / "client" / "claude_desktop_config.json"


@pytest.fixture
def engine(tmp_path: Path, live_path: Path) -> SyncEngine:
    """An engine rooted in tmp_path whose Default profile controls `live_path`."""
    return open_sync_engine(tmp_path / "data", config_path=live_path, clock=StepClock())
