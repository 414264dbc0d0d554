"""
Text file I/O for live configuration files and engine state files.

Design constraints
------------------
- Writes are atomic (temp file + replace) so a concurrent reader sees either
  the old or the new content, never a partial file. On filesystems without an
  atomic rename this degrades to a plain replace.
- All text is UTF-8.
- Failures surface as typed engine errors with the offending path.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Mapping

from .errors import ReadIOError, WriteIOError


def read_text_if_exists(path: Path) -> str | None:
    """
    Read a UTF-8 text file, returning None when it does not exist.

    Raises
    ------
    ReadIOError
        If the file exists but cannot be read or decoded.
    """
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except (OSError, UnicodeDecodeError) as exc:
        raise ReadIOError(f"Failed to read file: {path} ({exc!s})") from exc


def write_text_atomic(path: Path, text: str) -> None:
    """
    Write text atomically, creating parent directories as needed.

    Parameters
    ----------
    path:
        Destination file.
    text:
        Content written verbatim (no newline translation).

    Raises
    ------
    WriteIOError
        If the directory cannot be created or the file cannot be written.
    """
    path = path.expanduser()
    temp_path = path.with_name(path.name + ".tmp")

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with temp_path.open("w", encoding="utf-8", newline="") as handle:
            handle.write(text)
        os.replace(temp_path, path)
    except OSError as exc:
        try:
            temp_path.unlink(missing_ok=True)
        except OSError:
            pass
        raise WriteIOError(f"Failed to write file: {path} ({exc!s})") from exc


def write_json_atomic(path: Path, payload: Mapping[str, Any]) -> None:
    """Atomically write a small JSON state file (indent 2, sorted keys)."""
    text = json.dumps(dict(payload), indent=2, sort_keys=True, ensure_ascii=False) + "\n"
    write_text_atomic(path, text)
