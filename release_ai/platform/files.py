"""Crash-safe writes for version files, backups, state and config.

Every write lands in a hidden sibling (`.<name>.<random>.tmp`) that is
fsynced and then renamed over the target, so a reader never sees a half
written file. The temp file is removed whatever happens.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path

__all__ = ["atomic_write_bytes", "atomic_write_json", "atomic_write_text", "restore_file"]


def atomic_write_bytes(path: Path, content: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, path)
    finally:
        tmp_path.unlink(missing_ok=True)


def atomic_write_text(path: Path, content: str, *, encoding: str = "utf-8") -> None:
    # Encoded up front so newlines are written exactly as given.
    atomic_write_bytes(path, content.encode(encoding))


def atomic_write_json(path: Path, data: object) -> None:
    """Write `data` as indented UTF-8 JSON with a trailing newline."""
    atomic_write_text(path, json.dumps(data, indent=2, ensure_ascii=False) + "\n")


def restore_file(path: Path, backup: Path) -> None:
    """Move `backup` over `path`. The backup no longer exists afterwards."""
    os.replace(backup, path)
