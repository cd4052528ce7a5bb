"""Persisted release state.

A flat JSON object of string values kept between invocations
(`start` records the version, `finalize` reads it back).
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

from release_ai.core.result import Err, Ok, Result
from release_ai.core.structured import StrDict, as_str_dict
from release_ai.platform.files import atomic_write_json

__all__ = ["StateError", "StateStore"]


@dataclass(frozen=True, slots=True)
class StateError:
    message: str
    path: Path
    hint: str | None = None


class StateStore:
    """Key/value state file.

    Reads are lenient: a missing or malformed file reads as empty. Writes
    go through an atomic replace.
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def _load(self) -> StrDict:
        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError:
            return {}
        try:
            obj: object = json.loads(text)
        except json.JSONDecodeError:
            return {}
        return as_str_dict(obj) or {}

    def all(self) -> dict[str, str]:
        return {k: v for k, v in self._load().items() if isinstance(v, str)}

    def get(self, key: str) -> str:
        """Value for `key`; empty string when absent."""
        value = self._load().get(key)
        return value if isinstance(value, str) else ""

    def set(self, key: str, value: str) -> Result[None, StateError]:
        data = self._load()
        data[key] = value
        try:
            atomic_write_json(self.path, data)
        except OSError as e:
            return Err(
                StateError(
                    message=f"failed to save state {key}={value}: {e}",
                    path=self.path,
                )
            )
        return Ok(None)

    def update(self, values: dict[str, str]) -> Result[None, StateError]:
        data = self._load()
        data.update(values)
        try:
            atomic_write_json(self.path, data)
        except OSError as e:
            return Err(StateError(message=f"failed to save state: {e}", path=self.path))
        return Ok(None)

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)

    def exists(self) -> bool:
        return self.path.is_file()
