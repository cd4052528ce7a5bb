"""Version file kinds.

Each configured file is one of three kinds, chosen once from its extension
and field path:

- `JsonFile`: structured update of a (possibly nested) field
- `ScriptFile`: value substitution in a JS/TS config such as app.config.js
- `PlainTextFile`: the whole file is the version string

All kinds expose the same two operations over file text: `read` extracts
the current value and `apply` returns the updated text. Neither touches the
filesystem; the updater owns backups and writes.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Literal, TypeAlias

from release_ai.core.result import Err, Ok, Result
from release_ai.core.structured import as_str_dict

__all__ = [
    "FileKind",
    "JsonFile",
    "KindError",
    "PlainTextFile",
    "QUOTE_STYLES",
    "SCRIPT_EXTENSIONS",
    "ScriptFile",
    "select_kind",
]

SCRIPT_EXTENSIONS = frozenset({".js", ".mjs", ".cjs", ".ts"})

# Accepted value quotes, in order of preference when two match at one offset.
QUOTE_STYLES: tuple[str, ...] = ('"', "'", "`")

_SEMVER_TEXT = r"[0-9]+\.[0-9]+\.[0-9]+"


@dataclass(frozen=True, slots=True)
class KindError:
    kind: Literal[
        "unsupported_file_type",
        "invalid_json",
        "field_collision",
        "field_not_found",
        "invalid_output",
    ]
    message: str


def _field_parts(field: str) -> list[str]:
    return [part for part in field.split(".") if part]


# -----------------------------------------------------------------------------
# JSON
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class JsonFile:
    """A JSON document whose `field` (dot path) holds the version."""

    label = "json"

    def read(self, text: str, field: str) -> Result[str, KindError]:
        try:
            node: object = json.loads(text)
        except json.JSONDecodeError as e:
            return Err(KindError(kind="invalid_json", message=f"invalid JSON: {e}"))

        for part in _field_parts(field):
            table = as_str_dict(node)
            if table is None or part not in table:
                return Err(KindError(kind="field_not_found", message=f"field not found: {field}"))
            node = table[part]

        if not isinstance(node, str):
            return Err(
                KindError(kind="field_not_found", message=f"field is not a string: {field}")
            )
        return Ok(node)

    def apply(self, text: str, field: str, version: str) -> Result[str, KindError]:
        parts = _field_parts(field)
        if not parts:
            return Err(KindError(kind="field_not_found", message="empty field path"))

        try:
            root: object = json.loads(text)
        except json.JSONDecodeError as e:
            return Err(KindError(kind="invalid_json", message=f"invalid JSON: {e}"))

        node = as_str_dict(root)
        if node is None:
            return Err(KindError(kind="field_collision", message="JSON root is not an object"))

        walked: list[str] = []
        for part in parts[:-1]:
            walked.append(part)
            child = node.get(part)
            if child is None:
                child = {}
                node[part] = child
            table = as_str_dict(child)
            if table is None:
                return Err(
                    KindError(
                        kind="field_collision",
                        message=f"{'.'.join(walked)} is not an object",
                    )
                )
            node = table
        node[parts[-1]] = version

        out = json.dumps(root, indent=2, ensure_ascii=False) + "\n"

        # The serialized document must parse and carry the new value.
        check = self.read(out, field)
        if isinstance(check, Err) or check.value != version:
            return Err(KindError(kind="invalid_output", message="updated JSON failed validation"))
        return Ok(out)


# -----------------------------------------------------------------------------
# Script-embedded fields
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class _ValueSpan:
    start: int
    end: int
    value: str


def _key_pattern(name: str) -> str:
    # `version`, "version" or 'version', not the tail of `appVersion`
    return rf"(?<![\w$])(?P<kq>[\"']?){re.escape(name)}(?P=kq)\s*[:=]\s*"


def _assignment_regexes(name: str) -> list[re.Pattern[str]]:
    key = _key_pattern(name)
    regexes: list[re.Pattern[str]] = []
    for quote in QUOTE_STYLES:
        q = re.escape(quote)
        regexes.append(re.compile(rf"{key}{q}(?P<value>[^{q}\n]*){q}"))
    return regexes


def _search_start(text: str, parts: list[str]) -> int:
    """Offset to search from: just past the parent key when it exists."""
    if len(parts) < 2:
        return 0
    m = re.search(_key_pattern(parts[-2]), text)
    return m.end() if m else 0


def _find_assignment(text: str, field: str) -> _ValueSpan | None:
    parts = _field_parts(field)
    if not parts:
        return None
    start = _search_start(text, parts)

    best: re.Match[str] | None = None
    for regex in _assignment_regexes(parts[-1]):
        m = regex.search(text, start)
        if m is not None and (best is None or m.start() < best.start()):
            best = m
    if best is None:
        return None
    return _ValueSpan(start=best.start("value"), end=best.end("value"), value=best.group("value"))


@dataclass(frozen=True, slots=True)
class ScriptFile:
    """A JS/TS source file with an assignment such as `version: "1.2.3"`."""

    label = "script"

    def read(self, text: str, field: str) -> Result[str, KindError]:
        parts = _field_parts(field)
        if not parts:
            return Err(KindError(kind="field_not_found", message="empty field path"))
        name = re.escape(parts[-1])

        span = _find_assignment(text, field)
        if span is not None:
            return Ok(span.value)

        # Fallback: a quoted X.Y.Z on any line mentioning the key.
        for line in text.splitlines():
            if re.search(rf"{name}[\"']?\s*[:=]\s*[\"'`]", line):
                m = re.search(rf"[\"'`]({_SEMVER_TEXT})[\"'`]", line)
                if m:
                    return Ok(m.group(1))

        # Fallback: an unquoted or loosely quoted X.Y.Z after the key.
        m = re.search(rf"{name}\s*[:=]\s*[\"'`]?({_SEMVER_TEXT})", text)
        if m:
            return Ok(m.group(1))

        return Err(KindError(kind="field_not_found", message=f"no assignment for {field}"))

    def apply(self, text: str, field: str, version: str) -> Result[str, KindError]:
        span = _find_assignment(text, field)
        if span is None:
            return Err(KindError(kind="field_not_found", message=f"no assignment for {field}"))
        return Ok(text[: span.start] + version + text[span.end :])


# -----------------------------------------------------------------------------
# Plain text
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class PlainTextFile:
    """A file whose entire (trimmed) content is the version."""

    label = "text"

    def read(self, text: str, field: str) -> Result[str, KindError]:
        return Ok(text.strip())

    def apply(self, text: str, field: str, version: str) -> Result[str, KindError]:
        return Ok(f"{version}\n")


FileKind: TypeAlias = JsonFile | ScriptFile | PlainTextFile


def select_kind(path: Path, field: str) -> Result[FileKind, KindError]:
    """Pick the kind for a configured file.

    An empty field always means plain text. With a field, the extension
    decides; a file named VERSION is accepted as plain text.
    """
    if not _field_parts(field):
        return Ok(PlainTextFile())

    suffix = path.suffix.lower()
    if suffix == ".json":
        return Ok(JsonFile())
    if suffix in SCRIPT_EXTENSIONS:
        return Ok(ScriptFile())
    if path.name == "VERSION":
        return Ok(PlainTextFile())
    return Err(
        KindError(
            kind="unsupported_file_type",
            message=f"unsupported file type for field {field!r}: {path.name}",
        )
    )
