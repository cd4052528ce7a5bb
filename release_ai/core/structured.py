"""Helpers for safely working with parsed JSON.

Config files, the state file and API responses all arrive as untyped
`json.loads` output. These helpers narrow them without scattering
isinstance checks through the callers.
"""

from __future__ import annotations

from typing import Mapping, TypeGuard, cast

StrDict = dict[str, object]
ObjList = list[object]


def is_str_dict(obj: object) -> TypeGuard[StrDict]:
    """Return True if obj is a dict with string keys."""
    if not isinstance(obj, dict):
        return False
    d = cast(dict[object, object], obj)
    return all(isinstance(k, str) for k in d.keys())


def as_str_dict(obj: object) -> StrDict | None:
    if is_str_dict(obj):
        return obj
    return None


def as_obj_list(obj: object) -> ObjList | None:
    if isinstance(obj, list):
        return cast(ObjList, obj)
    return None


def get_str(table: Mapping[str, object], key: str) -> str | None:
    """Get a string value from a mapping, stripping whitespace.

    Returns None if missing, not a str, or empty after stripping.
    """
    value = table.get(key)
    if not isinstance(value, str):
        return None
    s = value.strip()
    return s or None


def get_path(table: Mapping[str, object], dotted: str) -> object | None:
    """Look up a dot-separated key path (`claude.model`) in nested tables.

    Returns None as soon as a segment is missing or a non-table is
    encountered before the last segment.
    """
    current: object = table
    for part in dotted.split("."):
        d = as_str_dict(current)
        if d is None or part not in d:
            return None
        current = d[part]
    return current


def get_path_str(table: Mapping[str, object], dotted: str) -> str | None:
    """Like `get_path` but only returns non-empty strings.

    Numbers and booleans are rendered with `str()` so that config values
    such as `"max_tokens": 1024` can still be read as text.
    """
    value = get_path(table, dotted)
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int | float):
        return str(value)
    if not isinstance(value, str):
        return None
    s = value.strip()
    return s or None
