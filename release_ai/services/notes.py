"""Release notes without AI, and writing notes to disk."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from release_ai.core.result import Err, Ok, Result
from release_ai.git.repository import Commit
from release_ai.platform.files import atomic_write_text
from release_ai.services.semver import has_breaking_change, parse_commit_type

__all__ = ["notes_path_for_version", "render_plain_notes", "write_notes"]

_SECTIONS: tuple[tuple[str, str], ...] = (
    ("feat", "## 🚀 Features"),
    ("fix", "## 🐛 Bug Fixes"),
)


def notes_path_for_version(root: Path, version: str) -> Path:
    return root / f"RELEASE_NOTES_{version}.md"


def render_plain_notes(version: str, commits: Sequence[Commit]) -> str:
    """Group commit subjects by conventional type."""
    breaking = [c for c in commits if has_breaking_change(c.subject, c.body)]
    grouped: dict[str, list[Commit]] = {kind: [] for kind, _ in _SECTIONS}
    other: list[Commit] = []
    for commit in commits:
        if commit in breaking:
            continue
        kind = parse_commit_type(commit.subject)
        if kind in grouped:
            grouped[kind].append(commit)
        else:
            other.append(commit)

    lines: list[str] = [f"Release {version}."]
    if not commits:
        lines.append("")
        lines.append("No changes since the last release.")

    if breaking:
        lines += ["", "## 💥 Breaking Changes"]
        lines += [f"- ⚠️ {c.subject} ({c.short_sha})" for c in breaking]
    for kind, heading in _SECTIONS:
        if grouped[kind]:
            lines += ["", heading]
            lines += [f"- {c.subject} ({c.short_sha})" for c in grouped[kind]]
    if other:
        lines += ["", "## 📝 Other Changes"]
        lines += [f"- {c.subject} ({c.short_sha})" for c in other]

    return "\n".join(lines) + "\n"


def write_notes(path: Path, notes: str) -> Result[Path, str]:
    try:
        atomic_write_text(path, notes if notes.endswith("\n") else notes + "\n")
    except OSError as e:
        return Err(f"failed to write release notes to {path}: {e}")
    return Ok(path)
