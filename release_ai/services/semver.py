from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Literal

from release_ai.core.result import Err, Ok, Result
from release_ai.git.repository import Commit

ReleaseBump = Literal["major", "minor", "patch"]

BUMP_TYPES: tuple[ReleaseBump, ...] = ("major", "minor", "patch")

_VERSION_RE = re.compile(r"([0-9]+)\.([0-9]+)\.([0-9]+)")
_COMMIT_TYPE_RE = re.compile(r"^([a-z]+)(\(.+\))?!?:")
_BREAKING_SUBJECT_RE = re.compile(r"^[a-z]+(\(.+\))?!:")
_BREAKING_BODY_RE = re.compile(r"BREAKING[ \t]CHANGE:")


@dataclass(frozen=True, slots=True, order=True)
class SemVer:
    major: int
    minor: int
    patch: int

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"

    def bump(self, kind: ReleaseBump) -> SemVer:
        match kind:
            case "major":
                return SemVer(self.major + 1, 0, 0)
            case "minor":
                return SemVer(self.major, self.minor + 1, 0)
            case "patch":
                return SemVer(self.major, self.minor, self.patch + 1)
            case _:
                raise AssertionError(f"unexpected bump kind: {kind}")


@dataclass(frozen=True, slots=True)
class VersionError:
    kind: Literal["invalid_version", "invalid_bump"]
    message: str
    hint: str | None = None


def validate_version(version: str) -> bool:
    """True iff `version` is exactly MAJOR.MINOR.PATCH (no prefix, no suffix)."""
    return _VERSION_RE.fullmatch(version) is not None


def parse_version(version: str) -> Result[SemVer, VersionError]:
    m = _VERSION_RE.fullmatch(version)
    if m is None:
        return Err(
            VersionError(
                kind="invalid_version",
                message=f"invalid version format: {version!r}",
                hint="Expected X.Y.Z (e.g. 1.8.3)",
            )
        )
    return Ok(SemVer(int(m.group(1)), int(m.group(2)), int(m.group(3))))


def compare_versions(a: str, b: str) -> Result[int, VersionError]:
    """-1 if a < b, 0 if equal, 1 if a > b."""
    pa = parse_version(a)
    if isinstance(pa, Err):
        return pa
    pb = parse_version(b)
    if isinstance(pb, Err):
        return pb
    if pa.value == pb.value:
        return Ok(0)
    return Ok(-1 if pa.value < pb.value else 1)


def calculate_next_version(current: str, bump: str) -> Result[str, VersionError]:
    parsed = parse_version(current)
    if isinstance(parsed, Err):
        return parsed
    if bump not in BUMP_TYPES:
        return Err(
            VersionError(
                kind="invalid_bump",
                message=f"invalid bump type: {bump!r}",
                hint="Expected major, minor or patch",
            )
        )
    kind: ReleaseBump = bump  # type: ignore[assignment]
    return Ok(str(parsed.value.bump(kind)))


def extract_version_from_tag(tag: str, prefix: str = "v") -> str:
    """Strip the tag prefix (`v1.2.3` -> `1.2.3`); other tags pass through."""
    if prefix and tag.startswith(prefix):
        return tag[len(prefix) :]
    return tag


def parse_commit_type(subject: str) -> str:
    """Conventional-commit type of a subject (`feat(api): x` -> `feat`)."""
    m = _COMMIT_TYPE_RE.match(subject)
    if m is None:
        return "unknown"
    return m.group(1)


def has_breaking_change(subject: str, body: str = "") -> bool:
    if _BREAKING_SUBJECT_RE.match(subject):
        return True
    return _BREAKING_BODY_RE.search(body) is not None


def suggest_bump(commits: Iterable[Commit]) -> ReleaseBump:
    """Offline bump suggestion from conventional commits.

    Breaking changes win over features, features over everything else.
    """
    bump: ReleaseBump = "patch"
    for commit in commits:
        if has_breaking_change(commit.subject, commit.body):
            return "major"
        if parse_commit_type(commit.subject) == "feat":
            bump = "minor"
    return bump
