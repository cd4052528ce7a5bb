from __future__ import annotations

import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from release_ai.core.result import Err, Ok, Result
from release_ai.platform.process import run as run_process

__all__ = [
    "GH_TIMEOUT_SECONDS",
    "GithubError",
    "create_release",
    "ensure_gh_auth",
    "ensure_gh_available",
]

GH_TIMEOUT_SECONDS = 60.0


@dataclass(frozen=True, slots=True)
class GithubError:
    kind: Literal["gh_missing", "gh_auth_required", "release_failed"]
    message: str
    hint: str | None = None


def ensure_gh_available() -> Result[None, GithubError]:
    if shutil.which("gh") is None:
        return Err(
            GithubError(
                kind="gh_missing",
                message="gh: missing",
                hint="Install GitHub CLI: https://cli.github.com/",
            )
        )
    return Ok(None)


def ensure_gh_auth(*, repo_root: Path) -> Result[None, GithubError]:
    result = run_process(["gh", "auth", "status"], cwd=repo_root, timeout=GH_TIMEOUT_SECONDS)
    if isinstance(result, Err):
        return Err(
            GithubError(
                kind="gh_auth_required",
                message="gh auth required",
                hint="Run: gh auth login",
            )
        )
    return Ok(None)


def create_release(
    *,
    repo_root: Path,
    tag: str,
    title: str,
    notes_file: Path,
) -> Result[str, GithubError]:
    """Publish a GitHub release for an already pushed tag; returns its URL."""
    available = ensure_gh_available()
    if isinstance(available, Err):
        return available
    auth = ensure_gh_auth(repo_root=repo_root)
    if isinstance(auth, Err):
        return auth

    result = run_process(
        ["gh", "release", "create", tag, "--title", title, "--notes-file", str(notes_file)],
        cwd=repo_root,
        timeout=GH_TIMEOUT_SECONDS,
    )
    if isinstance(result, Err):
        return Err(
            GithubError(
                kind="release_failed",
                message=f"gh release create {tag} failed",
                hint=result.error.output or None,
            )
        )
    return Ok(result.value.strip())
