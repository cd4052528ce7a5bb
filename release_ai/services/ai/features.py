"""AI-backed release features built on `AnthropicClient.complete`."""

from __future__ import annotations

import json
import re
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Literal

from release_ai.core.result import Err, Ok, Result
from release_ai.core.structured import as_obj_list, as_str_dict, get_str
from release_ai.git.repository import Commit, Repository
from release_ai.services.semver import BUMP_TYPES, ReleaseBump, calculate_next_version, validate_version

from .client import AiError, AnthropicClient
from .prompts import NotesFormat, assist_prompt, notes_prompt, suggest_prompt, validate_prompt

__all__ = [
    "AssistContext",
    "SUGGEST_MAX_TOKENS",
    "NOTES_MAX_TOKENS",
    "VALIDATE_MAX_TOKENS",
    "ASSIST_MAX_TOKENS",
    "ValidationReport",
    "VersionSuggestion",
    "assist_reply",
    "format_commits",
    "generate_notes",
    "parse_suggestion",
    "parse_validation",
    "suggest_version",
    "validate_changes",
]

SUGGEST_MAX_TOKENS = 500
NOTES_MAX_TOKENS = 2048
VALIDATE_MAX_TOKENS = 1024
ASSIST_MAX_TOKENS = 1024

_FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*\n?(.*?)\n?```\s*$", re.DOTALL)
_STATUS_RE = re.compile(r"^\s*STATUS\s*:\s*\[?\s*(OK|WARNINGS|ERRORS)\b", re.IGNORECASE)


def format_commits(commits: Sequence[Commit]) -> str:
    return "\n".join(c.as_log_line() for c in commits)


def _no_commits() -> AiError:
    return AiError(
        kind="no_commits",
        message="no commits since the last release",
        hint="This happens when there are no new commits after the last tag",
    )


# -----------------------------------------------------------------------------
# Version suggestion
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class VersionSuggestion:
    bump_type: ReleaseBump
    suggested_version: str
    reasoning: str = ""
    highlights: tuple[str, ...] = ()


def _strip_fences(text: str) -> str:
    stripped = text.strip()
    m = _FENCE_RE.match(stripped)
    return m.group(1).strip() if m else stripped


def parse_suggestion(text: str, *, current_version: str) -> Result[VersionSuggestion, AiError]:
    """Parse the JSON suggestion; a bad `suggested_version` is recomputed from the bump."""
    try:
        obj: object = json.loads(_strip_fences(text))
    except json.JSONDecodeError as e:
        return Err(
            AiError(
                kind="invalid_response",
                message=f"version suggestion is not valid JSON: {e}",
                hint=text.strip()[:200] or None,
            )
        )
    data = as_str_dict(obj)
    if data is None:
        return Err(AiError(kind="invalid_response", message="version suggestion is not a JSON object"))

    bump = (get_str(data, "bump_type") or "").lower()
    if bump not in BUMP_TYPES:
        return Err(
            AiError(
                kind="invalid_response",
                message=f"unknown bump_type in suggestion: {bump or '<missing>'}",
            )
        )
    bump_type: ReleaseBump = bump  # type: ignore[assignment]

    suggested = get_str(data, "suggested_version") or ""
    if not validate_version(suggested):
        computed = calculate_next_version(current_version, bump_type)
        if isinstance(computed, Err):
            return Err(AiError(kind="invalid_response", message=computed.error.message))
        suggested = computed.value

    highlights = tuple(
        item.strip() for item in (as_obj_list(data.get("highlights")) or []) if isinstance(item, str)
    )
    return Ok(
        VersionSuggestion(
            bump_type=bump_type,
            suggested_version=suggested,
            reasoning=get_str(data, "reasoning") or "",
            highlights=highlights,
        )
    )


def suggest_version(
    client: AnthropicClient,
    *,
    current_version: str,
    commits: Sequence[Commit],
) -> Result[VersionSuggestion, AiError]:
    if not commits:
        return Err(_no_commits())
    prompt = suggest_prompt(current_version=current_version, commits=format_commits(commits))
    reply = client.complete(prompt, max_tokens=SUGGEST_MAX_TOKENS)
    if isinstance(reply, Err):
        return reply
    return parse_suggestion(reply.value, current_version=current_version)


# -----------------------------------------------------------------------------
# Release notes
# -----------------------------------------------------------------------------


def generate_notes(
    client: AnthropicClient,
    *,
    version: str,
    commits: Sequence[Commit],
    fmt: NotesFormat = "markdown",
    today: date | None = None,
) -> Result[str, AiError]:
    if not commits:
        return Err(_no_commits())
    prompt = notes_prompt(version=version, commits=format_commits(commits), fmt=fmt, today=today)
    reply = client.complete(prompt, max_tokens=NOTES_MAX_TOKENS)
    if isinstance(reply, Err):
        return reply
    return Ok(_strip_fences(reply.value) + "\n")


# -----------------------------------------------------------------------------
# Pre-release validation
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ValidationReport:
    status: Literal["OK", "WARNINGS", "ERRORS", "UNKNOWN"]
    items: tuple[str, ...] = ()
    raw: str = ""

    @property
    def ok(self) -> bool:
        return self.status == "OK"


def parse_validation(text: str) -> ValidationReport:
    status: Literal["OK", "WARNINGS", "ERRORS", "UNKNOWN"] = "UNKNOWN"
    items: list[str] = []
    for line in text.splitlines():
        m = _STATUS_RE.match(line)
        if m and status == "UNKNOWN":
            match m.group(1).upper():
                case "OK":
                    status = "OK"
                case "WARNINGS":
                    status = "WARNINGS"
                case _:
                    status = "ERRORS"
            continue
        stripped = line.strip()
        if stripped.startswith("- "):
            items.append(stripped[2:].strip())
    return ValidationReport(status=status, items=tuple(items), raw=text.strip())


def validate_changes(
    client: AnthropicClient,
    *,
    commits: Sequence[Commit],
    diff: str,
) -> Result[ValidationReport, AiError]:
    """Ask for a pre-release review; with no commits there is nothing to review."""
    if not commits:
        return Ok(ValidationReport(status="OK", raw="no commits since the last release"))
    prompt = validate_prompt(commits=format_commits(commits), diff=diff)
    reply = client.complete(prompt, max_tokens=VALIDATE_MAX_TOKENS)
    if isinstance(reply, Err):
        return reply
    return Ok(parse_validation(reply.value))


# -----------------------------------------------------------------------------
# Assistant
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class AssistContext:
    cwd: Path
    branch: str = "unknown"
    last_commit: str = "unknown"

    @classmethod
    def collect(cls, repo: Repository) -> AssistContext:
        return cls(
            cwd=repo.path,
            branch=repo.current_branch() or "unknown",
            last_commit=repo.last_commit_oneline() or "unknown",
        )


def assist_reply(
    client: AnthropicClient,
    question: str,
    *,
    context: AssistContext,
) -> Result[str, AiError]:
    prompt = assist_prompt(
        question=question,
        cwd=str(context.cwd),
        branch=context.branch,
        last_commit=context.last_commit,
    )
    reply = client.complete(prompt, max_tokens=ASSIST_MAX_TOKENS)
    if isinstance(reply, Err):
        return reply
    return Ok(reply.value.strip())
