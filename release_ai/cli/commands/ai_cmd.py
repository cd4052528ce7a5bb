"""AI-assisted commands: suggest, notes, validate, assist.

`suggest` and `notes` fall back to conventional-commit heuristics when AI is
disabled (`RELEASE_AI_NO_AI`); `validate` and `assist` need the API.
"""

from __future__ import annotations

import json
from pathlib import Path

import typer

from release_ai.cli.commands._helpers import ai_error_code, fail
from release_ai.cli.context import CLIContext, build_context
from release_ai.core.errors import ErrorCode
from release_ai.core.result import Err, Ok
from release_ai.git.repository import Commit
from release_ai.output.console import Style
from release_ai.services.ai.client import AiError, AnthropicClient
from release_ai.services.ai.features import (
    AssistContext,
    VersionSuggestion,
    assist_reply,
    generate_notes,
    suggest_version,
    validate_changes,
)
from release_ai.services.ai.prompts import NOTES_FORMATS, NotesFormat
from release_ai.services.history import ReleaseHistory
from release_ai.services.notes import render_plain_notes, write_notes
from release_ai.services.semver import calculate_next_version, suggest_bump, validate_version
from release_ai.services.versioning.updater import current_version

_EXIT_WORDS = frozenset({"exit", "quit"})


def _commits(ctx: CLIContext, end_ref: str = "HEAD") -> list[Commit]:
    history = ReleaseHistory(ctx.repo, ctx.config)
    match history.commits_since_last_release(end_ref):
        case Err(e):
            fail(e, ctx, ErrorCode.GIT_ERROR)
        case Ok(commit_range):
            if commit_range.tag is None:
                ctx.console.info("no previous release found, using the full history")
            else:
                ctx.console.info(f"last release: {commit_range.tag}")
            match history.list_commits(commit_range):
                case Err(e):
                    fail(e, ctx, ErrorCode.GIT_ERROR)
                case Ok(commits):
                    return commits


def _require_ai(ctx: CLIContext) -> AnthropicClient:
    client = ctx.ai_client()
    if client is None:
        fail(
            AiError(
                kind="disabled",
                message="AI features are disabled (RELEASE_AI_NO_AI)",
                hint="Unset RELEASE_AI_NO_AI to use this command",
            ),
            ctx,
            ErrorCode.ENV_ERROR,
        )
    return client


def _print_suggestion(ctx: CLIContext, current: str, suggestion: VersionSuggestion) -> None:
    ctx.console.print(f"current version:   {current}")
    ctx.console.print(f"bump:              {suggestion.bump_type}", Style.BOLD)
    ctx.console.print(f"suggested version: {suggestion.suggested_version}", Style.SUCCESS)
    if suggestion.reasoning:
        ctx.console.newline()
        ctx.console.print(suggestion.reasoning)
    if suggestion.highlights:
        ctx.console.newline()
        for item in suggestion.highlights:
            ctx.console.print(f"  - {item}")


def _usable_ai(ctx: CLIContext) -> AnthropicClient | None:
    """Client for commands with an offline fallback; None unless a key is set."""
    client = ctx.ai_client()
    if client is None or not client.is_configured:
        return None
    return client


def suggest(
    as_json: bool = typer.Option(False, "--json", help="Print the suggestion as JSON"),
) -> None:
    """Suggest the next version from commits since the last release."""
    ctx = build_context()

    current_result = current_version(ctx.config.version_files, repo_root=ctx.repo_root)
    if isinstance(current_result, Err):
        fail(current_result.error, ctx, ErrorCode.IO_ERROR)
    current = current_result.value

    commits = _commits(ctx)
    if not commits:
        ctx.console.warning("no commits since the last release")
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    client = _usable_ai(ctx)
    if client is not None:
        result = suggest_version(client, current_version=current, commits=commits)
        if isinstance(result, Err):
            fail(result.error, ctx, ai_error_code(result.error))
        suggestion = result.value
    else:
        bump = suggest_bump(commits)
        suggestion = VersionSuggestion(
            bump_type=bump,
            suggested_version=calculate_next_version(current, bump).unwrap_or(current),
            reasoning="Derived from conventional commit types (AI unavailable).",
        )

    if as_json:
        typer.echo(
            json.dumps(
                {
                    "bump_type": suggestion.bump_type,
                    "suggested_version": suggestion.suggested_version,
                    "reasoning": suggestion.reasoning,
                    "highlights": list(suggestion.highlights),
                },
                indent=2,
                ensure_ascii=False,
            )
        )
        return
    _print_suggestion(ctx, current, suggestion)


def notes(
    version: str = typer.Argument(..., help="Version the notes are for (X.Y.Z)"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write notes to this file"),
    notes_format: str = typer.Option(
        "markdown", "--format", "-f", help="markdown, confluence or confluence-md"
    ),
    end_ref: str = typer.Option("HEAD", "--end-ref", help="Last commit included in the notes"),
) -> None:
    """Generate release notes for VERSION."""
    ctx = build_context()
    if not validate_version(version):
        ctx.console.error(f"invalid version format: {version!r}")
        ctx.console.print("hint: Expected X.Y.Z (e.g. 1.8.3)", Style.DIM)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))
    if notes_format not in NOTES_FORMATS:
        ctx.console.error(f"invalid --format: {notes_format}")
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))
    fmt: NotesFormat = notes_format  # type: ignore[assignment]

    commits = _commits(ctx, end_ref)
    client = _usable_ai(ctx)
    if client is not None:
        result = generate_notes(client, version=version, commits=commits, fmt=fmt)
        if isinstance(result, Err):
            fail(result.error, ctx, ai_error_code(result.error))
        text = result.value
    else:
        if fmt != "markdown":
            ctx.console.warning(f"AI unavailable: writing plain markdown instead of {fmt}")
        text = render_plain_notes(version, commits)

    if output is None:
        typer.echo(text, nl=False)
        return

    written = write_notes(output, text)
    if isinstance(written, Err):
        ctx.console.error(written.error)
        raise typer.Exit(code=int(ErrorCode.IO_ERROR))
    ctx.console.success(f"release notes written to {output}")


def validate(
    diff_range: str = typer.Option("HEAD~10..HEAD", "--diff-range", help="Range for the reviewed diff"),
) -> None:
    """Review pending changes before a release."""
    ctx = build_context()
    client = _require_ai(ctx)

    commits = _commits(ctx)
    if not commits:
        ctx.console.warning("no commits since the last release")
        return

    result = validate_changes(client, commits=commits, diff=ctx.repo.diff(diff_range))
    if isinstance(result, Err):
        fail(result.error, ctx, ai_error_code(result.error))
    report = result.value

    match report.status:
        case "OK":
            ctx.console.success("validation passed")
        case "WARNINGS":
            ctx.console.warning("validation found warnings")
        case "ERRORS":
            ctx.console.error("validation found errors")
        case _:
            ctx.console.warning("could not read a STATUS line; full answer below")
            ctx.console.print(report.raw)

    for item in report.items:
        ctx.console.print(f"  - {item}")

    if report.status == "ERRORS":
        raise typer.Exit(code=int(ErrorCode.VERIFY_ERROR))


def _answer(ctx: CLIContext, client: AnthropicClient, question: str) -> AiError | None:
    result = assist_reply(client, question, context=AssistContext.collect(ctx.repo))
    match result:
        case Ok(text):
            ctx.console.newline()
            ctx.console.print(text)
            ctx.console.newline()
            return None
        case Err(e):
            ctx.console.error(e.message)
            if e.hint:
                ctx.console.print(f"hint: {e.hint}", Style.DIM)
            return e


def assist(
    message: str | None = typer.Argument(None, help="Question; omit for a conversation"),
) -> None:
    """Ask the release assistant."""
    ctx = build_context()
    client = _require_ai(ctx)

    if message:
        error = _answer(ctx, client, message)
        if error is not None:
            raise typer.Exit(code=int(ai_error_code(error)))
        return

    ctx.console.header("Release assistant")
    ctx.console.print("Type 'exit' or 'quit' to leave.", Style.DIM)
    while True:
        question = typer.prompt("you", default="", show_default=False).strip()
        if question.lower() in _EXIT_WORDS:
            break
        if not question:
            continue
        _answer(ctx, client, question)
