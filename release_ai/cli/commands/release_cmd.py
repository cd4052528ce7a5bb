"""Release phase commands: start, merge, finalize, rollback."""

from __future__ import annotations

from typing import TypeVar

import typer

from release_ai.cli.commands._helpers import exit_on_error, fail, workflow_error_code
from release_ai.cli.context import CLIContext, build_context
from release_ai.core.errors import ErrorCode
from release_ai.core.result import Err, Ok, Result
from release_ai.output.console import Style
from release_ai.services.ai.prompts import NOTES_FORMATS, NotesFormat
from release_ai.services.semver import BUMP_TYPES, ReleaseBump
from release_ai.services.workflow import ReleaseWorkflow, WorkflowError


def _workflow(ctx: CLIContext) -> ReleaseWorkflow:
    return ReleaseWorkflow(
        repo=ctx.repo,
        config=ctx.config,
        console=ctx.console,
        state=ctx.state,
        repo_root=ctx.repo_root,
        ai=ctx.ai_client(),
    )


T = TypeVar("T")


def _exit_on_workflow_error(result: Result[T, WorkflowError], ctx: CLIContext) -> None:
    if isinstance(result, Err):
        exit_on_error(result, ctx, workflow_error_code(result.error))


def start(
    version: str | None = typer.Argument(None, help="Release version (X.Y.Z)"),
    auto: bool = typer.Option(False, "--auto", help="Suggest the version from commits"),
    bump: str = typer.Option("patch", "--bump", help="Bump type when no version is given"),
) -> None:
    """Create the release branch and bump the version files."""
    ctx = build_context()
    if bump not in BUMP_TYPES:
        ctx.console.error(f"invalid --bump: {bump} (expected major, minor or patch)")
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))
    if version is not None and auto:
        ctx.console.error("pass either a version or --auto, not both")
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    kind: ReleaseBump = bump  # type: ignore[assignment]
    ctx.console.header("Release: start")
    match _workflow(ctx).start(version, auto=auto, bump=kind):
        case Err(e):
            fail(e, ctx, workflow_error_code(e))
        case Ok(started):
            ctx.console.newline()
            ctx.console.print(f"branch: {started.branch}", Style.DIM)
            ctx.console.print("next: release-ai merge", Style.DIM)


def merge() -> None:
    """Merge the release branch into the main branch."""
    ctx = build_context()
    ctx.console.header("Release: merge")
    result = _workflow(ctx).merge()
    _exit_on_workflow_error(result, ctx)
    ctx.console.print("next: release-ai finalize", Style.DIM)


def finalize(
    notes_format: str = typer.Option(
        "markdown", "--format", help="Release notes format (markdown, confluence, confluence-md)"
    ),
) -> None:
    """Tag, publish the GitHub release, back-merge and clean up."""
    ctx = build_context()
    if notes_format not in NOTES_FORMATS:
        ctx.console.error(f"invalid --format: {notes_format}")
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    fmt: NotesFormat = notes_format  # type: ignore[assignment]
    ctx.console.header("Release: finalize")
    match _workflow(ctx).finalize(notes_format=fmt):
        case Err(e):
            fail(e, ctx, workflow_error_code(e))
        case Ok(done):
            ctx.console.print(f"tag: {done.tag}", Style.DIM)
            ctx.console.print(f"notes: {done.notes_path}", Style.DIM)


def rollback(
    remote: bool = typer.Option(False, "--remote", help="Also delete the remote release branch"),
) -> None:
    """Undo a started release."""
    ctx = build_context()
    ctx.console.header("Release: rollback")
    result = _workflow(ctx).rollback(delete_remote=remote)
    _exit_on_workflow_error(result, ctx)
