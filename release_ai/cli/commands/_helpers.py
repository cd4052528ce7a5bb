"""Shared helpers for CLI commands."""

from __future__ import annotations

from typing import TYPE_CHECKING, NoReturn, TypeVar

import typer

from release_ai.core.errors import ErrorCode
from release_ai.core.result import Err, Result
from release_ai.output.console import Style
from release_ai.services.ai.client import AiError
from release_ai.services.workflow import WorkflowError

if TYPE_CHECKING:
    from release_ai.cli.context import CLIContext


T = TypeVar("T")
E = TypeVar("E")


def exit_on_error(
    result: Result[T, E],
    ctx: CLIContext,
    error_code: ErrorCode = ErrorCode.USER_ERROR,
) -> None:
    """Exit with error if result is Err, otherwise return.

    Expects error objects to have 'message' and optional 'hint' attributes.
    """
    if isinstance(result, Err):
        fail(result.error, ctx, error_code)


def fail(error: object, ctx: CLIContext, error_code: ErrorCode) -> NoReturn:
    """Print `error` (message and optional hint) and exit with `error_code`."""
    message: str = getattr(error, "message", str(error))
    hint: str | None = getattr(error, "hint", None)
    ctx.console.error(message)
    if hint:
        ctx.console.print(f"hint: {hint}", Style.DIM)
    raise typer.Exit(code=int(error_code))


def workflow_error_code(error: WorkflowError) -> ErrorCode:
    match error.kind:
        case "git_failed":
            return ErrorCode.GIT_ERROR
        case "version_files" | "state_failed" | "io_failed":
            return ErrorCode.IO_ERROR
        case "verify_failed":
            return ErrorCode.VERIFY_ERROR
        case _:
            return ErrorCode.USER_ERROR


def ai_error_code(error: AiError) -> ErrorCode:
    match error.kind:
        case "disabled" | "missing_credential":
            return ErrorCode.ENV_ERROR
        case "no_commits":
            return ErrorCode.USER_ERROR
        case _:
            return ErrorCode.NETWORK_ERROR
