from __future__ import annotations

import typer

from release_ai import __version__
from release_ai.cli.commands.ai_cmd import assist, notes, suggest, validate
from release_ai.cli.commands.config_cmd import config, init
from release_ai.cli.commands.release_cmd import finalize, merge, rollback, start


app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
    help="Release automation: git-flow branches, version files, AI release notes.",
)


# Release phases
app.command()(start)
app.command()(merge)
app.command()(finalize)
app.command()(rollback)

# AI features
app.command()(suggest)
app.command()(notes)
app.command()(validate)
app.command()(assist)

# Configuration
app.command()(init)
app.command()(config)


@app.command("version")
def version_cmd() -> None:
    """Show the release-ai version."""
    typer.echo(f"release-ai {__version__}")


@app.command("help")
def help_cmd(ctx: typer.Context) -> None:
    """Show this help."""
    parent = ctx.parent if ctx.parent is not None else ctx
    typer.echo(parent.get_help())


def _print_version(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit(code=0)


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    version: bool = typer.Option(
        False,
        "--version",
        callback=_print_version,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    del version


def main() -> None:
    app()
