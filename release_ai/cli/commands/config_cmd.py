"""Configuration commands: init, config."""

from __future__ import annotations

from pathlib import Path

import typer

from release_ai.core.config import (
    DEFAULT_MODEL,
    ConfigLayers,
    global_config_path,
    load_layers,
    project_config_path,
    write_config_value,
)
from release_ai.core.errors import ErrorCode
from release_ai.core.result import Err
from release_ai.output.console import ConsoleProtocol, RichConsole, Style
from release_ai.platform.files import atomic_write_json

# Keys shown by `release-ai config`: (config key, environment variable, default).
KNOWN_KEYS: tuple[tuple[str, str, str], ...] = (
    ("main_branch", "MAIN_BRANCH", "main"),
    ("develop_branch", "DEVELOP_BRANCH", "develop"),
    ("release_branch_prefix", "RELEASE_BRANCH_PREFIX", "release/"),
    ("tag_prefix", "TAG_PREFIX", "v"),
    ("remote", "REMOTE", "origin"),
    ("merge_strategy", "MERGE_STRATEGY", "theirs"),
    ("back_merge", "BACK_MERGE", "merge"),
    ("claude.model", "CLAUDE_MODEL", DEFAULT_MODEL),
    ("anthropic_api_key", "ANTHROPIC_API_KEY", ""),
    ("no_ai", "RELEASE_AI_NO_AI", ""),
    ("state_file", "STATE_FILE", ""),
    ("repo_root", "REPO_ROOT", ""),
)

_SECRET_KEYS = frozenset({"anthropic_api_key"})


def project_template() -> dict[str, object]:
    return {
        "main_branch": "main",
        "develop_branch": "develop",
        "release_branch_prefix": "release/",
        "tag_prefix": "v",
        "version_files": [
            {"path": "package.json", "field": "version"},
        ],
    }


def global_template(api_key: str) -> dict[str, object]:
    data: dict[str, object] = {"claude": {"model": DEFAULT_MODEL}}
    if api_key:
        data["anthropic_api_key"] = api_key
    return data


def _mask(value: str) -> str:
    if len(value) <= 8:
        return "*" * len(value)
    return f"{value[:4]}...{value[-4:]}"


def _write_json(path: Path, data: dict[str, object], console: ConsoleProtocol) -> None:
    try:
        atomic_write_json(path, data)
    except OSError as e:
        console.error(f"failed to write {path}: {e}")
        raise typer.Exit(code=int(ErrorCode.IO_ERROR))


def init(
    global_: bool = typer.Option(False, "--global", help="Write the user-level config"),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing config file"),
    api_key: str | None = typer.Option(None, "--api-key", help="Anthropic API key (global config)"),
) -> None:
    """Create a config file with defaults."""
    console = RichConsole()
    path = global_config_path() if global_ else project_config_path(Path.cwd())

    if path.exists() and not force:
        console.error(f"config already exists: {path}")
        console.print("hint: Use --force to overwrite it", Style.DIM)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    if global_:
        key = api_key
        if key is None:
            key = typer.prompt(
                "Anthropic API key (leave empty to skip)",
                default="",
                hide_input=True,
                show_default=False,
            )
        _write_json(path, global_template(key.strip()), console)
    else:
        _write_json(path, project_template(), console)

    console.success(f"config written: {path}")
    if not global_:
        console.print("Edit version_files to list every file holding the version.", Style.DIM)


def _show(layers: ConfigLayers, console: ConsoleProtocol) -> None:
    console.header("Configuration")
    console.print(f"project: {layers.project_path}", Style.DIM)
    console.print(f"global:  {layers.global_path}", Style.DIM)
    console.newline()

    for key, env_name, default in KNOWN_KEYS:
        value = layers.get(key, default, env_name=env_name)
        source = layers.source_of(key, env_name=env_name)
        shown = _mask(value) if key in _SECRET_KEYS and value else (value or "-")
        console.print(f"{key:<24} {shown:<32} ({source}, env {env_name})")

    specs = layers.version_files()
    console.newline()
    if not specs:
        console.warning("no version_files configured")
        return
    console.print("version_files:", Style.BOLD)
    for spec in specs:
        target = f"{spec.path} [{spec.field}]" if spec.field else f"{spec.path} (plain text)"
        console.print(f"  - {target}")


def config(
    set_value: str | None = typer.Option(None, "--set", help="Set KEY=VALUE"),
    global_: bool = typer.Option(False, "--global", help="Write to the user-level config"),
) -> None:
    """Show the effective configuration, or set one value."""
    console = RichConsole()
    cwd = Path.cwd()

    if set_value is None:
        layers = load_layers(cwd)
        if isinstance(layers, Err):
            console.error(layers.error.message)
            if layers.error.hint:
                console.print(f"hint: {layers.error.hint}", Style.DIM)
            raise typer.Exit(code=int(ErrorCode.ENV_ERROR))
        _show(layers.value, console)
        return

    key, sep, value = set_value.partition("=")
    key = key.strip()
    if not sep or not key:
        console.error(f"invalid --set: {set_value!r}")
        console.print("hint: Use --set key=value (e.g. --set claude.model=...)", Style.DIM)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    path = global_config_path() if global_ else project_config_path(cwd)
    written = write_config_value(path, key, value.strip())
    if isinstance(written, Err):
        console.error(written.error.message)
        raise typer.Exit(code=int(ErrorCode.IO_ERROR))
    console.success(f"{key} set in {path}")
