from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import typer

from release_ai.core.config import ReleaseConfig, load_config
from release_ai.core.errors import ErrorCode
from release_ai.core.result import Err, Ok
from release_ai.git.repository import Repository
from release_ai.output.console import ConsoleProtocol, RichConsole, Style
from release_ai.services.ai.client import AnthropicClient
from release_ai.services.ai.http import HttpClient
from release_ai.services.state import StateStore


@dataclass(frozen=True, slots=True)
class CLIContext:
    cwd: Path
    config: ReleaseConfig
    console: ConsoleProtocol
    repo: Repository
    repo_root: Path
    state: StateStore

    def ai_client(self, *, http: HttpClient | None = None) -> AnthropicClient | None:
        """AI client, or None when AI features are disabled."""
        if not self.config.ai_enabled:
            return None
        return AnthropicClient.from_config(self.config, http=http)


def _repo_root(config: ReleaseConfig, repo: Repository) -> Path:
    if config.repo_root is not None:
        return config.repo_root
    match repo.toplevel():
        case Ok(root):
            return root
        case Err(_):
            return config.cwd


def build_context(cwd: Path | None = None) -> CLIContext:
    root = cwd if cwd is not None else Path.cwd()
    console = RichConsole()

    config_result = load_config(root)
    if isinstance(config_result, Err):
        error = config_result.error
        console.error(error.message)
        if error.hint:
            console.print(f"hint: {error.hint}", Style.DIM)
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

    config = config_result.value
    repo = Repository(root, remote=config.remote)
    return CLIContext(
        cwd=root,
        config=config,
        console=console,
        repo=repo,
        repo_root=_repo_root(config, repo),
        state=StateStore(config.state_path),
    )
