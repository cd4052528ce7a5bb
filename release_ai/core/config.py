"""Layered configuration.

Values are resolved in priority order:

1. Process environment (`claude.model` -> `CLAUDE_MODEL`)
2. Project config: `.release-ai.config.json` in the working directory
3. Global config: `<user-config-dir>/config.json`
4. Hard-coded default

`ConfigLayers.get` implements that lookup for arbitrary keys. `ReleaseConfig`
is the typed view the rest of the tool consumes; each of its fields names
its environment variable and config key explicitly.
"""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from release_ai.platform.files import atomic_write_json
from release_ai.platform.paths import user_config_dir

from .result import Err, Ok, Result
from .structured import StrDict, as_obj_list, as_str_dict, get_path, get_path_str, get_str

__all__ = [
    "ConfigError",
    "ConfigLayers",
    "ConfigSource",
    "DEFAULT_MODEL",
    "PROJECT_CONFIG_NAME",
    "ReleaseConfig",
    "VersionFileSpec",
    "env_var_name",
    "get_config",
    "get_version_files_config",
    "global_config_path",
    "load_config",
    "load_layers",
    "project_config_path",
    "read_json_config",
    "write_config_value",
]

PROJECT_CONFIG_NAME = ".release-ai.config.json"
GLOBAL_CONFIG_NAME = "config.json"
STATE_FILE_NAME = ".release-state.json"

DEFAULT_MODEL = "claude-sonnet-4-5-20250929"

ConfigSource = Literal["env", "project", "global", "default"]


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when a config file cannot be read or parsed."""

    message: str
    path: Path | None = None
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class VersionFileSpec:
    """One configured version target.

    Attributes:
        path: File path, absolute or relative to the repository root
        field: Dot-separated field path (`expo.version`); empty means the
            whole file is the version string
    """

    path: str
    field: str = ""

    @property
    def is_plain_text(self) -> bool:
        return not self.field


def env_var_name(key: str) -> str:
    """Environment variable consulted for a config key."""
    return key.replace(".", "_").replace("-", "_").upper()


def project_config_path(cwd: Path) -> Path:
    return cwd / PROJECT_CONFIG_NAME


def global_config_path() -> Path:
    return user_config_dir() / GLOBAL_CONFIG_NAME


def read_json_config(path: Path) -> Result[StrDict, ConfigError]:
    """Read a JSON config file; a missing file is an empty layer."""
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return Ok({})
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except OSError as e:
        return Err(ConfigError(f"Error reading {path}: {e}", path=path))

    if not text.strip():
        return Ok({})

    try:
        obj: object = json.loads(text)
    except json.JSONDecodeError as e:
        return Err(
            ConfigError(
                f"Invalid JSON in {path.name}: {e}",
                path=path,
                hint="Fix the file or run `release-ai init --force`",
            )
        )

    data = as_str_dict(obj)
    if data is None:
        return Err(ConfigError(f"Config root must be a JSON object: {path}", path=path))
    return Ok(data)


def _parse_version_files(data: Mapping[str, object]) -> tuple[VersionFileSpec, ...] | None:
    """Parse `version_files`; None when the key is absent."""
    raw = get_path(data, "version_files")
    if raw is None:
        return None
    items = as_obj_list(raw)
    if items is None:
        return ()

    specs: list[VersionFileSpec] = []
    for item in items:
        d = as_str_dict(item)
        if d is None:
            continue
        path = get_str(d, "path")
        if path is None:
            continue
        specs.append(VersionFileSpec(path=path, field=get_str(d, "field") or ""))
    return tuple(specs)


@dataclass(frozen=True, slots=True)
class ConfigLayers:
    """The three sources behind every config lookup."""

    env: Mapping[str, str]
    project: StrDict = field(default_factory=dict)
    global_: StrDict = field(default_factory=dict)
    project_path: Path | None = None
    global_path: Path | None = None

    def lookup(self, key: str, *, env_name: str | None = None) -> tuple[str, ConfigSource] | None:
        env_value = self.env.get(env_name or env_var_name(key), "")
        if env_value:
            return (env_value, "env")
        project_value = get_path_str(self.project, key)
        if project_value is not None:
            return (project_value, "project")
        global_value = get_path_str(self.global_, key)
        if global_value is not None:
            return (global_value, "global")
        return None

    def get(self, key: str, default: str = "", *, env_name: str | None = None) -> str:
        found = self.lookup(key, env_name=env_name)
        return found[0] if found is not None else default

    def source_of(self, key: str, *, env_name: str | None = None) -> ConfigSource:
        found = self.lookup(key, env_name=env_name)
        return found[1] if found is not None else "default"

    def version_files(self) -> tuple[VersionFileSpec, ...]:
        """Project `version_files` if present, else global, else none."""
        project_specs = _parse_version_files(self.project)
        if project_specs is not None:
            return project_specs
        global_specs = _parse_version_files(self.global_)
        if global_specs is not None:
            return global_specs
        return ()


def _pick(*candidates: str | None, default: str) -> str:
    for candidate in candidates:
        if candidate:
            return candidate
    return default


def _is_truthy(value: str) -> bool:
    return value.strip().lower() not in {"", "0", "false", "no", "off"}


@dataclass(frozen=True, slots=True)
class ReleaseConfig:
    """Resolved settings for one invocation."""

    cwd: Path
    main_branch: str = "main"
    develop_branch: str = "develop"
    release_branch_prefix: str = "release/"
    tag_prefix: str = "v"
    remote: str = "origin"
    merge_strategy: str = "theirs"
    back_merge: Literal["merge", "cherry-pick"] = "merge"
    anthropic_api_key: str | None = None
    model: str = DEFAULT_MODEL
    ai_enabled: bool = True
    state_file: Path | None = None
    repo_root: Path | None = None
    version_files: tuple[VersionFileSpec, ...] = ()

    @property
    def state_path(self) -> Path:
        return self.state_file if self.state_file is not None else self.cwd / STATE_FILE_NAME

    def release_branch(self, version: str) -> str:
        return f"{self.release_branch_prefix}{version}"

    def tag_for(self, version: str) -> str:
        return f"{self.tag_prefix}{version}"

    @classmethod
    def from_layers(cls, layers: ConfigLayers, *, cwd: Path) -> ReleaseConfig:
        env = layers.env
        project = layers.project
        global_ = layers.global_

        main_branch = _pick(
            env.get("MAIN_BRANCH"),
            get_path_str(project, "main_branch"),
            get_path_str(global_, "main_branch"),
            default="main",
        )
        develop_branch = _pick(
            env.get("DEVELOP_BRANCH"),
            get_path_str(project, "develop_branch"),
            get_path_str(global_, "develop_branch"),
            default="develop",
        )
        release_branch_prefix = _pick(
            env.get("RELEASE_BRANCH_PREFIX"),
            get_path_str(project, "release_branch_prefix"),
            get_path_str(global_, "release_branch_prefix"),
            default="release/",
        )
        # An explicitly empty tag prefix is allowed (tags like "1.2.3").
        tag_prefix = env.get("TAG_PREFIX")
        if tag_prefix is None:
            project_prefix = get_path(project, "tag_prefix")
            global_prefix = get_path(global_, "tag_prefix")
            if isinstance(project_prefix, str):
                tag_prefix = project_prefix.strip()
            elif isinstance(global_prefix, str):
                tag_prefix = global_prefix.strip()
            else:
                tag_prefix = "v"
        remote = _pick(
            env.get("REMOTE"),
            get_path_str(project, "remote"),
            get_path_str(global_, "remote"),
            default="origin",
        )
        merge_strategy = _pick(
            env.get("MERGE_STRATEGY"),
            get_path_str(project, "merge_strategy"),
            get_path_str(global_, "merge_strategy"),
            default="theirs",
        )
        back_merge_raw = _pick(
            env.get("BACK_MERGE"),
            get_path_str(project, "back_merge"),
            get_path_str(global_, "back_merge"),
            default="merge",
        )
        back_merge: Literal["merge", "cherry-pick"] = (
            "cherry-pick" if back_merge_raw == "cherry-pick" else "merge"
        )
        api_key = _pick(
            env.get("ANTHROPIC_API_KEY"),
            get_path_str(project, "anthropic_api_key"),
            get_path_str(global_, "anthropic_api_key"),
            default="",
        )
        model = _pick(
            env.get("CLAUDE_MODEL"),
            get_path_str(project, "claude.model"),
            get_path_str(global_, "claude.model"),
            default=DEFAULT_MODEL,
        )
        no_ai = _pick(
            env.get("RELEASE_AI_NO_AI"),
            get_path_str(project, "no_ai"),
            get_path_str(global_, "no_ai"),
            default="",
        )
        state_file = _pick(
            env.get("STATE_FILE"),
            get_path_str(project, "state_file"),
            get_path_str(global_, "state_file"),
            default="",
        )
        repo_root = _pick(
            env.get("REPO_ROOT"),
            get_path_str(project, "repo_root"),
            get_path_str(global_, "repo_root"),
            default="",
        )

        return cls(
            cwd=cwd,
            main_branch=main_branch,
            develop_branch=develop_branch,
            release_branch_prefix=release_branch_prefix,
            tag_prefix=tag_prefix,
            remote=remote,
            merge_strategy=merge_strategy,
            back_merge=back_merge,
            anthropic_api_key=api_key or None,
            model=model,
            ai_enabled=not _is_truthy(no_ai),
            state_file=(cwd / state_file) if state_file else None,
            repo_root=(cwd / repo_root) if repo_root else None,
            version_files=layers.version_files(),
        )


def load_layers(
    cwd: Path,
    env: Mapping[str, str] | None = None,
) -> Result[ConfigLayers, ConfigError]:
    """Read the project and global config files under `cwd`."""
    project_path = project_config_path(cwd)
    global_path = global_config_path()

    project = read_json_config(project_path)
    if isinstance(project, Err):
        return project
    global_ = read_json_config(global_path)
    if isinstance(global_, Err):
        return global_

    return Ok(
        ConfigLayers(
            env=dict(os.environ) if env is None else env,
            project=project.value,
            global_=global_.value,
            project_path=project_path,
            global_path=global_path,
        )
    )


def load_config(
    cwd: Path,
    env: Mapping[str, str] | None = None,
) -> Result[ReleaseConfig, ConfigError]:
    layers = load_layers(cwd, env)
    if isinstance(layers, Err):
        return layers
    return Ok(ReleaseConfig.from_layers(layers.value, cwd=cwd))


def get_config(key: str, default: str = "", *, cwd: Path | None = None) -> str:
    """Resolve one key; unreadable config files count as empty layers."""
    root = cwd if cwd is not None else Path.cwd()
    layers = load_layers(root)
    if isinstance(layers, Err):
        env_value = os.environ.get(env_var_name(key), "")
        return env_value or default
    return layers.value.get(key, default)


def get_version_files_config(*, cwd: Path | None = None) -> list[VersionFileSpec]:
    root = cwd if cwd is not None else Path.cwd()
    layers = load_layers(root)
    if isinstance(layers, Err):
        return []
    return list(layers.value.version_files())


def write_config_value(path: Path, key: str, value: object) -> Result[None, ConfigError]:
    """Set a (possibly dotted) key in a JSON config file, creating it if needed."""
    existing = read_json_config(path)
    if isinstance(existing, Err):
        return existing

    data = existing.value
    parts = key.split(".")
    table: StrDict = data
    for part in parts[:-1]:
        child = as_str_dict(table.get(part))
        if child is None:
            child = {}
            table[part] = child
        table = child
    table[parts[-1]] = value

    try:
        atomic_write_json(path, data)
    except OSError as e:
        return Err(ConfigError(f"Failed to write {path}: {e}", path=path))
    return Ok(None)
