from __future__ import annotations

import json
from collections.abc import Iterator
from pathlib import Path

import pytest
import typer

from release_ai.cli.commands import config_cmd
from release_ai.core.config import PROJECT_CONFIG_NAME, global_config_path
from release_ai.core.errors import ErrorCode
from release_ai.platform.paths import clear_caches


@pytest.fixture(autouse=True)
def isolated(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Path]:
    project = tmp_path / "project"
    project.mkdir()
    monkeypatch.chdir(project)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    for name in ("ANTHROPIC_API_KEY", "CLAUDE_MODEL", "RELEASE_AI_NO_AI"):
        monkeypatch.delenv(name, raising=False)
    clear_caches()
    yield project
    clear_caches()


def test_init_writes_project_template(isolated: Path) -> None:
    config_cmd.init(global_=False, force=False, api_key=None)

    data = json.loads((isolated / PROJECT_CONFIG_NAME).read_text(encoding="utf-8"))
    assert data == config_cmd.project_template()


def test_init_refuses_to_overwrite(isolated: Path) -> None:
    (isolated / PROJECT_CONFIG_NAME).write_text('{"main_branch": "trunk"}', encoding="utf-8")

    with pytest.raises(typer.Exit) as exc:
        config_cmd.init(global_=False, force=False, api_key=None)
    assert exc.value.exit_code == int(ErrorCode.USER_ERROR)

    config_cmd.init(global_=False, force=True, api_key=None)
    data = json.loads((isolated / PROJECT_CONFIG_NAME).read_text(encoding="utf-8"))
    assert data["main_branch"] == "main"


def test_init_global_with_key() -> None:
    config_cmd.init(global_=True, force=False, api_key=" sk-ant-test-1234 ")

    data = json.loads(global_config_path().read_text(encoding="utf-8"))
    assert data["anthropic_api_key"] == "sk-ant-test-1234"
    assert "model" in data["claude"]


def test_config_set_nested_key(isolated: Path) -> None:
    config_cmd.config(set_value="claude.model=test-model", global_=False)

    data = json.loads((isolated / PROJECT_CONFIG_NAME).read_text(encoding="utf-8"))
    assert data == {"claude": {"model": "test-model"}}


def test_config_set_requires_equals() -> None:
    with pytest.raises(typer.Exit) as exc:
        config_cmd.config(set_value="claude.model", global_=False)
    assert exc.value.exit_code == int(ErrorCode.USER_ERROR)


def test_config_show_masks_key(capsys: pytest.CaptureFixture[str]) -> None:
    config_cmd.init(global_=True, force=False, api_key="sk-ant-secret-value-9876")
    capsys.readouterr()

    config_cmd.config(set_value=None, global_=False)

    out = capsys.readouterr().out
    assert "sk-a...9876" in out
    assert "secret-value" not in out
    assert "no version_files configured" in out


def test_config_show_malformed_project(isolated: Path) -> None:
    (isolated / PROJECT_CONFIG_NAME).write_text("{", encoding="utf-8")
    with pytest.raises(typer.Exit) as exc:
        config_cmd.config(set_value=None, global_=False)
    assert exc.value.exit_code == int(ErrorCode.ENV_ERROR)


def test_mask() -> None:
    assert config_cmd._mask("short") == "*****"
    assert config_cmd._mask("sk-ant-0123456789") == "sk-a...6789"
