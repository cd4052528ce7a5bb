"""Tests for git/repository.py."""

from __future__ import annotations

from pathlib import Path

import pytest

from release_ai.core.result import Err, Ok, Result
from release_ai.git import repository as repo_mod
from release_ai.git.repository import (
    PUSH_RETRY_ATTEMPTS,
    Commit,
    Repository,
    parse_log,
)
from release_ai.platform.process import ProcessError


def _fail(*args: str, stderr: str = "fatal", returncode: int = 1) -> Err[ProcessError]:
    return Err(ProcessError(command=("git", *args), returncode=returncode, stdout="", stderr=stderr))


def _no_sleep(seconds: float) -> None:
    del seconds


class _Recorder:
    """Stand-in for run_process that answers by git subcommand."""

    def __init__(self, answers: dict[str, list[Result[str, ProcessError]]]) -> None:
        self.answers = answers
        self.calls: list[list[str]] = []

    def __call__(
        self, cmd: list[str], *, cwd: Path, timeout: float | None = None
    ) -> Result[str, ProcessError]:
        del cwd, timeout
        args = cmd[3:]  # drop "git -C <path>"
        self.calls.append(args)
        queue = self.answers.get(args[0], [])
        if not queue:
            return Ok("")
        return queue.pop(0) if len(queue) > 1 else queue[0]


@pytest.fixture
def no_sleep(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(repo_mod, "sleep", _no_sleep)


# =============================================================================
# Log parsing
# =============================================================================


class TestParseLog:
    """Tests for parse_log and Commit."""

    def test_multiline_bodies(self) -> None:
        output = (
            "aaa111|feat: add notes|First line\nSecond line\x1e\n"
            "bbb222|fix: handle empty tag|\x1e"
        )
        commits = parse_log(output)
        assert commits == [
            Commit("aaa111", "feat: add notes", "First line\nSecond line"),
            Commit("bbb222", "fix: handle empty tag", ""),
        ]

    def test_subject_with_pipe_keeps_body_split(self) -> None:
        commits = parse_log("ccc|docs: a|b\x1e")
        assert commits[0].subject == "docs: a"
        assert commits[0].body == "b"

    def test_empty_output(self) -> None:
        assert parse_log("") == []
        assert parse_log("\n\x1e\n") == []

    def test_as_log_line_flattens_body(self) -> None:
        commit = Commit("abcdef0123", "feat!: drop v1 api", "BREAKING CHANGE:\n  removed")
        assert commit.as_log_line() == "abcdef0123|feat!: drop v1 api|BREAKING CHANGE: removed"
        assert commit.short_sha == "abcdef0"
        assert commit.message == "feat!: drop v1 api\n\nBREAKING CHANGE:\n  removed"


# =============================================================================
# Repository commands
# =============================================================================


class TestInspection:
    def test_verify_outside_repo(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        fake = _Recorder({"rev-parse": [_fail("rev-parse", stderr="")]})
        monkeypatch.setattr(repo_mod, "run_process", fake)

        result = Repository(tmp_path).verify()
        assert isinstance(result, Err)
        assert result.error.message == "not a git repository"

    def test_current_branch_detached(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.setattr(repo_mod, "run_process", _Recorder({"branch": [Ok("\n")]}))
        assert Repository(tmp_path).current_branch() is None

    def test_is_clean(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.setattr(repo_mod, "run_process", _Recorder({"status": [Ok(" M VERSION\n")]}))
        assert Repository(tmp_path).is_clean() is False

    def test_is_clean_ignores_own_files(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        fake = _Recorder(
            {
                "status": [Ok("?? .release-state.json\n?? RELEASE_NOTES_1.2.0.md\n")],
                "rev-parse": [Ok(f"{tmp_path}\n")],
            }
        )
        monkeypatch.setattr(repo_mod, "run_process", fake)
        ignore = [tmp_path / ".release-state.json", tmp_path / "RELEASE_NOTES_*.md"]

        assert Repository(tmp_path).is_clean(ignore=ignore) is True
        assert "--untracked-files=all" in fake.calls[0]

    def test_is_clean_with_other_changes(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        fake = _Recorder(
            {
                "status": [Ok("?? .release-state.json\n M package.json\n")],
                "rev-parse": [Ok(f"{tmp_path}\n")],
            }
        )
        monkeypatch.setattr(repo_mod, "run_process", fake)

        assert Repository(tmp_path).is_clean(ignore=[tmp_path / ".release-state.json"]) is False

    def test_tags_by_date(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        fake = _Recorder({"for-each-ref": [Ok("v1.2.0\nv1.1.0\n\n")]})
        monkeypatch.setattr(repo_mod, "run_process", fake)

        assert Repository(tmp_path).tags_by_date() == ["v1.2.0", "v1.1.0"]
        assert "--sort=-creatordate" in fake.calls[0]

    def test_find_commit_fixed_string(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        fake = _Recorder({"log": [Ok("abc|chore(release): bump version to 1.2.0|\x1e")]})
        monkeypatch.setattr(repo_mod, "run_process", fake)

        commit = Repository(tmp_path).find_commit("develop", "bump version to")
        assert commit is not None
        assert commit.sha == "abc"
        args = fake.calls[0]
        assert args[:4] == ["log", "develop", "-n", "1"]
        assert "--fixed-strings" in args
        assert "--grep=bump version to" in args

    def test_find_commit_regex(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        fake = _Recorder({"log": [Ok("")]})
        monkeypatch.setattr(repo_mod, "run_process", fake)

        assert Repository(tmp_path).find_commit("HEAD", "to [0-9]+", regex=True) is None
        assert "--extended-regexp" in fake.calls[0]

    def test_log_excludes_merges(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        fake = _Recorder({"log": [Ok("a|feat: x|\x1e")]})
        monkeypatch.setattr(repo_mod, "run_process", fake)

        result = Repository(tmp_path).log("v1.0.0..HEAD")
        assert isinstance(result, Ok)
        assert fake.calls[0][:3] == ["log", "v1.0.0..HEAD", "--no-merges"]

    def test_diff_truncates(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        diff = "\n".join(f"+line {i}" for i in range(20))
        monkeypatch.setattr(repo_mod, "run_process", _Recorder({"diff": [Ok(diff)]}))
        assert Repository(tmp_path).diff("HEAD~1..HEAD", max_lines=5).count("\n") == 4


class TestBranches:
    def test_create_branch_refuses_existing_local(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        fake = _Recorder({"rev-parse": [Ok("abc\n")]})
        monkeypatch.setattr(repo_mod, "run_process", fake)

        result = Repository(tmp_path).create_branch("release/1.2.0")
        assert isinstance(result, Err)
        assert "already exists" in result.error.message
        assert not any(call[0] == "checkout" for call in fake.calls)

    def test_create_branch_refuses_existing_remote(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        fake = _Recorder(
            {
                "rev-parse": [_fail("rev-parse")],
                "ls-remote": [Ok("abc\trefs/heads/release/1.2.0\n")],
            }
        )
        monkeypatch.setattr(repo_mod, "run_process", fake)

        result = Repository(tmp_path).create_branch("release/1.2.0")
        assert isinstance(result, Err)
        assert "on origin" in result.error.message

    def test_create_branch(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        fake = _Recorder({"rev-parse": [_fail("rev-parse")], "ls-remote": [Ok("")]})
        monkeypatch.setattr(repo_mod, "run_process", fake)

        assert Repository(tmp_path).create_branch("release/1.2.0") == Ok(None)
        assert fake.calls[-1] == ["checkout", "-b", "release/1.2.0"]

    def test_delete_missing_branch_is_not_an_error(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        fake = _Recorder({"rev-parse": [_fail("rev-parse")], "ls-remote": [Ok("")]})
        monkeypatch.setattr(repo_mod, "run_process", fake)

        assert Repository(tmp_path).delete_branch("release/9.9.9", remote=True) == Ok([])

    def test_create_tag_refuses_existing(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        monkeypatch.setattr(repo_mod, "run_process", _Recorder({"rev-parse": [Ok("abc")]}))
        result = Repository(tmp_path).create_tag("v1.2.0", "Release 1.2.0")
        assert isinstance(result, Err)
        assert result.error.message == "tag already exists: v1.2.0"

    def test_merge_args(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        fake = _Recorder({})
        monkeypatch.setattr(repo_mod, "run_process", fake)

        Repository(tmp_path).merge("release/1.2.0", strategy="theirs")
        assert fake.calls[0] == ["merge", "release/1.2.0", "-X", "theirs", "--no-edit"]


class TestPush:
    def test_push_retries_then_fails(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path, no_sleep: None
    ) -> None:
        fake = _Recorder({"push": [_fail("push", stderr="Connection reset")]})
        monkeypatch.setattr(repo_mod, "run_process", fake)
        retries: list[tuple[int, int]] = []

        result = Repository(tmp_path).push(
            "origin", "main", on_retry=lambda n, total: retries.append((n, total))
        )

        assert isinstance(result, Err)
        assert len(fake.calls) == PUSH_RETRY_ATTEMPTS
        assert retries == [(1, 3), (2, 3)]
        assert result.error.command == "push origin main"
        assert "Connection reset" in result.error.message

    def test_push_recovers(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path, no_sleep: None
    ) -> None:
        fake = _Recorder({"push": [_fail("push"), Ok("")]})
        monkeypatch.setattr(repo_mod, "run_process", fake)

        assert Repository(tmp_path).push("origin", "main") == Ok(None)
        assert len(fake.calls) == 2

    def test_push_tags(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        fake = _Recorder({})
        monkeypatch.setattr(repo_mod, "run_process", fake)

        Repository(tmp_path, remote="upstream").push_tags()
        assert fake.calls[0] == ["push", "upstream", "--tags"]
