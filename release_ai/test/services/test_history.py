"""Release boundary resolution against real git repositories."""

from __future__ import annotations

import re
import shutil
import subprocess
from pathlib import Path

import pytest

from release_ai.core.config import ReleaseConfig
from release_ai.core.result import Err, Ok
from release_ai.git.repository import Repository
from release_ai.services.history import (
    CommitRange,
    ReleaseHistory,
    _bump_grep_for,
    bump_commit_message,
)

pytestmark = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")


def _git(root: Path, *args: str) -> str:
    proc = subprocess.run(
        ["git", *args],
        cwd=root,
        capture_output=True,
        text=True,
        check=True,
    )
    return proc.stdout.strip()


def _commit(root: Path, subject: str) -> str:
    _git(root, "commit", "--allow-empty", "-q", "-m", subject)
    return _git(root, "rev-parse", "HEAD")


@pytest.fixture
def repo_root(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    gitconfig = tmp_path / "gitconfig"
    gitconfig.write_text(
        "[user]\n\tname = Release Bot\n\temail = release@example.com\n"
        "[commit]\n\tgpgsign = false\n[tag]\n\tgpgsign = false\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(gitconfig))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")

    root = tmp_path / "repo"
    root.mkdir()
    _git(root, "init", "-q", "-b", "develop")
    return root


def _history(root: Path) -> ReleaseHistory:
    return ReleaseHistory(Repository(root), ReleaseConfig(cwd=root))


class TestBumpPattern:
    def test_anchored_on_version(self) -> None:
        pattern = _bump_grep_for("1.2.3")
        assert re.search(pattern, bump_commit_message("1.2.3"))
        assert re.search(pattern, bump_commit_message("1.2.3") + " (#42)")
        assert not re.search(pattern, bump_commit_message("1.2.30"))
        assert not re.search(pattern, bump_commit_message("1.2.3.4"))


class TestCommitRange:
    def test_rev_range(self) -> None:
        assert CommitRange(start="abc").rev_range == "abc..HEAD"
        assert CommitRange(start=None, end="develop").rev_range == "develop"
        assert CommitRange(start=None).is_full_history


class TestResolveLastReleaseTag:
    def test_not_a_repository(self, tmp_path: Path) -> None:
        plain = tmp_path / "plain"
        plain.mkdir()
        assert isinstance(_history(plain).resolve_last_release_tag(), Err)

    def test_no_release_yet(self, repo_root: Path) -> None:
        _commit(repo_root, "feat: initial")
        _commit(repo_root, "fix: typo")
        history = _history(repo_root)

        assert history.resolve_last_release_tag() == Ok(None)

        commit_range = history.commits_since_last_release().unwrap()
        assert commit_range.is_full_history
        commits = history.list_commits(commit_range).unwrap()
        assert [c.subject for c in commits] == ["fix: typo", "feat: initial"]

    def test_nearest_tag(self, repo_root: Path) -> None:
        _commit(repo_root, "feat: initial")
        bump = _commit(repo_root, bump_commit_message("1.0.0"))
        _git(repo_root, "tag", "v1.0.0")
        _commit(repo_root, "fix: crash on empty notes")
        _commit(repo_root, "feat: confluence output")
        history = _history(repo_root)

        assert history.resolve_last_release_tag() == Ok("v1.0.0")

        commit_range = history.commits_since_last_release().unwrap()
        assert commit_range.start == bump
        assert commit_range.tag == "v1.0.0"
        subjects = [c.subject for c in history.list_commits(commit_range).unwrap()]
        assert subjects == ["feat: confluence output", "fix: crash on empty notes"]

    def test_untagged_bump_commit(self, repo_root: Path) -> None:
        _commit(repo_root, "feat: initial")
        bump = _commit(repo_root, bump_commit_message("1.1.0"))
        _commit(repo_root, "docs: readme")
        history = _history(repo_root)

        assert history.resolve_last_release_tag() == Ok("v1.1.0")

        commit_range = history.commits_since_last_release().unwrap()
        assert commit_range.start == bump
        assert [c.subject for c in history.list_commits(commit_range).unwrap()] == [
            "docs: readme"
        ]

    def test_tag_without_bump_commit(self, repo_root: Path) -> None:
        _commit(repo_root, "feat: initial")
        _git(repo_root, "tag", "v0.1.0")
        _commit(repo_root, "fix: later")
        history = _history(repo_root)

        commit_range = history.commits_since_last_release().unwrap()
        assert commit_range.start == "v0.1.0"
        assert [c.subject for c in history.list_commits(commit_range).unwrap()] == ["fix: later"]


class TestResolverFallbacks:
    """Bump-commit and tag fallbacks when HEAD carries no reachable tag."""

    def test_bump_commit_on_local_develop(self, repo_root: Path) -> None:
        _commit(repo_root, "feat: initial")
        _git(repo_root, "branch", "main")
        develop_bump = _commit(repo_root, bump_commit_message("1.1.0"))
        _commit(repo_root, "feat: after the release")
        _git(repo_root, "checkout", "-q", "main")
        # Same subject on the checked-out branch, but develop wins.
        _commit(repo_root, bump_commit_message("1.1.0"))
        _commit(repo_root, "fix: hotfix")
        history = _history(repo_root)

        assert history.resolve_last_release_tag() == Ok("v1.1.0")
        commit_range = history.commits_since_last_release().unwrap()
        assert commit_range.start == develop_bump
        assert commit_range.tag == "v1.1.0"

    def test_bump_commit_on_remote_develop_only(self, repo_root: Path) -> None:
        initial = _commit(repo_root, "feat: initial")
        bump = _commit(repo_root, bump_commit_message("1.2.0"))
        _git(repo_root, "update-ref", "refs/remotes/origin/develop", "develop")
        _git(repo_root, "checkout", "-q", "-b", "main", initial)
        _git(repo_root, "branch", "-D", "develop")
        _commit(repo_root, "fix: on main")
        history = _history(repo_root)

        assert history.resolve_last_release_tag() == Ok("v1.2.0")
        assert history.commits_since_last_release().unwrap().start == bump

    def test_quoted_bump_subject_is_not_a_release(self, repo_root: Path) -> None:
        _commit(repo_root, "feat: initial")
        bump = _commit(repo_root, bump_commit_message("1.0.0"))
        _commit(repo_root, 'Revert "chore(release): bump version to 2.0.0"')
        history = _history(repo_root)

        assert history.resolve_last_release_tag() == Ok("v1.0.0")
        assert history.commits_since_last_release().unwrap().start == bump

    def test_newest_ancestor_tag_when_describe_fails(
        self, repo_root: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        initial = _commit(repo_root, "feat: initial")
        monkeypatch.setenv("GIT_COMMITTER_DATE", "2024-01-01T00:00:00Z")
        _git(repo_root, "tag", "-a", "v0.9.0", "-m", "0.9.0")
        _commit(repo_root, "feat: second")
        monkeypatch.setenv("GIT_COMMITTER_DATE", "2024-02-01T00:00:00Z")
        _git(repo_root, "tag", "-a", "v1.0.0", "-m", "1.0.0")
        _git(repo_root, "checkout", "-q", "-b", "side", initial)
        _commit(repo_root, "feat: experiment")
        monkeypatch.setenv("GIT_COMMITTER_DATE", "2024-03-01T00:00:00Z")
        _git(repo_root, "tag", "-a", "v2.0.0", "-m", "2.0.0")
        _git(repo_root, "checkout", "-q", "develop")

        def no_describe(self: Repository, ref: str = "HEAD") -> None:
            del self, ref

        monkeypatch.setattr(Repository, "describe_tag", no_describe)
        history = _history(repo_root)

        assert history.resolve_last_release_tag() == Ok("v1.0.0")
        commit_range = history.commits_since_last_release().unwrap()
        assert commit_range.start == "v1.0.0"
