"""Release boundaries in commit history.

The last release is normally the nearest tag. Repositories that release from
a branch without tagging it (or whose tags never reach the development
branch) still carry the version-bump commit, so the resolver falls back to
searching for it before scanning every tag.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from release_ai.core.config import ReleaseConfig
from release_ai.core.result import Err, Ok, Result
from release_ai.git.repository import Commit, GitError, Repository
from release_ai.services.semver import extract_version_from_tag

__all__ = [
    "BUMP_COMMIT_PREFIX",
    "CommitRange",
    "ReleaseHistory",
    "bump_commit_message",
]

BUMP_COMMIT_PREFIX = "chore(release): bump version to "

# Extended regexes for `git log --grep`, which matches them line by line.
_BUMP_GREP = r"^chore\(release\): bump version to [0-9]+\.[0-9]+\.[0-9]+"
_BUMP_SUBJECT_RE = re.compile(r"^chore\(release\): bump version to ([0-9]+\.[0-9]+\.[0-9]+)")


def bump_commit_message(version: str) -> str:
    return f"{BUMP_COMMIT_PREFIX}{version}"


def _bump_grep_for(version: str) -> str:
    escaped = version.replace(".", r"\.")
    return rf"^chore\(release\): bump version to {escaped}([^0-9.]|$)"


@dataclass(frozen=True, slots=True)
class CommitRange:
    """Commits after `start` (exclusive) up to `end`.

    Attributes:
        start: Commit hash or tag; None means the start of history
        end: End ref (inclusive)
        tag: The release tag the range was derived from, if any
    """

    start: str | None
    end: str = "HEAD"
    tag: str | None = None

    @property
    def rev_range(self) -> str:
        if self.start is None:
            return self.end
        return f"{self.start}..{self.end}"

    @property
    def is_full_history(self) -> bool:
        return self.start is None


class ReleaseHistory:
    def __init__(self, repo: Repository, config: ReleaseConfig) -> None:
        self._repo = repo
        self._config = config

    def _develop_ref(self) -> str | None:
        branch = self._config.develop_branch
        if self._repo.branch_exists(branch):
            return branch
        remote_ref = f"{self._repo.remote}/{branch}"
        if self._repo.ref_exists(remote_ref):
            return remote_ref
        return None

    def _tag_from_bump_commit(self, commit: Commit) -> str | None:
        m = _BUMP_SUBJECT_RE.match(commit.subject)
        if m is None:
            return None
        return self._config.tag_for(m.group(1))

    def resolve_last_release_tag(self) -> Result[str | None, GitError]:
        """Name of the last release tag, or None before the first release.

        The returned name may be synthesized from a bump commit, in which
        case no such tag needs to exist.
        """
        verified = self._repo.verify()
        if isinstance(verified, Err):
            return verified

        tag = self._repo.describe_tag("HEAD")
        if tag:
            return Ok(tag)

        develop = self._develop_ref()
        if develop is not None:
            commit = self._repo.find_commit(develop, _BUMP_GREP, regex=True)
            if commit is not None:
                synthesized = self._tag_from_bump_commit(commit)
                if synthesized:
                    return Ok(synthesized)

        commit = self._repo.find_commit("HEAD", _BUMP_GREP, regex=True)
        if commit is not None:
            synthesized = self._tag_from_bump_commit(commit)
            if synthesized:
                return Ok(synthesized)

        for candidate in self._repo.tags_by_date():
            if self._repo.is_ancestor(candidate, "HEAD"):
                return Ok(candidate)

        return Ok(None)

    def commits_since_last_release(self, end_ref: str = "HEAD") -> Result[CommitRange, GitError]:
        tag = self.resolve_last_release_tag()
        if isinstance(tag, Err):
            return tag
        if tag.value is None:
            return Ok(CommitRange(start=None, end=end_ref))

        version = extract_version_from_tag(tag.value, self._config.tag_prefix)
        pattern = _bump_grep_for(version)

        refs: list[str] = []
        develop = self._develop_ref()
        if develop is not None:
            refs.append(develop)
        refs.append(end_ref)

        for ref in refs:
            commit = self._repo.find_commit(ref, pattern, regex=True)
            if commit is not None:
                return Ok(CommitRange(start=commit.sha, end=end_ref, tag=tag.value))

        if self._repo.ref_exists(tag.value):
            return Ok(CommitRange(start=tag.value, end=end_ref, tag=tag.value))

        return Ok(CommitRange(start=None, end=end_ref, tag=tag.value))

    def list_commits(self, commit_range: CommitRange) -> Result[list[Commit], GitError]:
        return self._repo.log(commit_range.rev_range)
