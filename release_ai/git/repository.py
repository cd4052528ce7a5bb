"""Git repository abstraction.

`Repository` wraps the porcelain commands a release needs. Operations that
can fail return `Result[..., GitError]`; predicates (`ref_exists`,
`is_ancestor`, `branch_exists`) collapse failures to False because callers
use them to choose between fallbacks.

Usage:
    repo = Repository(Path("."))

    match repo.create_branch("release/1.4.0"):
        case Ok(_):
            ...
        case Err(e):
            print(f"{e.command}: {e.message}")
"""

from __future__ import annotations

import fnmatch
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from time import sleep

from release_ai.core.result import Err, Ok, Result
from release_ai.platform.process import ProcessError
from release_ai.platform.process import run as run_process

_GIT_TIMEOUT_SECONDS = 30.0
_GIT_NETWORK_TIMEOUT_SECONDS = 3 * 60.0

PUSH_RETRY_ATTEMPTS = 3
PUSH_RETRY_DELAY_SECONDS = 2.0

# Records end with an ASCII record separator because bodies span lines.
_RECORD_SEP = "\x1e"
LOG_FORMAT = "%H|%s|%b%x1e"

__all__ = [
    "Commit",
    "GitError",
    "LOG_FORMAT",
    "PUSH_RETRY_ATTEMPTS",
    "PUSH_RETRY_DELAY_SECONDS",
    "Repository",
    "parse_log",
]


@dataclass(frozen=True, slots=True)
class GitError:
    """Error from a git operation.

    Attributes:
        command: The git subcommand that failed (e.g. "push origin main")
        message: Error message, usually git's own stderr
        returncode: Process return code
    """

    command: str
    message: str
    returncode: int = 1


@dataclass(frozen=True, slots=True)
class Commit:
    """One entry of `git log`."""

    sha: str
    subject: str
    body: str = ""

    @property
    def short_sha(self) -> str:
        return self.sha[:7]

    @property
    def message(self) -> str:
        if self.body:
            return f"{self.subject}\n\n{self.body}"
        return self.subject

    def as_log_line(self) -> str:
        """Render in the `hash|subject|body` convention used in prompts."""
        body = " ".join(self.body.split())
        return f"{self.sha}|{self.subject}|{body}"


def parse_log(output: str) -> list[Commit]:
    """Parse output produced with `LOG_FORMAT`."""
    commits: list[Commit] = []
    for record in output.split(_RECORD_SEP):
        record = record.strip("\n")
        if not record.strip():
            continue
        sha, _, rest = record.partition("|")
        subject, _, body = rest.partition("|")
        commits.append(Commit(sha=sha.strip(), subject=subject.strip(), body=body.strip()))
    return commits


class Repository:
    """Git repository abstraction.

    Attributes:
        path: Directory git commands run in (any path inside the work tree)
        remote: Remote used for pull/push/branch checks
    """

    def __init__(self, path: Path, *, remote: str = "origin") -> None:
        self.path = path
        self.remote = remote

    # -------------------------------------------------------------------------
    # Inspection
    # -------------------------------------------------------------------------

    def verify(self) -> Result[None, GitError]:
        """Fail unless `path` is inside a git work tree."""
        result = self._run(["rev-parse", "--git-dir"])
        if isinstance(result, Err):
            return Err(self._error("rev-parse", result.error, "not a git repository"))
        return Ok(None)

    def toplevel(self) -> Result[Path, GitError]:
        result = self._run(["rev-parse", "--show-toplevel"])
        match result:
            case Err(e):
                return Err(self._error("rev-parse --show-toplevel", e, "not a git repository"))
            case Ok(stdout):
                return Ok(Path(stdout.strip()))

    def current_branch(self) -> str | None:
        """Current branch name, None on detached HEAD or error."""
        result = self._run(["branch", "--show-current"])
        match result:
            case Ok(stdout):
                return stdout.strip() or None
            case Err(_):
                return None

    def is_clean(self, *, ignore: Sequence[Path] = ()) -> bool:
        """True when the working tree has no changes (False if unknown).

        `ignore` holds absolute paths, optionally with glob wildcards in the
        file name, of files the tool writes itself (state, release notes).
        """
        result = self._run(["status", "--porcelain", "--untracked-files=all"])
        if isinstance(result, Err):
            return False
        changed = [line[3:] for line in result.value.splitlines() if line.strip()]
        if not changed or not ignore:
            return not changed

        top = self.toplevel()
        if isinstance(top, Err):
            return False
        patterns = [str(p) for p in ignore]
        for entry in changed:
            # Renames read "old -> new"; special characters come back quoted.
            name = entry.split(" -> ")[-1].strip('"')
            full = str(top.value / name)
            if not any(fnmatch.fnmatchcase(full, pattern) for pattern in patterns):
                return False
        return True

    def rev_parse(self, ref: str = "HEAD") -> Result[str, GitError]:
        result = self._run(["rev-parse", ref])
        match result:
            case Err(e):
                return Err(self._error(f"rev-parse {ref}", e, f"unknown revision: {ref}"))
            case Ok(stdout):
                return Ok(stdout.strip())

    def ref_exists(self, ref: str) -> bool:
        """True if `ref` resolves to a commit."""
        result = self._run(["rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}"])
        return isinstance(result, Ok)

    def branch_exists(self, name: str, *, remote: bool = False) -> bool:
        """Check for a local branch, and the remote one when `remote` is set."""
        if self._run(["rev-parse", "--verify", "--quiet", f"refs/heads/{name}"]).is_ok():
            return True
        if remote:
            return self.remote_branch_exists(name)
        return False

    def remote_branch_exists(self, name: str) -> bool:
        result = self._run(["ls-remote", "--heads", self.remote, name])
        match result:
            case Ok(stdout):
                return any(line.endswith(f"refs/heads/{name}") for line in stdout.splitlines())
            case Err(_):
                return False

    def describe_tag(self, ref: str = "HEAD") -> str | None:
        """Nearest tag reachable from `ref`, None if there is none."""
        result = self._run(["describe", "--tags", "--abbrev=0", ref])
        match result:
            case Ok(stdout):
                return stdout.strip() or None
            case Err(_):
                return None

    def tags_by_date(self) -> list[str]:
        """All tags, newest first."""
        result = self._run(
            ["for-each-ref", "--sort=-creatordate", "--format=%(refname:short)", "refs/tags"]
        )
        match result:
            case Ok(stdout):
                return [line.strip() for line in stdout.splitlines() if line.strip()]
            case Err(_):
                return []

    def is_ancestor(self, ancestor: str, descendant: str = "HEAD") -> bool:
        result = self._run(["merge-base", "--is-ancestor", ancestor, descendant])
        return isinstance(result, Ok)

    def find_commit(self, ref: str, pattern: str, *, regex: bool = False) -> Commit | None:
        """Most recent commit on `ref` whose message matches `pattern`.

        `pattern` is a fixed string unless `regex` is set, in which case it is
        an extended regular expression.
        """
        mode = "--extended-regexp" if regex else "--fixed-strings"
        result = self._run(
            ["log", ref, "-n", "1", mode, f"--grep={pattern}", f"--pretty=format:{LOG_FORMAT}"]
        )
        match result:
            case Ok(stdout):
                commits = parse_log(stdout)
                return commits[0] if commits else None
            case Err(_):
                return None

    def log(self, rev_range: str, *, no_merges: bool = True) -> Result[list[Commit], GitError]:
        args = ["log", rev_range, f"--pretty=format:{LOG_FORMAT}"]
        if no_merges:
            args.insert(2, "--no-merges")
        result = self._run(args)
        match result:
            case Err(e):
                return Err(self._error(f"log {rev_range}", e, "git log failed"))
            case Ok(stdout):
                return Ok(parse_log(stdout))

    def diff(self, rev_range: str, *, max_lines: int = 500) -> str:
        """Unified diff for `rev_range`, truncated; empty if it cannot be produced."""
        result = self._run(["diff", rev_range])
        match result:
            case Ok(stdout):
                return "\n".join(stdout.splitlines()[:max_lines])
            case Err(_):
                return ""

    def last_commit_oneline(self) -> str | None:
        result = self._run(["log", "-1", "--oneline"])
        match result:
            case Ok(stdout):
                return stdout.strip() or None
            case Err(_):
                return None

    # -------------------------------------------------------------------------
    # Branches
    # -------------------------------------------------------------------------

    def checkout(self, branch: str) -> Result[None, GitError]:
        result = self._run(["checkout", branch])
        if isinstance(result, Err):
            return Err(self._error(f"checkout {branch}", result.error, "checkout failed"))
        return Ok(None)

    def create_branch(self, name: str) -> Result[None, GitError]:
        """Create and switch to `name`; refuse if it exists locally or remotely."""
        if self.branch_exists(name):
            return Err(
                GitError(command=f"checkout -b {name}", message=f"branch already exists: {name}")
            )
        if self.remote_branch_exists(name):
            return Err(
                GitError(
                    command=f"checkout -b {name}",
                    message=f"branch already exists on {self.remote}: {name}",
                )
            )

        result = self._run(["checkout", "-b", name])
        if isinstance(result, Err):
            return Err(self._error(f"checkout -b {name}", result.error, "branch creation failed"))
        return Ok(None)

    def delete_branch(self, name: str, *, remote: bool = False) -> Result[list[str], GitError]:
        """Delete `name` locally and, when asked, on the remote.

        Returns the refs that were actually deleted; a branch that does not
        exist is not an error.
        """
        deleted: list[str] = []
        if self.branch_exists(name):
            result = self._run(["branch", "-D", name])
            if isinstance(result, Err):
                return Err(self._error(f"branch -D {name}", result.error, "delete failed"))
            deleted.append(name)

        if remote and self.remote_branch_exists(name):
            pushed = self.push(self.remote, "--delete", name)
            if isinstance(pushed, Err):
                return pushed
            deleted.append(f"{self.remote}/{name}")

        return Ok(deleted)

    # -------------------------------------------------------------------------
    # History changes
    # -------------------------------------------------------------------------

    def commit(self, message: str, paths: Sequence[Path]) -> Result[str, GitError]:
        """Stage `paths` and commit them; returns the new HEAD sha."""
        if paths:
            added = self._run(["add", "--", *(str(p) for p in paths)])
            if isinstance(added, Err):
                return Err(self._error("add", added.error, "git add failed"))

        result = self._run(["commit", "-m", message])
        if isinstance(result, Err):
            return Err(self._error("commit", result.error, "git commit failed"))
        return self.rev_parse("HEAD")

    def restore_paths(self, paths: Sequence[Path]) -> Result[None, GitError]:
        """Discard uncommitted changes to `paths`."""
        if not paths:
            return Ok(None)
        result = self._run(["checkout", "--", *(str(p) for p in paths)])
        if isinstance(result, Err):
            return Err(self._error("checkout --", result.error, "restore failed"))
        return Ok(None)

    def cherry_pick(self, sha: str) -> Result[None, GitError]:
        result = self._run(["cherry-pick", sha])
        if isinstance(result, Err):
            return Err(
                self._error(
                    f"cherry-pick {sha[:7]}",
                    result.error,
                    "cherry-pick failed; resolve conflicts and run `git cherry-pick --continue`",
                )
            )
        return Ok(None)

    def merge(
        self,
        branch: str,
        *,
        strategy: str = "ours",
        message: str | None = None,
    ) -> Result[None, GitError]:
        """Merge `branch` resolving conflicts with `-X <strategy>`."""
        args = ["merge", branch, "-X", strategy, "--no-edit"]
        if message:
            args += ["-m", message]
        result = self._run(args)
        if isinstance(result, Err):
            return Err(self._error(f"merge {branch}", result.error, "merge failed"))
        return Ok(None)

    def create_tag(self, name: str, message: str) -> Result[None, GitError]:
        """Create an annotated tag; refuse if it already exists."""
        if self.ref_exists(f"refs/tags/{name}"):
            return Err(GitError(command=f"tag {name}", message=f"tag already exists: {name}"))
        result = self._run(["tag", "-a", name, "-m", message])
        if isinstance(result, Err):
            return Err(self._error(f"tag {name}", result.error, "tag creation failed"))
        return Ok(None)

    # -------------------------------------------------------------------------
    # Network
    # -------------------------------------------------------------------------

    def pull(self) -> Result[str, GitError]:
        result = self._run(["pull"])
        match result:
            case Err(e):
                return Err(self._error("pull", e, "pull failed"))
            case Ok(stdout):
                return Ok(stdout.strip())

    def push(
        self,
        *args: str,
        on_retry: Callable[[int, int], None] | None = None,
    ) -> Result[None, GitError]:
        """Run `git push <args>`, retrying a bounded number of times.

        `on_retry(attempt, max_attempts)` is called before each pause.
        """
        command = " ".join(("push", *args))
        last: ProcessError | None = None
        for attempt in range(1, PUSH_RETRY_ATTEMPTS + 1):
            result = self._run(["push", *args])
            if isinstance(result, Ok):
                return Ok(None)
            last = result.error
            if attempt < PUSH_RETRY_ATTEMPTS:
                if on_retry is not None:
                    on_retry(attempt, PUSH_RETRY_ATTEMPTS)
                sleep(PUSH_RETRY_DELAY_SECONDS)

        message = f"push failed after {PUSH_RETRY_ATTEMPTS} attempts"
        if last is not None and last.output:
            message = f"{message}: {last.output}"
        return Err(
            GitError(
                command=command,
                message=message,
                returncode=last.returncode if last is not None else 1,
            )
        )

    def push_tags(self) -> Result[None, GitError]:
        return self.push(self.remote, "--tags")

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _run(self, args: list[str]) -> Result[str, ProcessError]:
        """Run a git command in this repository."""
        command = args[0] if args else ""
        timeout = (
            _GIT_NETWORK_TIMEOUT_SECONDS
            if command in {"fetch", "pull", "push", "ls-remote"}
            else _GIT_TIMEOUT_SECONDS
        )
        return run_process(["git", "-C", str(self.path), *args], cwd=self.path, timeout=timeout)

    @staticmethod
    def _error(command: str, error: ProcessError, fallback: str) -> GitError:
        return GitError(
            command=command,
            message=error.output or fallback,
            returncode=error.returncode,
        )
