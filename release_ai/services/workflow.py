"""Release workflow: start, merge, finalize, rollback.

Each phase is one CLI invocation. Progress between invocations lives in the
state file (`version`, `release_branch`, `bump_commit`, `base_commit`,
`phase`). The release is recorded as soon as its branch exists, with phase
`starting`, so `rollback` can always find it; `started`, `merged` and
`tagged` follow. Merge and finalize can be re-run after fixing whatever made
them fail.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Literal

from release_ai.core.config import ReleaseConfig
from release_ai.core.result import Err, Ok, Result
from release_ai.git.repository import Commit, GitError, Repository
from release_ai.output.console import ConsoleProtocol, Style
from release_ai.services import github
from release_ai.services.ai.client import AnthropicClient
from release_ai.services.ai.features import generate_notes, suggest_version
from release_ai.services.ai.prompts import NotesFormat
from release_ai.services.history import CommitRange, ReleaseHistory, bump_commit_message
from release_ai.services.notes import notes_path_for_version, render_plain_notes, write_notes
from release_ai.services.semver import (
    ReleaseBump,
    calculate_next_version,
    compare_versions,
    suggest_bump,
    validate_version,
)
from release_ai.services.state import StateStore
from release_ai.services.versioning.updater import (
    UpdateReport,
    current_version,
    plan_update,
    rollback_all_version_changes,
    update_all_version_files,
    verify_all_version_updates,
)

__all__ = [
    "FinalizedRelease",
    "MergedRelease",
    "ReleaseWorkflow",
    "RolledBackRelease",
    "StartedRelease",
    "WorkflowError",
]


@dataclass(frozen=True, slots=True)
class WorkflowError:
    kind: Literal[
        "in_progress",
        "no_release",
        "dirty_tree",
        "invalid_version",
        "git_failed",
        "version_files",
        "verify_failed",
        "state_failed",
        "io_failed",
    ]
    message: str
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class StartedRelease:
    version: str
    branch: str
    bump_commit: str
    report: UpdateReport


@dataclass(frozen=True, slots=True)
class MergedRelease:
    version: str
    branch: str
    target: str


@dataclass(frozen=True, slots=True)
class FinalizedRelease:
    version: str
    tag: str
    notes_path: Path
    release_url: str | None = None


@dataclass(frozen=True, slots=True)
class RolledBackRelease:
    version: str | None
    branch: str | None
    restored: tuple[Path, ...] = ()
    deleted_refs: tuple[str, ...] = ()


def _git_failed(error: GitError, hint: str | None = None) -> WorkflowError:
    return WorkflowError(kind="git_failed", message=f"git {error.command}: {error.message}", hint=hint)


class ReleaseWorkflow:
    """Git-flow release phases over one repository.

    Attributes:
        repo: Repository the release happens in
        config: Resolved settings (branches, prefixes, version files)
        repo_root: Root that relative version-file paths resolve against
    """

    def __init__(
        self,
        *,
        repo: Repository,
        config: ReleaseConfig,
        console: ConsoleProtocol,
        state: StateStore,
        repo_root: Path,
        ai: AnthropicClient | None = None,
    ) -> None:
        self.repo = repo
        self.config = config
        self.repo_root = repo_root
        self._console = console
        self._state = state
        self._ai = ai if config.ai_enabled else None
        self._history = ReleaseHistory(repo, config)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _on_push_retry(self, attempt: int, attempts: int) -> None:
        self._console.warning(f"push failed (attempt {attempt}/{attempts}), retrying...")

    def _push(self, *args: str) -> Result[None, WorkflowError]:
        self._console.print(f"git push {' '.join(args)}", Style.DIM)
        result = self.repo.push(*args, on_retry=self._on_push_retry)
        if isinstance(result, Err):
            return Err(_git_failed(result.error))
        return Ok(None)

    def _own_files(self) -> list[Path]:
        """Files this tool leaves in the work tree between phases."""
        return [self._state.path.resolve(), notes_path_for_version(self.repo_root.resolve(), "*")]

    def _require_clean(self) -> Result[None, WorkflowError]:
        if self.repo.is_clean(ignore=self._own_files()):
            return Ok(None)
        return Err(
            WorkflowError(
                kind="dirty_tree",
                message="working tree has uncommitted changes",
                hint="Commit or stash them first",
            )
        )

    def _switch_and_pull(self, branch: str) -> Result[None, WorkflowError]:
        checked_out = self.repo.checkout(branch)
        if isinstance(checked_out, Err):
            return Err(_git_failed(checked_out.error))
        pulled = self.repo.pull()
        if isinstance(pulled, Err):
            return Err(_git_failed(pulled.error, hint=f"Fix the upstream of {branch} and retry"))
        return Ok(None)

    def _active_release(self) -> Result[tuple[str, str], WorkflowError]:
        version = self._state.get("version")
        branch = self._state.get("release_branch")
        if not version or not branch:
            return Err(
                WorkflowError(
                    kind="no_release",
                    message="no release in progress",
                    hint="Start one with `release-ai start`",
                )
            )
        return Ok((version, branch))

    def _commits_since_last_release(self, end_ref: str = "HEAD") -> list[Commit]:
        commit_range = self._history.commits_since_last_release(end_ref)
        if isinstance(commit_range, Err):
            self._console.warning(f"could not resolve the last release: {commit_range.error.message}")
            return []
        commits = self._history.list_commits(commit_range.value)
        if isinstance(commits, Err):
            self._console.warning(f"could not list commits: {commits.error.message}")
            return []
        return commits.value

    def _release_base(self) -> str:
        """First commit boundary of this release; empty before the first release."""
        commit_range = self._history.commits_since_last_release("HEAD")
        if isinstance(commit_range, Err):
            self._console.warning(f"could not resolve the last release: {commit_range.error.message}")
            return ""
        return commit_range.value.start or ""

    def _release_commits(self, version: str, branch: str) -> list[Commit]:
        """Commits shipped by the release on `branch`, without its bump commit."""
        base = self._state.get("base_commit") or None
        commits = self._history.list_commits(CommitRange(start=base, end=branch))
        if isinstance(commits, Err):
            self._console.warning(f"could not list commits: {commits.error.message}")
            return []
        bump_subject = bump_commit_message(version)
        return [c for c in commits.value if c.subject != bump_subject]

    def _next_version(self, current: str, *, auto: bool, bump: ReleaseBump) -> Result[str, WorkflowError]:
        if not auto:
            computed = calculate_next_version(current, bump)
            if isinstance(computed, Err):
                return Err(WorkflowError(kind="invalid_version", message=computed.error.message))
            return Ok(computed.value)

        commits = self._commits_since_last_release()
        if self._ai is not None and self._ai.is_configured:
            self._console.info("asking the AI for a version suggestion")
            suggestion = suggest_version(self._ai, current_version=current, commits=commits)
            match suggestion:
                case Ok(s):
                    self._console.info(f"suggested {s.bump_type} bump: {s.reasoning}")
                    return Ok(s.suggested_version)
                case Err(e):
                    self._console.warning(f"AI suggestion unavailable ({e.message}), using commit types")

        heuristic = suggest_bump(commits)
        self._console.info(f"{heuristic} bump from {len(commits)} commit(s)")
        computed = calculate_next_version(current, heuristic)
        if isinstance(computed, Err):
            return Err(WorkflowError(kind="invalid_version", message=computed.error.message))
        return Ok(computed.value)

    def _resolve_version(
        self,
        version: str | None,
        *,
        auto: bool,
        bump: ReleaseBump,
    ) -> Result[str, WorkflowError]:
        current = current_version(self.config.version_files, repo_root=self.repo_root)

        if version is None:
            if isinstance(current, Err):
                return Err(
                    WorkflowError(
                        kind="version_files",
                        message=current.error.message,
                        hint=current.error.hint or "Pass the version explicitly",
                    )
                )
            resolved = self._next_version(current.value, auto=auto, bump=bump)
            if isinstance(resolved, Err):
                return resolved
            version = resolved.value

        if not validate_version(version):
            return Err(
                WorkflowError(
                    kind="invalid_version",
                    message=f"invalid version format: {version!r}",
                    hint="Expected X.Y.Z (e.g. 1.8.3)",
                )
            )

        if isinstance(current, Ok):
            order = compare_versions(version, current.value)
            if isinstance(order, Ok) and order.value <= 0:
                return Err(
                    WorkflowError(
                        kind="invalid_version",
                        message=f"{version} is not greater than the current version {current.value}",
                    )
                )
        return Ok(version)

    # -------------------------------------------------------------------------
    # Phases
    # -------------------------------------------------------------------------

    def start(
        self,
        version: str | None = None,
        *,
        auto: bool = False,
        bump: ReleaseBump = "patch",
    ) -> Result[StartedRelease, WorkflowError]:
        """Cut a release branch from develop and bump every version file."""
        verified = self.repo.verify()
        if isinstance(verified, Err):
            return Err(_git_failed(verified.error))

        in_progress = self._state.get("version")
        if in_progress:
            return Err(
                WorkflowError(
                    kind="in_progress",
                    message=f"release {in_progress} is already in progress",
                    hint="Finish it with `release-ai finalize` or undo it with `release-ai rollback`",
                )
            )

        if version is not None and not validate_version(version):
            return Err(
                WorkflowError(
                    kind="invalid_version",
                    message=f"invalid version format: {version!r}",
                    hint="Expected X.Y.Z (e.g. 1.8.3)",
                )
            )

        clean = self._require_clean()
        if isinstance(clean, Err):
            return clean

        develop = self.config.develop_branch
        self._console.step(1, f"Updating {develop}")
        switched = self._switch_and_pull(develop)
        if isinstance(switched, Err):
            return switched

        self._console.step(2, "Resolving version")
        resolved = self._resolve_version(version, auto=auto, bump=bump)
        if isinstance(resolved, Err):
            return resolved
        version = resolved.value
        branch = self.config.release_branch(version)
        self._console.info(f"release version: {version}")
        base = self._release_base()

        self._console.step(3, f"Creating {branch}")
        created = self.repo.create_branch(branch)
        if isinstance(created, Err):
            return Err(_git_failed(created.error))
        # From here on a failure leaves the branch behind; rollback needs to know it.
        recorded = self._state.update(
            {"version": version, "release_branch": branch, "base_commit": base, "phase": "starting"}
        )
        if isinstance(recorded, Err):
            return Err(WorkflowError(kind="state_failed", message=recorded.error.message))
        abandon = f"Run `release-ai rollback` to remove {branch}"

        self._console.step(4, "Updating version files")
        specs = self.config.version_files
        updated = update_all_version_files(
            version, specs, repo_root=self.repo_root, console=self._console
        )
        if isinstance(updated, Err):
            error = updated.error
            backups = error.report.backups if error.report is not None else ()
            rollback_all_version_changes(
                specs,
                repo_root=self.repo_root,
                console=self._console,
                backups=backups,
                leftovers=False,
            )
            return Err(
                WorkflowError(
                    kind="version_files",
                    message=error.message,
                    hint=f"{error.hint}\n{abandon}" if error.hint else abandon,
                )
            )
        report = updated.value

        verified_files = verify_all_version_updates(
            version, specs, repo_root=self.repo_root, console=self._console
        )
        if isinstance(verified_files, Err):
            rollback_all_version_changes(
                specs,
                repo_root=self.repo_root,
                console=self._console,
                backups=report.backups,
                leftovers=False,
            )
            return Err(
                WorkflowError(
                    kind="verify_failed",
                    message=verified_files.error.message,
                    hint=abandon,
                )
            )

        if not report.updated:
            return Err(
                WorkflowError(
                    kind="version_files",
                    message="no version file was updated",
                    hint=f"Check version_files paths. {abandon}",
                )
            )

        self._console.step(5, "Committing version bump")
        committed = self.repo.commit(bump_commit_message(version), report.updated)
        if isinstance(committed, Err):
            return Err(_git_failed(committed.error, hint=abandon))
        bump_sha = committed.value

        self._console.step(6, f"Pushing {branch}")
        pushed = self._push("-u", self.repo.remote, branch)
        if isinstance(pushed, Err):
            return Err(replace(pushed.error, hint=abandon))

        saved = self._state.update({"bump_commit": bump_sha, "phase": "started"})
        if isinstance(saved, Err):
            return Err(WorkflowError(kind="state_failed", message=saved.error.message))

        self._console.success(f"release {version} started on {branch}")
        return Ok(StartedRelease(version=version, branch=branch, bump_commit=bump_sha, report=report))

    def merge(self) -> Result[MergedRelease, WorkflowError]:
        """Merge the release branch into main and push main."""
        active = self._active_release()
        if isinstance(active, Err):
            return active
        version, branch = active.value

        if self._state.get("phase") == "starting":
            return Err(
                WorkflowError(
                    kind="no_release",
                    message=f"release {version} did not finish starting",
                    hint=f"Run `release-ai rollback` to remove {branch}, then start again",
                )
            )

        clean = self._require_clean()
        if isinstance(clean, Err):
            return clean

        main = self.config.main_branch
        self._console.step(1, f"Updating {main}")
        switched = self._switch_and_pull(main)
        if isinstance(switched, Err):
            return switched

        self._console.step(2, f"Merging {branch} into {main} (-X {self.config.merge_strategy})")
        merged = self.repo.merge(
            branch,
            strategy=self.config.merge_strategy,
            message=f"Merge {branch} into {main} for release {version}",
        )
        if isinstance(merged, Err):
            return Err(_git_failed(merged.error, hint="Resolve the conflicts, commit, then re-run merge"))

        self._console.step(3, f"Pushing {main}")
        pushed = self._push(self.repo.remote, main)
        if isinstance(pushed, Err):
            return pushed

        saved = self._state.set("phase", "merged")
        if isinstance(saved, Err):
            return Err(WorkflowError(kind="state_failed", message=saved.error.message))

        self._console.success(f"{branch} merged into {main}")
        return Ok(MergedRelease(version=version, branch=branch, target=main))

    def _write_release_notes(
        self, version: str, branch: str, fmt: NotesFormat
    ) -> Result[Path, WorkflowError]:
        commits = self._release_commits(version, branch)
        notes: str | None = None
        if self._ai is not None and self._ai.is_configured:
            generated = generate_notes(self._ai, version=version, commits=commits, fmt=fmt)
            match generated:
                case Ok(text):
                    notes = text
                case Err(e):
                    self._console.warning(f"AI notes unavailable ({e.message}), using commit list")
        if notes is None:
            notes = render_plain_notes(version, commits)

        written = write_notes(notes_path_for_version(self.repo_root, version), notes)
        if isinstance(written, Err):
            return Err(WorkflowError(kind="io_failed", message=written.error))
        return Ok(written.value)

    def _back_merge(self, version: str, branch: str) -> Result[None, WorkflowError]:
        develop = self.config.develop_branch
        switched = self._switch_and_pull(develop)
        if isinstance(switched, Err):
            return switched

        if self.config.back_merge == "cherry-pick":
            subject = bump_commit_message(version)
            landed = self.repo.find_commit(develop, subject)
            if landed is not None and landed.subject == subject:
                self._console.info(f"{develop} already has the version bump")
                return self._push(self.repo.remote, develop)

            sha = self._state.get("bump_commit")
            if not sha:
                found = self.repo.find_commit(branch, subject)
                sha = found.sha if found is not None else ""
            if not sha:
                return Err(
                    WorkflowError(
                        kind="git_failed",
                        message=f"version bump commit not found on {branch}",
                        hint="Cherry-pick it onto develop manually",
                    )
                )
            picked = self.repo.cherry_pick(sha)
            if isinstance(picked, Err):
                return Err(
                    _git_failed(picked.error, hint="Resolve the conflicts, commit, then re-run finalize")
                )
        else:
            merged = self.repo.merge(branch, strategy="ours", message=f"Merge {branch} back into {develop}")
            if isinstance(merged, Err):
                return Err(
                    _git_failed(merged.error, hint="Resolve the conflicts, commit, then re-run finalize")
                )

        return self._push(self.repo.remote, develop)

    def _tag_release(self, tag: str, version: str) -> Result[None, WorkflowError]:
        """Create and push `tag` on HEAD, reusing one a failed run already created there."""
        if self.repo.ref_exists(f"refs/tags/{tag}"):
            tagged = self.repo.rev_parse(f"{tag}^{{commit}}")
            head = self.repo.rev_parse("HEAD")
            if isinstance(tagged, Err) or isinstance(head, Err) or tagged.value != head.value:
                return Err(
                    WorkflowError(
                        kind="git_failed",
                        message=f"tag {tag} already exists on another commit",
                        hint=f"Delete it (git tag -d {tag}) or pick another version",
                    )
                )
            self._console.info(f"{tag} already points at HEAD, reusing it")
        else:
            created = self.repo.create_tag(tag, f"Release {version}")
            if isinstance(created, Err):
                return Err(_git_failed(created.error))

        pushed = self.repo.push_tags()
        if isinstance(pushed, Err):
            return Err(_git_failed(pushed.error, hint="Re-run finalize once the remote is reachable"))
        return Ok(None)

    def _publish(self, tag: str, notes_file: Path) -> str | None:
        published = github.create_release(
            repo_root=self.repo_root,
            tag=tag,
            title=f"Release {tag}",
            notes_file=notes_file,
        )
        match published:
            case Ok(url):
                self._console.success(f"GitHub release created: {url}")
                return url or None
            case Err(e):
                self._console.warning(f"{e.message}; create the release manually from {tag}")
                if e.hint:
                    self._console.print(e.hint, Style.DIM)
                return None

    def finalize(self, *, notes_format: NotesFormat = "markdown") -> Result[FinalizedRelease, WorkflowError]:
        """Tag main, publish the GitHub release, back-merge and clean up.

        Once the tag is pushed the phase becomes `tagged`; re-running after a
        failed back-merge skips straight to it.
        """
        active = self._active_release()
        if isinstance(active, Err):
            return active
        version, branch = active.value

        phase = self._state.get("phase")
        if phase not in ("merged", "tagged"):
            return Err(
                WorkflowError(
                    kind="no_release",
                    message=f"release {version} has not been merged into {self.config.main_branch}",
                    hint="Run `release-ai merge` first",
                )
            )

        main = self.config.main_branch
        tag = self.config.tag_for(version)
        notes_file = notes_path_for_version(self.repo_root, version)
        release_url: str | None = None

        if phase == "merged":
            self._console.step(1, f"Switching to {main}")
            checked_out = self.repo.checkout(main)
            if isinstance(checked_out, Err):
                return Err(_git_failed(checked_out.error))

            self._console.step(2, "Generating release notes")
            written = self._write_release_notes(version, branch, notes_format)
            if isinstance(written, Err):
                return written
            notes_file = written.value
            self._console.info(f"release notes: {notes_file}")

            self._console.step(3, f"Tagging {tag}")
            tagged = self._tag_release(tag, version)
            if isinstance(tagged, Err):
                return tagged
            saved = self._state.set("phase", "tagged")
            if isinstance(saved, Err):
                return Err(WorkflowError(kind="state_failed", message=saved.error.message))

            self._console.step(4, "Publishing GitHub release")
            release_url = self._publish(tag, notes_file)
        else:
            self._console.info(f"{tag} is already pushed, resuming at the back-merge")

        self._console.step(5, f"Back-merging into {self.config.develop_branch} ({self.config.back_merge})")
        back = self._back_merge(version, branch)
        if isinstance(back, Err):
            return back

        self._console.step(6, f"Deleting {branch}")
        deleted = self.repo.delete_branch(branch, remote=True)
        if isinstance(deleted, Err):
            self._console.warning(f"could not delete {branch}: {deleted.error.message}")

        self._state.clear()
        self._console.success(f"release {version} finalized")
        return Ok(
            FinalizedRelease(
                version=version,
                tag=tag,
                notes_path=notes_file,
                release_url=release_url,
            )
        )

    def rollback(self, *, delete_remote: bool = False) -> Result[RolledBackRelease, WorkflowError]:
        """Undo a started release: restore files, drop the branch, clear state."""
        version = self._state.get("version") or None
        branch = self._state.get("release_branch") or None

        specs = self.config.version_files
        report = rollback_all_version_changes(specs, repo_root=self.repo_root, console=self._console)

        # Uncommitted edits to version files are discarded only for a recorded
        # release, and never for a file just restored from its backup.
        if version is not None:
            paths = [
                e.path
                for e in plan_update(version, specs, repo_root=self.repo_root).entries
                if e.path.is_file() and e.path not in report.restored
            ]
            restored = self.repo.restore_paths(paths)
            if isinstance(restored, Err):
                self._console.warning(f"could not discard version file edits: {restored.error.message}")

        deleted_refs: list[str] = []
        if branch is not None:
            develop = self.config.develop_branch
            if self.repo.current_branch() == branch:
                checked_out = self.repo.checkout(develop)
                if isinstance(checked_out, Err):
                    return Err(_git_failed(checked_out.error))
            deleted = self.repo.delete_branch(branch, remote=delete_remote)
            if isinstance(deleted, Err):
                return Err(_git_failed(deleted.error))
            deleted_refs = deleted.value
            for ref in deleted_refs:
                self._console.info(f"deleted {ref}")
        else:
            self._console.warning("no release branch recorded in state")

        self._state.clear()
        self._console.success("rollback complete")
        return Ok(
            RolledBackRelease(
                version=version,
                branch=branch,
                restored=report.restored,
                deleted_refs=tuple(deleted_refs),
            )
        )
