"""Apply one version to every configured version file.

Per file the sequence is: validate the version, pick the file kind, keep a
backup (in memory and as a sibling `<file>.bak`), write the new content,
then drop the sibling backup. Any failure after the backup restores the
original bytes before returning `Err`.

The batch functions never stop at the first bad file. `update_all_version_files`
returns the in-memory backups of every file it changed so the caller can hand
them to `rollback_all_version_changes` when the batch as a whole failed.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from release_ai.core.config import VersionFileSpec
from release_ai.core.result import Err, Ok, Result
from release_ai.output.console import ConsoleProtocol, Style
from release_ai.platform.files import atomic_write_bytes, atomic_write_text, restore_file
from release_ai.services.semver import validate_version

from .kinds import select_kind

__all__ = [
    "BACKUP_SUFFIX",
    "BackupRecord",
    "FileFailure",
    "FileUpdate",
    "PlanEntry",
    "RollbackReport",
    "UpdatePlan",
    "UpdateReport",
    "VerifyError",
    "VerifyReport",
    "VersionFileError",
    "VersionMismatch",
    "backup_path_for",
    "current_version",
    "plan_update",
    "rollback_all_version_changes",
    "update_all_version_files",
    "update_version_in_file",
    "verify_all_version_updates",
]

BACKUP_SUFFIX = ".bak"


# -----------------------------------------------------------------------------
# Data Types
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class BackupRecord:
    """Pre-update content of one file.

    Attributes:
        path: The file that was modified
        content: Its bytes before the update
        backup_path: Sibling file holding the same bytes while a write is in flight
    """

    path: Path
    content: bytes
    backup_path: Path


@dataclass(frozen=True, slots=True)
class PlanEntry:
    spec: VersionFileSpec
    path: Path


@dataclass(frozen=True, slots=True)
class UpdatePlan:
    """Specs with paths resolved against the repository root."""

    version: str
    entries: tuple[PlanEntry, ...]


@dataclass(frozen=True, slots=True)
class FileUpdate:
    path: Path
    status: Literal["updated", "skipped"]
    backup: BackupRecord | None = None


@dataclass(frozen=True, slots=True)
class FileFailure:
    path: Path
    message: str


@dataclass(frozen=True, slots=True)
class UpdateReport:
    version: str
    updated: tuple[Path, ...] = ()
    skipped: tuple[Path, ...] = ()
    failed: tuple[FileFailure, ...] = ()
    backups: tuple[BackupRecord, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.failed

    @property
    def failed_paths(self) -> tuple[Path, ...]:
        return tuple(f.path for f in self.failed)


@dataclass(frozen=True, slots=True)
class VersionFileError:
    kind: Literal[
        "invalid_version",
        "unsupported_file_type",
        "read_failed",
        "write_failed",
        "update_failed",
        "backup_exists",
        "no_version_files",
        "batch_failed",
    ]
    message: str
    path: Path | None = None
    hint: str | None = None
    report: UpdateReport | None = None


@dataclass(frozen=True, slots=True)
class VersionMismatch:
    path: Path
    expected: str
    actual: str | None

    def describe(self) -> str:
        actual = self.actual if self.actual is not None else "<not found>"
        return f"{self.path}: found {actual}, expected {self.expected}"


@dataclass(frozen=True, slots=True)
class VerifyReport:
    checked: tuple[Path, ...] = ()
    skipped: tuple[Path, ...] = ()


@dataclass(frozen=True, slots=True)
class VerifyError:
    message: str
    mismatches: tuple[VersionMismatch, ...] = ()
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class RollbackReport:
    restored: tuple[Path, ...] = ()
    failed: tuple[FileFailure, ...] = field(default_factory=tuple)

    @property
    def nothing_to_roll_back(self) -> bool:
        return not self.restored and not self.failed


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------


def backup_path_for(path: Path) -> Path:
    return path.with_name(path.name + BACKUP_SUFFIX)


def _resolve(spec: VersionFileSpec, repo_root: Path) -> Path:
    path = Path(spec.path).expanduser()
    return path if path.is_absolute() else repo_root / path


def plan_update(
    version: str,
    specs: Sequence[VersionFileSpec],
    *,
    repo_root: Path,
) -> UpdatePlan:
    return UpdatePlan(
        version=version,
        entries=tuple(PlanEntry(spec=s, path=_resolve(s, repo_root)) for s in specs),
    )


def _invalid_version(version: str) -> VersionFileError:
    return VersionFileError(
        kind="invalid_version",
        message=f"invalid version format: {version!r}",
        hint="Expected X.Y.Z (e.g. 1.8.3)",
    )


def _restore(backup: BackupRecord) -> Result[None, VersionFileError]:
    """Put the original bytes back and drop the sibling backup."""
    try:
        atomic_write_bytes(backup.path, backup.content)
    except OSError as e:
        # The sibling backup stays on disk for a later rollback.
        return Err(
            VersionFileError(
                kind="write_failed",
                message=f"failed to restore {backup.path.name}: {e}",
                path=backup.path,
                hint=f"original content kept in {backup.backup_path}",
            )
        )
    backup.backup_path.unlink(missing_ok=True)
    return Ok(None)


def _fail_and_restore(backup: BackupRecord, error: VersionFileError) -> Err[VersionFileError]:
    restored = _restore(backup)
    if isinstance(restored, Err):
        return Err(
            VersionFileError(
                kind=error.kind,
                message=f"{error.message}; {restored.error.message}",
                path=error.path,
                hint=restored.error.hint,
            )
        )
    return Err(error)


# -----------------------------------------------------------------------------
# Single file
# -----------------------------------------------------------------------------


def update_version_in_file(
    path: Path,
    field: str,
    new_version: str,
    *,
    console: ConsoleProtocol | None = None,
) -> Result[FileUpdate, VersionFileError]:
    """Write `new_version` into one file.

    Returns:
        Ok(FileUpdate) with status "updated" (and its backup) or "skipped"
        when the file does not exist; Err(VersionFileError) otherwise, with
        the file restored to its original content.
    """
    if not validate_version(new_version):
        return Err(_invalid_version(new_version))

    if not path.is_file():
        if console is not None:
            console.warning(f"file not found, skipping: {path}")
        return Ok(FileUpdate(path=path, status="skipped"))

    kind = select_kind(path, field)
    if isinstance(kind, Err):
        return Err(
            VersionFileError(kind="unsupported_file_type", message=kind.error.message, path=path)
        )

    try:
        original = path.read_bytes()
        text = original.decode("utf-8")
    except (OSError, UnicodeDecodeError) as e:
        return Err(
            VersionFileError(kind="read_failed", message=f"failed to read {path.name}: {e}", path=path)
        )

    label = field or "version"
    if console is not None:
        console.info(f"updating {label} in {path.name} to {new_version}")

    backup = BackupRecord(path=path, content=original, backup_path=backup_path_for(path))
    if backup.backup_path.exists():
        # Left by an interrupted run; it may be the only copy of the original.
        return Err(
            VersionFileError(
                kind="backup_exists",
                message=f"stale backup found: {backup.backup_path}",
                path=path,
                hint="Run `release-ai rollback` to restore it, or delete it if it is outdated",
            )
        )
    try:
        atomic_write_bytes(backup.backup_path, original)
    except OSError as e:
        return Err(
            VersionFileError(
                kind="write_failed",
                message=f"failed to back up {path.name}: {e}",
                path=path,
            )
        )

    updated = kind.value.apply(text, field, new_version)
    if isinstance(updated, Err):
        return _fail_and_restore(
            backup,
            VersionFileError(
                kind="update_failed",
                message=f"failed to update {label} in {path.name}: {updated.error.message}",
                path=path,
            ),
        )

    try:
        atomic_write_text(path, updated.value)
    except OSError as e:
        return _fail_and_restore(
            backup,
            VersionFileError(
                kind="write_failed",
                message=f"failed to write {path.name}: {e}",
                path=path,
            ),
        )

    backup.backup_path.unlink(missing_ok=True)
    if console is not None:
        console.success(f"{path.name}: {label} = {new_version}")
    return Ok(FileUpdate(path=path, status="updated", backup=backup))


# -----------------------------------------------------------------------------
# Batch operations
# -----------------------------------------------------------------------------


def update_all_version_files(
    new_version: str,
    specs: Sequence[VersionFileSpec],
    *,
    repo_root: Path,
    console: ConsoleProtocol,
) -> Result[UpdateReport, VersionFileError]:
    """Update every spec, attempting all of them before reporting.

    Returns:
        Ok(UpdateReport) when no file failed (missing files count as skipped).
        Err(VersionFileError) with kind "batch_failed" and the full report
        (including backups of the files that did change) otherwise.
    """
    if not validate_version(new_version):
        return Err(_invalid_version(new_version))

    if not specs:
        return Err(
            VersionFileError(
                kind="no_version_files",
                message="no version files configured",
                hint='Add "version_files" to .release-ai.config.json (see `release-ai init`)',
            )
        )

    plan = plan_update(new_version, specs, repo_root=repo_root)
    console.info(f"updating {len(plan.entries)} version file(s)")

    updated: list[Path] = []
    skipped: list[Path] = []
    failed: list[FileFailure] = []
    backups: list[BackupRecord] = []

    for entry in plan.entries:
        result = update_version_in_file(entry.path, entry.spec.field, new_version, console=console)
        match result:
            case Ok(FileUpdate(status="skipped")):
                skipped.append(entry.path)
            case Ok(update):
                updated.append(entry.path)
                if update.backup is not None:
                    backups.append(update.backup)
            case Err(e):
                console.error(e.message)
                failed.append(FileFailure(path=entry.path, message=e.message))

    report = UpdateReport(
        version=new_version,
        updated=tuple(updated),
        skipped=tuple(skipped),
        failed=tuple(failed),
        backups=tuple(backups),
    )

    if failed:
        return Err(
            VersionFileError(
                kind="batch_failed",
                message=f"{len(failed)} version file update(s) failed",
                hint="\n".join(f"- {f.path}" for f in failed),
                report=report,
            )
        )

    console.success(f"version files updated: {len(updated)} (skipped {len(skipped)})")
    return Ok(report)


def verify_all_version_updates(
    expected_version: str,
    specs: Sequence[VersionFileSpec],
    *,
    repo_root: Path,
    console: ConsoleProtocol,
) -> Result[VerifyReport, VerifyError]:
    """Re-read every spec and compare it with `expected_version`.

    Files that are missing or unreadable are skipped with a warning; only
    values that contradict the expectation are reported.
    """
    checked: list[Path] = []
    skipped: list[Path] = []
    mismatches: list[VersionMismatch] = []

    for entry in plan_update(expected_version, specs, repo_root=repo_root).entries:
        path = entry.path
        if not path.is_file():
            console.warning(f"file not found for verification: {path}")
            skipped.append(path)
            continue

        kind = select_kind(path, entry.spec.field)
        if isinstance(kind, Err):
            console.warning(f"cannot read version from {path}: {kind.error.message}")
            skipped.append(path)
            continue

        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            console.warning(f"cannot read {path}: {e}")
            skipped.append(path)
            continue

        actual = kind.value.read(text, entry.spec.field)
        value = actual.value if isinstance(actual, Ok) else None
        checked.append(path)
        if value != expected_version:
            mismatch = VersionMismatch(path=path, expected=expected_version, actual=value)
            console.error(mismatch.describe())
            mismatches.append(mismatch)
        else:
            console.print(f"  {path}: {value}", Style.DIM)

    if mismatches:
        return Err(
            VerifyError(
                message=f"{len(mismatches)} version file(s) do not match {expected_version}",
                mismatches=tuple(mismatches),
                hint="\n".join(m.describe() for m in mismatches),
            )
        )

    console.success(f"all version files at {expected_version}")
    return Ok(VerifyReport(checked=tuple(checked), skipped=tuple(skipped)))


def rollback_all_version_changes(
    specs: Sequence[VersionFileSpec],
    *,
    repo_root: Path,
    console: ConsoleProtocol,
    backups: Sequence[BackupRecord] = (),
    leftovers: bool = True,
) -> RollbackReport:
    """Restore files from in-memory backups, then from leftover `.bak` files.

    `leftovers=False` restores only `backups`, leaving any `.bak` from an
    earlier interrupted run in place. Safe to call repeatedly; with nothing
    to restore it only reports so.
    """
    restored: list[Path] = []
    failed: list[FileFailure] = []

    for backup in backups:
        result = _restore(backup)
        match result:
            case Ok(_):
                restored.append(backup.path)
                console.info(f"restored {backup.path}")
            case Err(e):
                console.error(e.message)
                failed.append(FileFailure(path=backup.path, message=e.message))

    entries = plan_update("0.0.0", specs, repo_root=repo_root).entries if leftovers else ()
    for entry in entries:
        bak = backup_path_for(entry.path)
        if entry.path in restored or not bak.is_file():
            continue
        try:
            restore_file(entry.path, bak)
        except OSError as e:
            message = f"failed to restore {entry.path} from {bak.name}: {e}"
            console.error(message)
            failed.append(FileFailure(path=entry.path, message=message))
            continue
        restored.append(entry.path)
        console.info(f"restored {entry.path} from {bak.name}")

    report = RollbackReport(restored=tuple(restored), failed=tuple(failed))
    if report.nothing_to_roll_back:
        console.warning("no version file backups found, nothing to roll back")
    elif not failed:
        console.success(f"rolled back {len(restored)} version file(s)")
    return report


def current_version(
    specs: Sequence[VersionFileSpec],
    *,
    repo_root: Path,
) -> Result[str, VersionFileError]:
    """Version held by the first configured file that exists."""
    for entry in plan_update("0.0.0", specs, repo_root=repo_root).entries:
        if not entry.path.is_file():
            continue
        kind = select_kind(entry.path, entry.spec.field)
        if isinstance(kind, Err):
            continue
        try:
            text = entry.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            return Err(
                VersionFileError(
                    kind="read_failed",
                    message=f"failed to read {entry.path.name}: {e}",
                    path=entry.path,
                )
            )
        value = kind.value.read(text, entry.spec.field)
        if isinstance(value, Err):
            return Err(
                VersionFileError(
                    kind="read_failed",
                    message=f"{entry.path.name}: {value.error.message}",
                    path=entry.path,
                )
            )
        if not validate_version(value.value):
            return Err(
                VersionFileError(
                    kind="invalid_version",
                    message=f"{entry.path.name} holds an invalid version: {value.value!r}",
                    path=entry.path,
                )
            )
        return Ok(value.value)

    return Err(
        VersionFileError(
            kind="no_version_files",
            message="could not read the current version from any configured file",
            hint="Check version_files in .release-ai.config.json",
        )
    )
