"""Version-file updates with backup, verification and rollback."""

from release_ai.services.versioning.kinds import (
    FileKind,
    JsonFile,
    KindError,
    PlainTextFile,
    ScriptFile,
    select_kind,
)
from release_ai.services.versioning.updater import (
    BackupRecord,
    RollbackReport,
    UpdateReport,
    VerifyError,
    VerifyReport,
    VersionFileError,
    VersionMismatch,
    current_version,
    rollback_all_version_changes,
    update_all_version_files,
    update_version_in_file,
    verify_all_version_updates,
)

__all__ = [
    # Kinds
    "FileKind",
    "JsonFile",
    "KindError",
    "PlainTextFile",
    "ScriptFile",
    "select_kind",
    # Updates
    "BackupRecord",
    "RollbackReport",
    "UpdateReport",
    "VerifyError",
    "VerifyReport",
    "VersionFileError",
    "VersionMismatch",
    "current_version",
    "rollback_all_version_changes",
    "update_all_version_files",
    "update_version_in_file",
    "verify_all_version_updates",
]
