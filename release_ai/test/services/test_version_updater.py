"""Tests for release_ai.services.versioning.updater."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from release_ai.core.config import VersionFileSpec
from release_ai.core.result import Err, Ok
from release_ai.output.console import MockConsole
from release_ai.services.versioning import updater as updater_mod
from release_ai.services.versioning.updater import (
    BackupRecord,
    backup_path_for,
    current_version,
    rollback_all_version_changes,
    update_all_version_files,
    update_version_in_file,
    verify_all_version_updates,
)


def _package_json(root: Path, version: str = "1.2.3") -> Path:
    path = root / "package.json"
    path.write_text(json.dumps({"name": "app", "version": version}, indent=2) + "\n", encoding="utf-8")
    return path


def _app_config(root: Path, version: str = "1.2.3") -> Path:
    path = root / "app.config.js"
    path.write_text(f'export default {{\n  expo: {{\n    version: "{version}",\n  }},\n}};\n', encoding="utf-8")
    return path


SPECS = (
    VersionFileSpec("package.json", "version"),
    VersionFileSpec("app.config.js", "expo.version"),
    VersionFileSpec("VERSION"),
)


class TestUpdateVersionInFile:
    def test_updates_json(self, tmp_path: Path) -> None:
        path = _package_json(tmp_path)
        result = update_version_in_file(path, "version", "1.3.0")

        assert isinstance(result, Ok)
        assert result.value.status == "updated"
        assert json.loads(path.read_text(encoding="utf-8"))["version"] == "1.3.0"
        assert result.value.backup is not None
        assert b'"1.2.3"' in result.value.backup.content
        assert not backup_path_for(path).exists()

    def test_missing_file_is_skipped(self, tmp_path: Path) -> None:
        console = MockConsole()
        result = update_version_in_file(tmp_path / "VERSION", "", "1.3.0", console=console)
        assert isinstance(result, Ok)
        assert result.value.status == "skipped"
        assert console.has_warning()

    def test_invalid_version_touches_nothing(self, tmp_path: Path) -> None:
        path = _package_json(tmp_path)
        before = path.read_bytes()

        result = update_version_in_file(path, "version", "v1.3.0")
        assert isinstance(result, Err)
        assert result.error.kind == "invalid_version"
        assert path.read_bytes() == before

    def test_unsupported_file_type(self, tmp_path: Path) -> None:
        path = tmp_path / "Cargo.toml"
        path.write_text('version = "1.2.3"\n', encoding="utf-8")
        result = update_version_in_file(path, "package.version", "1.3.0")
        assert isinstance(result, Err)
        assert result.error.kind == "unsupported_file_type"

    def test_failed_apply_restores_original(self, tmp_path: Path) -> None:
        path = tmp_path / "app.config.js"
        path.write_text("export default { name: 'app' };\n", encoding="utf-8")
        before = path.read_bytes()

        result = update_version_in_file(path, "expo.version", "1.3.0")
        assert isinstance(result, Err)
        assert result.error.kind == "update_failed"
        assert path.read_bytes() == before
        assert not backup_path_for(path).exists()

    def test_failed_write_restores_original(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        path = _package_json(tmp_path)
        before = path.read_bytes()

        def broken_write(_path: Path, _content: str, *, encoding: str = "utf-8") -> None:
            raise OSError("disk full")

        monkeypatch.setattr(updater_mod, "atomic_write_text", broken_write)
        result = update_version_in_file(path, "version", "1.3.0")

        assert isinstance(result, Err)
        assert result.error.kind == "write_failed"
        assert path.read_bytes() == before

    def test_stale_backup_is_kept(self, tmp_path: Path) -> None:
        path = _package_json(tmp_path, "1.3.0")
        stale = backup_path_for(path)
        stale.write_text('{"name": "app", "version": "1.2.3"}\n', encoding="utf-8")
        before = path.read_bytes()

        result = update_version_in_file(path, "version", "1.4.0")

        assert isinstance(result, Err)
        assert result.error.kind == "backup_exists"
        assert path.read_bytes() == before
        assert '"1.2.3"' in stale.read_text(encoding="utf-8")

    def test_idempotent(self, tmp_path: Path) -> None:
        path = _package_json(tmp_path)
        update_version_in_file(path, "version", "1.3.0")
        once = path.read_bytes()
        update_version_in_file(path, "version", "1.3.0")
        assert path.read_bytes() == once


class TestUpdateAll:
    def test_updates_all_and_skips_missing(self, tmp_path: Path) -> None:
        _package_json(tmp_path)
        _app_config(tmp_path)
        console = MockConsole()

        result = update_all_version_files("1.3.0", SPECS, repo_root=tmp_path, console=console)

        assert isinstance(result, Ok)
        report = result.value
        assert report.updated == (tmp_path / "package.json", tmp_path / "app.config.js")
        assert report.skipped == (tmp_path / "VERSION",)
        assert len(report.backups) == 2
        assert 'version: "1.3.0"' in (tmp_path / "app.config.js").read_text(encoding="utf-8")

    def test_not_fail_fast(self, tmp_path: Path) -> None:
        (tmp_path / "package.json").write_text("{broken", encoding="utf-8")
        _app_config(tmp_path)
        (tmp_path / "VERSION").write_text("1.2.3\n", encoding="utf-8")
        console = MockConsole()

        result = update_all_version_files("1.3.0", SPECS, repo_root=tmp_path, console=console)

        assert isinstance(result, Err)
        assert result.error.kind == "batch_failed"
        report = result.error.report
        assert report is not None
        assert report.failed_paths == (tmp_path / "package.json",)
        assert report.updated == (tmp_path / "app.config.js", tmp_path / "VERSION")
        assert (tmp_path / "VERSION").read_text(encoding="utf-8") == "1.3.0\n"
        assert (tmp_path / "package.json").read_text(encoding="utf-8") == "{broken"

    def test_no_specs(self, tmp_path: Path) -> None:
        result = update_all_version_files("1.3.0", (), repo_root=tmp_path, console=MockConsole())
        assert isinstance(result, Err)
        assert result.error.kind == "no_version_files"

    def test_invalid_version(self, tmp_path: Path) -> None:
        path = _package_json(tmp_path)
        result = update_all_version_files("1.3", SPECS, repo_root=tmp_path, console=MockConsole())
        assert isinstance(result, Err)
        assert result.error.kind == "invalid_version"
        assert '"1.2.3"' in path.read_text(encoding="utf-8")


class TestVerify:
    def test_all_match(self, tmp_path: Path) -> None:
        _package_json(tmp_path, "2.0.0")
        _app_config(tmp_path, "2.0.0")

        result = verify_all_version_updates("2.0.0", SPECS, repo_root=tmp_path, console=MockConsole())
        assert isinstance(result, Ok)
        assert len(result.value.checked) == 2
        assert result.value.skipped == (tmp_path / "VERSION",)

    def test_reports_mismatches(self, tmp_path: Path) -> None:
        _package_json(tmp_path, "2.0.0")
        _app_config(tmp_path, "1.9.0")

        result = verify_all_version_updates("2.0.0", SPECS, repo_root=tmp_path, console=MockConsole())
        assert isinstance(result, Err)
        (mismatch,) = result.error.mismatches
        assert mismatch.path == tmp_path / "app.config.js"
        assert mismatch.actual == "1.9.0"
        assert "expected 2.0.0" in mismatch.describe()


class TestRollback:
    def test_restores_in_memory_backups(self, tmp_path: Path) -> None:
        path = _package_json(tmp_path)
        original = path.read_bytes()
        report = update_all_version_files(
            "1.3.0", SPECS[:1], repo_root=tmp_path, console=MockConsole()
        ).unwrap()

        console = MockConsole()
        rolled = rollback_all_version_changes(
            SPECS[:1], repo_root=tmp_path, console=console, backups=report.backups
        )
        assert rolled.restored == (path,)
        assert path.read_bytes() == original

    def test_restores_leftover_bak_files(self, tmp_path: Path) -> None:
        path = tmp_path / "VERSION"
        path.write_text("1.3.0\n", encoding="utf-8")
        backup_path_for(path).write_text("1.2.3\n", encoding="utf-8")

        rolled = rollback_all_version_changes(SPECS, repo_root=tmp_path, console=MockConsole())
        assert rolled.restored == (path,)
        assert path.read_text(encoding="utf-8") == "1.2.3\n"
        assert not backup_path_for(path).exists()

    def test_leftovers_can_be_left_alone(self, tmp_path: Path) -> None:
        path = tmp_path / "VERSION"
        path.write_text("1.3.0\n", encoding="utf-8")
        backup_path_for(path).write_text("1.2.3\n", encoding="utf-8")

        rollback_all_version_changes(SPECS, repo_root=tmp_path, console=MockConsole(), leftovers=False)
        assert path.read_text(encoding="utf-8") == "1.3.0\n"
        assert backup_path_for(path).exists()

    def test_nothing_to_roll_back_is_idempotent(self, tmp_path: Path) -> None:
        _package_json(tmp_path)
        console = MockConsole()

        first = rollback_all_version_changes(SPECS, repo_root=tmp_path, console=console)
        second = rollback_all_version_changes(SPECS, repo_root=tmp_path, console=console)

        assert first.nothing_to_roll_back
        assert second.nothing_to_roll_back
        assert len(console.find("nothing to roll back")) == 2

    def test_restore_failure_is_reported(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        path = _package_json(tmp_path)
        backup = BackupRecord(path=path, content=b"{}", backup_path=backup_path_for(path))

        def broken_write(_path: Path, _content: bytes) -> None:
            raise OSError("read-only")

        monkeypatch.setattr(updater_mod, "atomic_write_bytes", broken_write)
        console = MockConsole()
        rolled = rollback_all_version_changes(
            (), repo_root=tmp_path, console=console, backups=(backup,)
        )
        assert rolled.failed[0].path == path
        assert console.has_error()


class TestCurrentVersion:
    def test_first_existing_file(self, tmp_path: Path) -> None:
        _app_config(tmp_path, "0.9.0")
        assert current_version(SPECS, repo_root=tmp_path) == Ok("0.9.0")

    def test_no_files(self, tmp_path: Path) -> None:
        result = current_version(SPECS, repo_root=tmp_path)
        assert isinstance(result, Err)
        assert result.error.kind == "no_version_files"

    def test_invalid_content(self, tmp_path: Path) -> None:
        (tmp_path / "VERSION").write_text("next\n", encoding="utf-8")
        result = current_version(SPECS, repo_root=tmp_path)
        assert isinstance(result, Err)
        assert result.error.kind == "invalid_version"
