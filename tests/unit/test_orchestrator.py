"""Unit tests for the UpgradeOrchestrator (real git, fake package manager)."""

from __future__ import annotations

from pathlib import Path

import pytest
from conftest import (
    LOCKFILE_V1,
    MANIFEST_V1,
    FakeInspector,
    FakePackageManager,
    FakeRunner,
    commit_count,
    git,
)

from lockstep.config import LockstepSettings
from lockstep.core.errors import PreconditionViolation, ValidationFailure
from lockstep.core.orchestrator import UpgradeOrchestrator, UpgradeValidationError
from lockstep.core.package_manager import Cargo
from lockstep.core.process_guard import ProcessInfo, ProcessSettlementError
from lockstep.core.snapshots import SnapshotError
from lockstep.models.pipeline import PipelineStage

LOCKFILE_PATCHED = LOCKFILE_V1.replace("1.0.100", "1.0.101")
LOCKFILE_MINOR = LOCKFILE_V1.replace("1.0.100", "1.1.0")
MANIFEST_MINOR = MANIFEST_V1.replace("1.0.100", "1.1.0")


class TestOrchestratorConstruction:
    def test_from_settings(self, tmp_path: Path):
        settings = LockstepSettings(project_root=tmp_path, settle_max_attempts=7)
        orch = UpgradeOrchestrator.from_settings(settings, FakeRunner())
        assert isinstance(orch.package_manager, Cargo)
        assert orch.guard.max_attempts == 7
        assert orch.manifest == tmp_path / "Cargo.toml"
        assert orch.snapshots.root == tmp_path / "target" / "dependency-snapshots"


class TestOrchestratorRun:
    def test_no_changes_no_commits(self, git_repo: Path, make_orchestrator):
        pm = FakePackageManager(git_repo)
        runner = FakeRunner()
        report = make_orchestrator(pm, runner).run()

        assert report.commits == []
        assert report.new_commit_count == 0
        assert runner.calls == 0
        assert pm.calls == ["vendor", "update", "upgrade"]
        assert list(report.snapshots.sizes) == ["before"]

    def test_minor_update_only(self, git_repo: Path, make_orchestrator):
        pm = FakePackageManager(git_repo, update_writes={"Cargo.lock": LOCKFILE_PATCHED})
        runner = FakeRunner()
        orch = make_orchestrator(pm, runner)
        report = orch.run()

        assert report.commits == ["cargo update"]
        assert report.new_commit_count == 1
        assert commit_count(git_repo) == 2
        assert runner.calls == 1
        assert set(report.snapshots.sizes) == {"before", "after_update"}
        assert orch.current_run.stage == PipelineStage.DONE
        assert orch.current_run.snapshots == {
            "before": True,
            "after_update": True,
            "after_upgrade": False,
        }

    def test_both_stages_commit(self, git_repo: Path, make_orchestrator):
        pm = FakePackageManager(
            git_repo,
            update_writes={"Cargo.lock": LOCKFILE_PATCHED},
            upgrade_writes={"Cargo.toml": MANIFEST_MINOR, "Cargo.lock": LOCKFILE_MINOR},
        )
        report = make_orchestrator(pm).run()

        assert report.commits == ["cargo update", "cargo upgrade"]
        assert report.new_commit_count == 2
        assert git(git_repo, "log", "-1", "--name-only", "--format=").split() == [
            "Cargo.lock",
            "Cargo.toml",
        ]
        assert len(report.snapshots.diff_commands) == 2

    def test_lockfile_staged_before_validation(self, git_repo: Path, make_orchestrator):
        staged: list[str] = []
        runner = FakeRunner(
            on_run=lambda: staged.append(git(git_repo, "diff", "--cached", "--name-only").strip())
        )
        pm = FakePackageManager(git_repo, update_writes={"Cargo.lock": LOCKFILE_PATCHED})
        make_orchestrator(pm, runner).run()
        assert staged == ["Cargo.lock"]

    def test_dirty_tree_aborts_before_anything(self, git_repo: Path, make_orchestrator):
        (git_repo / "scratch.txt").write_text("wip")
        pm = FakePackageManager(git_repo, update_writes={"Cargo.lock": LOCKFILE_PATCHED})
        orch = make_orchestrator(pm)

        with pytest.raises(PreconditionViolation):
            orch.run()
        assert pm.calls == []
        assert orch.current_run is None
        assert commit_count(git_repo) == 1

    def test_validation_failure_after_update(self, git_repo: Path, make_orchestrator):
        pm = FakePackageManager(
            git_repo,
            update_writes={"Cargo.lock": LOCKFILE_PATCHED},
            upgrade_writes={"Cargo.toml": MANIFEST_MINOR},
        )
        orch = make_orchestrator(pm, FakeRunner(fail_on_call=1))

        with pytest.raises(UpgradeValidationError) as excinfo:
            orch.run()
        assert isinstance(excinfo.value, ValidationFailure)
        assert excinfo.value.exit_code == 9
        assert "commit manually" in excinfo.value.hint
        assert "upgrade" not in pm.calls
        assert commit_count(git_repo) == 1
        assert (git_repo / "Cargo.lock").read_text() == LOCKFILE_PATCHED
        assert orch.current_run.stage == PipelineStage.ABORTED

    def test_validation_failure_after_upgrade_keeps_minor_commit(
        self, git_repo: Path, make_orchestrator
    ):
        pm = FakePackageManager(
            git_repo,
            update_writes={"Cargo.lock": LOCKFILE_PATCHED},
            upgrade_writes={"Cargo.toml": MANIFEST_MINOR},
        )
        with pytest.raises(UpgradeValidationError):
            make_orchestrator(pm, FakeRunner(fail_on_call=2)).run()
        assert commit_count(git_repo) == 2
        assert git(git_repo, "log", "-1", "--format=%s").strip() == "cargo update"
        assert (git_repo / "Cargo.toml").read_text() == MANIFEST_MINOR

    def test_unsettled_processes_abort(self, git_repo: Path, make_orchestrator):
        pm = FakePackageManager(git_repo)
        inspector = FakeInspector(forever=ProcessInfo(pid=7, name="cargo"))
        with pytest.raises(ProcessSettlementError):
            make_orchestrator(pm, inspector=inspector).run()
        assert inspector.calls == 3
        assert pm.calls == []

    def test_stale_snapshots_removed(self, git_repo: Path, tmp_path: Path, make_orchestrator):
        stale = tmp_path / "snapshots" / "vendor_after_upgrade"
        stale.mkdir(parents=True)
        report = make_orchestrator(FakePackageManager(git_repo)).run()
        assert not stale.exists()
        assert "after_upgrade" not in report.snapshots.sizes

    def test_snapshot_fault_aborts_run(self, git_repo: Path, tmp_path: Path, make_orchestrator):
        (tmp_path / "snapshots").write_text("")
        pm = FakePackageManager(git_repo, update_writes={"Cargo.lock": LOCKFILE_PATCHED})
        orch = make_orchestrator(pm)
        with pytest.raises(SnapshotError):
            orch.run()
        assert orch.current_run.stage == PipelineStage.ABORTED
        assert pm.calls == []
        assert commit_count(git_repo) == 1
