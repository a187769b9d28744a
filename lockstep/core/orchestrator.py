"""Dependency upgrade orchestrator: the two-stage, check-gated pipeline.

Stages, in order:

    preflight        working tree must be clean, background workers settled
    snapshot_before  stale snapshots removed, "before" captured
    minor_update     update within existing manifest constraints
    minor_commit     (lockfile changed) stage, run checks, commit, snapshot
    major_upgrade    relax manifest constraints to the latest allowed
    major_commit     (manifest changed) stage, run checks, commit, snapshot
    report           snapshot sizes, diff commands, new commit count

The minor update is committed before the major upgrade starts.  Any
failure is fatal; nothing is retried and nothing is reverted.  A failed
validation leaves the change applied but uncommitted for the operator to
fix.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Protocol

from lockstep.config import LockstepSettings
from lockstep.core.errors import LockstepError, ValidationFailure
from lockstep.core.package_manager import Cargo, PackageManager
from lockstep.core.process_guard import (
    ProcessInspector,
    PsutilProcessInspector,
    SettlementGuard,
)
from lockstep.core.snapshots import SnapshotStore
from lockstep.core.vcs import GitRepository, WorkingTreeGate
from lockstep.models.pipeline import (
    PipelineReport,
    PipelineRun,
    PipelineStage,
    SnapshotName,
)

logger = logging.getLogger(__name__)


class UpgradeValidationError(ValidationFailure):
    """Raised when the check suite fails after a dependency mutation."""


class AggregateRunner(Protocol):
    """The commit gate: runs the aggregate check, raising on failure."""

    def run_aggregate(self) -> Any:
        ...


class UpgradeOrchestrator:
    """Runs the update-then-upgrade pipeline.

    Parameters
    ----------
    repo:
        Git repository of the project.
    package_manager:
        Performs ``update``, ``upgrade`` and ``vendor``.
    guard:
        Settlement guard awaited after every mutating operation.
    runner:
        Commit gate; its aggregate must pass before each commit.
    snapshots:
        Dependency snapshot store.
    manifest, lockfile:
        Paths of the dependency manifest and lockfile.
    minor_commit_message, major_commit_message:
        Fixed commit messages of the two stages.
    """

    def __init__(
        self,
        *,
        repo: GitRepository,
        package_manager: PackageManager,
        guard: SettlementGuard,
        runner: AggregateRunner,
        snapshots: SnapshotStore,
        manifest: Path,
        lockfile: Path,
        minor_commit_message: str = "cargo update",
        major_commit_message: str = "cargo upgrade",
    ) -> None:
        self.repo = repo
        self.gate = WorkingTreeGate(repo)
        self.package_manager = package_manager
        self.guard = guard
        self.runner = runner
        self.snapshots = snapshots
        self.manifest = Path(manifest)
        self.lockfile = Path(lockfile)
        self.minor_commit_message = minor_commit_message
        self.major_commit_message = major_commit_message
        self.current_run: PipelineRun | None = None

    @classmethod
    def from_settings(
        cls,
        settings: LockstepSettings,
        runner: AggregateRunner,
        *,
        inspector: ProcessInspector | None = None,
    ) -> UpgradeOrchestrator:
        """Wire an orchestrator for a cargo project from *settings*."""
        package_manager = Cargo(settings.project_root, settings.package_manager)
        return cls(
            repo=GitRepository(settings.project_root),
            package_manager=package_manager,
            guard=SettlementGuard(
                inspector or PsutilProcessInspector(),
                settings.process_name,
                max_attempts=settings.settle_max_attempts,
                poll_interval=settings.settle_poll_interval,
            ),
            runner=runner,
            snapshots=SnapshotStore(
                package_manager, settings.snapshots_dir, settings.snapshot_prefix
            ),
            manifest=settings.manifest,
            lockfile=settings.lockfile,
            minor_commit_message=settings.minor_commit_message,
            major_commit_message=settings.major_commit_message,
        )

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def run(self) -> PipelineReport:
        """Execute the whole pipeline and return its report.

        Raises a ``LockstepError`` subclass on any fatal condition.
        """
        self.gate.assert_clean()
        self.guard.await_settlement()

        run = PipelineRun(unpushed_commit_count_before=self.repo.unpushed_commit_count())
        self.current_run = run
        logger.info(
            "Starting upgrade run %s (%d unpushed commits)",
            run.run_id,
            run.unpushed_commit_count_before,
        )
        try:
            return self._execute(run)
        except LockstepError as exc:
            run.advance(PipelineStage.ABORTED, reason=exc.message)
            logger.error("Run %s aborted: %s", run.run_id, exc.message)
            raise

    def _execute(self, run: PipelineRun) -> PipelineReport:
        run.advance(PipelineStage.SNAPSHOT_BEFORE)
        self.snapshots.clear()
        self._capture(run, SnapshotName.BEFORE)

        # Minor update: resolve within the existing manifest constraints.
        run.advance(PipelineStage.MINOR_UPDATE)
        self.package_manager.update()
        self.guard.await_settlement()
        if self.repo.has_changes(self.lockfile):
            run.advance(PipelineStage.MINOR_COMMIT)
            self.repo.stage(self.lockfile)
            self._validate("minor update")
            self._commit(run, self.minor_commit_message)
            self._capture(run, SnapshotName.AFTER_UPDATE)
        else:
            logger.info("Lockfile unchanged by update; skipping minor commit")

        # Major upgrade: relax manifest constraints.
        run.advance(PipelineStage.MAJOR_UPGRADE)
        self.package_manager.upgrade()
        self.guard.await_settlement()
        if self.repo.has_changes(self.manifest):
            run.advance(PipelineStage.MAJOR_COMMIT)
            self.repo.stage(*[p for p in (self.manifest, self.lockfile) if self.repo.has_changes(p)])
            self._validate("major upgrade")
            self._commit(run, self.major_commit_message)
            self._capture(run, SnapshotName.AFTER_UPGRADE)
        else:
            logger.info("Manifest unchanged by upgrade; skipping major commit")

        run.advance(PipelineStage.REPORT)
        report = PipelineReport(
            run_id=run.run_id,
            commits=list(run.commits),
            unpushed_before=run.unpushed_commit_count_before,
            unpushed_after=self.repo.unpushed_commit_count(),
            snapshots=self.snapshots.report(),
        )
        run.advance(PipelineStage.DONE)
        logger.info("Run %s done: %d new commit(s)", run.run_id, report.new_commit_count)
        return report

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _validate(self, what: str) -> None:
        try:
            self.runner.run_aggregate()
        except LockstepError as exc:
            raise UpgradeValidationError(
                f"Checks failed after the {what}: {exc.message}",
                hint=(
                    f"The {what} is applied but not committed. "
                    "Fix the failures, then commit manually."
                ),
            ) from exc

    def _commit(self, run: PipelineRun, message: str) -> None:
        self.repo.commit(message)
        run.commits.append(message)
        self.guard.await_settlement()

    def _capture(self, run: PipelineRun, name: SnapshotName) -> None:
        self.snapshots.capture(name)
        run.snapshots[name.value] = True
