"""Upgrade pipeline models: stages, transitions and run state (not persisted)."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class InvalidTransitionError(RuntimeError):
    """Raised when a requested stage transition is not valid."""


class PipelineStage(str, Enum):
    """Stages of a single upgrade pipeline run."""

    PREFLIGHT = "preflight"
    SNAPSHOT_BEFORE = "snapshot_before"
    MINOR_UPDATE = "minor_update"
    MINOR_COMMIT = "minor_commit"
    MAJOR_UPGRADE = "major_upgrade"
    MAJOR_COMMIT = "major_commit"
    REPORT = "report"
    DONE = "done"
    ABORTED = "aborted"


class SnapshotName(str, Enum):
    """Checkpoints at which the resolved dependency tree is captured."""

    BEFORE = "before"
    AFTER_UPDATE = "after_update"
    AFTER_UPGRADE = "after_upgrade"


# Linear pipeline with skip arcs when a stage changes nothing.
# Every non-terminal stage may abort.
_ABORT = PipelineStage.ABORTED

VALID_TRANSITIONS: dict[PipelineStage, set[PipelineStage]] = {
    PipelineStage.PREFLIGHT: {PipelineStage.SNAPSHOT_BEFORE, _ABORT},
    PipelineStage.SNAPSHOT_BEFORE: {PipelineStage.MINOR_UPDATE, _ABORT},
    PipelineStage.MINOR_UPDATE: {
        PipelineStage.MINOR_COMMIT,
        PipelineStage.MAJOR_UPGRADE,  # lockfile unchanged
        _ABORT,
    },
    PipelineStage.MINOR_COMMIT: {PipelineStage.MAJOR_UPGRADE, _ABORT},
    PipelineStage.MAJOR_UPGRADE: {
        PipelineStage.MAJOR_COMMIT,
        PipelineStage.REPORT,  # manifest unchanged
        _ABORT,
    },
    PipelineStage.MAJOR_COMMIT: {PipelineStage.REPORT, _ABORT},
    PipelineStage.REPORT: {PipelineStage.DONE, _ABORT},
    PipelineStage.DONE: set(),  # terminal
    PipelineStage.ABORTED: set(),  # terminal
}


class StageTransition(BaseModel):
    """Records a single stage transition of a run."""

    model_config = ConfigDict(frozen=True)

    from_stage: PipelineStage
    to_stage: PipelineStage
    at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    reason: str | None = None


class PipelineRun(BaseModel):
    """In-memory state of one orchestrator execution.

    Created after the working-tree gate passes, mutated once per stage
    transition and discarded at exit.
    """

    run_id: str = Field(
        default_factory=lambda: f"ls-{datetime.now(timezone.utc):%Y%m%d-%H%M%S}-{uuid.uuid4().hex[:4]}"
    )
    stage: PipelineStage = PipelineStage.PREFLIGHT
    unpushed_commit_count_before: int = 0
    snapshots: dict[str, bool] = Field(
        default_factory=lambda: {name.value: False for name in SnapshotName}
    )
    commits: list[str] = Field(default_factory=list)
    history: list[StageTransition] = Field(default_factory=list)

    def advance(self, target: PipelineStage, reason: str | None = None) -> StageTransition:
        """Move to *target*, validating against ``VALID_TRANSITIONS``."""
        allowed = VALID_TRANSITIONS.get(self.stage, set())
        if target not in allowed:
            raise InvalidTransitionError(
                f"Cannot transition from {self.stage.value} to {target.value}. "
                f"Allowed: {sorted(s.value for s in allowed)}"
            )
        transition = StageTransition(from_stage=self.stage, to_stage=target, reason=reason)
        self.history.append(transition)
        self.stage = target
        return transition


class SnapshotReport(BaseModel):
    """Which snapshots exist, their sizes and suggested diff commands."""

    model_config = ConfigDict(frozen=True)

    sizes: dict[str, int]
    diff_commands: list[str]


class PipelineReport(BaseModel):
    """Final summary returned by the orchestrator."""

    model_config = ConfigDict(frozen=True)

    run_id: str
    commits: list[str]
    unpushed_before: int
    unpushed_after: int
    snapshots: SnapshotReport

    @property
    def new_commit_count(self) -> int:
        return self.unpushed_after - self.unpushed_before
