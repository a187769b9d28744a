"""lockstep data models: Pydantic v2."""

from lockstep.models.checks import (
    CheckMembership,
    CheckOutcome,
    CheckResult,
    CheckSpec,
    CiReference,
    ConsistencyReport,
)
from lockstep.models.pipeline import (
    VALID_TRANSITIONS,
    InvalidTransitionError,
    PipelineReport,
    PipelineRun,
    PipelineStage,
    SnapshotName,
    SnapshotReport,
    StageTransition,
)

__all__ = [
    # checks
    "CheckOutcome",
    "CheckSpec",
    "CheckResult",
    "CiReference",
    "CheckMembership",
    "ConsistencyReport",
    # pipeline
    "PipelineStage",
    "SnapshotName",
    "VALID_TRANSITIONS",
    "InvalidTransitionError",
    "StageTransition",
    "PipelineRun",
    "SnapshotReport",
    "PipelineReport",
]
