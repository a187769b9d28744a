"""Check suite models: declarations, results and consistency reports."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class CheckOutcome(str, Enum):
    """Result signal of a single check invocation."""

    PASSED = "passed"
    FAILED = "failed"
    ABORTED = "aborted"


class CheckSpec(BaseModel):
    """Declaration of a named check.

    Exactly one spec in a registry has ``is_aggregate`` set; it is the
    "run everything" entry.  ``in_aggregate`` controls whether a regular
    check is part of the aggregate body when no explicit order is given.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ""
    is_aggregate: bool = False
    in_aggregate: bool = True


class CheckResult(BaseModel):
    """Outcome of one check invocation within a suite run."""

    model_config = ConfigDict(frozen=True)

    name: str
    outcome: CheckOutcome
    exit_code: int = 0
    duration_seconds: float = 0.0


class CiReference(BaseModel):
    """A CI job invoking the suite runner with a given check name."""

    model_config = ConfigDict(frozen=True)

    job_id: str
    check_name: str


class CheckMembership(BaseModel):
    """Where a check name appears across the three sources of truth."""

    model_config = ConfigDict(frozen=True)

    name: str
    declared: bool
    in_aggregate: bool
    ci_jobs: list[str] = []

    @property
    def declared_in_ci(self) -> bool:
        return bool(self.ci_jobs)


class ConsistencyReport(BaseModel):
    """Result of comparing declared, aggregate and CI check names."""

    model_config = ConfigDict(frozen=True)

    declared: list[str]
    aggregate: list[str]
    ci_referenced: list[str]
    memberships: list[CheckMembership]
    aggregate_diff: str = ""
    missing_from_ci: list[str] = []
    undeclared_in_ci: list[str] = []

    @property
    def is_consistent(self) -> bool:
        return not (self.aggregate_diff or self.missing_from_ci or self.undeclared_in_ci)
