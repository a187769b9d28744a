"""Read-only parsing of the CI workflow for suite-runner invocations.

The workflow is loaded as structured YAML.  For every job, each step's
``run`` script is split into lines and shell tokens; wherever the runner
invocation appears (e.g. ``lockstep check``), the following tokens up to
the next shell operator are the check names that job runs.
"""

from __future__ import annotations

import logging
import re
import shlex
from pathlib import Path
from typing import Any

import yaml

from lockstep.core.errors import ConsistencyViolation
from lockstep.models.checks import CiReference

logger = logging.getLogger(__name__)

_SHELL_OPERATORS = frozenset({"&&", "||", ";", "|", "&", ">", ">>", "<", "2>&1"})
_CONTINUATION = re.compile(r"\\\r?\n")


def load_workflow(path: Path) -> dict[str, Any]:
    """Load the CI workflow at *path* as a mapping."""
    if not path.is_file():
        raise ConsistencyViolation(
            f"CI configuration not found at {path}.",
            hint="Every check must be run by a CI job; create the workflow first.",
        )
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConsistencyViolation(f"CI configuration {path} is not valid YAML: {exc}") from exc
    if not isinstance(data, dict):
        raise ConsistencyViolation(f"CI configuration {path}: root must be a mapping.")
    return data


def _run_scripts(job: Any) -> list[str]:
    if not isinstance(job, dict):
        return []
    steps = job.get("steps") or []
    return [
        step["run"]
        for step in steps
        if isinstance(step, dict) and isinstance(step.get("run"), str)
    ]


def _split(line: str) -> list[str]:
    try:
        return shlex.split(line, comments=True)
    except ValueError:
        logger.warning("Skipping unparsable CI command line: %s", line)
        return []


def extract_check_names(script: str, runner_invocation: str) -> list[str]:
    """Return the check names passed to *runner_invocation* in *script*."""
    prefix = shlex.split(runner_invocation)
    width = len(prefix)
    names: list[str] = []
    # a trailing backslash continues the command on the next line
    for line in _CONTINUATION.sub(" ", script).splitlines():
        tokens = _split(line)
        i = 0
        while i <= len(tokens) - width:
            if tokens[i : i + width] != prefix:
                i += 1
                continue
            i += width
            while i < len(tokens) and tokens[i] not in _SHELL_OPERATORS:
                if not tokens[i].startswith("-"):
                    names.append(tokens[i])
                i += 1
    return names


def find_references(path: Path, runner_invocation: str) -> list[CiReference]:
    """List every (job, check name) pair the workflow at *path* invokes."""
    workflow = load_workflow(path)
    jobs = workflow.get("jobs") or {}
    if not isinstance(jobs, dict):
        raise ConsistencyViolation(f"CI configuration {path}: 'jobs' must be a mapping.")

    refs: list[CiReference] = []
    for job_id, job in jobs.items():
        for script in _run_scripts(job):
            for name in extract_check_names(script, runner_invocation):
                refs.append(CiReference(job_id=str(job_id), check_name=name))
    logger.debug("Found %d runner invocations in %s", len(refs), path)
    return refs
