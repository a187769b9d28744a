"""Base classes for suite checks.

Every concrete check implements ``execute()``.  ``__call__`` is the
invocation the registry stores: it wraps ``execute`` with logging and must
not be overridden.
"""

from __future__ import annotations

import abc
import logging
from pathlib import Path
from typing import ClassVar, final

from lockstep.core.shell import run_command
from lockstep.core.vcs import WorkingTreeGate
from lockstep.models.checks import CheckSpec

logger = logging.getLogger(__name__)


class BaseCheck(abc.ABC):
    """Abstract base for all lockstep checks.

    Subclasses **must** implement ``name``, ``description`` and
    ``execute()``.  Set ``in_aggregate = False`` to leave a check out of
    the aggregate body (the self-consistency check will then flag it).
    """

    in_aggregate: ClassVar[bool] = True

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """Unique check name used on the command line and in CI."""
        ...

    @property
    @abc.abstractmethod
    def description(self) -> str:
        ...

    @abc.abstractmethod
    def execute(self) -> None:
        """Run the check.  Raise a ``LockstepError`` subclass on failure."""
        ...

    @property
    def spec(self) -> CheckSpec:
        return CheckSpec(
            name=self.name,
            description=self.description,
            in_aggregate=self.in_aggregate,
        )

    @final
    def __call__(self) -> None:
        logger.debug("%s: %s", self.name, self.description)
        self.execute()


class CommandCheck(BaseCheck):
    """Check that runs one or more external commands in the project root.

    Parameters
    ----------
    name:
        Check name.
    commands:
        Commands to run in order; the first non-zero exit fails the check.
    root:
        Project root used as working directory.
    description:
        Human-readable summary.
    gate:
        Working-tree gate for ``clean_paths``.
    clean_paths:
        Paths that must have no unstaged edits before and after the
        commands run.  Used for tools that rewrite manifests in place, so
        uncommitted manifest edits are never destroyed and any rewrite
        the tool makes is reported as a failure.
    """

    def __init__(
        self,
        name: str,
        commands: list[list[str]],
        root: Path,
        *,
        description: str = "",
        gate: WorkingTreeGate | None = None,
        clean_paths: list[Path] | None = None,
    ) -> None:
        if clean_paths and gate is None:
            raise ValueError(f"Check '{name}' has clean_paths but no working-tree gate.")
        self._name = name
        self._description = description or " && ".join(" ".join(c) for c in commands)
        self.commands = [list(c) for c in commands]
        self.root = Path(root)
        self._gate = gate
        self.clean_paths = list(clean_paths or [])

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return self._description

    def _assert_clean(self) -> None:
        for path in self.clean_paths:
            self._gate.assert_clean(path, staged_ok=True)

    def execute(self) -> None:
        self._assert_clean()
        for argv in self.commands:
            run_command(argv, cwd=self.root)
        self._assert_clean()
