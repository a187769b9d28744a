"""Default check catalog for a cargo project.

``build_registry`` assembles the registry once at startup: the command
checks below, the ``self`` consistency check and the aggregate.  The CI
workflow must run each of them by name (``lockstep check <name>``).
"""

from __future__ import annotations

import logging
from pathlib import Path

from lockstep.checks.base import BaseCheck, CommandCheck
from lockstep.config import LockstepSettings
from lockstep.core.consistency import SELF_CHECK_NAME, ConsistencyChecker
from lockstep.core.registry import CheckRegistry
from lockstep.core.shell import run_command
from lockstep.core.vcs import GitRepository, WorkingTreeGate

logger = logging.getLogger(__name__)

_SKIP_DIRS = frozenset({".git", "target", "node_modules"})


class SelfCheck(BaseCheck):
    """Declared checks, the aggregate body and CI jobs must all agree."""

    def __init__(self, checker: ConsistencyChecker) -> None:
        self._checker = checker

    @property
    def name(self) -> str:
        return SELF_CHECK_NAME

    @property
    def description(self) -> str:
        return "Registry, aggregate and CI workflow name the same checks."

    def execute(self) -> None:
        self._checker.assert_consistent()


class ShellcheckCheck(BaseCheck):
    """Run shellcheck over every shell script in the project."""

    def __init__(self, root: Path, binary: str = "shellcheck") -> None:
        self.root = Path(root)
        self.binary = binary

    @property
    def name(self) -> str:
        return "shellcheck"

    @property
    def description(self) -> str:
        return "Lint shell scripts with shellcheck."

    def scripts(self) -> list[Path]:
        return sorted(
            p.relative_to(self.root)
            for p in self.root.rglob("*.sh")
            if not _SKIP_DIRS.intersection(p.relative_to(self.root).parts)
        )

    def execute(self) -> None:
        scripts = self.scripts()
        if not scripts:
            logger.info("No shell scripts found; nothing to check")
            return
        run_command([self.binary, *map(str, scripts)], cwd=self.root)


def build_registry(
    settings: LockstepSettings,
    *,
    repo: GitRepository | None = None,
) -> CheckRegistry:
    """Build the registry of every check known to lockstep."""
    root = settings.project_root
    cargo = settings.package_manager
    gate = WorkingTreeGate(repo or GitRepository(root))
    registry = CheckRegistry(
        aggregate_name=settings.aggregate_name,
        aggregate_order=settings.aggregate_order,
    )

    checks: list[BaseCheck] = [
        CommandCheck(
            "cargo_test",
            [[cargo, "test", "--all-targets"]],
            root,
            description="Run the test suite.",
        ),
        CommandCheck(
            "release",
            [[cargo, "build", "--release", "--target", "x86_64-unknown-linux-musl"]],
            root,
            description="Build a static release binary.",
        ),
        CommandCheck(
            "fmt",
            [[cargo, "fmt", "--all", "--", "--check"]],
            root,
            description="Verify formatting with rustfmt.",
        ),
        CommandCheck(
            "shear",
            [[cargo, "shear", "--fix"]],
            root,
            description="Detect unused dependencies.",
            gate=gate,
            clean_paths=[settings.manifest],
        ),
        ShellcheckCheck(root),
        CommandCheck(
            "markdown",
            [["markdownlint-cli2", "**/*.md", "#target", "#node_modules"]],
            root,
            description="Lint markdown documents.",
        ),
        CommandCheck(
            "ci",
            [["actionlint", str(settings.ci_config)]],
            root,
            description="Lint the CI workflow.",
        ),
        CommandCheck(
            "clippy",
            [[cargo, "clippy", "--all-targets", "--", "-D", "warnings"]],
            root,
            description="Lint with clippy, warnings are errors.",
        ),
        CommandCheck(
            "audit",
            [[cargo, "audit"]],
            root,
            description="Check dependencies against the advisory database.",
        ),
        CommandCheck(
            "no_default_features",
            [[cargo, "build", "--no-default-features"]],
            root,
            description="Build without default features.",
        ),
    ]
    for check in checks:
        registry.register(check.spec, check)

    checker = ConsistencyChecker(registry, settings.ci_config, settings.runner_invocation)
    self_check = SelfCheck(checker)
    registry.register(self_check.spec, self_check)
    return registry
