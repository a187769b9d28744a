"""Package manager operations the pipeline depends on."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol, runtime_checkable

from lockstep.core.shell import run_command

logger = logging.getLogger(__name__)


@runtime_checkable
class PackageManager(Protocol):
    """Operations consumed by the snapshot store and the orchestrator."""

    def vendor(self, dest: Path) -> None:
        """Materialize every resolved dependency into *dest*."""
        ...

    def update(self) -> None:
        """Update the lockfile within the manifest's existing constraints."""
        ...

    def upgrade(self) -> None:
        """Relax manifest constraints and upgrade to the latest allowed versions."""
        ...


class Cargo:
    """``PackageManager`` backed by cargo (``cargo upgrade`` needs cargo-edit)."""

    def __init__(self, root: Path, binary: str = "cargo") -> None:
        self.root = Path(root)
        self.binary = binary

    def vendor(self, dest: Path) -> None:
        logger.info("Vendoring dependencies into %s", dest)
        run_command([self.binary, "vendor", "--quiet", str(dest)], cwd=self.root, capture=True)

    def update(self) -> None:
        logger.info("Running %s update", self.binary)
        run_command([self.binary, "update"], cwd=self.root)

    def upgrade(self) -> None:
        logger.info("Running %s upgrade", self.binary)
        run_command([self.binary, "upgrade"], cwd=self.root)
