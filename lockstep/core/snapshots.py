"""Dependency snapshots: vendored copies of the resolved tree per checkpoint.

Each snapshot lives in its own sibling directory keyed by the checkpoint
name.  Snapshots are never overwritten within a run; ``clear()`` removes
stale ones from earlier runs before the pipeline starts.  The report is
advisory only: it prints the commands an operator can run to view diffs.
"""

from __future__ import annotations

import logging
import shlex
import shutil
from pathlib import Path

from lockstep.core.errors import LockstepError
from lockstep.core.package_manager import PackageManager
from lockstep.models.pipeline import SnapshotName, SnapshotReport

logger = logging.getLogger(__name__)


class SnapshotError(LockstepError):
    """Raised when a snapshot cannot be captured."""


class SnapshotStore:
    """Captures and reports dependency snapshots under *root*.

    Parameters
    ----------
    package_manager:
        Provides ``vendor(dest)`` to materialize the dependency tree.
    root:
        Directory holding the snapshot directories.
    prefix:
        Directory-name prefix, e.g. ``vendor_`` gives ``vendor_before``.
    """

    def __init__(
        self,
        package_manager: PackageManager,
        root: Path,
        prefix: str = "vendor_",
    ) -> None:
        self._pm = package_manager
        self.root = Path(root)
        self.prefix = prefix

    def path_for(self, name: SnapshotName) -> Path:
        return self.root / f"{self.prefix}{name.value}"

    def exists(self, name: SnapshotName) -> bool:
        return self.path_for(name).is_dir()

    def clear(self) -> None:
        """Delete every snapshot directory left by a previous run."""
        for name in SnapshotName:
            path = self.path_for(name)
            if path.exists():
                logger.info("Removing stale snapshot %s", path)
                try:
                    shutil.rmtree(path)
                except OSError as exc:
                    raise SnapshotError(f"Cannot remove stale snapshot {path}: {exc}") from exc

    def capture(self, name: SnapshotName) -> Path:
        """Vendor the resolved tree and move it to the location for *name*."""
        target = self.path_for(name)
        if target.exists():
            raise SnapshotError(f"Snapshot '{name.value}' already exists at {target}.")

        staging = self.root / f".{self.prefix}{name.value}.partial"
        try:
            if staging.exists():
                shutil.rmtree(staging)
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise SnapshotError(
                f"Cannot prepare snapshot directory {self.root}: {exc}",
                hint="Point LOCKSTEP_SNAPSHOT_ROOT at a writable directory.",
            ) from exc

        self._pm.vendor(staging)
        if not staging.is_dir():
            raise SnapshotError(
                f"Vendoring for snapshot '{name.value}' produced no directory at {staging}."
            )
        try:
            staging.rename(target)
        except OSError as exc:
            raise SnapshotError(f"Cannot move snapshot into place at {target}: {exc}") from exc
        logger.info("Captured snapshot '%s' at %s", name.value, target)
        return target

    def size_bytes(self, name: SnapshotName) -> int:
        """Total size of the files in snapshot *name*."""
        try:
            return sum(p.stat().st_size for p in self.path_for(name).rglob("*") if p.is_file())
        except OSError as exc:
            raise SnapshotError(f"Cannot measure snapshot '{name.value}': {exc}") from exc

    def diff_command(self, old: SnapshotName, new: SnapshotName) -> str:
        """Shell command showing a pageable, colored diff between two snapshots."""
        return (
            "git diff --no-index --stat --patch "
            f"{shlex.quote(str(self.path_for(old)))} {shlex.quote(str(self.path_for(new)))}"
        )

    def report(self) -> SnapshotReport:
        """Sizes of existing snapshots and a diff command per consecutive pair."""
        present = [name for name in SnapshotName if self.exists(name)]
        sizes = {name.value: self.size_bytes(name) for name in present}
        commands = [self.diff_command(old, new) for old, new in zip(present, present[1:])]
        return SnapshotReport(sizes=sizes, diff_commands=commands)
