"""Shared test fixtures for lockstep."""

from __future__ import annotations

import shutil
import subprocess
from collections.abc import Callable
from pathlib import Path

import pytest

from lockstep.core.errors import CommandFailedError
from lockstep.core.orchestrator import UpgradeOrchestrator
from lockstep.core.process_guard import ProcessInfo, SettlementGuard
from lockstep.core.registry import CheckRegistry
from lockstep.core.runner import CheckFailedError
from lockstep.core.snapshots import SnapshotStore
from lockstep.core.vcs import GitRepository
from lockstep.models.checks import CheckSpec

MANIFEST_V1 = """\
[package]
name = "demo"
version = "0.1.0"

[dependencies]
serde = "1.0.100"
"""

LOCKFILE_V1 = """\
[[package]]
name = "serde"
version = "1.0.100"
"""


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeInspector:
    """Reports scripted process observations, then nothing.

    With ``forever`` set, every observation reports that process.
    """

    def __init__(
        self,
        observations: list[list[ProcessInfo]] | None = None,
        *,
        forever: ProcessInfo | None = None,
    ) -> None:
        self._observations = list(observations or [])
        self._forever = forever
        self.calls = 0

    def list_processes(self, pattern: str) -> list[ProcessInfo]:
        self.calls += 1
        if self._forever is not None:
            return [self._forever]
        if self._observations:
            return self._observations.pop(0)
        return []


class FakePackageManager:
    """Writes scripted file contents on update/upgrade; vendors the lockfile."""

    def __init__(
        self,
        root: Path,
        *,
        update_writes: dict[str, str] | None = None,
        upgrade_writes: dict[str, str] | None = None,
    ) -> None:
        self.root = root
        self.update_writes = dict(update_writes or {})
        self.upgrade_writes = dict(upgrade_writes or {})
        self.calls: list[str] = []

    def vendor(self, dest: Path) -> None:
        self.calls.append("vendor")
        dest.mkdir(parents=True)
        lockfile = self.root / "Cargo.lock"
        (dest / "Cargo.lock").write_text(lockfile.read_text() if lockfile.exists() else "")

    def _write(self, files: dict[str, str]) -> None:
        for rel, content in files.items():
            (self.root / rel).write_text(content)

    def update(self) -> None:
        self.calls.append("update")
        self._write(self.update_writes)

    def upgrade(self) -> None:
        self.calls.append("upgrade")
        self._write(self.upgrade_writes)


class FakeRunner:
    """Commit gate that passes, or fails on the given (1-based) call."""

    def __init__(
        self,
        *,
        fail_on_call: int | None = None,
        on_run: Callable[[], None] | None = None,
    ) -> None:
        self.fail_on_call = fail_on_call
        self.on_run = on_run
        self.calls = 0

    def run_aggregate(self) -> list:
        self.calls += 1
        if self.on_run is not None:
            self.on_run()
        if self.calls == self.fail_on_call:
            raise CheckFailedError("cargo_test", 101)
        return []


def failing_command(returncode: int = 1) -> Callable[[], None]:
    def _invoke() -> None:
        raise CommandFailedError(["tool"], returncode)

    return _invoke


# ---------------------------------------------------------------------------
# Git helpers
# ---------------------------------------------------------------------------


def git(root: Path, *args: str) -> str:
    proc = subprocess.run(
        ["git", *args], cwd=root, check=True, capture_output=True, text=True
    )
    return proc.stdout


def commit_count(root: Path) -> int:
    return int(git(root, "rev-list", "--count", "HEAD").strip())


@pytest.fixture
def git_repo(tmp_path: Path) -> Path:
    """A git repository holding a committed cargo manifest and lockfile."""
    if shutil.which("git") is None:
        pytest.skip("git is not installed")
    root = tmp_path / "project"
    root.mkdir()
    git(root, "init", "--quiet")
    git(root, "config", "user.email", "dev@example.com")
    git(root, "config", "user.name", "Dev")
    git(root, "config", "commit.gpgsign", "false")
    (root / "Cargo.toml").write_text(MANIFEST_V1)
    (root / "Cargo.lock").write_text(LOCKFILE_V1)
    (root / ".gitignore").write_text("target/\n")
    git(root, "add", "-A")
    git(root, "commit", "--quiet", "-m", "initial")
    return root


# ---------------------------------------------------------------------------
# Suite fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def invoked() -> list[str]:
    """Records the names of checks invoked by ``recording_registry``."""
    return []


@pytest.fixture
def recording_registry(invoked: list[str]) -> Callable[..., CheckRegistry]:
    """Factory fixture: registry whose checks record their invocation."""

    def _factory(
        names: tuple[str, ...] = ("fmt", "clippy", "cargo_test"),
        aggregate_order: list[str] | None = None,
    ) -> CheckRegistry:
        registry = CheckRegistry(aggregate_order=aggregate_order)
        for name in names:
            registry.register(CheckSpec(name=name), lambda n=name: invoked.append(n))
        return registry

    return _factory


@pytest.fixture
def write_workflow() -> Callable[..., Path]:
    """Factory fixture: write a CI workflow with one job per check name."""

    def _factory(
        path: Path,
        names: list[str],
        invocation: str = "lockstep check",
    ) -> Path:
        lines = ["name: ci", "on:", "  push:", "jobs:"]
        for name in names:
            lines += [
                f"  test-{name}:",
                "    runs-on: ubuntu-latest",
                "    steps:",
                "      - uses: actions/checkout@v4",
                f"      - run: {invocation} {name}",
            ]
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("\n".join(lines) + "\n")
        return path

    return _factory


# ---------------------------------------------------------------------------
# Orchestrator fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def make_orchestrator(git_repo: Path, tmp_path: Path) -> Callable[..., UpgradeOrchestrator]:
    """Factory fixture: orchestrator on ``git_repo`` with fake collaborators."""

    def _factory(
        package_manager: FakePackageManager,
        runner: FakeRunner | None = None,
        inspector: FakeInspector | None = None,
    ) -> UpgradeOrchestrator:
        return UpgradeOrchestrator(
            repo=GitRepository(git_repo),
            package_manager=package_manager,
            guard=SettlementGuard(
                inspector or FakeInspector(),
                "cargo",
                max_attempts=3,
                poll_interval=0,
                sleep=lambda _: None,
            ),
            runner=runner or FakeRunner(),
            snapshots=SnapshotStore(package_manager, tmp_path / "snapshots"),
            manifest=git_repo / "Cargo.toml",
            lockfile=git_repo / "Cargo.lock",
        )

    return _factory
