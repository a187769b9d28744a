"""Git access and the working-tree gate.

``GitRepository`` wraps the handful of git operations the pipeline needs.
``WorkingTreeGate`` refuses to proceed while uncommitted changes exist,
either for the whole tree (pipeline precondition) or for a single path
(narrow precondition before a tool that rewrites the manifest).
"""

from __future__ import annotations

import logging
from pathlib import Path

from lockstep.core.errors import CommandFailedError, EnvironmentFault, PreconditionViolation
from lockstep.core.shell import run_command

logger = logging.getLogger(__name__)


class DirtyWorkingTreeError(PreconditionViolation):
    """Raised when git reports uncommitted changes."""


class GitCommandError(EnvironmentFault):
    """Raised when a git invocation fails (not a repository, corrupt index...)."""

    def __init__(self, error: CommandFailedError) -> None:
        super().__init__(
            f"git failed: {error.message}",
            hint="Run lockstep from inside the project's git working tree.",
        )
        self.returncode = error.returncode


class GitRepository:
    """Git operations scoped to a working tree.

    Parameters
    ----------
    root:
        Path to the working tree.
    """

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def _git(self, *args: str) -> str:
        try:
            proc = run_command(["git", *args], cwd=self.root, capture=True)
        except CommandFailedError as exc:
            raise GitCommandError(exc) from exc
        return proc.stdout

    def _rel(self, path: Path | str) -> str:
        path = Path(path)
        if not path.is_absolute():
            return str(path)
        for base in (self.root.resolve(), self.root):
            try:
                return str(path.relative_to(base))
            except ValueError:
                continue
        raise PreconditionViolation(
            f"{path} is outside the repository at {self.root}.",
            hint="Keep the manifest and lockfile inside LOCKSTEP_PROJECT_ROOT.",
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def status(self, path: Path | str | None = None) -> list[str]:
        """Return ``git status --porcelain`` lines, optionally for one path."""
        args = ["status", "--porcelain", "--untracked-files=all"]
        if path is not None:
            args += ["--", self._rel(path)]
        return [line for line in self._git(*args).splitlines() if line.strip()]

    def has_changes(self, path: Path | str) -> bool:
        """Whether *path* differs from HEAD (staged, unstaged or untracked)."""
        return bool(self.status(path))

    def head_commit(self) -> str:
        return self._git("rev-parse", "HEAD").strip()

    def unpushed_commit_count(self) -> int:
        """Count local commits not yet on the upstream tracking branch.

        Without an upstream every commit reachable from HEAD counts as
        unpushed, which keeps before/after deltas meaningful.
        """
        try:
            out = self._git("rev-list", "--count", "@{upstream}..HEAD")
        except GitCommandError:
            logger.debug("No upstream configured; counting all commits on HEAD")
            out = self._git("rev-list", "--count", "HEAD")
        return int(out.strip() or 0)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def stage(self, *paths: Path | str) -> None:
        self._git("add", "--", *(self._rel(p) for p in paths))

    def commit(self, message: str) -> str:
        """Commit the index with *message* and return the new HEAD sha."""
        self._git("commit", "--quiet", "-m", message)
        sha = self.head_commit()
        logger.info("Committed %s: %s", sha[:12], message)
        return sha


class WorkingTreeGate:
    """Refuses to proceed while git reports uncommitted changes."""

    def __init__(self, repo: GitRepository) -> None:
        self._repo = repo

    def assert_clean(
        self, path: Path | str | None = None, *, staged_ok: bool = False
    ) -> None:
        """Raise ``DirtyWorkingTreeError`` if *path* (or the tree) is dirty.

        Parameters
        ----------
        path:
            Restrict the query to one path.  The whole tree when omitted.
        staged_ok:
            Ignore changes that are fully staged in the index, so only
            worktree edits and untracked files count.
        """
        entries = self._repo.status(path)
        if staged_ok:
            # porcelain "XY path": Y is the worktree column
            entries = [e for e in entries if e[1] != " "]
        if entries:
            target = str(path) if path is not None else "working tree"
            listing = "\n".join(f"  {e}" for e in entries)
            raise DirtyWorkingTreeError(
                f"Uncommitted changes in {target}:\n{listing}",
                hint="Commit or stash your changes first.",
            )
        logger.debug("Working tree clean (%s)", path or "all")
