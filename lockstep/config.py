"""Runtime configuration: env-driven via pydantic-settings.

Every setting can be overridden with a ``LOCKSTEP_*`` environment variable
or a ``.env`` file in the working directory::

    export LOCKSTEP_SETTLE_MAX_ATTEMPTS=30
    export LOCKSTEP_LOG_LEVEL=DEBUG
    export LOCKSTEP_AGGREGATE_ORDER='["fmt", "clippy", "cargo_test", "self"]'

Relative paths are resolved against ``project_root``.
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from lockstep.core.errors import LockstepError


class SettingsError(LockstepError):
    """Raised when the ``LOCKSTEP_*`` environment or ``.env`` file is invalid."""


class LockstepSettings(BaseSettings):
    """Settings for the check suite and the upgrade pipeline."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="LOCKSTEP_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Project layout
    project_root: Path = Path(".")
    manifest_path: Path = Path("Cargo.toml")
    lockfile_path: Path = Path("Cargo.lock")
    ci_config_path: Path = Path(".github/workflows/ci.yml")

    # Check suite
    runner_invocation: str = "lockstep check"
    aggregate_name: str = "all"
    aggregate_order: list[str] = Field(default_factory=list)

    # Package manager and settlement
    package_manager: str = "cargo"
    process_name: str = "cargo"
    settle_max_attempts: int = 10
    settle_poll_interval: float = 1.0

    # Dependency snapshots
    snapshot_root: Path = Path("target/dependency-snapshots")
    snapshot_prefix: str = "vendor_"

    # Commits
    minor_commit_message: str = "cargo update"
    major_commit_message: str = "cargo upgrade"

    # Logging
    log_level: str = "INFO"

    @field_validator("settle_max_attempts")
    @classmethod
    def _positive_attempts(cls, value: int) -> int:
        if value < 1:
            raise ValueError("settle_max_attempts must be at least 1")
        return value

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"unknown log level {value!r}")
        return level

    def resolve(self, path: Path) -> Path:
        """Return *path* anchored at ``project_root`` unless already absolute."""
        return path if path.is_absolute() else self.project_root / path

    @property
    def manifest(self) -> Path:
        return self.resolve(self.manifest_path)

    @property
    def lockfile(self) -> Path:
        return self.resolve(self.lockfile_path)

    @property
    def ci_config(self) -> Path:
        return self.resolve(self.ci_config_path)

    @property
    def snapshots_dir(self) -> Path:
        return self.resolve(self.snapshot_root)


def load_settings() -> LockstepSettings:
    """Read settings from the environment, raising ``SettingsError`` if invalid."""
    try:
        return LockstepSettings()
    except ValidationError as exc:
        raise SettingsError(
            f"Invalid lockstep configuration:\n{exc}",
            hint="Check the LOCKSTEP_* environment variables and the .env file.",
        ) from exc
