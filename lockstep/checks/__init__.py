"""Concrete suite checks and the default catalog."""

from lockstep.checks.base import BaseCheck, CommandCheck
from lockstep.checks.catalog import SelfCheck, ShellcheckCheck, build_registry

__all__ = ["BaseCheck", "CommandCheck", "SelfCheck", "ShellcheckCheck", "build_registry"]
