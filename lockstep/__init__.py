"""lockstep: check-gated dependency upgrades with a self-consistent check suite.

Two coupled control structures:
  - a validation suite whose declared checks, aggregate body and CI jobs
    are verified to name exactly the same checks, and
  - an upgrade orchestrator that updates, then upgrades, dependencies and
    commits each change only when the suite passes and background
    package-manager workers have settled.
"""

__version__ = "0.1.0"
__description__ = "Check-gated dependency upgrades with a self-consistent check suite"

from lockstep.core.orchestrator import UpgradeOrchestrator
from lockstep.core.runner import SuiteRunner

__all__ = ["UpgradeOrchestrator", "SuiteRunner", "__version__"]
