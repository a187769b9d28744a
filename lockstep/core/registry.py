"""Check registry: the single source of declared checks.

The registry is an ordered mapping from check name to invocation, built
once at startup.  The aggregate entry does not hold its own list of
members: its body is derived from this same mapping (or from an explicit
configured order), so the self-consistency check can compare the two.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator

from pydantic import BaseModel, ConfigDict

from lockstep.core.errors import LockstepError
from lockstep.models.checks import CheckSpec

CheckInvocation = Callable[[], None]


class DuplicateCheckError(ValueError):
    """Raised when a check name is registered twice."""


class UnknownCheckError(LockstepError):
    """Raised when a requested check name is not registered."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown test {name}")
        self.name = name


class RegisteredCheck(BaseModel):
    """A declared check together with its invocation.

    The aggregate entry has no invocation; the runner expands it.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    spec: CheckSpec
    invoke: CheckInvocation | None = None

    @property
    def name(self) -> str:
        return self.spec.name


class CheckRegistry:
    """Ordered registry of named checks with exactly one aggregate.

    Parameters
    ----------
    aggregate_name:
        Name of the "run everything" entry.
    aggregate_order:
        Explicit aggregate body.  When empty, every registered check with
        ``in_aggregate`` set is included in registration order.
    """

    def __init__(
        self,
        aggregate_name: str = "all",
        aggregate_order: list[str] | None = None,
    ) -> None:
        order = list(aggregate_order or [])
        if aggregate_name in order:
            raise ValueError(
                f"Aggregate '{aggregate_name}' cannot be a member of itself."
            )
        self._aggregate_name = aggregate_name
        self._aggregate_order = order
        self._entries: dict[str, RegisteredCheck] = {}
        self._entries[aggregate_name] = RegisteredCheck(
            spec=CheckSpec(
                name=aggregate_name,
                description="Run every check in the aggregate.",
                is_aggregate=True,
                in_aggregate=False,
            )
        )

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, spec: CheckSpec, invoke: CheckInvocation) -> RegisteredCheck:
        """Register *invoke* under ``spec.name``."""
        if spec.is_aggregate:
            raise ValueError("The aggregate entry is created by the registry.")
        if spec.name in self._entries:
            raise DuplicateCheckError(f"Check '{spec.name}' is already registered.")
        entry = RegisteredCheck(spec=spec, invoke=invoke)
        self._entries[spec.name] = entry
        return entry

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def aggregate_name(self) -> str:
        return self._aggregate_name

    def get(self, name: str) -> RegisteredCheck:
        try:
            return self._entries[name]
        except KeyError:
            raise UnknownCheckError(name) from None

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __iter__(self) -> Iterator[RegisteredCheck]:
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def declared_names(self) -> list[str]:
        """Every declared check name except the aggregate, in order."""
        return [n for n in self._entries if n != self._aggregate_name]

    def aggregate_members(self) -> list[str]:
        """Names invoked by the aggregate, in invocation order."""
        if self._aggregate_order:
            return list(self._aggregate_order)
        return [
            entry.name
            for entry in self._entries.values()
            if not entry.spec.is_aggregate and entry.spec.in_aggregate
        ]
