"""Pod lifecycle phases and labels."""

from __future__ import annotations

from enum import Enum


class PodPhase(str, Enum):
    """Phases reported in ``status.phase`` of a Kubernetes Pod."""

    PENDING = "Pending"
    RUNNING = "Running"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, value: str | None) -> PodPhase:
        """Map a raw phase string to a PodPhase; anything unrecognised is UNKNOWN."""
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


# Unknown is a transient observation, not an outcome.
TERMINAL_PHASES: frozenset[PodPhase] = frozenset(
    {PodPhase.SUCCEEDED, PodPhase.FAILED}
)


class PodRole(str, Enum):
    """Value of the role label carried by every Pod this tool creates."""

    BUILDER = "builder"
    LAUNCHER = "launcher"


ROLE_LABEL = "externalcc-type"
