"""Error taxonomy for the chaincode builder/launcher.

Every error raised by a build, run, detect or release procedure derives from
``LauncherError`` so the CLI can report it verbatim and exit non-zero.
None of these errors are retried automatically; re-issuing the procedure is
the calling peer's responsibility.
"""

from __future__ import annotations

# Kubernetes API statuses worth retrying inside a watch loop.
TRANSIENT_STATUSES: frozenset[int] = frozenset({429, 500, 502, 503, 504})


class LauncherError(RuntimeError):
    """Base class for all builder/launcher errors."""


class ConfigurationError(LauncherError):
    """Raised for bad arguments, missing image mappings or unusable metadata."""


class MalformedPathError(ConfigurationError):
    """Raised when a path does not carry a build identifier."""


class ChaincodeNameError(ConfigurationError):
    """Raised when a chaincode ID cannot be turned into a cluster-safe name."""


class UnsupportedPlatformError(ConfigurationError):
    """Raised when a chaincode type has no registered platform."""


class ExchangeError(LauncherError):
    """Raised when an artifact transfer with the exchange store fails.

    ``status_code`` is ``None`` when no HTTP response was received at all.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ClusterAPIError(LauncherError):
    """Raised when a create/get/delete call against the cluster fails.

    Parameters
    ----------
    operation:
        Short name of the failed operation (e.g. ``"create pod"``).
    status:
        HTTP status of the API response, or ``None`` for transport failures.
    reason:
        Human-readable reason reported by the API or the transport.
    """

    def __init__(
        self, operation: str, status: int | None = None, reason: str = ""
    ) -> None:
        detail = f" (status={status})" if status is not None else ""
        super().__init__(f"{operation} failed{detail}: {reason}".rstrip(": "))
        self.operation = operation
        self.status = status
        self.reason = reason

    @property
    def not_found(self) -> bool:
        return self.status == 404

    @property
    def transient(self) -> bool:
        """Connection failures and throttling/server errors."""
        return self.status is None or self.status in TRANSIENT_STATUSES


class WorkloadFailedError(LauncherError):
    """Raised when a Pod reaches the Failed phase."""

    def __init__(self, pod_name: str, phase: str, chaincode: str) -> None:
        super().__init__(
            f"chaincode {chaincode} in Pod {pod_name} ended in phase {phase}"
        )
        self.pod_name = pod_name
        self.phase = phase
        self.chaincode = chaincode


class WatchCancelledError(LauncherError):
    """Raised when a watch is cancelled or times out before a terminal phase."""

    def __init__(self, pod_name: str) -> None:
        super().__init__(f"watch of Pod {pod_name} cancelled before completion")
        self.pod_name = pod_name
