"""Resource provisioning — merge CPU/memory settings into Kubernetes objects."""

from __future__ import annotations

from kubernetes.client import V1ResourceRequirements
from kubernetes.utils import parse_quantity

from k8scc.errors import ConfigurationError
from k8scc.models.chaincode import ResourceSettings


def merge_resources(
    default: ResourceSettings, override: ResourceSettings | None = None
) -> ResourceSettings:
    """Return *default* with every non-empty field of *override* applied.

    An empty override field leaves the default intact; limits and requests
    are independent, so a limit without a matching request is valid.
    """
    if override is None:
        return default
    updates = {
        field: value
        for field, value in override.model_dump().items()
        if value
    }
    return default.model_copy(update=updates)


def _quantity(kind: str, value: str) -> str:
    try:
        parse_quantity(value)
    except ValueError as exc:
        raise ConfigurationError(f"invalid {kind} quantity {value!r}") from exc
    return value


def to_requirements(settings: ResourceSettings) -> V1ResourceRequirements:
    """Translate settings into limits/requests maps holding only set keys.

    Raises
    ------
    ConfigurationError
        If a value is not a valid Kubernetes quantity.
    """
    limits: dict[str, str] = {}
    requests: dict[str, str] = {}
    if settings.limit_memory:
        limits["memory"] = _quantity("memory limit", settings.limit_memory)
    if settings.limit_cpu:
        limits["cpu"] = _quantity("cpu limit", settings.limit_cpu)
    if settings.requests_memory:
        requests["memory"] = _quantity("memory request", settings.requests_memory)
    if settings.requests_cpu:
        requests["cpu"] = _quantity("cpu request", settings.requests_cpu)
    return V1ResourceRequirements(limits=limits or None, requests=requests or None)
