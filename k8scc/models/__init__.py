"""k8scc data models — all Pydantic v2, all frozen (immutable)."""

from k8scc.models.chaincode import (
    BuildInformation,
    ChaincodeMetadata,
    ChaincodeRunConfig,
    EnvVarSetting,
    ResourceSettings,
)
from k8scc.models.pods import ROLE_LABEL, TERMINAL_PHASES, PodPhase, PodRole

__all__ = [
    # chaincode
    "BuildInformation",
    "ChaincodeMetadata",
    "ChaincodeRunConfig",
    "EnvVarSetting",
    "ResourceSettings",
    # pods
    "PodPhase",
    "PodRole",
    "ROLE_LABEL",
    "TERMINAL_PHASES",
]
