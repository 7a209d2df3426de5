"""Chaincode descriptors exchanged with the peer and between phases."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ResourceSettings(BaseModel):
    """CPU/memory limit and request pair; an empty string means "unset"."""

    model_config = ConfigDict(frozen=True)

    limit_memory: str = ""
    limit_cpu: str = ""
    requests_memory: str = ""
    requests_cpu: str = ""


class EnvVarSetting(BaseModel):
    """A single NAME=value entry for a container environment."""

    model_config = ConfigDict(frozen=True)

    name: str
    value: str = ""


class ChaincodeMetadata(BaseModel):
    """Contents of ``metadata.json`` handed to the BUILD procedure.

    ``metadata_id`` is not part of the file; it is the build identifier of
    the invocation and names the BUILD Pod.
    """

    model_config = ConfigDict(frozen=True)

    label: str
    type: str
    path: str = ""
    metadata_id: str = ""


class BuildInformation(BaseModel):
    """Written at the end of BUILD, read back at the start of RUN."""

    model_config = ConfigDict(frozen=True)

    image: str = ""
    platform: str = ""


class ChaincodeRunConfig(BaseModel):
    """Everything needed to start a built chaincode.

    Assembled from ``chaincode.json`` plus the persisted BuildInformation.
    """

    model_config = ConfigDict(frozen=True)

    chaincode_id: str
    mspid: str = ""
    peer_address: str = ""
    client_cert: str = ""
    client_key: str = ""
    root_cert: str = ""
    short_name: str = ""
    resources: ResourceSettings = Field(default_factory=ResourceSettings)
    image: str = ""
    platform: str = ""
