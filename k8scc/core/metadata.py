"""On-disk contracts with the peer.

- ``<metadata dir>/metadata.json`` — chaincode descriptor read at BUILD.
- ``<metadata dir>/chaincode.json`` — run configuration read at RUN.
- ``<output dir>/k8scc_buildinfo.json`` — written at the end of BUILD and
  read back at the start of RUN.
"""

from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path

from pydantic import ValidationError

from k8scc.errors import ChaincodeNameError, ConfigurationError
from k8scc.models.chaincode import (
    BuildInformation,
    ChaincodeMetadata,
    ChaincodeRunConfig,
)

logger = logging.getLogger(__name__)

METADATA_FILE = "metadata.json"
RUN_CONFIG_FILE = "chaincode.json"
BUILD_INFO_FILE = "k8scc_buildinfo.json"

SHORT_HASH_LENGTH = 8

_NAME_UNSAFE = re.compile(r"[^a-z0-9-]")


def _read_json(path: Path) -> dict:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigurationError(f"reading {path.name}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"unmarshaling {path.name}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path.name} must contain a JSON object")
    return data


def short_name(chaincode_id: str) -> str:
    """Derive a cluster-safe short name from ``<label>:<hash>``.

    ``"fabcar_1:abcdef0123456789"`` becomes ``"fabcar-1-abcdef01"``. The result
    is lowercase and holds only ``[a-z0-9-]``, so it can be embedded in a Pod
    name.

    Raises
    ------
    ChaincodeNameError
        If the ID has no ``:`` separator or the hash is shorter than
        ``SHORT_HASH_LENGTH`` characters.
    """
    name, sep, digest = chaincode_id.partition(":")
    if not sep:
        raise ChaincodeNameError(f"cannot parse chaincode name {chaincode_id!r}")
    if len(digest) < SHORT_HASH_LENGTH:
        raise ChaincodeNameError(f"hash of chaincode ID {chaincode_id!r} too short")
    label = _NAME_UNSAFE.sub("-", name.lower())
    prefix = _NAME_UNSAFE.sub("-", digest[:SHORT_HASH_LENGTH].lower())
    return f"{label}-{prefix}".strip("-")


def load_metadata(metadata_dir: Path | str, metadata_id: str = "") -> ChaincodeMetadata:
    """Read ``metadata.json`` from the BUILD metadata directory."""
    data = _read_json(Path(metadata_dir) / METADATA_FILE)
    try:
        return ChaincodeMetadata(
            label=data.get("label", ""),
            type=data.get("type", ""),
            path=data.get("path", ""),
            metadata_id=metadata_id,
        )
    except ValidationError as exc:
        raise ConfigurationError(f"invalid {METADATA_FILE}: {exc}") from exc


def read_build_info(output_dir: Path | str) -> BuildInformation:
    """Read the build information persisted by BUILD.

    Raises
    ------
    ConfigurationError
        If the file is missing, unreadable, or carries no image.
    """
    data = _read_json(Path(output_dir) / BUILD_INFO_FILE)
    try:
        info = BuildInformation.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(f"invalid {BUILD_INFO_FILE}: {exc}") from exc
    if not info.image:
        raise ConfigurationError(f"no image found in {BUILD_INFO_FILE}")
    return info


def write_build_info(output_dir: Path | str, info: BuildInformation) -> Path:
    """Persist *info* into the BUILD output directory, world-readable."""
    path = Path(output_dir) / BUILD_INFO_FILE
    payload = info.model_dump_json()
    logger.info("Build information=%s", payload)
    path.write_text(payload, encoding="utf-8")
    os.chmod(path, 0o777)
    return path


def load_run_config(
    metadata_dir: Path | str,
    output_dir: Path | str,
    *,
    peer_url: str = "",
) -> ChaincodeRunConfig:
    """Assemble the run configuration from ``chaincode.json`` and build info.

    Parameters
    ----------
    metadata_dir:
        RUN metadata directory holding ``chaincode.json``.
    output_dir:
        BUILD output directory holding ``k8scc_buildinfo.json``.
    peer_url:
        When non-empty, replaces the peer address from ``chaincode.json``.
    """
    data = _read_json(Path(metadata_dir) / RUN_CONFIG_FILE)
    if peer_url:
        data["peer_address"] = peer_url
    chaincode_id = data.get("chaincode_id", "")
    data["short_name"] = short_name(chaincode_id)

    build_info = read_build_info(output_dir)
    data["image"] = build_info.image
    data["platform"] = build_info.platform

    try:
        return ChaincodeRunConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(f"invalid {RUN_CONFIG_FILE}: {exc}") from exc
