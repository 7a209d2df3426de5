"""Launcher configuration — env-driven, optionally backed by a YAML file.

Centralized settings using pydantic-settings. Values come from K8SCC_*
environment variables (nested fields use ``__``, e.g.
``K8SCC_BUILDER__RESOURCES__LIMIT_MEMORY``), a ``.env`` file, and finally an
optional YAML file whose values take precedence over the environment.

The settings object is built once per process and passed explicitly to every
component; nothing here is a module-level singleton.
"""

from __future__ import annotations

import logging
import os
import socket
from pathlib import Path
from typing import Any

import yaml
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from k8scc.core.platforms import GOLANG, JAVA, NODE
from k8scc.errors import ConfigurationError
from k8scc.models.chaincode import EnvVarSetting, ResourceSettings

logger = logging.getLogger(__name__)

CONFIG_FILE_ENV = "K8SCC_CONFIG_FILE"

DEFAULT_INIT_IMAGE = "dviejo/fabric-init:amd64-2.2.0"

# Builder images per chaincode type; also used as the run image.
DEFAULT_IMAGES: dict[str, str] = {
    spec.name: spec.default_image for spec in (GOLANG, NODE, JAVA)
}


class BuilderSettings(BaseModel):
    """Settings applied to the ``builder`` step of the BUILD Pod."""

    model_config = ConfigDict(frozen=True)

    resources: ResourceSettings = Field(default_factory=ResourceSettings)
    env: list[EnvVarSetting] = []


class LauncherPodSettings(BaseModel):
    """Default settings for the ``chaincode`` container of the RUN Pod."""

    model_config = ConfigDict(frozen=True)

    resources: ResourceSettings = Field(default_factory=ResourceSettings)


class LauncherSettings(BaseSettings):
    """Process-wide configuration for the builder/launcher.

    Examples
    --------
    Override via environment::

        export K8SCC_NAMESPACE=hlf
        export K8SCC_FILE_SERVER_URL=http://fileserver.hlf:8080
        export K8SCC_BUILDER__RESOURCES__LIMIT_MEMORY=1Gi

    Or via YAML (``K8SCC_CONFIG_FILE=/etc/k8scc/config.yaml``)::

        namespace: hlf
        images:
          golang: hyperledger/fabric-ccenv:2.2
        launcher:
          resources:
            limit_cpu: "1"
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="K8SCC_",
        env_nested_delimiter="__",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
        populate_by_name=True,
    )

    # Cluster
    namespace: str = "default"
    pod_name: str = Field(default_factory=socket.gethostname)

    # Exchange store
    file_server_url: str = "http://localhost:8080"
    compress_archives: bool = False

    # Images
    init_image: str = DEFAULT_INIT_IMAGE
    images: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_IMAGES))

    # Per-phase pod settings
    builder: BuilderSettings = Field(default_factory=BuilderSettings)
    launcher: LauncherPodSettings = Field(default_factory=LauncherPodSettings)

    # Overrides the peer address found in chaincode.json
    peer_url: str = Field(
        default="",
        validation_alias=AliasChoices(
            "K8SCC_PEER_URL", "EXTERNAL_BUILDER_PEER_URL"
        ),
    )

    # Watch loop
    poll_interval_seconds: float = 2.0
    max_backoff_seconds: float = 30.0
    timeout_seconds: float | None = None

    # Observability
    log_level: str = "INFO"

    @property
    def exchange_root(self) -> str:
        """File server URL without a trailing slash."""
        return self.file_server_url.rstrip("/")

    def image_for(self, platform: str) -> str | None:
        """Return the builder image configured for a chaincode type."""
        return self.images.get(platform.lower())


def by_alias(settings_cls: type[BaseSettings], values: dict[str, Any]) -> dict[str, Any]:
    """Re-key explicit values for aliased fields under their first alias.

    An environment alias outranks a field name during validation, so values
    passed by field name would otherwise lose to the environment.
    """
    keyed = dict(values)
    for name, field in settings_cls.model_fields.items():
        alias = field.validation_alias
        if name in keyed and isinstance(alias, AliasChoices):
            keyed[alias.choices[0]] = keyed.pop(name)
    return keyed


def load_settings(config_file: Path | str | None = None, **overrides: Any) -> LauncherSettings:
    """Build the settings for this process.

    Parameters
    ----------
    config_file:
        Optional YAML file. Falls back to ``$K8SCC_CONFIG_FILE`` when unset.
    overrides:
        Explicit values (e.g. from CLI options); highest precedence.

    Raises
    ------
    ConfigurationError
        If the file cannot be read or the resulting settings are invalid.
    """
    path = config_file or os.environ.get(CONFIG_FILE_ENV) or None
    data: dict[str, Any] = {}
    if path:
        try:
            loaded = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigurationError(f"cannot read config file {path}: {exc}") from exc
        if loaded is not None and not isinstance(loaded, dict):
            raise ConfigurationError(f"config file {path} must contain a mapping")
        data.update(loaded or {})
        logger.debug("Loaded configuration file %s", path)
    data.update(overrides)

    try:
        return LauncherSettings(**by_alias(LauncherSettings, data))
    except ValidationError as exc:
        raise ConfigurationError(f"invalid configuration: {exc}") from exc
