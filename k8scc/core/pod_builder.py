"""Pod specifications for the BUILD and RUN phases.

Both Pods share one ``emptyDir`` volume named ``chaincode`` and express their
pipeline as ordered init containers: a failing step halts the Pod before any
later step runs.

BUILD::

    setup-chaincode-volume -> download-chaincode-source -> builder
        => upload-chaincode-output            (restartPolicy: Never)

RUN::

    download-chaincode-output -> populate-chaincode-artifacts
        => chaincode                          (restartPolicy: Always)

Every Pod is owned by the invoking peer Pod with ``blockOwnerDeletion`` so
deleting the peer reaps its children.
"""

from __future__ import annotations

from kubernetes.client import (
    V1Container,
    V1EmptyDirVolumeSource,
    V1EnvVar,
    V1ObjectMeta,
    V1OwnerReference,
    V1Pod,
    V1PodSpec,
    V1Volume,
    V1VolumeMount,
)

from k8scc.config import LauncherSettings
from k8scc.core import tls
from k8scc.core.exchange import OUTPUT_ARCHIVE, SOURCE_ARCHIVE
from k8scc.core.platforms import PlatformSpec
from k8scc.core.resources import merge_resources, to_requirements
from k8scc.errors import ConfigurationError
from k8scc.models.chaincode import ChaincodeMetadata, ChaincodeRunConfig
from k8scc.models.pods import ROLE_LABEL, PodRole

VOLUME_NAME = "chaincode"
VOLUME_MOUNT = "/chaincode"

BUILDER_CONTAINER = "builder"


def owner_reference(owner: V1Pod) -> V1OwnerReference:
    """Owner reference to the invoking process's own Pod."""
    return V1OwnerReference(
        api_version="v1",
        kind="Pod",
        name=owner.metadata.name,
        uid=owner.metadata.uid,
        block_owner_deletion=True,
    )


def build_pod_name(self_name: str, metadata_id: str) -> str:
    return f"{self_name}-ccbuild-{metadata_id}"


def run_pod_name(self_name: str, short_name: str) -> str:
    return f"{self_name}-cc-{short_name}"


def _shared_mounts() -> list[V1VolumeMount]:
    return [V1VolumeMount(name=VOLUME_NAME, mount_path=VOLUME_MOUNT)]


def _bash_step(name: str, image: str, script: str) -> V1Container:
    return V1Container(
        name=name,
        image=image,
        command=["/bin/bash"],
        args=["-c", script],
        volume_mounts=_shared_mounts(),
    )


def _pod(
    name: str,
    owner: V1Pod,
    role: PodRole,
    init_containers: list[V1Container],
    container: V1Container,
    restart_policy: str,
) -> V1Pod:
    return V1Pod(
        api_version="v1",
        kind="Pod",
        metadata=V1ObjectMeta(
            name=name,
            owner_references=[owner_reference(owner)],
            labels={ROLE_LABEL: role.value},
        ),
        spec=V1PodSpec(
            init_containers=init_containers,
            containers=[container],
            enable_service_links=False,
            restart_policy=restart_policy,
            volumes=[
                V1Volume(name=VOLUME_NAME, empty_dir=V1EmptyDirVolumeSource())
            ],
        ),
    )


class PodSpecBuilder:
    """Composes the BUILD and RUN Pods from settings and chaincode descriptors.

    Parameters
    ----------
    settings:
        Process-wide launcher settings (images, resources, env, self name).
    """

    def __init__(self, settings: LauncherSettings) -> None:
        self._settings = settings

    # ------------------------------------------------------------------
    # BUILD
    # ------------------------------------------------------------------

    def build_env(self, platform: PlatformSpec) -> list[V1EnvVar]:
        """Platform build env followed by configured env.

        Kubernetes applies the list in order, so a configured entry wins over
        a platform entry with the same name.
        """
        env = [V1EnvVar(name=k, value=v) for k, v in platform.build_env.items()]
        env.extend(
            V1EnvVar(name=item.name, value=item.value)
            for item in self._settings.builder.env
        )
        return env

    def builder_pod(
        self,
        metadata: ChaincodeMetadata,
        platform: PlatformSpec,
        base_url: str,
        owner: V1Pod,
        *,
        compressed: bool = False,
    ) -> V1Pod:
        """Build the BUILD Pod for *metadata*.

        Raises
        ------
        ConfigurationError
            If no builder image is configured for the chaincode type.
        """
        settings = self._settings
        image = settings.image_for(metadata.type)
        if not image:
            raise ConfigurationError(
                f"no builder image available for {metadata.type!r}"
            )

        extract_flags = "-xzvf" if compressed else "-xvf"
        setup = _bash_step(
            "setup-chaincode-volume",
            settings.init_image,
            "mkdir -p /chaincode/input /chaincode/output && "
            "chmod 777 /chaincode/input /chaincode/output",
        )
        download = _bash_step(
            "download-chaincode-source",
            settings.init_image,
            f"curl -s -o- -L '{base_url}/{SOURCE_ARCHIVE}' | "
            f"tar -C /chaincode/input {extract_flags} - && "
            "chmod -R 777 /chaincode/input",
        )
        builder = V1Container(
            name=BUILDER_CONTAINER,
            image=image,
            image_pull_policy="IfNotPresent",
            command=["/bin/sh"],
            args=["-c", platform.build_cmd(metadata.path)],
            env=self.build_env(platform),
            resources=to_requirements(settings.builder.resources),
            volume_mounts=_shared_mounts(),
        )
        upload = V1Container(
            name="upload-chaincode-output",
            image=settings.init_image,
            image_pull_policy="IfNotPresent",
            command=["/bin/bash"],
            args=[
                "-c",
                "cp -r /chaincode/input/META-INF /chaincode/output/ "
                "|| echo \"META-INF doesn't exist\"\n"
                "cd /chaincode/output &&\n"
                "tar cvf /chaincode/output.tar $(ls -A) &&\n"
                f"curl -X POST -s --fail --upload-file /chaincode/output.tar "
                f"'{base_url}/{OUTPUT_ARCHIVE}'",
            ],
            volume_mounts=_shared_mounts(),
        )
        return _pod(
            build_pod_name(settings.pod_name, metadata.metadata_id),
            owner,
            PodRole.BUILDER,
            [setup, download, builder],
            upload,
            "Never",
        )

    # ------------------------------------------------------------------
    # RUN
    # ------------------------------------------------------------------

    def chaincode_env(self, run_config: ChaincodeRunConfig) -> list[V1EnvVar]:
        artifacts = tls.ARTIFACTS_DIR
        values = {
            "CORE_CHAINCODE_ID_NAME": run_config.chaincode_id,
            "CORE_CHAINCODE_ID": run_config.chaincode_id,
            "CORE_PEER_LOCALMSPID": run_config.mspid,
            "CORE_TLS_CLIENT_CERT_PATH": f"{artifacts}/{tls.CLIENT_CERT_FILE}",
            "CORE_TLS_CLIENT_KEY_PATH": f"{artifacts}/{tls.CLIENT_KEY_FILE}",
            "CORE_TLS_CLIENT_CERT_FILE": f"{artifacts}/{tls.CLIENT_PEM_CERT_FILE}",
            "CORE_TLS_CLIENT_KEY_FILE": f"{artifacts}/{tls.CLIENT_PEM_KEY_FILE}",
            "CORE_PEER_TLS_ROOTCERT_FILE": f"{artifacts}/{tls.ROOT_CERT_FILE}",
            "CORE_PEER_TLS_ENABLED": tls.tls_enabled(run_config.client_cert),
        }
        return [V1EnvVar(name=k, value=v) for k, v in values.items()]

    def chaincode_pod(
        self,
        run_config: ChaincodeRunConfig,
        platform: PlatformSpec,
        base_url: str,
        owner: V1Pod,
    ) -> V1Pod:
        """Build the RUN Pod for an already built chaincode."""
        settings = self._settings
        resources = merge_resources(settings.launcher.resources, run_config.resources)

        download = _bash_step(
            "download-chaincode-output",
            settings.init_image,
            "mkdir -p /chaincode/output && chmod -R 777 /chaincode/output && "
            f"curl -s -o- -L '{base_url}/{OUTPUT_ARCHIVE}' | "
            "tar -C /chaincode/output -xvf -",
        )
        populate = _bash_step(
            "populate-chaincode-artifacts",
            settings.init_image,
            tls.render_artifacts_script(
                run_config.root_cert, run_config.client_key, run_config.client_cert
            ),
        )
        chaincode = V1Container(
            name="chaincode",
            image=run_config.image,
            image_pull_policy="IfNotPresent",
            env=self.chaincode_env(run_config),
            working_dir=platform.mount_dir,
            command=platform.run_args(run_config.peer_address),
            resources=to_requirements(resources),
            volume_mounts=[
                V1VolumeMount(
                    name=VOLUME_NAME,
                    mount_path=tls.ARTIFACTS_DIR,
                    sub_path="artifacts",
                ),
                V1VolumeMount(
                    name=VOLUME_NAME,
                    mount_path=platform.mount_dir,
                    sub_path="output",
                ),
            ],
        )
        return _pod(
            run_pod_name(settings.pod_name, run_config.short_name),
            owner,
            PodRole.LAUNCHER,
            [download, populate],
            chaincode,
            "Always",
        )
