"""Launcher — the BUILD, RUN, DETECT and RELEASE procedures the peer invokes.

The Launcher wires together the exchange client, the pod spec builder, the
cluster bridge and the lifecycle watcher. Each procedure validates its
positional arguments before touching the cluster.

Cleanup policy:

- BUILD deletes its Pod on success only; a failed BUILD Pod stays for
  inspection.
- RUN deletes its Pod on every exit path, since it carries TLS keys.
- RUN replaces a previous Pod of the same name, waiting until it has
  terminated before creating the new one.
"""

from __future__ import annotations

import io
import logging
import shutil
from collections.abc import Sequence
from pathlib import Path

from k8scc.config import LauncherSettings
from k8scc.core.archive import compress
from k8scc.core.build_id import resolve_build_id, resolve_build_id_for_run
from k8scc.core.cluster import ClusterClient
from k8scc.core.exchange import ExchangeClient
from k8scc.core.metadata import (
    load_metadata,
    load_run_config,
    write_build_info,
)
from k8scc.core.platforms import PlatformRegistry
from k8scc.core.pod_builder import BUILDER_CONTAINER, PodSpecBuilder, run_pod_name
from k8scc.core.watcher import CancelToken, PodWatcher
from k8scc.errors import ConfigurationError, WorkloadFailedError
from k8scc.models.chaincode import BuildInformation
from k8scc.models.pods import PodPhase

logger = logging.getLogger(__name__)

META_INF = "META-INF"


def _require_args(procedure: str, args: Sequence[str], count: int, names: str) -> None:
    if len(args) != count:
        raise ConfigurationError(
            f"{procedure} requires exactly {count} arguments ({names}), got {len(args)}"
        )


class Launcher:
    """Entry point for the external builder procedures.

    Parameters
    ----------
    settings:
        Process-wide settings.
    cluster:
        Cluster bridge. Created from the environment on first use if omitted,
        so procedures that never touch the cluster need no kubeconfig.
    exchange:
        Exchange store client. Defaults to one at ``settings.file_server_url``.
    registry:
        Chaincode platform registry. Defaults to the built-in platforms.
    cancel:
        Cancellation token bounding every watch.
    """

    def __init__(
        self,
        settings: LauncherSettings,
        *,
        cluster: ClusterClient | None = None,
        exchange: ExchangeClient | None = None,
        registry: PlatformRegistry | None = None,
        cancel: CancelToken | None = None,
    ) -> None:
        self.settings = settings
        self._cluster = cluster
        self.exchange = exchange or ExchangeClient(settings.exchange_root)
        self.registry = registry or PlatformRegistry()
        self.pods = PodSpecBuilder(settings)
        self.cancel = cancel or CancelToken(settings.timeout_seconds)

    @property
    def cluster(self) -> ClusterClient:
        if self._cluster is None:
            self._cluster = ClusterClient(self.settings.namespace)
        return self._cluster

    def _watch(self, pod_name: str) -> bool:
        watcher = PodWatcher(
            pod_name,
            lambda: self.cluster.pod_phase(pod_name),
            cancel=self.cancel,
            poll_interval=self.settings.poll_interval_seconds,
            max_backoff=self.settings.max_backoff_seconds,
        )
        return watcher.watch_until_terminal()

    # ------------------------------------------------------------------
    # BUILD
    # ------------------------------------------------------------------

    def build(self, args: Sequence[str]) -> BuildInformation:
        """Build a chaincode in a BUILD Pod.

        Arguments: ``SOURCE_DIR METADATA_DIR OUTPUT_DIR``.

        Returns the BuildInformation written to the output directory.
        """
        logger.info("Procedure: build")
        _require_args("build", args, 3, "source dir, metadata dir, output dir")
        source_dir, metadata_dir, output_dir = (Path(a) for a in args)
        logger.info("Source dir=%s", source_dir)
        logger.info("Metadata dir=%s", metadata_dir)
        logger.info("Output dir=%s", output_dir)

        build_id = resolve_build_id(str(source_dir))
        metadata = load_metadata(metadata_dir, metadata_id=build_id)
        platform = self.registry.get(metadata.type)

        buf = io.BytesIO()
        entries = compress(source_dir, buf, gzip=self.settings.compress_archives)
        logger.info("Archive created (%d entries, %d bytes)", entries, buf.tell())

        base_url = self.exchange.base_url(build_id)
        self.exchange.upload(base_url, buf.getvalue())

        owner = self.cluster.get_pod(self.settings.pod_name)
        pod = self.pods.builder_pod(
            metadata,
            platform,
            base_url,
            owner,
            compressed=self.settings.compress_archives,
        )
        pod_name = pod.metadata.name
        self.cluster.create_pod(pod)

        if not self._watch(pod_name):
            raise WorkloadFailedError(pod_name, PodPhase.FAILED.value, metadata.label)

        meta_inf = source_dir / META_INF
        if meta_inf.is_dir():
            shutil.copytree(meta_inf, output_dir / META_INF, dirs_exist_ok=True)

        builder = next(c for c in pod.spec.init_containers if c.name == BUILDER_CONTAINER)
        info = BuildInformation(image=builder.image, platform=metadata.type)
        write_build_info(output_dir, info)

        self.cluster.cleanup_pod(pod_name)
        return info

    # ------------------------------------------------------------------
    # RUN
    # ------------------------------------------------------------------

    def run(self, args: Sequence[str]) -> None:
        """Run a built chaincode in a RUN Pod until it terminates.

        Arguments: ``OUTPUT_DIR METADATA_DIR``.
        """
        logger.info("Procedure: run")
        _require_args("run", args, 2, "output dir, metadata dir")
        output_dir, metadata_dir = args
        logger.info("Output dir=%s", output_dir)
        logger.info("Metadata dir=%s", metadata_dir)

        build_id = resolve_build_id_for_run(output_dir)
        run_config = load_run_config(
            metadata_dir, output_dir, peer_url=self.settings.peer_url
        )
        platform = self.registry.get(run_config.platform)
        base_url = self.exchange.base_url(build_id)
        logger.info("Chaincode base path URL=%s", base_url)

        # At most one instance per short name: last writer wins.
        previous = run_pod_name(self.settings.pod_name, run_config.short_name)
        if self.cluster.delete_pod_if_exists(previous):
            self.cluster.wait_until_deleted(
                previous,
                cancel=self.cancel,
                poll_interval=self.settings.poll_interval_seconds,
            )

        owner = self.cluster.get_pod(self.settings.pod_name)
        pod = self.pods.chaincode_pod(run_config, platform, base_url, owner)
        pod_name = pod.metadata.name
        with self.cluster.scoped_pod(pod):
            if not self._watch(pod_name):
                raise WorkloadFailedError(
                    pod_name, PodPhase.FAILED.value, run_config.chaincode_id
                )

    # ------------------------------------------------------------------
    # DETECT / RELEASE
    # ------------------------------------------------------------------

    def detect(self, args: Sequence[str]) -> bool:
        """Whether this builder can handle the chaincode package.

        Arguments: ``SOURCE_DIR METADATA_DIR``.
        """
        _require_args("detect", args, 2, "source dir, metadata dir")
        metadata = load_metadata(args[1])
        supported = self.registry.supports(metadata.type) and bool(
            self.settings.image_for(metadata.type)
        )
        logger.info("Detect type=%s supported=%s", metadata.type, supported)
        return supported

    def release(self, args: Sequence[str]) -> bool:
        """Copy state database indexes from the build output to the release dir.

        Arguments: ``BUILD_OUTPUT_DIR RELEASE_OUTPUT_DIR``.

        Returns True when ``META-INF/statedb`` was present and copied.
        """
        _require_args("release", args, 2, "build output dir, release output dir")
        output_dir, release_dir = (Path(a) for a in args)
        statedb = output_dir / META_INF / "statedb"
        if not statedb.is_dir():
            logger.info("No %s to release", statedb)
            return False
        shutil.copytree(statedb, release_dir / "statedb", dirs_exist_ok=True)
        logger.info("Released %s to %s", statedb, release_dir)
        return True
