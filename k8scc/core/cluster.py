"""Cluster bridge — wraps the Kubernetes CoreV1 API behind a small Pod API.

Every failure is translated into ``ClusterAPIError`` carrying the operation
name and the HTTP status (``None`` for transport failures), so callers can
tell transient conditions from definitive ones without importing the
kubernetes client.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from kubernetes import client as k8s_client
from kubernetes import config as k8s_config
from kubernetes.client import V1Pod
from kubernetes.client.exceptions import ApiException
from kubernetes.config.config_exception import ConfigException
from urllib3.exceptions import HTTPError as Urllib3HTTPError

from k8scc.core.watcher import CancelToken
from k8scc.errors import ClusterAPIError, ConfigurationError, WatchCancelledError
from k8scc.models.pods import PodPhase

logger = logging.getLogger(__name__)


def load_core_api() -> k8s_client.CoreV1Api:
    """Build a CoreV1Api from in-cluster config, falling back to kubeconfig."""
    try:
        k8s_config.load_incluster_config()
        logger.debug("Using in-cluster Kubernetes configuration.")
    except ConfigException:
        try:
            k8s_config.load_kube_config()
        except ConfigException as exc:
            raise ConfigurationError(
                f"no Kubernetes configuration available: {exc}"
            ) from exc
        logger.debug("Using kubeconfig Kubernetes configuration.")
    return k8s_client.CoreV1Api()


class ClusterClient:
    """Create, inspect and delete Pods in one namespace.

    Parameters
    ----------
    namespace:
        Namespace holding the peer Pod and every Pod this tool creates.
    api:
        A ``CoreV1Api`` (or compatible object). Loaded from the environment
        when omitted.
    """

    def __init__(self, namespace: str, api: Any | None = None) -> None:
        self._namespace = namespace
        self._api = api if api is not None else load_core_api()

    @property
    def namespace(self) -> str:
        return self._namespace

    def _call(self, operation: str, fn, *args: Any, **kwargs: Any) -> Any:
        try:
            return fn(*args, **kwargs)
        except ApiException as exc:
            raise ClusterAPIError(operation, exc.status, exc.reason or "") from exc
        except Urllib3HTTPError as exc:
            raise ClusterAPIError(operation, None, str(exc)) from exc

    # ------------------------------------------------------------------
    # Pods
    # ------------------------------------------------------------------

    def get_pod(self, name: str) -> V1Pod:
        return self._call(
            f"get pod {name}", self._api.read_namespaced_pod, name, self._namespace
        )

    def create_pod(self, pod: V1Pod) -> V1Pod:
        name = pod.metadata.name
        created = self._call(
            f"create pod {name}",
            self._api.create_namespaced_pod,
            self._namespace,
            pod,
        )
        logger.info("Created Pod %s/%s", self._namespace, name)
        return created

    def delete_pod(self, name: str) -> None:
        self._call(
            f"delete pod {name}",
            self._api.delete_namespaced_pod,
            name,
            self._namespace,
        )
        logger.info("Deleted Pod %s/%s", self._namespace, name)

    def delete_pod_if_exists(self, name: str) -> bool:
        """Delete *name* if present. Returns True when a Pod was deleted."""
        try:
            self.get_pod(name)
        except ClusterAPIError as exc:
            if exc.not_found:
                return False
            raise
        logger.info("Killing previous pod: %s/%s", self._namespace, name)
        self.delete_pod(name)
        return True

    def wait_until_deleted(
        self,
        name: str,
        *,
        cancel: CancelToken | None = None,
        poll_interval: float = 1.0,
    ) -> None:
        """Block until *name* is gone from the API.

        A deleted Pod lingers in Terminating for its grace period, and a
        create with the same name fails with 409 until it disappears.

        Raises
        ------
        WatchCancelledError
            If *cancel* fires before the Pod disappears.
        """
        cancel = cancel or CancelToken()
        while True:
            if cancel.cancelled:
                raise WatchCancelledError(name)
            try:
                self.get_pod(name)
            except ClusterAPIError as exc:
                if exc.not_found:
                    return
                if not exc.transient:
                    raise
            logger.debug("Waiting for Pod %s/%s to terminate", self._namespace, name)
            cancel.wait(poll_interval)

    def pod_phase(self, name: str) -> PodPhase:
        """Current ``status.phase`` of *name*."""
        pod = self.get_pod(name)
        status = getattr(pod, "status", None)
        return PodPhase.parse(getattr(status, "phase", None))

    @contextmanager
    def scoped_pod(self, pod: V1Pod) -> Iterator[V1Pod]:
        """Create *pod* and delete it on every exit path."""
        created = self.create_pod(pod)
        try:
            yield created
        finally:
            self.cleanup_pod(pod.metadata.name)

    def cleanup_pod(self, name: str) -> None:
        """Best-effort delete: failures are logged, never raised."""
        try:
            self.delete_pod(name)
        except ClusterAPIError as exc:
            logger.warning("Cleanup of Pod %s/%s failed: %s", self._namespace, name, exc)
