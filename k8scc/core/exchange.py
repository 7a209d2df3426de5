"""Artifact exchange client — talks to the HTTP staging store.

Every transfer is addressed by a base URL of the form
``<exchange root>/<build identifier>``. Failures are fatal and never retried
here; the BUILD/RUN procedure surfaces them to the peer.
"""

from __future__ import annotations

import logging

import requests

from k8scc.errors import ExchangeError

logger = logging.getLogger(__name__)

SOURCE_ARCHIVE = "chaincode-source.tar"
OUTPUT_ARCHIVE = "chaincode-output.tar"


class ExchangeClient:
    """Upload/download archives to/from the exchange store.

    Parameters
    ----------
    root_url:
        Root URL of the exchange store (e.g. ``http://fileserver:8080``).
    session:
        Optional ``requests.Session``; a fresh one is created if omitted.
    timeout:
        Per-request timeout in seconds.
    """

    def __init__(
        self,
        root_url: str,
        *,
        session: requests.Session | None = None,
        timeout: float = 120.0,
    ) -> None:
        self._root = root_url.rstrip("/")
        self._session = session or requests.Session()
        self._timeout = timeout

    def base_url(self, build_id: str) -> str:
        """Staging location for one build identifier."""
        return f"{self._root}/{build_id}"

    def upload(self, base_url: str, data: bytes, name: str = SOURCE_ARCHIVE) -> None:
        """POST *data* to ``<base_url>/<name>``.

        Raises
        ------
        ExchangeError
            On a non-2xx status or when the store cannot be reached.
        """
        url = f"{base_url}/{name}"
        logger.info("Uploading %d bytes to %s", len(data), url)
        try:
            resp = self._session.post(
                url,
                data=data,
                headers={"Content-Type": "application/octet-stream"},
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise ExchangeError(f"upload to {url} failed: {exc}") from exc
        if not 200 <= resp.status_code < 300:
            raise ExchangeError(
                f"upload to {url} received {resp.status_code} from server",
                status_code=resp.status_code,
            )
        logger.info("Uploaded %s (%d)", url, resp.status_code)

    def download(self, base_url: str, name: str = OUTPUT_ARCHIVE) -> bytes:
        """GET ``<base_url>/<name>`` and return the body."""
        url = f"{base_url}/{name}"
        logger.info("Downloading %s", url)
        try:
            resp = self._session.get(url, timeout=self._timeout)
        except requests.RequestException as exc:
            raise ExchangeError(f"download from {url} failed: {exc}") from exc
        if not 200 <= resp.status_code < 300:
            raise ExchangeError(
                f"download from {url} received {resp.status_code} from server",
                status_code=resp.status_code,
            )
        return resp.content
