"""Exchange store — a plain HTTP file server over a shared directory.

``GET /<buildID>/<name>`` returns the stored bytes (404 if absent).
``POST|PUT /<buildID>/<path...>`` stores the request body, creating parent
directories. There is no authentication and no atomicity beyond
last-write-wins.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import FileResponse
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class FileServerSettings(BaseSettings):
    """Settings for the exchange store process."""

    model_config = SettingsConfigDict(
        env_prefix="K8SCC_FILESERVER_",
        extra="ignore",
        frozen=True,
        populate_by_name=True,
    )

    shared_dir: Path = Field(
        default=Path("/var/hyperledger/k8scc"),
        validation_alias=AliasChoices(
            "K8SCC_FILESERVER_SHARED_DIR", "CHAINCODE_SHARED_DIR"
        ),
    )
    http_address: str = Field(
        default=":8080",
        validation_alias=AliasChoices(
            "K8SCC_FILESERVER_HTTP_ADDRESS", "HTTP_ADDRESS"
        ),
    )


def parse_address(address: str) -> tuple[str, int]:
    """Split ``host:port`` (host optional) into a bindable pair."""
    host, _, port = address.rpartition(":")
    if not port.isdigit():
        raise ValueError(f"invalid listen address {address!r}")
    return host or "0.0.0.0", int(port)


def _resolve(root: Path, url_path: str) -> Path:
    target = (root / url_path.lstrip("/")).resolve()
    if target == root or root not in target.parents:
        raise HTTPException(status_code=400, detail=f"invalid path {url_path!r}")
    return target


def create_app(shared_dir: Path | str) -> FastAPI:
    """Build the exchange store application serving *shared_dir*."""
    root = Path(shared_dir).resolve()
    root.mkdir(parents=True, exist_ok=True)
    app = FastAPI(title="k8scc exchange store")

    @app.get("/{file_path:path}")
    async def download(file_path: str) -> FileResponse:
        logger.info("Url=/%s Method GET", file_path)
        target = _resolve(root, file_path)
        if not target.is_file():
            raise HTTPException(status_code=404, detail="not found")
        return FileResponse(target, media_type="application/octet-stream")

    @app.api_route("/{file_path:path}", methods=["POST", "PUT"])
    async def upload(file_path: str, request: Request) -> dict[str, object]:
        logger.info("Url=/%s Method %s", file_path, request.method)
        target = _resolve(root, file_path)
        body = await request.body()
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(body)
        os.chmod(target, 0o755)
        logger.info("File uploaded to %s (%d bytes)", target, len(body))
        return {"path": "/" + target.relative_to(root).as_posix(), "size": len(body)}

    return app
