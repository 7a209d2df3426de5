"""``k8scc fileserver`` — serve the exchange store."""

from __future__ import annotations

from pathlib import Path

import typer
import uvicorn
from rich.console import Console

from k8scc.config import by_alias
from k8scc.fileserver.app import FileServerSettings, create_app, parse_address

console = Console()


def fileserver_cmd(
    shared_dir: Path = typer.Option(
        None,
        "--shared-dir",
        "-d",
        help="Directory backing the store (defaults to $CHAINCODE_SHARED_DIR).",
    ),
    address: str = typer.Option(
        None,
        "--address",
        "-a",
        help="Listen address host:port (defaults to $HTTP_ADDRESS or :8080).",
    ),
    log_level: str = typer.Option("info", help="Uvicorn log level."),
) -> None:
    """Serve GET/POST/PUT over a shared directory."""
    overrides: dict[str, object] = {}
    if shared_dir is not None:
        overrides["shared_dir"] = shared_dir
    if address is not None:
        overrides["http_address"] = address
    settings = FileServerSettings(**by_alias(FileServerSettings, overrides))

    try:
        host, port = parse_address(settings.http_address)
    except ValueError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    console.print(f"Listening on {host}:{port}, serving [bold]{settings.shared_dir}[/bold]")
    uvicorn.run(create_app(settings.shared_dir), host=host, port=port, log_level=log_level)
