"""``k8scc build|run|detect|release`` — the external builder procedures.

The peer invokes each procedure with positional directories only; argument
counts are validated by the Launcher before any cluster interaction.
"""

from __future__ import annotations

import logging
import signal
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from k8scc.config import load_settings
from k8scc.core.launcher import Launcher
from k8scc.errors import LauncherError

console = Console(stderr=True)

_ARGS_HELP = "Positional directories passed by the peer."

ConfigOption = typer.Option(
    None,
    "--config",
    "-c",
    help="YAML configuration file (defaults to $K8SCC_CONFIG_FILE).",
)


def setup_logging(level: str) -> None:
    """Route log records through Rich on stderr."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=False)],
        force=True,
    )


def make_launcher(config: Path | None) -> Launcher:
    settings = load_settings(config)
    setup_logging(settings.log_level)
    return Launcher(settings)


@contextmanager
def cancel_on_signal(launcher: Launcher) -> Iterator[None]:
    """Turn SIGTERM/SIGINT into a cancellation of the running watch."""

    def _handler(signum: int, frame: object) -> None:
        logging.getLogger(__name__).warning("Signal %d received, cancelling", signum)
        launcher.cancel.cancel()

    previous = {
        sig: signal.signal(sig, _handler) for sig in (signal.SIGTERM, signal.SIGINT)
    }
    try:
        yield
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)


def _fail(exc: LauncherError) -> typer.Exit:
    console.print(f"[red]Error:[/red] {exc}")
    return typer.Exit(code=1)


def build_cmd(
    args: list[str] = typer.Argument(None, help=_ARGS_HELP, show_default=False),
    config: Path = ConfigOption,
) -> None:
    """Build a chaincode package: SOURCE_DIR METADATA_DIR OUTPUT_DIR."""
    try:
        launcher = make_launcher(config)
        with cancel_on_signal(launcher):
            info = launcher.build(args or [])
    except LauncherError as exc:
        raise _fail(exc) from exc
    console.print(
        f"[green]Build succeeded[/green] image={info.image} platform={info.platform}"
    )


def run_cmd(
    args: list[str] = typer.Argument(None, help=_ARGS_HELP, show_default=False),
    config: Path = ConfigOption,
) -> None:
    """Run a built chaincode: OUTPUT_DIR METADATA_DIR."""
    try:
        launcher = make_launcher(config)
        with cancel_on_signal(launcher):
            launcher.run(args or [])
    except LauncherError as exc:
        raise _fail(exc) from exc


def detect_cmd(
    args: list[str] = typer.Argument(None, help=_ARGS_HELP, show_default=False),
    config: Path = ConfigOption,
) -> None:
    """Exit 0 if the package can be built here: SOURCE_DIR METADATA_DIR."""
    try:
        supported = make_launcher(config).detect(args or [])
    except LauncherError as exc:
        raise _fail(exc) from exc
    if not supported:
        raise typer.Exit(code=1)


def release_cmd(
    args: list[str] = typer.Argument(None, help=_ARGS_HELP, show_default=False),
    config: Path = ConfigOption,
) -> None:
    """Release build metadata: BUILD_OUTPUT_DIR RELEASE_OUTPUT_DIR."""
    try:
        make_launcher(config).release(args or [])
    except LauncherError as exc:
        raise _fail(exc) from exc
