"""Main Typer application — registers all CLI commands.

Entry points (pyproject.toml console_scripts):

- ``k8scc`` — the full command group.
- ``k8scc-build``, ``k8scc-run``, ``k8scc-detect``, ``k8scc-release`` —
  single-procedure executables a peer can use as ``bin/<procedure>`` of an
  external builder.
"""

from __future__ import annotations

import sys
from collections.abc import Callable

import typer

from k8scc.cli.commands.fileserver import fileserver_cmd
from k8scc.cli.commands.procedures import (
    build_cmd,
    detect_cmd,
    release_cmd,
    run_cmd,
)

app = typer.Typer(
    name="k8scc",
    help="Kubernetes external builder and launcher for chaincode.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

app.command(name="build", help="Build chaincode in a BUILD Pod.")(build_cmd)
app.command(name="run", help="Run built chaincode in a RUN Pod.")(run_cmd)
app.command(name="detect", help="Check whether a package can be built.")(detect_cmd)
app.command(name="release", help="Release build metadata to the peer.")(release_cmd)
app.command(name="fileserver", help="Serve the artifact exchange store.")(fileserver_cmd)


def _procedure(name: str) -> Callable[[], None]:
    def entry() -> None:
        app([name, *sys.argv[1:]], prog_name=f"k8scc-{name}")

    entry.__name__ = f"{name}_main"
    return entry


build_main = _procedure("build")
run_main = _procedure("run")
detect_main = _procedure("detect")
release_main = _procedure("release")


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
