"""k8scc CLI — Typer-based command-line interface.

Provides the ``k8scc`` command with the external builder procedures
(build, run, detect, release) and the exchange store server.

All human-facing output uses Rich on stderr; logs go through a RichHandler.
"""
