"""HTTP exchange store used to stage archives between phases."""

from k8scc.fileserver.app import FileServerSettings, create_app, parse_address

__all__ = ["FileServerSettings", "create_app", "parse_address"]
