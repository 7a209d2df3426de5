"""Build identity resolver.

The peer hands the builder a source directory such as::

    /tmp/fabric-fabcar_1-1860815d78bd593aed9728d27eb8bb8c180b7e7e9918057eecb0cf6e4f38223d930256401/src

and the launcher an output directory such as::

    /var/hyperledger/production/externalbuilder/builds/fabcar_1-1860815d78bd.../bld

Both carry a segment ``<name>-<hexhash>``. The build identifier is the first
``BUILD_ID_LENGTH`` characters of that hash; it keys the staging location in
the exchange store, so BUILD and RUN must derive it the same way. This naming
is a contract with the peer process.
"""

from __future__ import annotations

import re
from pathlib import PurePosixPath

from k8scc.errors import MalformedPathError

BUILD_ID_LENGTH = 10

_HASH_PREFIX = re.compile(rf"^[0-9a-fA-F]{{{BUILD_ID_LENGTH},}}")


def resolve_build_id(path: str) -> str:
    """Return the build identifier encoded in *path*.

    Segments are scanned from the deepest upwards; the first one of the form
    ``<anything>-<hash>`` whose hash starts with at least ``BUILD_ID_LENGTH``
    hexadecimal characters wins.

    Raises
    ------
    MalformedPathError
        If no segment carries a hash of sufficient length.
    """
    for segment in reversed(PurePosixPath(path).parts):
        if "-" not in segment:
            continue
        _, candidate = segment.rsplit("-", 1)
        match = _HASH_PREFIX.match(candidate)
        if match:
            return match.group(0)[:BUILD_ID_LENGTH]
    raise MalformedPathError(
        f"no '<name>-<hash>' segment with at least {BUILD_ID_LENGTH} "
        f"hex characters in path {path!r}"
    )


def resolve_build_id_for_run(output_dir: str) -> str:
    """Resolve the identifier at RUN time from the build output directory."""
    return resolve_build_id(output_dir)
