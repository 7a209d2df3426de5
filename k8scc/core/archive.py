"""Directory tree archives exchanged with the staging store.

Entries are named relative to the archived directory and the directory itself
is never emitted, so extracting at any destination reproduces the same layout.
Symlinks are stored as links and file modes are preserved.
"""

from __future__ import annotations

import logging
import os
import tarfile
from pathlib import Path
from typing import BinaryIO

from k8scc.errors import LauncherError

logger = logging.getLogger(__name__)


class ArchiveError(LauncherError):
    """Raised when an archive cannot be created or safely extracted."""


def compress(src_dir: Path | str, fileobj: BinaryIO, *, gzip: bool = False) -> int:
    """Write a tar stream of *src_dir* into *fileobj*.

    Parameters
    ----------
    src_dir:
        Directory to archive. Must exist.
    fileobj:
        Writable binary stream.
    gzip:
        Compress the stream with gzip.

    Returns
    -------
    int
        Number of entries written.
    """
    root = Path(src_dir)
    if not root.is_dir():
        raise ArchiveError(f"cannot archive {root}: not a directory")

    count = 0
    mode = "w:gz" if gzip else "w"
    with tarfile.open(fileobj=fileobj, mode=mode) as tar:
        for dirpath, dirnames, filenames in os.walk(root):
            dirnames.sort()
            for name in sorted(dirnames) + sorted(filenames):
                full = Path(dirpath) / name
                arcname = full.relative_to(root).as_posix()
                # Non-recursive: os.walk already visits every directory,
                # and symlinked directories are added as links.
                tar.add(full, arcname=arcname, recursive=False)
                count += 1
    logger.debug("Archived %d entries from %s", count, root)
    return count


def _inside(root: Path, target: Path) -> bool:
    return target == root or root in target.parents


def _check_member(member: tarfile.TarInfo, root: Path) -> None:
    target = (root / member.name).resolve()
    if not _inside(root, target):
        raise ArchiveError(f"refusing to extract {member.name!r} outside {root}")
    if not (member.issym() or member.islnk()):
        return
    if os.path.isabs(member.linkname):
        raise ArchiveError(f"refusing link {member.name!r} to absolute path {member.linkname!r}")
    # Symlinks resolve from the link's directory, hard links from the root.
    base = (root / member.name).parent.resolve() if member.issym() else root
    if not _inside(root, (base / member.linkname).resolve()):
        raise ArchiveError(
            f"refusing link {member.name!r} -> {member.linkname!r} outside {root}"
        )


def extract(fileobj: BinaryIO, dest_dir: Path | str) -> list[str]:
    """Extract a tar stream (plain or gzip) into *dest_dir*.

    Members whose names would land outside *dest_dir*, and links pointing
    outside it, are rejected before anything is written. The ``tar``
    extraction filter then re-checks each member against what is already on
    disk.

    Returns
    -------
    list[str]
        Names of the extracted members.
    """
    dest = Path(dest_dir)
    dest.mkdir(parents=True, exist_ok=True)
    resolved_dest = dest.resolve()

    try:
        with tarfile.open(fileobj=fileobj, mode="r:*") as tar:
            members = tar.getmembers()
            for member in members:
                _check_member(member, resolved_dest)
            tar.extractall(dest, members=members, filter="tar")
    except tarfile.TarError as exc:
        raise ArchiveError(f"cannot extract archive into {dest}: {exc}") from exc
    return [m.name for m in members]
