"""Filesystem helpers for materializing vendored content."""

from __future__ import annotations

import shutil
from pathlib import Path


def copy_path(source: Path, destination: Path) -> None:
    """Copy a file or directory tree to ``destination``, replacing what is there.

    Replacing (rather than merging into) an existing directory means files
    deleted on the source side disappear on the destination side too.
    """
    if destination.exists() or destination.is_symlink():
        remove_path(destination)
    destination.parent.mkdir(parents=True, exist_ok=True)
    if source.is_dir():
        shutil.copytree(source, destination, symlinks=True)
    else:
        shutil.copy2(source, destination)


def remove_path(path: Path) -> None:
    """Delete a file or a directory tree."""
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink()
