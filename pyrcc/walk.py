"""Lazy tree walks producing transfer and deletion steps.

The walkers only read: they never create, write or delete anything.
Engines consume the steps and apply their own policy (create, skip,
abort), while progress sinks render them. Because the generators are
lazy, a remote directory is listed only after the consumer has handled the
step for the directory itself.
"""

import logging
import os
from collections.abc import Iterator
from pathlib import Path
from typing import Callable, Optional

from .exceptions import RemotePathNotFoundError, RemotePermissionError
from .models import RemoteEntry, StepKind, TransferStep
from .store import RemoteStore
from .utils import is_special_entry

logger = logging.getLogger(__name__)


def walk_remote(
    store: RemoteStore,
    entry: RemoteEntry,
    destination: str,
    join: Callable[[str, str], str],
    depth: int = 0,
) -> Iterator[TransferStep]:
    """Walk a remote subtree in pre-order.

    Args:
        store: Remote store to list
        entry: Root of the subtree
        destination: Destination path of the root
        join: Function joining a destination directory and a child name
        depth: Nesting depth of ``entry``

    Yields:
        A MKDIR step for each directory before the steps of its children,
        and a FILE step for each file, in listing order
    """
    if not entry.is_directory:
        yield TransferStep(StepKind.FILE, entry.path, destination, entry.size, depth)
        return

    yield TransferStep(StepKind.MKDIR, entry.path, destination, 0, depth)
    for child in store.list_directory(entry.path):
        if is_special_entry(child.name):
            continue
        yield from walk_remote(
            store, child, join(destination, child.name), join, depth + 1
        )


def walk_local(
    local_path: Path,
    destination: str,
    depth: int = 0,
    warn: Optional[Callable[[str], None]] = None,
) -> Iterator[TransferStep]:
    """Walk a local tree depth-first for an upload.

    Subdirectories are yielded and descended into before the files of
    the same directory, so the remote tree is built in the local shape.
    Entries that cannot be read, such as dangling symlinks or directories
    without permission, are reported through ``warn`` and left out.

    Args:
        local_path: Local file or directory
        destination: Remote destination path of ``local_path``
        depth: Nesting depth of ``local_path``
        warn: Receives a message for every skipped entry (logs if not provided)

    Yields:
        Transfer steps with local sources and remote destinations
    """
    warn = warn or logger.warning
    if not local_path.is_dir():
        try:
            size = local_path.stat().st_size
        except OSError as e:
            warn(f"Cannot read {local_path}, skipping: {e.strerror or e}")
            return
        yield TransferStep(StepKind.FILE, str(local_path), destination, size, depth)
        return

    try:
        children = sorted(local_path.iterdir(), key=lambda p: p.name)
    except OSError as e:
        warn(f"Cannot read {local_path}, skipping: {e.strerror or e}")
        return
    yield TransferStep(StepKind.MKDIR, str(local_path), destination, 0, depth)
    directories = [child for child in children if child.is_dir()]
    files = [child for child in children if not child.is_dir()]
    for child in directories + files:
        yield from walk_local(
            child, f"{destination.rstrip('/')}/{child.name}", depth + 1, warn
        )


def walk_post_order(store: RemoteStore, entry: RemoteEntry) -> Iterator[RemoteEntry]:
    """Walk a remote subtree children-first.

    Every descendant of a directory is yielded before the directory,
    which is the order required to remove a tree.
    """
    if entry.is_directory:
        for child in store.list_directory(entry.path):
            if is_special_entry(child.name):
                continue
            yield from walk_post_order(store, child)
    yield entry


def walk_tolerant(
    store: RemoteStore, entry: RemoteEntry, is_root: bool = True
) -> Iterator[RemoteEntry]:
    """Walk a remote subtree in pre-order, skipping what cannot be read.

    A descendant directory that vanished or became unreadable since its
    parent was listed is skipped together with its contents. The root is
    always yielded.
    """
    children: list[RemoteEntry] = []
    if entry.is_directory:
        try:
            children = store.list_directory(entry.path)
        except (RemotePathNotFoundError, RemotePermissionError) as e:
            logger.debug(f"Skipping {entry.path}: {e}")
            if not is_root:
                return
    yield entry
    for child in children:
        if is_special_entry(child.name):
            continue
        yield from walk_tolerant(store, child, is_root=False)


def local_join(directory: str, name: str) -> str:
    """Join a local directory and an entry name."""
    return os.path.join(directory, name)
