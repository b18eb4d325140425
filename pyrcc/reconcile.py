"""Move, copy and delete of remote trees."""

import logging
from typing import Callable, Optional

import click

from .exceptions import PathConflictError
from .models import (
    AggregateSize,
    DeleteResult,
    MoveResult,
    RemoteEntry,
    StepKind,
    TransferResult,
    returns_outcome,
)
from .output import OutputFormatter
from .progress import ProgressSink
from .store import RemoteStore
from .transfer import ProgressMixin, copy_stream, remove_partial_remote
from .utils import format_size, join_remote, resolve_remote_path
from .walk import walk_post_order, walk_remote, walk_tolerant

logger = logging.getLogger(__name__)

ConfirmCallback = Callable[[str], bool]


def prompt_yes_no(message: str) -> bool:
    """Ask a Y/N question until one of the two is typed.

    Args:
        message: Question to show

    Returns:
        True for Y, False for N (case-insensitive)
    """
    answer = click.prompt(
        f"{message} [Y/N]",
        type=click.Choice(["y", "n"], case_sensitive=False),
        show_choices=False,
    )
    return answer.lower() == "y"


def aggregate_size(store: RemoteStore, entry: RemoteEntry) -> AggregateSize:
    """Sum file sizes and count entries over a remote subtree.

    The count includes the root. Descendants that vanish or cannot be
    read during the walk are skipped.

    Args:
        store: Remote store
        entry: Root of the subtree

    Returns:
        Total bytes of all files and the number of entries visited
    """
    total = AggregateSize()
    for item in walk_tolerant(store, entry):
        size = 0 if item.is_directory else item.size
        total += AggregateSize(size, 1)
    return total


class ReconcileEngine(ProgressMixin):
    """Moves, copies and deletes remote files and directory trees.

    Unlike a push, a move or copy never skips: an existing destination
    fails the whole operation.
    """

    def __init__(
        self,
        store: RemoteStore,
        out: OutputFormatter,
        sink: Optional[ProgressSink] = None,
        confirm: Optional[ConfirmCallback] = None,
    ):
        """Initialize the engine.

        Args:
            store: Connected remote store
            out: Output formatter
            sink: Progress sink used when progress is requested
            confirm: Callback asking the operator a Y/N question
                (defaults to an interactive prompt)
        """
        self.store = store
        self.out = out
        self.sink = sink
        self.confirm = confirm or prompt_yes_no

    def _resolve(self, path: str) -> str:
        return resolve_remote_path(path, self.store.current_working_directory)

    @returns_outcome
    def move(
        self,
        old_path: str,
        new_path: str,
        copy: bool = False,
        show_progress: bool = False,
    ) -> MoveResult:
        """Rename or copy a remote file or directory.

        Args:
            old_path: Existing remote path
            new_path: Destination, which must not exist
            copy: Copy instead of renaming, leaving the source untouched
            show_progress: Report per-chunk progress while copying

        Returns:
            Outcome wrapping the move result
        """
        source = self._resolve(old_path)
        destination = self._resolve(new_path)
        entry = self.store.get_attributes(source)
        if self.store.exists(destination):
            raise PathConflictError(f"Remote path already exists: {destination}")

        if not copy:
            self.store.rename_file(source, destination)
            self.out.success(f"Moved {source} to {destination}")
            return MoveResult(source=source, destination=destination)

        if entry.is_directory and destination.startswith(source.rstrip("/") + "/"):
            raise PathConflictError(
                f"Cannot copy {source} into its own subdirectory {destination}"
            )

        transfer = self._copy_tree(entry, destination, show_progress)
        self.out.success(
            f"Copied {source} to {destination} "
            f"({transfer.files} file(s), {format_size(transfer.bytes_transferred)})"
        )
        return MoveResult(
            source=source, destination=destination, copied=True, transfer=transfer
        )

    def _copy_tree(
        self, entry: RemoteEntry, destination: str, show_progress: bool
    ) -> TransferResult:
        result = TransferResult(source=entry.path, destination=destination)
        with self._progress(show_progress) as sink:
            for step in walk_remote(self.store, entry, destination, join_remote):
                if step.kind == StepKind.MKDIR:
                    self.store.create_directory(step.destination)
                    result.directories += 1
                    continue

                sink.status(f"Copying {step.source} to {step.destination}")
                try:
                    with self.store.open_read(step.source) as src, self.store.open_write(
                        step.destination
                    ) as dst:
                        result.bytes_transferred += copy_stream(
                            src, dst, step.size, sink
                        )
                except BaseException:
                    remove_partial_remote(self.store, step.destination)
                    raise
                finally:
                    sink.clear_line()
                result.files += 1
                logger.debug(f"Copied {step.source} to {step.destination}")
        return result

    @returns_outcome
    def delete(
        self, remote_path: str, confirm: Optional[ConfirmCallback] = None
    ) -> DeleteResult:
        """Delete a remote file or directory tree after confirmation.

        Directories are removed post-order: every descendant is deleted
        before the directory that contains it.

        Args:
            remote_path: Remote path, relative to the working directory
            confirm: Callback replacing the engine's confirmation for this call

        Returns:
            Outcome wrapping the delete result; ``aborted`` is set when
            the operator answers N
        """
        target = self._resolve(remote_path)
        entry = self.store.get_attributes(target)
        size = aggregate_size(self.store, entry)
        result = DeleteResult(path=target, size=size)

        kind = "directory" if entry.is_directory else "file"
        self.out.print(
            f"Deleting {kind} {target}: {size.count} entries, "
            f"{format_size(size.total_bytes)}"
        )
        ask = confirm or self.confirm
        if not ask(f"Delete {target}?"):
            result.aborted = True
            self.out.warning("Aborted")
            return result

        for item in walk_post_order(self.store, entry):
            if item.is_directory:
                self.store.delete_directory(item.path)
            else:
                self.store.delete_file(item.path)
            result.deleted += 1
            logger.debug(f"Deleted {item.path}")

        self.out.success(f"Deleted {target} ({result.deleted} entries)")
        return result
