"""Recursive pull and push between the local filesystem and a remote store."""

import logging
from contextlib import AbstractContextManager, nullcontext
from pathlib import Path
from typing import IO, Optional

from .config import config
from .exceptions import (
    LocalPathConflictError,
    LocalPathNotFoundError,
    RccError,
)
from .models import StepKind, TransferResult, TransferStep, returns_outcome
from .output import OutputFormatter
from .progress import ProgressSink, make_progress_sink
from .store import RemoteStore
from .utils import format_size, resolve_remote_path
from .walk import local_join, walk_local, walk_remote

logger = logging.getLogger(__name__)


def copy_stream(
    source: IO[bytes],
    destination: IO[bytes],
    total: int,
    sink: ProgressSink,
    chunk_size: Optional[int] = None,
) -> int:
    """Copy a byte stream through a bounded buffer.

    Args:
        source: Stream to read from
        destination: Stream to write to
        total: Expected number of bytes, used for progress
        sink: Receives a report after every chunk
        chunk_size: Buffer size (uses config if not provided)

    Returns:
        Number of bytes copied
    """
    chunk_size = chunk_size or config.chunk_size
    done = 0
    sink.report(done, total)
    while True:
        chunk = source.read(chunk_size)
        if not chunk:
            break
        destination.write(chunk)
        done += len(chunk)
        sink.report(done, total)
    return done


class ProgressMixin:
    """Selects the progress sink for one operation."""

    sink: Optional[ProgressSink] = None

    def _progress(self, show_progress: bool) -> AbstractContextManager:
        if show_progress and self.sink is not None:
            return nullcontext(self.sink)
        return make_progress_sink(show_progress)


class TransferEngine(ProgressMixin):
    """Pulls remote trees to local disk and pushes local trees to the store.

    Collision policies differ on purpose: a pull never writes over an
    existing local path and fails instead, while a push skips every
    remote destination that already exists with a warning, so that an
    interrupted directory push can be completed by pushing again.
    """

    def __init__(
        self,
        store: RemoteStore,
        out: OutputFormatter,
        sink: Optional[ProgressSink] = None,
    ):
        """Initialize the transfer engine.

        Args:
            store: Connected remote store
            out: Output formatter
            sink: Progress sink used when progress is requested
                (a rich display is created if not provided)
        """
        self.store = store
        self.out = out
        self.sink = sink

    @returns_outcome
    def pull(
        self, remote_path: str, local_path: str, show_progress: bool = False
    ) -> TransferResult:
        """Download a remote file or directory tree.

        Args:
            remote_path: Remote source, relative to the working directory
            local_path: Local destination, which must not exist

        Returns:
            Outcome wrapping the transfer statistics
        """
        source = resolve_remote_path(
            remote_path, self.store.current_working_directory
        )
        entry = self.store.get_attributes(source)
        destination = Path(local_path)
        if destination.exists() or destination.is_symlink():
            raise LocalPathConflictError(f"Local path already exists: {destination}")

        result = TransferResult(source=source, destination=str(destination))
        with self._progress(show_progress) as sink:
            for step in walk_remote(self.store, entry, str(destination), local_join):
                if step.kind == StepKind.MKDIR:
                    self._make_local_directory(step.destination)
                    result.directories += 1
                    continue
                result.bytes_transferred += self._pull_file(step, sink)
                result.files += 1
                self.out.info(f"Pulled {step.source} to {step.destination}")

        self.out.success(
            f"Pulled {source} to {destination} "
            f"({result.files} file(s), {format_size(result.bytes_transferred)})"
        )
        return result

    def _make_local_directory(self, path: str) -> None:
        try:
            Path(path).mkdir()
        except FileExistsError as e:
            raise LocalPathConflictError(f"Local path already exists: {path}") from e
        except OSError as e:
            raise RccError(f"Cannot create directory {path}: {e}") from e
        logger.debug(f"Created local directory {path}")

    def _pull_file(self, step: TransferStep, sink: ProgressSink) -> int:
        try:
            target = open(step.destination, "xb")
        except FileExistsError as e:
            raise LocalPathConflictError(
                f"Local path already exists: {step.destination}"
            ) from e
        except OSError as e:
            raise RccError(f"Cannot create {step.destination}: {e}") from e

        sink.status(f"Pulling {step.source} to {step.destination}")
        try:
            with target, self.store.open_read(step.source) as source:
                return copy_stream(source, target, step.size, sink)
        except BaseException:
            # Never leave a truncated file behind
            Path(step.destination).unlink(missing_ok=True)
            raise
        finally:
            sink.clear_line()

    @returns_outcome
    def push(
        self, local_path: str, remote_path: str, show_progress: bool = False
    ) -> TransferResult:
        """Upload a local file or directory tree.

        Remote destinations that already exist are skipped with a warning.
        For an existing directory only its creation is skipped; its
        contents are still walked. A directory whose destination is a
        remote file is skipped with everything below it, as are local
        entries that cannot be read.

        Args:
            local_path: Local source file or directory
            remote_path: Remote destination, relative to the working directory

        Returns:
            Outcome wrapping the transfer statistics
        """
        source = Path(local_path)
        if not source.is_file() and not source.is_dir():
            raise LocalPathNotFoundError(f"Local path does not exist: {source}")
        destination = resolve_remote_path(
            remote_path, self.store.current_working_directory
        )

        result = TransferResult(source=str(source), destination=destination)
        # Destination prefix of a directory blocked by a remote file
        blocked: Optional[str] = None
        with self._progress(show_progress) as sink:
            for step in walk_local(source, destination, warn=self.out.warning):
                if blocked is not None and step.destination.startswith(blocked):
                    continue
                if self.store.exists(step.destination):
                    if (
                        step.kind == StepKind.MKDIR
                        and not self.store.get_attributes(step.destination).is_directory
                    ):
                        self.out.warning(
                            "Remote path is a file, skipping directory: "
                            f"{step.destination}"
                        )
                        blocked = step.destination.rstrip("/") + "/"
                    else:
                        self.out.warning(
                            f"Remote path already exists, skipping: {step.destination}"
                        )
                    result.skipped += 1
                    continue
                if step.kind == StepKind.MKDIR:
                    self.store.create_directory(step.destination)
                    result.directories += 1
                    logger.debug(f"Created remote directory {step.destination}")
                    continue
                result.bytes_transferred += self._push_file(step, sink)
                result.files += 1
                self.out.info(f"Pushed {step.source} to {step.destination}")

        self.out.success(
            f"Pushed {source} to {destination} "
            f"({result.files} file(s), {format_size(result.bytes_transferred)}, "
            f"{result.skipped} skipped)"
        )
        return result

    def _push_file(self, step: TransferStep, sink: ProgressSink) -> int:
        try:
            source = open(step.source, "rb")
        except OSError as e:
            raise LocalPathNotFoundError(f"Cannot read {step.source}: {e}") from e

        sink.status(f"Pushing {step.source} to {step.destination}")
        try:
            with source, self.store.open_write(step.destination) as target:
                return copy_stream(source, target, step.size, sink)
        except BaseException:
            remove_partial_remote(self.store, step.destination)
            raise
        finally:
            sink.clear_line()


def remove_partial_remote(store: RemoteStore, path: str) -> None:
    """Remove a partially written remote file after a failed transfer."""
    try:
        if store.exists(path):
            store.delete_file(path)
    except RccError as e:
        logger.warning(f"Could not remove partial remote file {path}: {e}")
