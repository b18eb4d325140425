"""Data models for pyrcc."""

import functools
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Generic, Optional, TypeVar

from .exceptions import RccError

T = TypeVar("T")


@dataclass(frozen=True)
class RemoteEntry:
    """One entry of a remote directory listing."""

    name: str
    path: str
    is_directory: bool
    size: int = 0
    accessed: Optional[datetime] = None
    modified: Optional[datetime] = None

    @property
    def kind(self) -> str:
        return "dir" if self.is_directory else "file"


@dataclass(frozen=True)
class AggregateSize:
    """Recursive (bytes, entry count) rollup over a subtree.

    The count includes the root entry itself.
    """

    total_bytes: int = 0
    count: int = 0

    def __add__(self, other: "AggregateSize") -> "AggregateSize":
        return AggregateSize(
            self.total_bytes + other.total_bytes, self.count + other.count
        )


class StepKind(str, Enum):
    """Kind of a single transfer step."""

    MKDIR = "mkdir"
    FILE = "file"


@dataclass(frozen=True)
class TransferStep:
    """One step of a recursive transfer, produced by the tree walkers.

    Directory steps are always produced before the steps of their children.
    """

    kind: StepKind
    source: str
    destination: str
    size: int = 0
    depth: int = 0


@dataclass
class TransferResult:
    """Statistics of a pull, push or copy."""

    source: str
    destination: str
    files: int = 0
    directories: int = 0
    bytes_transferred: int = 0
    skipped: int = 0


@dataclass
class MoveResult:
    """Result of a move or copy."""

    source: str
    destination: str
    copied: bool = False
    transfer: Optional[TransferResult] = None


@dataclass
class DeleteResult:
    """Result of a delete."""

    path: str
    size: AggregateSize = field(default_factory=AggregateSize)
    aborted: bool = False
    deleted: int = 0


@dataclass
class Listing:
    """Immediate children of a directory with their recursive rollups."""

    directory: str
    entries: list[tuple[RemoteEntry, AggregateSize]] = field(default_factory=list)

    @property
    def file_count(self) -> int:
        return sum(1 for entry, _ in self.entries if not entry.is_directory)

    @property
    def directory_count(self) -> int:
        return sum(1 for entry, _ in self.entries if entry.is_directory)

    @property
    def entry_count(self) -> int:
        return len(self.entries)

    @property
    def recursive_count(self) -> int:
        return sum(size.count for _, size in self.entries)

    @property
    def total_bytes(self) -> int:
        return sum(size.total_bytes for _, size in self.entries)

    def to_dict(self) -> dict[str, Any]:
        """Convert listing to dictionary for JSON output."""
        return {
            "directory": self.directory,
            "entries": [
                {
                    "name": entry.name,
                    "path": entry.path,
                    "type": entry.kind,
                    "size": size.total_bytes,
                    "count": size.count,
                    "accessed": entry.accessed.isoformat()
                    if entry.accessed
                    else None,
                }
                for entry, size in self.entries
            ],
            "summary": {
                "files": self.file_count,
                "directories": self.directory_count,
                "entries": self.entry_count,
                "recursive_entries": self.recursive_count,
                "total_bytes": self.total_bytes,
            },
        }


@dataclass
class Outcome(Generic[T]):
    """Explicit result of an engine operation: a value or an error.

    Engines never decide whether a failure is fatal; the caller does.
    """

    value: Optional[T] = None
    error: Optional[RccError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: RccError) -> "Outcome[T]":
        return cls(error=error)

    def unwrap(self) -> T:
        """Return the value or raise the error."""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]


def returns_outcome(func: Callable[..., T]) -> Callable[..., Outcome[T]]:
    """Wrap an operation so that pyrcc errors become a failed Outcome."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Outcome[T]:
        try:
            return Outcome.success(func(*args, **kwargs))
        except RccError as e:
            return Outcome.failure(e)

    return wrapper
