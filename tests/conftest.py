"""Shared fixtures: an in-memory remote store and a recording progress sink."""

import io
import json
import posixpath
import tempfile
from pathlib import Path
from unittest.mock import Mock

import pytest

from pyrcc.exceptions import (
    RemotePathNotFoundError,
    RemotePermissionError,
    RemoteStoreError,
)
from pyrcc.models import RemoteEntry
from pyrcc.output import OutputFormatter
from pyrcc.utils import resolve_remote_path

MUTATING_CALLS = ("write", "mkdir", "delete_file", "delete_directory", "rename")


class _MemoryWriter(io.BytesIO):
    """Writable handle committing its content to the store on close."""

    def __init__(self, store: "MemoryStore", path: str):
        super().__init__()
        self._store = store
        self._path = path

    def close(self) -> None:
        if not self.closed:
            self._store.files[self._path] = self.getvalue()
        super().close()


class MemoryStore:
    """RemoteStore keeping a file tree in memory and recording calls."""

    def __init__(self, cwd: str = "/"):
        self.dirs: set[str] = {"/"}
        self.files: dict[str, bytes] = {}
        self.denied: set[str] = set()
        self.calls: list[tuple[str, ...]] = []
        self.connected = False
        self._cwd = cwd

    # Test helpers

    def add_dir(self, path: str) -> None:
        while path not in self.dirs:
            self.dirs.add(path)
            path = posixpath.dirname(path)

    def add_file(self, path: str, data: bytes = b"") -> None:
        self.add_dir(posixpath.dirname(path))
        self.files[path] = data

    @property
    def mutations(self) -> list[tuple[str, ...]]:
        return [call for call in self.calls if call[0] in MUTATING_CALLS]

    def _children(self, path: str) -> list[str]:
        return sorted(
            p
            for p in self.dirs | set(self.files)
            if p != "/" and posixpath.dirname(p) == path
        )

    def _entry(self, path: str) -> RemoteEntry:
        name = posixpath.basename(path) or "/"
        if path in self.dirs:
            return RemoteEntry(name=name, path=path, is_directory=True)
        return RemoteEntry(
            name=name, path=path, is_directory=False, size=len(self.files[path])
        )

    # RemoteStore surface

    def connect(self) -> None:
        self.connected = True
        self.calls.append(("connect",))

    def disconnect(self) -> None:
        self.connected = False
        self.calls.append(("disconnect",))

    def exists(self, path: str) -> bool:
        return path in self.dirs or path in self.files

    def get_attributes(self, path: str) -> RemoteEntry:
        if path in self.denied:
            raise RemotePermissionError(f"Permission denied: {path}")
        if not self.exists(path):
            raise RemotePathNotFoundError(f"Remote path does not exist: {path}")
        return self._entry(path)

    def list_directory(self, path: str) -> list[RemoteEntry]:
        if path in self.denied:
            raise RemotePermissionError(f"Permission denied: {path}")
        if path not in self.dirs:
            raise RemotePathNotFoundError(f"Remote path does not exist: {path}")
        return [self._entry(child) for child in self._children(path)]

    def open_read(self, path: str) -> io.BytesIO:
        if path not in self.files:
            raise RemotePathNotFoundError(f"Remote path does not exist: {path}")
        return io.BytesIO(self.files[path])

    def open_write(self, path: str) -> _MemoryWriter:
        if posixpath.dirname(path) not in self.dirs:
            raise RemotePathNotFoundError(f"Remote path does not exist: {path}")
        self.calls.append(("write", path))
        self.files[path] = b""
        return _MemoryWriter(self, path)

    def create_directory(self, path: str) -> None:
        if self.exists(path):
            raise RemoteStoreError(f"Already exists: {path}")
        if posixpath.dirname(path) not in self.dirs:
            raise RemotePathNotFoundError(f"Remote path does not exist: {path}")
        self.calls.append(("mkdir", path))
        self.dirs.add(path)

    def delete_file(self, path: str) -> None:
        if path not in self.files:
            raise RemotePathNotFoundError(f"Remote path does not exist: {path}")
        self.calls.append(("delete_file", path))
        del self.files[path]

    def delete_directory(self, path: str) -> None:
        if self._children(path):
            raise RemoteStoreError(f"Directory not empty: {path}")
        self.calls.append(("delete_directory", path))
        self.dirs.discard(path)

    def rename_file(self, old_path: str, new_path: str) -> None:
        self.calls.append(("rename", old_path, new_path))
        prefix = old_path.rstrip("/") + "/"
        for path in sorted(self.dirs):
            if path == old_path or path.startswith(prefix):
                self.dirs.discard(path)
                self.dirs.add(new_path + path[len(old_path) :])
        for path in list(self.files):
            if path == old_path or path.startswith(prefix):
                self.files[new_path + path[len(old_path) :]] = self.files.pop(path)

    def change_working_directory(self, path: str) -> str:
        target = resolve_remote_path(path, self._cwd)
        if target not in self.dirs:
            raise RemotePathNotFoundError(f"Remote path does not exist: {target}")
        self._cwd = target
        return target

    @property
    def current_working_directory(self) -> str:
        return self._cwd


class RecordingSink:
    """ProgressSink recording every event."""

    def __init__(self):
        self.events: list[tuple] = []

    def status(self, message: str) -> None:
        self.events.append(("status", message))

    def report(self, done: int, total: int) -> None:
        self.events.append(("report", done, total))

    def clear_line(self) -> None:
        self.events.append(("clear",))

    def __enter__(self) -> "RecordingSink":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        pass


@pytest.fixture
def store():
    """Provide an empty in-memory remote store."""
    return MemoryStore()


@pytest.fixture
def sink():
    """Provide a recording progress sink."""
    return RecordingSink()


@pytest.fixture
def mock_output():
    """Create a mock output formatter."""
    output = Mock(spec=OutputFormatter)
    output.quiet = True
    output.json_output = False
    return output


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def profile_file(temp_dir):
    """Write a minimal JSON profile and return its path."""
    path = temp_dir / "host.json"
    path.write_text(
        json.dumps(
            {
                "host": "h",
                "username": "u",
                "password": "p",
                "port": 22,
                "isKeyAuth": False,
            }
        )
    )
    return path
