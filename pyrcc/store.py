"""Remote file store backed by SFTP."""

import errno
import logging
import os
import posixpath
import socket
import stat
from contextlib import contextmanager
from datetime import datetime
from typing import IO, TYPE_CHECKING, Any, Iterator, Optional, Protocol

import paramiko

from .config import config
from .exceptions import (
    AuthenticationError,
    ConfigError,
    RemoteConnectionError,
    RemotePathNotFoundError,
    RemotePermissionError,
    RemoteStoreError,
)
from .models import RemoteEntry
from .utils import is_special_entry, resolve_remote_path

if TYPE_CHECKING:
    from .profile import Profile

logger = logging.getLogger(__name__)

# Directory entered when the profile's working directory is unusable
FALLBACK_DIRECTORY = "/"


class RemoteStore(Protocol):
    """Capability surface consumed by the transfer engines."""

    def connect(self) -> None: ...

    def disconnect(self) -> None: ...

    def exists(self, path: str) -> bool: ...

    def get_attributes(self, path: str) -> RemoteEntry: ...

    def list_directory(self, path: str) -> list[RemoteEntry]: ...

    def open_read(self, path: str) -> IO[bytes]: ...

    def open_write(self, path: str) -> IO[bytes]: ...

    def create_directory(self, path: str) -> None: ...

    def delete_file(self, path: str) -> None: ...

    def delete_directory(self, path: str) -> None: ...

    def rename_file(self, old_path: str, new_path: str) -> None: ...

    def change_working_directory(self, path: str) -> str: ...

    @property
    def current_working_directory(self) -> str: ...


def _entry_from_attributes(
    path: str, attrs: paramiko.SFTPAttributes, name: Optional[str] = None
) -> RemoteEntry:
    """Build a RemoteEntry from SFTP attributes."""
    mode = attrs.st_mode or 0
    return RemoteEntry(
        name=name if name is not None else (posixpath.basename(path) or path),
        path=path,
        is_directory=stat.S_ISDIR(mode),
        size=int(attrs.st_size or 0),
        accessed=datetime.fromtimestamp(attrs.st_atime)
        if attrs.st_atime is not None
        else None,
        modified=datetime.fromtimestamp(attrs.st_mtime)
        if attrs.st_mtime is not None
        else None,
    )


class SftpStore:
    """RemoteStore implementation on top of a paramiko SFTP session."""

    def __init__(self, profile: "Profile", timeout: Optional[float] = None):
        """Initialize the store.

        Args:
            profile: Profile describing the endpoint and credential
            timeout: Connect timeout in seconds (uses config if not provided)
        """
        self.profile = profile
        self.timeout = timeout if timeout is not None else config.connect_timeout
        self._client: Optional[paramiko.SSHClient] = None
        self._sftp: Optional[paramiko.SFTPClient] = None
        self._cwd = profile.working_directory

    # ------------------------------------------------------------------
    # Connection handling
    # ------------------------------------------------------------------

    def connect(self) -> None:
        """Open the SSH connection and the SFTP channel.

        Raises:
            RemoteConnectionError: If the host cannot be reached
            AuthenticationError: If the credential is rejected
            ConfigError: If the private key file cannot be used
        """
        profile = self.profile
        self.disconnect()
        client = paramiko.SSHClient()
        client.load_system_host_keys()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())

        connect_kwargs: dict[str, Any] = {
            "hostname": profile.host,
            "port": profile.port,
            "username": profile.username,
            "timeout": self.timeout,
            "allow_agent": False,
            "look_for_keys": False,
        }
        if profile.is_key_auth:
            connect_kwargs["key_filename"] = os.path.expanduser(profile.password)
        else:
            connect_kwargs["password"] = profile.password

        logger.debug(
            f"Connecting to {profile.username}@{profile.host}:{profile.port}"
        )
        try:
            client.connect(**connect_kwargs)
        except paramiko.AuthenticationException as e:
            client.close()
            raise AuthenticationError(f"Authentication failed: {e}") from e
        except FileNotFoundError as e:
            client.close()
            raise ConfigError(f"Private key file not found: {profile.password}") from e
        except (socket.error, paramiko.SSHException) as e:
            client.close()
            raise RemoteConnectionError(
                f"Host {profile.host}:{profile.port} could not be reached: {e}"
            ) from e

        self._client = client
        try:
            self._sftp = client.open_sftp()
        except paramiko.SSHException as e:
            self.disconnect()
            raise RemoteConnectionError(f"Could not open SFTP session: {e}") from e

        try:
            self._cwd = self.change_working_directory(profile.working_directory)
        except (RemotePathNotFoundError, RemotePermissionError) as e:
            # Removed or renamed on the host since it was saved
            logger.warning(f"{e}; starting in {FALLBACK_DIRECTORY} instead")
            self._enter_fallback_directory()
        except RemoteStoreError:
            self.disconnect()
            raise

    def _enter_fallback_directory(self) -> None:
        try:
            self._cwd = self.change_working_directory(FALLBACK_DIRECTORY)
        except RemoteStoreError:
            self.disconnect()
            raise

    def disconnect(self) -> None:
        """Close the SFTP channel and the SSH connection."""
        if self._sftp is not None:
            self._sftp.close()
            self._sftp = None
        if self._client is not None:
            self._client.close()
            self._client = None
            logger.debug(f"Disconnected from {self.profile.host}")

    @property
    def is_connected(self) -> bool:
        return self._sftp is not None

    def __enter__(self) -> "SftpStore":
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.disconnect()

    def _get_sftp(self) -> paramiko.SFTPClient:
        if self._sftp is None:
            raise RemoteStoreError("Not connected")
        return self._sftp

    @contextmanager
    def _translate_errors(self, path: str) -> Iterator[None]:
        """Map SFTP failures to pyrcc errors."""
        try:
            yield
        except FileNotFoundError as e:
            raise RemotePathNotFoundError(f"Remote path does not exist: {path}") from e
        except PermissionError as e:
            raise RemotePermissionError(f"Permission denied: {path}") from e
        except OSError as e:
            if e.errno == errno.ENOENT:
                raise RemotePathNotFoundError(
                    f"Remote path does not exist: {path}"
                ) from e
            if e.errno == errno.EACCES:
                raise RemotePermissionError(f"Permission denied: {path}") from e
            raise RemoteStoreError(f"{path}: {e}") from e
        except paramiko.SSHException as e:
            raise RemoteStoreError(f"{path}: {e}") from e

    # ------------------------------------------------------------------
    # File store operations
    # ------------------------------------------------------------------

    def exists(self, path: str) -> bool:
        try:
            self.get_attributes(path)
        except RemotePathNotFoundError:
            return False
        return True

    def get_attributes(self, path: str) -> RemoteEntry:
        with self._translate_errors(path):
            attrs = self._get_sftp().stat(path)
        return _entry_from_attributes(path, attrs)

    def list_directory(self, path: str) -> list[RemoteEntry]:
        """List a remote directory.

        Args:
            path: Remote directory path

        Returns:
            Entries in server order, without "." and ".."
        """
        with self._translate_errors(path):
            items = self._get_sftp().listdir_attr(path)
        return [
            _entry_from_attributes(
                posixpath.join(path, item.filename), item, name=item.filename
            )
            for item in items
            if not is_special_entry(item.filename)
        ]

    def open_read(self, path: str) -> IO[bytes]:
        with self._translate_errors(path):
            handle = self._get_sftp().open(path, "rb")
        handle.prefetch()
        return handle

    def open_write(self, path: str) -> IO[bytes]:
        with self._translate_errors(path):
            handle = self._get_sftp().open(path, "wb")
        handle.set_pipelined(True)
        return handle

    def create_directory(self, path: str) -> None:
        with self._translate_errors(path):
            self._get_sftp().mkdir(path)

    def delete_file(self, path: str) -> None:
        with self._translate_errors(path):
            self._get_sftp().remove(path)

    def delete_directory(self, path: str) -> None:
        with self._translate_errors(path):
            self._get_sftp().rmdir(path)

    def rename_file(self, old_path: str, new_path: str) -> None:
        with self._translate_errors(old_path):
            self._get_sftp().rename(old_path, new_path)

    def change_working_directory(self, path: str) -> str:
        """Change the remote working directory.

        Args:
            path: Absolute path or path relative to the current directory

        Returns:
            The new absolute working directory

        Raises:
            RemotePathNotFoundError: If the path is missing or not a directory
        """
        sftp = self._get_sftp()
        target = resolve_remote_path(path, self._cwd)
        entry = self.get_attributes(target)
        if not entry.is_directory:
            raise RemotePathNotFoundError(f"Not a directory: {target}")
        with self._translate_errors(target):
            sftp.chdir(target)
            self._cwd = sftp.getcwd() or target
        return self._cwd

    @property
    def current_working_directory(self) -> str:
        return self._cwd

    def invoke_shell(self, width: int = 80, height: int = 24) -> paramiko.Channel:
        """Open an interactive shell channel with a pseudo-terminal.

        Args:
            width: Terminal width in characters
            height: Terminal height in characters

        Returns:
            Channel connected to the remote shell
        """
        if self._client is None:
            raise RemoteStoreError("Not connected")
        try:
            return self._client.invoke_shell(width=width, height=height)
        except paramiko.SSHException as e:
            raise RemoteConnectionError(f"Could not open shell: {e}") from e
