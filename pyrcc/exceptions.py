"""Custom exceptions for pyrcc.

Every error carries the process exit code used when it terminates a
one-shot command:

    1   unexpected or generic remote store error
    2   command-line usage error (raised by click)
    3   ConfigError
    4   ParseError
    5   NoActiveSessionError
    6   RemoteConnectionError
    7   AuthenticationError
    8   RemotePathNotFoundError, LocalPathNotFoundError
    9   PathConflictError, LocalPathConflictError
    10  RemotePermissionError
    130 interrupted by the user
"""

EXIT_INTERRUPTED = 130


class RccError(Exception):
    """Base exception for all pyrcc errors."""

    exit_code = 1


class ConfigError(RccError):
    """Profile document is unreadable or has missing/invalid fields."""

    exit_code = 3


class ParseError(ConfigError):
    """Profile document content is malformed or has an unsupported format."""

    exit_code = 4


class NoActiveSessionError(RccError):
    """No profile given and no active profile in the session cache."""

    exit_code = 5


class RemoteConnectionError(RccError):
    """Remote endpoint could not be reached."""

    exit_code = 6


class AuthenticationError(RccError):
    """Credential was rejected by the remote endpoint."""

    exit_code = 7


class RemoteStoreError(RccError):
    """Generic failure reported by the remote file store."""


class RemotePathNotFoundError(RemoteStoreError):
    """Remote path does not exist."""

    exit_code = 8


class RemotePermissionError(RemoteStoreError):
    """Remote path cannot be accessed with the profile's credential."""

    exit_code = 10


class LocalPathNotFoundError(RccError):
    """Local path does not exist."""

    exit_code = 8


class PathConflictError(RccError):
    """Destination path already exists."""

    exit_code = 9


class LocalPathConflictError(PathConflictError):
    """Local destination path already exists."""
