"""PyRCC - Remote connection console for pulling, pushing and managing files over SSH."""

__version__ = "1.0.0"

from .exceptions import (  # noqa: E402
    AuthenticationError,
    ConfigError,
    LocalPathConflictError,
    LocalPathNotFoundError,
    NoActiveSessionError,
    ParseError,
    PathConflictError,
    RccError,
    RemoteConnectionError,
    RemotePathNotFoundError,
    RemotePermissionError,
    RemoteStoreError,
)
from .profile import Profile, load_profile, persist_profile  # noqa: E402
from .store import SftpStore  # noqa: E402

__all__ = [
    "SftpStore",
    "Profile",
    "load_profile",
    "persist_profile",
    "RccError",
    "AuthenticationError",
    "ConfigError",
    "LocalPathConflictError",
    "LocalPathNotFoundError",
    "NoActiveSessionError",
    "ParseError",
    "PathConflictError",
    "RemoteConnectionError",
    "RemotePathNotFoundError",
    "RemotePermissionError",
    "RemoteStoreError",
]
