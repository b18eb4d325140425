"""Session cache and per-invocation session context.

The session cache is a small file recording which profile document is
"in use" between invocations. A ``SessionContext`` carries the resolved
profile and the open remote store for one process invocation, or for one
interactive console, and is passed explicitly to every command handler.
"""

import logging
from collections.abc import Generator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional, Union

from .config import config
from .exceptions import ConfigError, NoActiveSessionError
from .output import OutputFormatter
from .profile import Profile, load_profile
from .store import RemoteStore, SftpStore

logger = logging.getLogger(__name__)

# Values accepted by "use" to forget the active profile
CLEAR_SENTINELS = (".", "/", "-")


class SessionCache:
    """Pointer file holding the absolute path of the active profile."""

    def __init__(self, path: Optional[Path] = None):
        """Initialize the session cache.

        Args:
            path: Cache file location. Defaults to the configured session file.
        """
        self.path = path or config.get_session_path()

    def get_active(self) -> Optional[Path]:
        """Get the active profile path, or None if no session is active."""
        try:
            content = self.path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise ConfigError(f"Cannot read session cache {self.path}: {e}") from e
        return Path(content) if content else None

    def set_active(self, profile_path: Union[str, Path]) -> Optional[Profile]:
        """Make a profile the active one, or clear the cache.

        Args:
            profile_path: Profile document path, or one of ".", "/", "-"
                to clear the active session

        Returns:
            The validated profile, or None if the cache was cleared

        Raises:
            ConfigError: If the profile does not load
        """
        if str(profile_path) in CLEAR_SENTINELS:
            self.clear()
            return None

        profile = load_profile(profile_path)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(str(profile.path), encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"Cannot write session cache {self.path}: {e}") from e
        logger.debug(f"Active profile set to {profile.path}")
        return profile

    def clear(self) -> None:
        """Forget the active profile."""
        self.path.unlink(missing_ok=True)
        logger.debug("Session cache cleared")

    def resolve_profile(self, explicit_path: Optional[Union[str, Path]] = None) -> Profile:
        """Resolve the profile for a command.

        Args:
            explicit_path: Profile given with --use, takes precedence

        Returns:
            The loaded profile

        Raises:
            NoActiveSessionError: If no profile is given and none is active
            ConfigError: If the profile does not load
        """
        if explicit_path:
            return load_profile(explicit_path)
        active = self.get_active()
        if active is None:
            raise NoActiveSessionError(
                "No active session. Run 'pyrcc use <profile>' or pass --use."
            )
        return load_profile(active)


StoreFactory = Callable[[Profile], RemoteStore]


@dataclass
class SessionContext:
    """State shared by the command handlers of one invocation."""

    out: OutputFormatter
    cache: SessionCache = field(default_factory=SessionCache)
    store_factory: StoreFactory = SftpStore
    interactive: bool = False
    profile: Optional[Profile] = None
    store: Optional[RemoteStore] = None

    @property
    def connected(self) -> bool:
        return self.store is not None

    def resolve_profile(self, explicit_path: Optional[str] = None) -> Profile:
        """Resolve and remember the profile for this context."""
        if self.connected and self.profile is not None:
            if explicit_path:
                self.out.warning(
                    "--use is ignored inside the console; "
                    f"connected to {self.profile.display_name}"
                )
            return self.profile
        self.profile = self.cache.resolve_profile(explicit_path)
        return self.profile

    def connect(self, explicit_path: Optional[str] = None) -> RemoteStore:
        """Resolve the profile and open a store session kept by this context."""
        profile = self.resolve_profile(explicit_path)
        store = self.store_factory(profile)
        store.connect()
        self.store = store
        logger.debug(f"Session opened for {profile.display_name}")
        return store

    def close(self) -> None:
        """Close the store session if one is open."""
        if self.store is not None:
            try:
                self.store.disconnect()
            finally:
                self.store = None

    @contextmanager
    def open_store(
        self, explicit_path: Optional[str] = None
    ) -> Generator[RemoteStore, None, None]:
        """Yield a connected store for one command.

        Reuses the connected store of an interactive console. Otherwise a
        new session is opened and closed on every exit path.
        """
        if self.store is not None:
            self.resolve_profile(explicit_path)
            yield self.store
            return

        store = self.connect(explicit_path)
        try:
            yield store
        finally:
            self.close()
