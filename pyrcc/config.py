"""Configuration management for pyrcc."""

import os
from pathlib import Path

# Timeout for establishing the SSH connection (seconds)
DEFAULT_CONNECT_TIMEOUT: float = 10.0

# Buffer size for remote-to-remote copies, matches the SFTP packet size
DEFAULT_CHUNK_SIZE: int = 32 * 1024

SESSION_FILE_NAME = "session"


class Config:
    """Settings read from the environment with sensible defaults."""

    def __init__(self) -> None:
        """Initialize configuration from environment variables."""
        self.config_dir = Path(
            os.environ.get(
                "PYRCC_CONFIG_DIR", Path.home() / ".config" / "pyrcc"
            )
        ).expanduser()
        self.connect_timeout = float(
            os.environ.get("PYRCC_CONNECT_TIMEOUT", DEFAULT_CONNECT_TIMEOUT)
        )
        self.chunk_size = int(os.environ.get("PYRCC_CHUNK_SIZE", DEFAULT_CHUNK_SIZE))

    def get_session_path(self) -> Path:
        """Get the path of the session cache file.

        Returns:
            Path to the file that records the active profile
        """
        return self.config_dir / SESSION_FILE_NAME


# Global config instance
config = Config()
