"""Utility functions for pyrcc."""

import posixpath

# =============================================================================
# Size formatting utilities
# =============================================================================

SIZE_UNITS = ("B", "KB", "MB", "GB", "TB", "PB", "EB")


def format_size(size_bytes: int) -> str:
    """Format file size in human-readable binary units.

    Values are divided by 1024 until they fit the unit and rounded
    to two decimals.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted size string

    Examples:
        >>> format_size(512)
        '512 B'
        >>> format_size(524288)
        '512 KB'
        >>> format_size(2411725)
        '2.3 MB'
    """
    value = float(size_bytes)
    unit = SIZE_UNITS[0]
    for unit in SIZE_UNITS:
        if abs(value) < 1024 or unit == SIZE_UNITS[-1]:
            break
        value /= 1024
    return f"{round(value, 2):g} {unit}"


def format_progress(done: int, total: int) -> str:
    """Format a transfer position as "512 KB of 2.3 MB, 22%".

    Args:
        done: Bytes transferred so far
        total: Total bytes

    Returns:
        Human-readable progress string
    """
    percent = 100 if total <= 0 else round(done * 100 / total)
    return f"{format_size(done)} of {format_size(total)}, {percent}%"


# =============================================================================
# Remote path utilities
# =============================================================================


def normalize_separators(path: str) -> str:
    """Convert local path separators to the remote separator.

    Args:
        path: Path that may contain backslashes

    Returns:
        Path using forward slashes only
    """
    return path.replace("\\", "/")


def resolve_remote_path(path: str, working_directory: str) -> str:
    """Resolve a remote path against the store's working directory.

    Args:
        path: Absolute or relative remote path
        working_directory: Absolute remote working directory

    Returns:
        Normalized absolute remote path

    Examples:
        >>> resolve_remote_path("logs", "/var")
        '/var/logs'
        >>> resolve_remote_path("/etc/../tmp", "/var")
        '/tmp'
        >>> resolve_remote_path("a\\\\b", "/")
        '/a/b'
    """
    path = normalize_separators(path)
    joined = posixpath.join(working_directory or "/", path)
    normalized = posixpath.normpath(joined)
    # normpath keeps a leading double slash
    if normalized.startswith("//"):
        normalized = "/" + normalized.lstrip("/")
    return normalized


def join_remote(parent: str, name: str) -> str:
    """Join a remote directory and an entry name."""
    return posixpath.join(parent, name)


def is_special_entry(name: str) -> bool:
    """Check for the "." and ".." pseudo entries."""
    return name in (".", "..")
