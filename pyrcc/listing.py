"""Directory listing with recursive size rollups."""

import logging
from typing import Optional

from .models import Listing, returns_outcome
from .reconcile import aggregate_size
from .store import RemoteStore
from .utils import resolve_remote_path

logger = logging.getLogger(__name__)


class ListingEngine:
    """Lists a remote directory, sizing every entry recursively."""

    def __init__(self, store: RemoteStore):
        self.store = store

    @returns_outcome
    def list(self, path: Optional[str] = None) -> Listing:
        """List the immediate children of a directory.

        Args:
            path: Directory to list (defaults to the working directory)

        Returns:
            Outcome wrapping the listing; each entry carries its
            recursive aggregate size and entry count
        """
        cwd = self.store.current_working_directory
        directory = resolve_remote_path(path, cwd) if path else cwd
        listing = Listing(directory=directory)
        for entry in self.store.list_directory(directory):
            listing.entries.append((entry, aggregate_size(self.store, entry)))
        logger.debug(
            f"Listed {directory}: {listing.entry_count} entries, "
            f"{listing.recursive_count} recursive"
        )
        return listing
