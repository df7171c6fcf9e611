from __future__ import annotations

import logging

from .deduppass import DedupPass
from .deduppass import Frame


class DedupPruner(DedupPass):
    """Remove upper directories that hold no files at any depth."""

    logger = logging.getLogger(__name__)

    def prune(self, current_path: str = "") -> bool:
        """
        Prune empty directories below current_path in the upper layer.

        The lower layer is not consulted. The root itself is never removed.

        Args:
            current_path: RelativePath to start from, the root by default.

        Returns:
            True if current_path was removed (or would be in a dry run).
        """
        return self._traverse(current_path)

    def _enter(self, path: str) -> Frame | None:
        if self._is_ignored_directory(path):
            self.logger.debug("Ignoring directory '%s'", path)
            return None

        try:
            listing = self._list_upper(path)

        except OSError as error:
            self.logger.error("Failed to list '%s': %s", path, error)
            return None

        return Frame(
            path=path,
            upper=listing,
            pending=self._children(path, listing.directories),
        )

    def _leave(self, frame: Frame) -> bool:
        if (
            not frame.path
            or frame.upper.files
            or frame.removed != len(frame.upper.directories)
        ):
            return False

        return self._remove_directory(frame.path)
