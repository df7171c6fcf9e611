from __future__ import annotations

import dataclasses
import logging
from typing import TYPE_CHECKING

from .dedupemitter import DELETE_DIRECTORY
from .dedupemitter import DedupEmitter
from .dedupfs import LocalFileSystem
from .dedupmodel import DirectoryListing
from .dedupmodel import RunStats
from .dedupmodel import TraversalIntegrityError
from .dedupmodel import join_relpath
from .dedupmodel import resolve_relpath

if TYPE_CHECKING:
    from .dedupconfig import DedupConfig


@dataclasses.dataclass
class Frame:
    """A directory on the traversal stack, waiting for its subdirectories."""

    path: str
    upper: DirectoryListing
    lower: DirectoryListing | None = None
    pending: list[str] = dataclasses.field(default_factory=list)
    removed: int = 0


class DedupPass:
    """State and helpers shared by the pruner and the walker."""

    logger = logging.getLogger(__name__)

    def __init__(
        self,
        config: DedupConfig,
        *,
        filesystem: LocalFileSystem | None = None,
        emitter: DedupEmitter | None = None,
        stats: RunStats | None = None,
    ) -> None:
        self._config = config
        self._filesystem = filesystem or LocalFileSystem()
        self._emitter = emitter or DedupEmitter(config)
        self._stats = stats if stats is not None else RunStats()

        self._dry_run = config.dry_run
        self._ignore_directories = config.ignore_directories
        self._keep_files = config.keep_files

    @property
    def stats(self) -> RunStats:
        return self._stats

    def _traverse(self, root_path: str) -> bool:
        """
        Visit root_path and its subdirectories depth first, post-order.

        An explicit stack replaces recursion so tree depth is not bounded by
        the interpreter recursion limit. _enter builds the frame of a
        directory and lists which subdirectories to visit; _leave runs once
        all of them are done and returns whether the directory was removed.

        Returns:
            True if root_path was removed (or would be in a dry run).
        """
        frame = self._enter(root_path)
        if frame is None:
            return False

        stack = [frame]
        result = False
        while stack:
            frame = stack[-1]
            if frame.pending:
                child = self._enter(frame.pending.pop())
                if child is not None:
                    stack.append(child)
                continue

            stack.pop()
            result = self._leave(frame)
            if result and stack:
                stack[-1].removed += 1

        return result

    def _enter(self, path: str) -> Frame | None:
        """Return the frame for a directory, or None to leave it untouched."""
        raise NotImplementedError

    def _leave(self, frame: Frame) -> bool:
        """Finish a directory whose subdirectories were all visited."""
        raise NotImplementedError

    def _children(self, path: str, names: frozenset[str]) -> list[str]:
        """Child paths in the order they are popped: sorted by name."""
        return [join_relpath(path, name) for name in sorted(names, reverse=True)]

    def _upper_path(self, path: str) -> str:
        return resolve_relpath(self._config.upper_directory, path)

    def _lower_path(self, path: str) -> str:
        return resolve_relpath(self._config.lower_directory, path)

    def _list_upper(self, path: str) -> DirectoryListing:
        """
        List an upper directory, hiding directories already pruned in a dry run.

        Raises:
            OSError
        """
        listing = self._filesystem.list_directory(self._upper_path(path))
        pruned = self._stats.pruned_directories

        if not self._dry_run or not pruned:
            return listing

        directories = frozenset(
            name
            for name in listing.directories
            if join_relpath(path, name) not in pruned
        )
        return dataclasses.replace(listing, directories=directories)

    def _is_ignored_directory(self, path: str) -> bool:
        """True if the relative path is an ignored directory (exact match)."""
        return path in self._ignore_directories

    def _remove_directory(self, path: str) -> bool:
        """
        Remove an upper directory that should now be empty.

        Returns:
            True if the directory was removed, or would be in a dry run.
        """
        upper_path = self._upper_path(path)

        if not self._dry_run:
            try:
                self._filesystem.remove_directory(upper_path)

            except TraversalIntegrityError as error:
                self.logger.error(
                    "Internal failure, not removing '%s': %s", path, error
                )
                self._stats.directories_failed += 1
                return False

            except OSError as error:
                self.logger.error("Failed to remove directory '%s': %s", path, error)
                self._stats.directories_failed += 1
                return False

        self.logger.debug("Pruned directory '%s'", path)
        self._emitter.add_action(DELETE_DIRECTORY, upper_path)
        self._stats.pruned_directories.add(path)
        return True
