from __future__ import annotations

import logging

from .dedupemitter import BACKUP
from .dedupemitter import DELETE_FILE
from .dedupmodel import Decision
from .dedupmodel import FileInfo
from .dedupmodel import FileKind
from .dedupmodel import Outcome
from .dedupmodel import join_relpath
from .deduppass import DedupPass
from .deduppass import Frame


class DedupWalker(DedupPass):
    """Walk the lower and upper layers together, removing redundant upper files."""

    logger = logging.getLogger(__name__)

    def walk(self, current_path: str = "") -> bool:
        """
        Deduplicate current_path and everything below it, depth first.

        Only names present in both layers are visited. A directory is removed
        once every upper file and subdirectory in it was removed, except for
        the root which is never removed.

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
            upper = self._list_upper(path)
            lower = self._filesystem.list_directory(self._lower_path(path))

        except OSError as error:
            self.logger.error("Failed to list '%s': %s", path, error)
            return None

        return Frame(
            path=path,
            upper=upper,
            lower=lower,
            pending=self._children(path, upper.directories & lower.directories),
        )

    def _leave(self, frame: Frame) -> bool:
        assert frame.lower is not None

        files_removed = 0
        for name in sorted(frame.upper.files & frame.lower.files):
            decision = self.compare_file(join_relpath(frame.path, name))
            self.logger.debug("%s", decision)
            if decision.removed:
                files_removed += 1

        # Upper-only entries always block removal.
        if (
            not frame.path
            or frame.removed != len(frame.upper.directories)
            or files_removed != len(frame.upper.files)
        ):
            return False

        return self._remove_directory(frame.path)

    def compare_file(self, path: str) -> Decision:
        """
        Decide whether the upper copy of a file present in both layers is redundant.

        The first matching rule wins:
            1. keep-file: back up the lower copy next to the upper file
            2. lower modified at or after upper: delete upper
            3. both symlinks to the same target: preserve
            4. sizes differ: preserve
            5. both empty and lower is a socket or either is special: skip
            6. contents hash equal: delete upper, otherwise preserve

        I/O errors leave the entry unresolved with a FAILED outcome.
        """
        upper_path = self._upper_path(path)
        lower_path = self._lower_path(path)
        size = 0

        try:
            if path in self._keep_files:
                decision = self._backup_file(path, upper_path, lower_path)

            else:
                upper = self._filesystem.stat(upper_path)
                lower = self._filesystem.stat(lower_path)
                size = upper.size
                self._trace(path, upper, lower)
                decision = self._decide(path, upper, lower, upper_path, lower_path)

        except OSError as error:
            self.logger.error("Failed to compare '%s': %s", path, error)
            decision = Decision(path, Outcome.FAILED, "error")

        self._stats.record(decision, size)
        return decision

    def _decide(
        self,
        path: str,
        upper: FileInfo,
        lower: FileInfo,
        upper_path: str,
        lower_path: str,
    ) -> Decision:
        """
        Apply the comparison rules after the keep-file override.

        Raises:
            OSError
        """
        if lower.mtime_ns >= upper.mtime_ns:
            self._delete_file(upper_path)
            return Decision(path, Outcome.DELETED, "lower-newer")

        if (
            upper.kind is FileKind.SYMLINK
            and lower.kind is FileKind.SYMLINK
            and upper.link_target is not None
            and upper.link_target == lower.link_target
        ):
            return Decision(path, Outcome.PRESERVED, "identical-symlink")

        if upper.size != lower.size:
            return Decision(path, Outcome.PRESERVED, "size-differs")

        if upper.size == 0:
            if lower.kind is FileKind.SOCKET:
                return Decision(path, Outcome.SKIPPED, "socket")
            if FileKind.OTHER in (upper.kind, lower.kind):
                return Decision(path, Outcome.SKIPPED, "special-file")

        upper_digest = self._filesystem.digest(upper_path)
        lower_digest = self._filesystem.digest(lower_path)
        self.logger.debug(
            "'%s' digests: upper=%s lower=%s", path, upper_digest, lower_digest
        )

        if upper_digest == lower_digest:
            self._delete_file(upper_path)
            return Decision(path, Outcome.DELETED, "hash-equal")

        return Decision(path, Outcome.PRESERVED, "hash-differs")

    def _backup_file(self, path: str, upper_path: str, lower_path: str) -> Decision:
        """
        Copy the lower file to <upper>.<extension>, leaving the upper file alone.

        Raises:
            OSError
        """
        backup_path = f"{upper_path}.{self._config.backup_extension}"

        if not self._dry_run:
            self._filesystem.copy_file(lower_path, backup_path)

        self._emitter.add_action(BACKUP, upper_path, backup_path)
        return Decision(path, Outcome.BACKED_UP, "keep-file")

    def _delete_file(self, upper_path: str) -> None:
        """
        Remove an upper file, or only report it in a dry run.

        Raises:
            OSError
        """
        if not self._dry_run:
            self._filesystem.remove_file(upper_path)

        self._emitter.add_action(DELETE_FILE, upper_path)

    def _trace(self, path: str, upper: FileInfo, lower: FileInfo) -> None:
        """Log the metadata the decision is based on."""
        self.logger.debug(
            "'%s' upper: mtime=%s size=%s kind=%s lower: mtime=%s size=%s kind=%s",
            path,
            upper.mtime_ns,
            upper.size,
            upper.kind.value,
            lower.mtime_ns,
            lower.size,
            lower.kind.value,
        )
