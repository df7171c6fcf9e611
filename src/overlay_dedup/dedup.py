from __future__ import annotations

import logging
import os
import time

from .dedupconfig import DedupConfig
from .dedupemitter import CLEAR
from .dedupemitter import DedupEmitter
from .dedupfs import LocalFileSystem
from .dedupmodel import RunStats
from .deduppruner import DedupPruner
from .dedupwalker import DedupWalker


class Deduplicator:
    """Reclaim space in an overlay upper layer by removing copies of lower files."""

    logger = logging.getLogger(__name__)

    def __init__(
        self,
        config: DedupConfig,
        *,
        filesystem: LocalFileSystem | None = None,
        emitter: DedupEmitter | None = None,
    ) -> None:
        """
        Initialize a new Deduplicator.

        Args:
            config: The configuration to use for this run.

        Keyword Args:
            filesystem: Filesystem operations. Defaults to LocalFileSystem.
            emitter: Action report. Defaults to a DedupEmitter for the config.
        """
        self._config = config
        self._filesystem = filesystem or LocalFileSystem()
        self._emitter = emitter or DedupEmitter(config)

    @property
    def emitter(self) -> DedupEmitter:
        return self._emitter

    def run(self) -> RunStats:
        """
        Validate the config, clear the work directory, prune, then deduplicate.

        Raises:
            ValidationError: Before anything is touched.
        """
        self._config.validate()

        mode = " (dry run)" if self._config.dry_run else ""
        self.logger.info(
            "Deduplicating '%s' against '%s'%s",
            self._config.upper_directory,
            self._config.lower_directory,
            mode,
        )
        tic = time.perf_counter()

        stats = RunStats()
        pruner = DedupPruner(
            self._config,
            filesystem=self._filesystem,
            emitter=self._emitter,
            stats=stats,
        )
        walker = DedupWalker(
            self._config,
            filesystem=self._filesystem,
            emitter=self._emitter,
            stats=stats,
        )

        # Report whatever was already done, even if a pass fails.
        try:
            self.clear_work_directory()

            pruner.prune()
            self.logger.info("Pruned %s empty directories", stats.directories_pruned)

            walker.walk()

        finally:
            self._emitter.emit()

        toc = time.perf_counter()
        self.logger.info("Deduplication finished in %s seconds", toc - tic)
        self._log_summary(stats)

        return stats

    def clear_work_directory(self) -> None:
        """Remove every entry of the configured work directory, if any."""
        work_directory = self._config.work_directory
        if work_directory is None:
            return

        if self._config.dry_run:
            listing = self._filesystem.list_directory(work_directory)
            names = sorted(listing.files | listing.directories)
        else:
            names = self._filesystem.clear_directory(work_directory)

        for name in names:
            self._emitter.add_action(CLEAR, os.path.join(work_directory, name))

        self.logger.info("Cleared %s entries from '%s'", len(names), work_directory)

    def _log_summary(self, stats: RunStats) -> None:
        self.logger.info("Processed %s common files", stats.files_processed)
        self.logger.info(
            "Deleted %s, preserved %s, backed up %s, skipped %s, failed %s",
            stats.files_deleted,
            stats.files_preserved,
            stats.files_backed_up,
            stats.files_skipped,
            stats.files_failed,
        )
        self.logger.info(
            "Removed %s directories (%s failed), reclaimed %s bytes",
            stats.directories_pruned,
            stats.directories_failed,
            stats.bytes_reclaimed,
        )
