from __future__ import annotations

import logging
import os
from configparser import ConfigParser
from typing import Iterable

from .dedupmodel import ValidationError
from .dedupmodel import normalize_relpath

DEFAULT_BACKUP_EXTENSION = "new"

NEW_CONFIG = """\
[dedup]
# The read-only and read-write layers of the overlay mount.
lower_directory = {lower}
upper_directory = {upper}

# Optional scratch directory of the overlay mount. All entries are removed.
# work_directory =

# Keep-file backups are written next to the upper file as <file>.<extension>
backup_extension = new

# Paths are relative to both layer roots and matched exactly (no globs).
# One path per line.
ignore_directories =
keep_files =

dry_run = false
verbose = false

[emit]
# Print the actions taken to stdout and optionally append them to a file.
stdout = true
# report_file = overlay-dedup-report.txt
"""


class DedupConfig:
    """Configuration for the Deduplicator."""

    logger = logging.getLogger("overlay_dedup.DedupConfig")

    def __init__(self, filepath: str | None = None) -> None:
        """Load the configuration from the given file, or start with defaults."""
        self._config = ConfigParser(interpolation=None)
        self._config.add_section("dedup")
        self._config.add_section("emit")

        if filepath is None:
            return

        success = self._config.read(filepath)

        if not success:
            raise ValidationError(f"Could not read config file at {filepath}")

        self.logger.debug("Loaded config from %s", filepath)

    def update(
        self,
        *,
        lower_directory: str | None = None,
        upper_directory: str | None = None,
        work_directory: str | None = None,
        backup_extension: str | None = None,
        ignore_directories: Iterable[str] = (),
        keep_files: Iterable[str] = (),
        dry_run: bool | None = None,
        verbose: bool | None = None,
        report_file: str | None = None,
    ) -> None:
        """
        Overlay values on top of the loaded configuration.

        None leaves the loaded value in place. Path lists are merged with the
        loaded lists rather than replacing them.
        """
        values = {
            "lower_directory": lower_directory,
            "upper_directory": upper_directory,
            "work_directory": work_directory,
            "backup_extension": backup_extension,
        }
        for key, value in values.items():
            if value is not None:
                self._config.set("dedup", key, value)

        for key, flag in (("dry_run", dry_run), ("verbose", verbose)):
            if flag is not None:
                self._config.set("dedup", key, str(flag).lower())

        if report_file is not None:
            self._config.set("emit", "report_file", report_file)

        self._merge_lines("ignore_directories", ignore_directories)
        self._merge_lines("keep_files", keep_files)

    def _merge_lines(self, key: str, extra: Iterable[str]) -> None:
        """Append lines to a multiline option."""
        lines = self._get_lines(key) + [line for line in extra if line.strip()]
        self._config.set("dedup", key, "\n".join(lines))

    def _get_lines(self, key: str) -> list[str]:
        """Return the non-blank lines of a multiline option."""
        config_line = self._config.get("dedup", key, fallback="")
        return [line.strip() for line in config_line.splitlines() if line.strip()]

    @property
    def lower_directory(self) -> str:
        """Return the lower (read-only) layer root, or an empty string."""
        return self._config.get("dedup", "lower_directory", fallback="")

    @property
    def upper_directory(self) -> str:
        """Return the upper (read-write) layer root, or an empty string."""
        return self._config.get("dedup", "upper_directory", fallback="")

    @property
    def work_directory(self) -> str | None:
        """Return the overlay work directory to clear, if any."""
        return self._config.get("dedup", "work_directory", fallback="") or None

    @property
    def backup_extension(self) -> str:
        """Return the suffix used for keep-file backups."""
        return self._config.get(
            "dedup", "backup_extension", fallback=DEFAULT_BACKUP_EXTENSION
        )

    @property
    def ignore_directories(self) -> frozenset[str]:
        """Return the relative directory paths excluded from both passes."""
        return frozenset(
            normalize_relpath(line) for line in self._get_lines("ignore_directories")
        )

    @property
    def keep_files(self) -> frozenset[str]:
        """Return the relative file paths backed up instead of deleted."""
        return frozenset(
            normalize_relpath(line) for line in self._get_lines("keep_files")
        )

    @property
    def dry_run(self) -> bool:
        """Return whether filesystem mutation is suppressed."""
        return self._config.getboolean("dedup", "dry_run", fallback=False)

    @property
    def verbose(self) -> bool:
        """Return whether a per-entry trace is logged."""
        return self._config.getboolean("dedup", "verbose", fallback=False)

    @property
    def emit_stdout(self) -> bool:
        """Return whether to print actions to stdout."""
        return self._config.getboolean("emit", "stdout", fallback=True)

    @property
    def report_file(self) -> str | None:
        """Return the file actions are appended to, if any."""
        return self._config.get("emit", "report_file", fallback="") or None

    def validate(self) -> None:
        """
        Check the configuration before any traversal happens.

        Raises:
            ValidationError
        """
        for name, path in (
            ("lower", self.lower_directory),
            ("upper", self.upper_directory),
        ):
            if not path:
                raise ValidationError(f"No {name} directory given")
            if not os.path.isdir(path):
                raise ValidationError(f"The {name} directory '{path}' does not exist")

        work = self.work_directory
        if work is not None and not os.path.isdir(work):
            raise ValidationError(f"The work directory '{work}' does not exist")

        extension = self.backup_extension
        if not extension or "/" in extension or os.sep in extension:
            raise ValidationError(f"Invalid backup extension '{extension}'")


def write_new_config(filename: str, lower: str = "", upper: str = "") -> None:
    """Write a new config file if one does not exist."""
    if os.path.exists(filename):
        return

    config = NEW_CONFIG.format(lower=lower, upper=upper)

    with open(filename, "w") as config_file:
        config_file.write(config)
