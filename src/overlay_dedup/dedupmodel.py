from __future__ import annotations

import dataclasses
import enum
import os


class DedupError(Exception):
    """Base error for overlay_dedup."""


class ValidationError(DedupError):
    """A required directory or setting is missing or invalid."""


class TraversalIntegrityError(DedupError):
    """A directory expected to be empty at deletion time was not."""


class FileKind(enum.Enum):
    """File type classification, independent of platform mode bits."""

    REGULAR = "regular"
    DIRECTORY = "directory"
    SYMLINK = "symlink"
    SOCKET = "socket"
    OTHER = "other"


class Outcome(enum.Enum):
    """Result of evaluating one file present in both trees."""

    DELETED = "deleted"
    PRESERVED = "preserved"
    BACKED_UP = "backed up"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclasses.dataclass(frozen=True)
class FileInfo:
    """Metadata of a single entry, read without following symlinks."""

    mtime_ns: int
    size: int
    kind: FileKind
    link_target: str | None = None


@dataclasses.dataclass(frozen=True)
class DirectoryListing:
    """Immediate children of a directory, split into files and directories."""

    files: frozenset[str] = frozenset()
    directories: frozenset[str] = frozenset()


@dataclasses.dataclass(frozen=True)
class Decision:
    """The outcome for one common file and the policy step that decided it."""

    path: str
    outcome: Outcome
    reason: str

    @property
    def removed(self) -> bool:
        return self.outcome is Outcome.DELETED

    def __str__(self) -> str:
        return f"{self.path}: {self.outcome.value} ({self.reason})"


@dataclasses.dataclass
class RunStats:
    """Counters collected over one run."""

    files_processed: int = 0
    files_deleted: int = 0
    files_preserved: int = 0
    files_backed_up: int = 0
    files_skipped: int = 0
    files_failed: int = 0
    directories_failed: int = 0
    bytes_reclaimed: int = 0
    pruned_directories: set[str] = dataclasses.field(default_factory=set)

    @property
    def directories_pruned(self) -> int:
        return len(self.pruned_directories)

    def record(self, decision: Decision, size: int = 0) -> None:
        """Count a file decision."""
        self.files_processed += 1
        if decision.outcome is Outcome.DELETED:
            self.files_deleted += 1
            self.bytes_reclaimed += size
        elif decision.outcome is Outcome.PRESERVED:
            self.files_preserved += 1
        elif decision.outcome is Outcome.BACKED_UP:
            self.files_backed_up += 1
        elif decision.outcome is Outcome.SKIPPED:
            self.files_skipped += 1
        else:
            self.files_failed += 1


def join_relpath(parent: str, name: str) -> str:
    """Compose a child RelativePath; the root is the empty string."""
    return f"{parent}/{name}" if parent else name


def normalize_relpath(path: str) -> str:
    """Strip surrounding slashes from a user supplied RelativePath."""
    return path.strip("/")


def resolve_relpath(root: str, path: str) -> str:
    """Return the location of a RelativePath inside a layer root."""
    if not path:
        return root
    return os.path.join(root, *path.split("/"))
