from __future__ import annotations

import errno
import hashlib
import logging
import os
import shutil
import stat

from .dedupmodel import DirectoryListing
from .dedupmodel import FileInfo
from .dedupmodel import FileKind
from .dedupmodel import TraversalIntegrityError

HASH_ALGORITHM = "sha256"
CHUNK_SIZE = 1024 * 1024


class LocalFileSystem:
    """Filesystem operations used by the pruner and the walker."""

    logger = logging.getLogger(__name__)

    def list_directory(self, path: str) -> DirectoryListing:
        """
        List the immediate children of a directory.

        Only real directories are listed as directories. Symlinks, including
        links to directories, and special files are listed as files.

        Raises:
            OSError
        """
        files: set[str] = set()
        directories: set[str] = set()

        with os.scandir(path) as entries:
            for entry in entries:
                if entry.is_dir(follow_symlinks=False):
                    directories.add(entry.name)
                else:
                    files.add(entry.name)

        return DirectoryListing(frozenset(files), frozenset(directories))

    def stat(self, path: str) -> FileInfo:
        """
        Return the metadata of a path without following symlinks.

        Raises:
            OSError
        """
        result = os.lstat(path)
        kind = self.classify(result.st_mode)
        link_target = os.readlink(path) if kind is FileKind.SYMLINK else None

        return FileInfo(
            mtime_ns=result.st_mtime_ns,
            size=result.st_size,
            kind=kind,
            link_target=link_target,
        )

    @staticmethod
    def classify(mode: int) -> FileKind:
        """Map stat mode bits to a FileKind."""
        if stat.S_ISLNK(mode):
            return FileKind.SYMLINK
        if stat.S_ISDIR(mode):
            return FileKind.DIRECTORY
        if stat.S_ISREG(mode):
            return FileKind.REGULAR
        if stat.S_ISSOCK(mode):
            return FileKind.SOCKET
        return FileKind.OTHER

    def digest(self, path: str) -> str:
        """
        Return the hex digest of the full contents of a file.

        Raises:
            OSError
        """
        file_hash = hashlib.new(HASH_ALGORITHM)
        with open(path, "rb") as file_in:
            for chunk in iter(lambda: file_in.read(CHUNK_SIZE), b""):
                file_hash.update(chunk)

        return file_hash.hexdigest()

    def remove_file(self, path: str) -> None:
        """
        Remove a file or symlink.

        Raises:
            OSError
        """
        os.unlink(path)
        self.logger.debug("Removed file '%s'", path)

    def remove_directory(self, path: str) -> None:
        """
        Remove an empty directory.

        Raises:
            TraversalIntegrityError: The directory is not empty.
            OSError
        """
        try:
            os.rmdir(path)

        except OSError as error:
            if error.errno in (errno.ENOTEMPTY, errno.EEXIST):
                raise TraversalIntegrityError(
                    f"Directory '{path}' is not empty at deletion time"
                ) from error
            raise

        self.logger.debug("Removed directory '%s'", path)

    def copy_file(self, source: str, destination: str) -> None:
        """
        Copy the contents of source to destination, replacing destination.

        An existing destination entry is removed first, so a symlink there is
        replaced rather than written through.

        Raises:
            OSError
        """
        if os.path.lexists(destination):
            os.unlink(destination)

        shutil.copyfile(source, destination)
        self.logger.debug("Copied '%s' to '%s'", source, destination)

    def clear_directory(self, path: str) -> list[str]:
        """
        Delete every entry inside a directory, leaving the directory itself.

        Returns:
            The names of the removed entries.

        Raises:
            OSError
        """
        removed: list[str] = []
        with os.scandir(path) as entries:
            children = sorted(entries, key=lambda entry: entry.name)

        for entry in children:
            if entry.is_dir(follow_symlinks=False):
                shutil.rmtree(entry.path)
            else:
                os.unlink(entry.path)
            removed.append(entry.name)

        self.logger.debug("Cleared %s entries from '%s'", len(removed), path)
        return removed
