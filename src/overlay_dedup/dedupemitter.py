from __future__ import annotations

import dataclasses
import logging
from collections import deque

from .dedupconfig import DedupConfig

DELETE_FILE = "delete-file"
DELETE_DIRECTORY = "delete-directory"
BACKUP = "backup"
CLEAR = "clear"

DRY_RUN_PREFIX = "[dry-run] "


@dataclasses.dataclass(frozen=True)
class Action:
    action: str
    path: str
    detail: str = ""


class DedupEmitter:
    """Collect the actions of a run and emit them to the configured targets."""

    logger = logging.getLogger(__name__)

    def __init__(self, config: DedupConfig) -> None:
        """Initialize the emitter."""
        self._config = config
        self._pending: deque[Action] = deque()
        self._actions: list[Action] = []

    @property
    def actions(self) -> list[Action]:
        """All actions recorded so far, including those already emitted."""
        return list(self._actions)

    def add_action(self, action: str, path: str, detail: str = "") -> None:
        """
        Record an action that was performed, or would be in a dry run.

        Args:
            action: One of delete-file, delete-directory, backup or clear.
            path: The path the action applies to.
            detail: Optional extra text, such as a backup destination.
        """
        record = Action(action=action, path=path, detail=detail)
        self._pending.append(record)
        self._actions.append(record)

    def emit(self) -> None:
        """Emit all pending actions to the configured targets. Empties the queue."""
        lines = self._get_lines()

        self.to_stdout(lines)
        self.to_file(lines)

        self.logger.info("Emitted %d action lines.", len(lines))

    def _get_lines(self) -> list[str]:
        """Build the lines to emit, removing them from the emitter."""
        prefix = DRY_RUN_PREFIX if self._config.dry_run else ""
        lines: list[str] = []
        while self._pending:
            action = self._pending.popleft()
            line = f"{prefix}{action.action} {action.path}"
            if action.detail:
                line = f"{line} -> {action.detail}"
            lines.append(line)

        return lines

    def to_stdout(self, lines: list[str]) -> None:
        """Print action lines to stdout."""
        if not self._config.emit_stdout or not lines:
            return

        print("\n".join(lines))

        self.logger.debug("Emitted %d lines to stdout", len(lines))

    def to_file(self, lines: list[str]) -> None:
        """Append action lines to the configured report file."""
        filename = self._config.report_file
        if not filename or not lines:
            return

        with open(filename, "a") as file_out:
            file_out.write("\n".join(lines) + "\n")

        self.logger.debug("Emitted %d lines to %s", len(lines), filename)
