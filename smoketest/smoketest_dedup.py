from __future__ import annotations

import logging

from smoketest_overlay import LOWER_DIR
from smoketest_overlay import UPPER_DIR
from smoketest_overlay import WORK_DIR
from smoketest_overlay import smoketest_runner

from overlay_dedup.dedup import Deduplicator
from overlay_dedup.dedupconfig import DedupConfig


def main() -> int:
    """Deduplicate a generated overlay twice; the second run must change nothing."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(message)s")
    config = DedupConfig()
    config.update(
        lower_directory=str(LOWER_DIR),
        upper_directory=str(UPPER_DIR),
        work_directory=str(WORK_DIR),
    )

    with smoketest_runner():
        first = Deduplicator(config).run()
        second = Deduplicator(config).run()

    if second.files_deleted or second.directories_pruned:
        logging.error("Second run was not a no-op: %s", second)
        return 1

    logging.info("First run removed %s files", first.files_deleted)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
