from __future__ import annotations

import argparse
import logging
import os
import random
import shutil
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from string import ascii_lowercase

BASE_DIR: Path = Path(__file__).resolve().parent
TEST_DIR: Path = BASE_DIR / "smoketest_overlay"
LOWER_DIR: Path = TEST_DIR / "lower"
UPPER_DIR: Path = TEST_DIR / "upper"
WORK_DIR: Path = TEST_DIR / "work"

BRANCH_COUNT = 5
MAX_DEPTH = 5
FILE_SIZE = 1024 * 1024

# Chances out of 1.0 for each directory level
CHANCE_OF_MODIFIED_COPY = 1 / 3
CHANCE_OF_IDENTICAL_COPY = 1 / 3
CHANCE_OF_UPPER_ONLY = 1 / 3

logger = logging.getLogger(__name__)


def _random_bytes() -> bytes:
    return os.urandom(FILE_SIZE)


def _directory_name() -> str:
    """Create a random three character directory name."""
    return "".join(random.choices(ascii_lowercase, k=3))


def build_work_directory() -> None:
    """Fill the work directory the way a mounted overlay leaves it."""
    for name, filename in (("index", "1.bin"), ("work", "2.bin")):
        path = WORK_DIR / name
        path.mkdir(parents=True, exist_ok=True)
        (path / filename).write_bytes(_random_bytes())


def build_branch(depth: int) -> None:
    """
    Build one directory chain in both layers with a file per level.

    Each level gets a lower file. The upper layer receives a modified copy,
    an identical copy, or nothing, and sometimes an upper-only file.
    """
    parts = [_directory_name() for _ in range(depth)]
    (LOWER_DIR / Path(*parts)).mkdir(parents=True, exist_ok=True)
    (UPPER_DIR / Path(*parts)).mkdir(parents=True, exist_ok=True)

    for level in range(1, depth + 1):
        relpath = Path(*parts[:level])
        lower_file = LOWER_DIR / relpath / f"{level}.bin"
        upper_file = UPPER_DIR / relpath / f"{level}.bin"

        lower_file.write_bytes(_random_bytes())

        chance = random.random()
        if chance < CHANCE_OF_MODIFIED_COPY:
            logger.debug("Modified copy %s", upper_file)
            upper_file.write_bytes(_random_bytes())

        elif chance < CHANCE_OF_MODIFIED_COPY + CHANCE_OF_IDENTICAL_COPY:
            logger.debug("Identical copy %s", upper_file)
            shutil.copyfile(lower_file, upper_file)

        if random.random() < CHANCE_OF_UPPER_ONLY:
            upper_only = UPPER_DIR / relpath / f"{level + MAX_DEPTH}.bin"
            logger.debug("Upper only %s", upper_only)
            upper_only.write_bytes(_random_bytes())


def build_smoketest_directories() -> None:
    """Create a random lower, upper and work tree."""
    destroy_smoketest_directories()

    for path in (LOWER_DIR, UPPER_DIR, WORK_DIR):
        path.mkdir(parents=True, exist_ok=True)

    build_work_directory()

    for _ in range(BRANCH_COUNT):
        build_branch(random.randint(1, MAX_DEPTH))

    logger.info("Built smoketest overlay in %s", TEST_DIR)


def destroy_smoketest_directories() -> None:
    """Delete the directories for the smoketest."""
    if TEST_DIR.exists():
        logger.debug("Deleting %s", TEST_DIR)
        shutil.rmtree(TEST_DIR)


@contextmanager
def smoketest_runner(keep: bool = False) -> Generator[None, None, None]:
    """Build the smoketest trees, removing them afterwards unless keep is set."""
    build_smoketest_directories()

    try:
        yield None

    finally:
        if not keep:
            destroy_smoketest_directories()


def parse_args() -> str:
    """Parse command line arguments, return log level."""
    parser = argparse.ArgumentParser()
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="INFO",
        help="Set the logging level.",
    )
    args = parser.parse_args()
    return args.log_level


def run() -> int:
    """Build the trees and leave them in place."""
    level = parse_args()
    logging.basicConfig(level=level, format="%(asctime)s %(message)s")

    build_smoketest_directories()

    return 0


if __name__ == "__main__":
    raise SystemExit(run())
