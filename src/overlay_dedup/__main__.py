from __future__ import annotations

import argparse
import logging
from pathlib import Path

from overlay_dedup.dedup import Deduplicator
from overlay_dedup.dedupconfig import DedupConfig
from overlay_dedup.dedupconfig import write_new_config
from overlay_dedup.dedupmodel import DedupError
from overlay_dedup.dedupmodel import ValidationError

LOG_FORMAT = "%(asctime)s %(levelname)s %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

EXIT_FAILURE = 1
EXIT_INVALID = 2


def parse_args(args: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="overlay-dedup",
        description="Remove files from an overlay upper directory that are "
        "redundant copies of files in the lower directory.",
    )
    parser.add_argument(
        "lower",
        type=str,
        nargs="?",
        help="The lower (read-only) directory of the overlay.",
    )
    parser.add_argument(
        "upper",
        type=str,
        nargs="?",
        help="The upper (read-write) directory of the overlay.",
    )
    parser.add_argument(
        "--ignore-dir",
        help="Relative path of a directory to skip entirely. Can be repeated.",
        dest="ignore_dirs",
        default=[],
        action="append",
    )
    parser.add_argument(
        "--keep-file",
        help="Relative path of a file to back up instead of delete. Can be repeated.",
        dest="keep_files",
        default=[],
        action="append",
    )
    parser.add_argument(
        "--backup-extension",
        help="Extension for keep-file backups. Default: new",
        default=None,
    )
    parser.add_argument(
        "--work-dir",
        help="The overlay work directory. All of its entries are removed.",
        default=None,
    )
    parser.add_argument(
        "--config",
        help="Read settings from an INI file. Command line values take precedence.",
        default=None,
    )
    parser.add_argument(
        "--make-config",
        help="Create a default configuration file at the --config path and exit.",
        default=False,
        action="store_true",
    )
    parser.add_argument(
        "--report-file",
        help="Append the actions taken to this file.",
        default=None,
    )
    parser.add_argument(
        "--dry-run",
        help="Do not change anything, only print what would be done.",
        default=None,
        action="store_true",
    )
    parser.add_argument(
        "--verbose",
        help="Log every comparison and its outcome.",
        default=None,
        action="store_true",
    )
    parser.add_argument(
        "--log-file",
        help="Also write the log to this file.",
        default=None,
    )
    return parser.parse_args(args)


def add_file_handler_to_logging(log_filepath: str) -> None:
    """Add a file handler to the root logger."""
    file_handler = logging.FileHandler(Path(log_filepath).absolute())
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    logging.getLogger().addHandler(file_handler)


def build_config(args: argparse.Namespace) -> DedupConfig:
    """Load the config file, if any, and apply command line values on top."""
    config = DedupConfig(args.config)
    config.update(
        lower_directory=args.lower,
        upper_directory=args.upper,
        work_directory=args.work_dir,
        backup_extension=args.backup_extension,
        ignore_directories=args.ignore_dirs,
        keep_files=args.keep_files,
        dry_run=args.dry_run,
        verbose=args.verbose,
        report_file=args.report_file,
    )
    return config


def main(*, cli_args: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(cli_args)
    logger = logging.getLogger("overlay_dedup")

    if args.make_config:
        if not args.config:
            logger.error("--make-config requires --config")
            return EXIT_INVALID
        write_new_config(args.config, args.lower or "", args.upper or "")
        return 0

    try:
        config = build_config(args)

    except ValidationError as error:
        logging.basicConfig(format=LOG_FORMAT, datefmt=DATE_FORMAT)
        logger.error("%s", error)
        return EXIT_INVALID

    logging.basicConfig(
        level=logging.DEBUG if config.verbose else logging.INFO,
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
    )

    if args.log_file:
        add_file_handler_to_logging(args.log_file)

    deduplicator = Deduplicator(config)

    try:
        deduplicator.run()

    except ValidationError as error:
        logger.error("%s", error)
        return EXIT_INVALID

    except (DedupError, OSError) as error:
        logger.exception("Deduplication stopped due to an error: %s", error)
        return EXIT_FAILURE

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
