from __future__ import annotations

import logging
from pathlib import Path
from unittest.mock import patch

import pytest
from conftest import Overlay

from overlay_dedup import __main__
from overlay_dedup.dedupmodel import DedupError


def test_parse_args() -> None:
    args = __main__.parse_args(
        [
            "lower",
            "upper",
            "--ignore-dir",
            "proc",
            "--ignore-dir",
            "sys",
            "--keep-file",
            "etc/passwd",
            "--backup-extension",
            "orig",
            "--dry-run",
        ]
    )

    assert args.lower == "lower"
    assert args.upper == "upper"
    assert args.ignore_dirs == ["proc", "sys"]
    assert args.keep_files == ["etc/passwd"]
    assert args.backup_extension == "orig"
    assert args.dry_run is True
    assert args.verbose is None


def test_parse_args_defaults() -> None:
    args = __main__.parse_args(["lower", "upper"])

    assert args.ignore_dirs == []
    assert args.keep_files == []
    assert args.backup_extension is None
    assert args.dry_run is None
    assert args.config is None


def test_build_config_applies_arguments(overlay: Overlay) -> None:
    args = __main__.parse_args(
        [str(overlay.lower), str(overlay.upper), "--keep-file", "/etc/passwd"]
    )

    config = __main__.build_config(args)

    assert config.lower_directory == str(overlay.lower)
    assert config.upper_directory == str(overlay.upper)
    assert config.keep_files == frozenset({"etc/passwd"})
    assert config.backup_extension == "new"
    assert config.dry_run is False


def test_main_runs_deduplicator(overlay: Overlay) -> None:
    cli_args = [str(overlay.lower), str(overlay.upper)]

    with patch("overlay_dedup.__main__.Deduplicator.run") as mock_run:
        result = __main__.main(cli_args=cli_args)

    assert result == 0
    assert mock_run.call_count == 1


def test_main_deduplicates(overlay: Overlay) -> None:
    overlay.pair("a/f")

    result = __main__.main(cli_args=[str(overlay.lower), str(overlay.upper)])

    assert result == 0
    assert not (overlay.upper / "a").exists()


def test_main_missing_directory_exits_nonzero(overlay: Overlay) -> None:
    overlay.pair("f")
    missing = str(overlay.lower.parent / "missing")

    result = __main__.main(cli_args=[missing, str(overlay.upper)])

    assert result == __main__.EXIT_INVALID
    assert (overlay.upper / "f").exists()


def test_main_unreadable_config_exits_nonzero(tmp_path: Path) -> None:
    cli_args = ["--config", str(tmp_path / "missing.ini")]

    result = __main__.main(cli_args=cli_args)

    assert result == __main__.EXIT_INVALID


@pytest.mark.parametrize("error", [DedupError("broken"), OSError("gone")])
def test_main_unhandled_error_exits_nonzero(
    overlay: Overlay,
    error: Exception,
) -> None:
    cli_args = [str(overlay.lower), str(overlay.upper)]

    with patch("overlay_dedup.__main__.Deduplicator.run", side_effect=error):
        result = __main__.main(cli_args=cli_args)

    assert result == __main__.EXIT_FAILURE


def test_main_create_config(tmp_path: Path) -> None:
    config_path = str(tmp_path / "dedup.ini")
    cli_args = ["/lower", "/upper", "--config", config_path, "--make-config"]

    with patch("overlay_dedup.__main__.write_new_config") as mock_write:
        result = __main__.main(cli_args=cli_args)

    assert result == 0
    mock_write.assert_called_once_with(config_path, "/lower", "/upper")


def test_main_create_config_requires_path() -> None:
    result = __main__.main(cli_args=["--make-config"])

    assert result == __main__.EXIT_INVALID


def test_main_reads_config_file(overlay: Overlay, tmp_path: Path) -> None:
    config_path = tmp_path / "dedup.ini"
    __main__.main(
        cli_args=[
            str(overlay.lower),
            str(overlay.upper),
            "--config",
            str(config_path),
            "--make-config",
        ]
    )
    overlay.pair("f")

    result = __main__.main(cli_args=["--config", str(config_path), "--dry-run"])

    assert result == 0
    assert (overlay.upper / "f").exists()


def test_main_creates_log_file(overlay: Overlay, tmp_path: Path) -> None:
    log_path = tmp_path / "dedup.log"
    cli_args = [str(overlay.lower), str(overlay.upper), "--log-file", str(log_path)]

    try:
        with patch("overlay_dedup.__main__.Deduplicator.run") as mock_run:
            result = __main__.main(cli_args=cli_args)

        assert result == 0
        assert mock_run.call_count == 1
        assert log_path.exists()

    finally:
        for handler in logging.root.handlers:
            if isinstance(handler, logging.FileHandler):
                handler.close()
                logging.root.handlers.remove(handler)
