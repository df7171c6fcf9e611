from __future__ import annotations

import os

import pytest

from overlay_dedup.dedupmodel import Decision
from overlay_dedup.dedupmodel import Outcome
from overlay_dedup.dedupmodel import RunStats
from overlay_dedup.dedupmodel import join_relpath
from overlay_dedup.dedupmodel import normalize_relpath
from overlay_dedup.dedupmodel import resolve_relpath


@pytest.mark.parametrize(
    "parent, name, expected",
    [
        ("", "a", "a"),
        ("a", "b", "a/b"),
        ("a/b", "1.bin", "a/b/1.bin"),
    ],
)
def test_join_relpath(parent: str, name: str, expected: str) -> None:
    assert join_relpath(parent, name) == expected


@pytest.mark.parametrize(
    "path, expected",
    [
        ("a/b", "a/b"),
        ("/a/b/", "a/b"),
        ("a/b ", "a/b "),
    ],
)
def test_normalize_relpath_only_strips_slashes(path: str, expected: str) -> None:
    assert normalize_relpath(path) == expected


def test_resolve_relpath() -> None:
    assert resolve_relpath("/mnt/upper", "") == "/mnt/upper"
    assert resolve_relpath("/mnt/upper", "a/b") == os.path.join("/mnt/upper", "a", "b")


def test_decision_removed_only_when_deleted() -> None:
    assert Decision("a", Outcome.DELETED, "hash-equal").removed is True
    for outcome in (
        Outcome.PRESERVED,
        Outcome.BACKED_UP,
        Outcome.SKIPPED,
        Outcome.FAILED,
    ):
        assert Decision("a", outcome, "any").removed is False


def test_decision_str() -> None:
    decision = Decision("a/1.bin", Outcome.PRESERVED, "size-differs")

    assert str(decision) == "a/1.bin: preserved (size-differs)"


def test_run_stats_record() -> None:
    stats = RunStats()

    stats.record(Decision("a", Outcome.DELETED, "lower-newer"), 10)
    stats.record(Decision("b", Outcome.PRESERVED, "size-differs"), 20)
    stats.record(Decision("c", Outcome.BACKED_UP, "keep-file"))
    stats.record(Decision("d", Outcome.SKIPPED, "socket"))
    stats.record(Decision("e", Outcome.FAILED, "error"))

    assert stats.files_processed == 5
    assert stats.files_deleted == 1
    assert stats.files_preserved == 1
    assert stats.files_backed_up == 1
    assert stats.files_skipped == 1
    assert stats.files_failed == 1
    assert stats.bytes_reclaimed == 10


def test_run_stats_directories_pruned_counts_paths() -> None:
    stats = RunStats()
    stats.pruned_directories.update({"a", "a/b"})

    assert stats.directories_pruned == 2
