from __future__ import annotations

from datetime import timedelta
from pathlib import Path

from conftest import NOW, ROOT, make_rule

from core_cleanup.filesystem import LocalFileSystem
from core_cleanup.retention import CandidateScanner, EntryRemover


def _scanner(fs, rule, clock):
    remover = EntryRemover(fs, rule)
    return CandidateScanner(fs, remover, clock=clock), remover


def test_hard_age_violators_are_deleted_during_scan(fs, clock) -> None:
    fs.add_file(ROOT / "stale.log", timedelta(days=10))
    fs.add_file(ROOT / "fresh.log", timedelta(days=1))
    rule = make_rule(max_age=timedelta(days=7), min_age=timedelta(days=30), min_count=5)
    scanner, remover = _scanner(fs, rule, clock)

    candidates = scanner.scan(ROOT, rule)

    assert [entry.path.name for entry in candidates] == ["fresh.log"]
    assert [path.name for path in remover.deleted] == ["stale.log"]
    assert fs.remaining() == ["fresh.log"]


def test_max_age_boundary_is_inclusive(fs, clock) -> None:
    fs.add_file(ROOT / "exact", timedelta(days=7))
    rule = make_rule(max_age=timedelta(days=7))
    scanner, _ = _scanner(fs, rule, clock)

    assert scanner.scan(ROOT, rule) == []
    assert fs.remaining() == []


def test_hard_age_directory_is_removed_with_contents(fs, clock) -> None:
    folder = fs.add_dir(ROOT / "cache-old", age=timedelta(days=30))
    fs.add_file(folder / "blob", timedelta(days=30))
    rule = make_rule(pattern="cache-*", max_age=timedelta(days=7))
    scanner, remover = _scanner(fs, rule, clock)

    scanner.scan(ROOT, rule)

    assert remover.deleted == [folder]
    assert folder / "blob" not in fs.nodes


def test_locked_hard_age_file_is_skipped(fs, clock, caplog) -> None:
    fs.add_file(ROOT / "busy.log", timedelta(days=30), locked=True)
    rule = make_rule(max_age=timedelta(days=7))
    scanner, remover = _scanner(fs, rule, clock)

    with caplog.at_level("INFO"):
        candidates = scanner.scan(ROOT, rule)

    assert candidates == []
    assert remover.skipped == [ROOT / "busy.log"]
    assert fs.remaining() == ["busy.log"]
    assert "locked by another process" in caplog.text


def test_delete_error_is_logged_and_scan_continues(fs, clock, caplog) -> None:
    fs.add_file(ROOT / "a.log", timedelta(days=30))
    fs.add_file(ROOT / "b.log", timedelta(days=30))
    fs.failing.add(ROOT / "a.log")
    rule = make_rule(max_age=timedelta(days=7))
    scanner, remover = _scanner(fs, rule, clock)

    scanner.scan(ROOT, rule)

    assert remover.deleted == [ROOT / "b.log"]
    assert any(record.levelname == "ERROR" and "a.log" in record.getMessage() for record in caplog.records)


def test_pattern_filters_entries(fs, clock) -> None:
    fs.add_file(ROOT / "keep.txt", timedelta(days=1))
    fs.add_file(ROOT / "match.log", timedelta(days=1))
    rule = make_rule(pattern="*.log")
    scanner, _ = _scanner(fs, rule, clock)

    assert [entry.path.name for entry in scanner.scan(ROOT, rule)] == ["match.log"]


def test_ordering_is_age_ascending_with_discovery_tie_break(fs, clock) -> None:
    fs.add_file(ROOT / "b", timedelta(hours=2))
    fs.add_file(ROOT / "a", timedelta(hours=2))
    fs.add_file(ROOT / "c", timedelta(hours=5))
    fs.add_dir(ROOT / "d", age=timedelta(hours=2))
    rule = make_rule()
    scanner, _ = _scanner(fs, rule, clock)

    first = [entry.path.name for entry in scanner.scan(ROOT, rule)]
    second = [entry.path.name for entry in scanner.scan(ROOT, rule)]

    # Files are discovered in name order, then directories.
    assert first == ["c", "a", "b", "d"]
    assert first == second


def test_age_reflects_clock(fs) -> None:
    fs.add_file(ROOT / "x", timedelta(hours=1))
    ticks = iter([NOW, NOW + timedelta(hours=1)])
    rule = make_rule()
    scanner, _ = _scanner(fs, rule, lambda: next(ticks))

    entry = scanner.scan(ROOT, rule, now=NOW)[0]

    assert entry.age == timedelta(hours=1)
    assert entry.age == timedelta(hours=2)


def test_scan_on_real_directory(tmp_path: Path, make_aged_file) -> None:
    make_aged_file(tmp_path / "old.log", timedelta(days=10))
    make_aged_file(tmp_path / "new.log", timedelta(days=1))
    make_aged_file(tmp_path / "notes.txt", timedelta(days=10))
    (tmp_path / "logs.d.log").mkdir()
    filesystem = LocalFileSystem()
    rule = make_rule(folder=tmp_path, pattern="*.log", max_age=timedelta(days=7))
    remover = EntryRemover(filesystem, rule)

    candidates = CandidateScanner(filesystem, remover).scan(tmp_path, rule)

    assert [entry.path.name for entry in candidates] == ["new.log", "logs.d.log"]
    assert candidates[1].is_directory
    assert not (tmp_path / "old.log").exists()
    assert (tmp_path / "notes.txt").exists()
