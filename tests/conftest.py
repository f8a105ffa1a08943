from __future__ import annotations

import fnmatch
import os
import random
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Dict, List, Set, Tuple

import pytest

from core_cleanup.config import RuleConfig
from core_cleanup.filesystem import DirectoryListing

NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)
ROOT = Path("/srv/data")


def fixed_clock() -> datetime:
    return NOW


def make_rule(**overrides) -> RuleConfig:
    values = {"folder": ROOT, "pattern": "*", "min_age": timedelta(0)}
    values.update(overrides)
    return RuleConfig(**values)


@dataclass
class FakeNode:
    timestamp: datetime
    is_directory: bool
    locked: bool = False


class FakeFileSystem:
    """In-memory filesystem with fixed timestamps."""

    def __init__(self) -> None:
        self.nodes: Dict[Path, FakeNode] = {}
        self.failing: Set[Path] = set()
        self.deleted: List[Path] = []

    def add_dir(self, path: Path, age: timedelta = timedelta(0)) -> Path:
        self.nodes[path] = FakeNode(timestamp=NOW - age, is_directory=True)
        return path

    def add_file(self, path: Path, age: timedelta, locked: bool = False) -> Path:
        self.nodes[path] = FakeNode(timestamp=NOW - age, is_directory=False, locked=locked)
        return path

    def children(self, path: Path) -> List[Path]:
        return sorted((child for child in self.nodes if child.parent == path), key=lambda item: item.name)

    def exists(self, path: Path) -> bool:
        node = self.nodes.get(path)
        return node is not None and node.is_directory

    def list_entries(self, path: Path, pattern: str) -> DirectoryListing:
        listing = DirectoryListing()
        for child in self.children(path):
            if not fnmatch.fnmatchcase(child.name, pattern):
                continue
            if self.nodes[child].is_directory:
                listing.directories.append(child)
            else:
                listing.files.append(child)
        return listing

    def list_directories(self, path: Path) -> List[Path]:
        return [child for child in self.children(path) if self.nodes[child].is_directory]

    def get_timestamps(self, path: Path) -> Tuple[datetime, datetime]:
        node = self.nodes[path]
        return node.timestamp, node.timestamp

    def is_locked(self, path: Path) -> bool:
        return self.nodes[path].locked

    def delete(self, path: Path, recursive: bool = False) -> None:
        if path in self.failing:
            raise PermissionError(f"Permission denied: '{path}'")
        descendants = [other for other in self.nodes if path in other.parents]
        if descendants and not recursive:
            raise OSError(f"Directory not empty: '{path}'")
        for other in descendants:
            del self.nodes[other]
        del self.nodes[path]
        self.deleted.append(path)

    def remaining(self, path: Path = ROOT) -> List[str]:
        return [child.name for child in self.children(path)]


@pytest.fixture
def fs() -> FakeFileSystem:
    filesystem = FakeFileSystem()
    filesystem.add_dir(ROOT)
    return filesystem


@pytest.fixture
def clock() -> Callable[[], datetime]:
    return fixed_clock


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def make_aged_file() -> Callable[[Path, timedelta], Path]:
    """Create a real file whose modification time lies ``age`` in the past."""

    def _make(path: Path, age: timedelta) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(path.name, encoding="utf-8")
        stamp = (datetime.now(timezone.utc) - age).timestamp()
        os.utime(path, (stamp, stamp))
        return path

    return _make
