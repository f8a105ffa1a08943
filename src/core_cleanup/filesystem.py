from __future__ import annotations

import fnmatch
import os
import shutil
import stat
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Protocol, Tuple


@dataclass
class DirectoryListing:
    files: List[Path] = field(default_factory=list)
    directories: List[Path] = field(default_factory=list)


class FileSystem(Protocol):
    def exists(self, path: Path) -> bool:
        ...

    def list_entries(self, path: Path, pattern: str) -> DirectoryListing:
        ...

    def list_directories(self, path: Path) -> List[Path]:
        ...

    def get_timestamps(self, path: Path) -> Tuple[datetime, datetime]:
        ...

    def is_locked(self, path: Path) -> bool:
        ...

    def delete(self, path: Path, recursive: bool = False) -> None:
        ...


class LocalFileSystem:
    """Filesystem capability backed by the host filesystem.

    Symbolic links are never followed: a link is treated as a file and
    deleting it leaves its target alone.
    """

    def exists(self, path: Path) -> bool:
        return path.is_dir()

    def list_entries(self, path: Path, pattern: str) -> DirectoryListing:
        listing = DirectoryListing()
        for child in self._children(path):
            if not fnmatch.fnmatch(child.name, pattern):
                continue
            if _is_directory(child):
                listing.directories.append(child)
            else:
                listing.files.append(child)
        return listing

    def list_directories(self, path: Path) -> List[Path]:
        return [child for child in self._children(path) if _is_directory(child)]

    def get_timestamps(self, path: Path) -> Tuple[datetime, datetime]:
        stat_result = path.lstat()
        modified = datetime.fromtimestamp(stat_result.st_mtime, tz=timezone.utc)
        # st_ctime on POSIX is the inode change time, not creation; fall back to mtime there.
        birth = getattr(stat_result, "st_birthtime", None)
        created = datetime.fromtimestamp(birth, tz=timezone.utc) if birth is not None else modified
        return created, modified

    def is_locked(self, path: Path) -> bool:
        try:
            mode = path.lstat().st_mode
        except FileNotFoundError:
            return False
        # Links, pipes and sockets hold no lock; opening a pipe without a reader would block.
        if not stat.S_ISREG(mode):
            return False
        if not os.access(path, os.W_OK):
            return True
        try:
            fd = os.open(path, os.O_WRONLY | os.O_APPEND)
        except FileNotFoundError:
            return False
        except OSError:
            return True
        os.close(fd)
        return False

    def delete(self, path: Path, recursive: bool = False) -> None:
        if not _is_directory(path):
            path.unlink(missing_ok=True)
        elif recursive:
            shutil.rmtree(path)
        else:
            path.rmdir()

    @staticmethod
    def _children(path: Path) -> List[Path]:
        return sorted(path.iterdir(), key=lambda item: item.name)


def _is_directory(path: Path) -> bool:
    return path.is_dir() and not path.is_symlink()
