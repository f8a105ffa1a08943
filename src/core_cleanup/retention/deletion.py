from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional

from core_cleanup.filesystem import FileSystem

from .candidates import CandidateEntry

if TYPE_CHECKING:
    from core_cleanup.config import RuleConfig

LOG = logging.getLogger(__name__)


class EntryRemover:
    """Reports and deletes candidates for one rule execution.

    Filesystem failures are logged and recorded, never raised, so a single
    stubborn entry does not stop the rest of the pass.
    """

    def __init__(self, filesystem: FileSystem, rule: RuleConfig) -> None:
        self._filesystem = filesystem
        self._rule = rule
        self.deleted: List[Path] = []
        self.skipped: List[Path] = []
        self.errors: List[str] = []

    def remove(self, entry: CandidateEntry, reason: str) -> bool:
        """Delete ``entry``; returns True only when it was actually removed."""
        self._report(entry, reason)

        if not entry.is_directory and self._filesystem.is_locked(entry.path):
            LOG.warning("File %s was skipped as it appears to be locked by another process", entry.path)
            self.skipped.append(entry.path)
            return False

        try:
            self._filesystem.delete(entry.path, recursive=entry.is_directory)
        except OSError as exc:
            LOG.error("Could not delete candidate %s %s: %s", entry.kind, entry.path, exc)
            self.errors.append(f"Could not delete {entry.path}: {exc}")
            return False

        self.deleted.append(entry.path)
        return True

    def _report(self, entry: CandidateEntry, reason: str) -> None:
        LOG.info(
            "%s is being deleted by cleanup task: %s, date: %s, age: %s (min age: %s, max age: %s). Reason: %s",
            entry.kind.capitalize(),
            entry.path,
            entry.effective_timestamp.isoformat(),
            entry.age,
            self._rule.min_age,
            _format_limit(self._rule.max_age),
            reason,
        )


def _format_limit(value: Optional[object]) -> str:
    return "unbounded" if value is None else str(value)
