from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional

from core_cleanup.filesystem import FileSystem

from .candidates import CandidateEntry
from .deletion import EntryRemover
from .timesource import Clock, effective_timestamp, utc_now

if TYPE_CHECKING:
    from core_cleanup.config import RuleConfig

LOG = logging.getLogger(__name__)


class CandidateScanner:
    """Lists the entries of one directory that a rule applies to.

    Entries at or past the rule's ``max_age`` are deleted while scanning.
    Everything else is returned oldest first; entries sharing a timestamp
    keep their discovery order, so repeated scans of an unchanged folder
    give the same sequence.
    """

    def __init__(self, filesystem: FileSystem, remover: EntryRemover, clock: Clock = utc_now) -> None:
        self._filesystem = filesystem
        self._remover = remover
        self._clock = clock

    def scan(self, directory: Path, rule: RuleConfig, now: Optional[datetime] = None) -> List[CandidateEntry]:
        now = now or self._clock()
        listing = self._filesystem.list_entries(directory, rule.pattern)
        discovered = [(path, False) for path in listing.files] + [(path, True) for path in listing.directories]

        survivors: List[CandidateEntry] = []
        for sequence, (path, is_directory) in enumerate(discovered):
            try:
                created, modified = self._filesystem.get_timestamps(path)
            except FileNotFoundError:
                LOG.debug("Candidate %s disappeared before it could be inspected", path)
                continue
            entry = CandidateEntry(
                path=path,
                is_directory=is_directory,
                effective_timestamp=effective_timestamp(created, modified),
                sequence=sequence,
                clock=self._clock,
            )
            if rule.max_age is not None and now - entry.effective_timestamp >= rule.max_age:
                self._remover.remove(entry, f"{entry.kind.capitalize()} is older than max age {rule.max_age}")
                continue
            survivors.append(entry)

        survivors.sort(key=CandidateEntry.sort_key)
        LOG.debug("Found %d candidate(s) matching '%s' in %s", len(survivors), rule.pattern, directory)
        return survivors
