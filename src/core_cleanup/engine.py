from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from .config import RuleConfig
from .filesystem import FileSystem, LocalFileSystem
from .retention import CandidateScanner, Clock, EntryRemover, RecursiveWalker, create_strategy, utc_now

LOG = logging.getLogger(__name__)


@dataclass
class RuleResult:
    rule_name: str
    folder: Optional[Path]
    status: str
    started_at: datetime
    completed_at: datetime
    deleted: List[Path] = field(default_factory=list)
    skipped: List[Path] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.status in ("success", "inactive")


class RuleEngine:
    """Executes a single retention rule against the filesystem.

    Problems with individual entries end up in the result's ``errors``;
    anything else (for example a folder that cannot be listed) propagates.
    """

    DEFAULT_STATUS = "success"

    def __init__(
        self,
        filesystem: Optional[FileSystem] = None,
        clock: Clock = utc_now,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._filesystem = filesystem or LocalFileSystem()
        self._clock = clock
        self._rng = rng

    def execute(self, rule: RuleConfig) -> RuleResult:
        started_at = self._clock()
        if not rule.active:
            LOG.debug("Rule %s is inactive; skipping", rule.name)
            return RuleResult(
                rule_name=rule.name,
                folder=rule.folder,
                status="inactive",
                started_at=started_at,
                completed_at=started_at,
            )

        if rule.folder is None:
            raise ValueError(f"Rule '{rule.name}' has no folder configured")

        remover = EntryRemover(self._filesystem, rule)
        scanner = CandidateScanner(self._filesystem, remover, clock=self._clock)
        strategy = create_strategy(rule, remover, rng=self._rng)
        RecursiveWalker(self._filesystem, scanner, strategy).walk(rule.folder, rule)

        return RuleResult(
            rule_name=rule.name,
            folder=rule.folder,
            status=self.DEFAULT_STATUS if not remover.errors else "failed",
            started_at=started_at,
            completed_at=self._clock(),
            deleted=remover.deleted,
            skipped=remover.skipped,
            errors=remover.errors,
        )
