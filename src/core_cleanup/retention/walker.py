from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from core_cleanup.filesystem import FileSystem

from .scanner import CandidateScanner
from .strategies import RetentionStrategy

if TYPE_CHECKING:
    from core_cleanup.config import RuleConfig

LOG = logging.getLogger(__name__)


class RecursiveWalker:
    def __init__(self, filesystem: FileSystem, scanner: CandidateScanner, strategy: RetentionStrategy) -> None:
        self._filesystem = filesystem
        self._scanner = scanner
        self._strategy = strategy

    def walk(self, folder: Path, rule: RuleConfig) -> None:
        if not self._filesystem.exists(folder):
            LOG.warning("Folder to clean up was not found: %s", folder)
            return
        self._walk(folder, rule)

    def _walk(self, folder: Path, rule: RuleConfig) -> None:
        candidates = self._scanner.scan(folder, rule)
        self._strategy.prune(candidates, rule)
        if not rule.recursive:
            return
        # Listed after pruning so deleted directories are not descended into.
        for child in self._filesystem.list_directories(folder):
            self._walk(child, rule)
