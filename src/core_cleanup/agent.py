from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from .config import CleanupConfig, ConfigurationError, RuleConfig
from .engine import RuleEngine, RuleResult
from .filesystem import FileSystem
from .retention import Clock, utc_now

LOG = logging.getLogger(__name__)


@dataclass
class RunCounter:
    """Counts completed agent runs."""

    name: str = "file_cleanups"
    value: int = 0

    def increment(self, amount: int = 1) -> None:
        self.value += amount


class CleanupAgent:
    """Runs every configured rule once per tick, one after the other."""

    def __init__(
        self,
        config: CleanupConfig,
        filesystem: Optional[FileSystem] = None,
        clock: Clock = utc_now,
        rng: Optional[random.Random] = None,
        counter: Optional[RunCounter] = None,
    ) -> None:
        self._config = config
        self._clock = clock
        self._engine = RuleEngine(filesystem=filesystem, clock=clock, rng=rng)
        self.counter = counter or RunCounter()

    def run(self, rule_names: Optional[Sequence[str]] = None) -> List[RuleResult]:
        rules = list(self._select_rules(rule_names))
        self._log_activity("Cleanup agent started. Rule count: %d", len(rules))

        results: List[RuleResult] = []
        for rule in rules:
            started_at = self._clock()
            try:
                result = self._engine.execute(rule)
            except Exception as exc:  # noqa: BLE001
                LOG.exception("Exception in cleanup agent. Folder: %s", rule.folder)
                result = RuleResult(
                    rule_name=rule.name,
                    folder=rule.folder,
                    status="failed",
                    started_at=started_at,
                    completed_at=self._clock(),
                    errors=[f"Rule execution failed: {exc}"],
                )
            results.append(result)

        self._log_activity("Cleanup agent done")
        self.counter.increment()
        return results

    def _select_rules(self, rule_names: Optional[Sequence[str]]) -> Iterable[RuleConfig]:
        if rule_names:
            name_set = set(rule_names)
            missing = name_set - {rule.name for rule in self._config.rules}
            if missing:
                missing_str = ", ".join(sorted(missing))
                raise ConfigurationError(f"Unknown rule(s) requested: {missing_str}")
            for rule in self._config.rules:
                if rule.name in name_set:
                    yield rule
        else:
            yield from self._config.rules

    def _log_activity(self, message: str, *args: object) -> None:
        if self._config.log_activity:
            LOG.info(message, *args)
