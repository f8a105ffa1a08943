from __future__ import annotations

import logging
import signal
import threading
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional
from zoneinfo import ZoneInfo

from croniter import croniter

from .agent import CleanupAgent, RunCounter
from .config import CleanupConfig, ConfigurationError, SchedulerConfig, load_config
from .engine import RuleResult

LOG = logging.getLogger(__name__)

# Upper bound on a single wait so signals and clock changes are noticed.
MAX_SLEEP_SECONDS = 60

AgentFactory = Callable[[CleanupConfig, RunCounter], CleanupAgent]


def _default_agent_factory(config: CleanupConfig, counter: RunCounter) -> CleanupAgent:
    return CleanupAgent(config=config, counter=counter)


class CleanupScheduler:
    """Runs the cleanup agent on a cron schedule until stopped.

    The configuration file is reloaded before every run; when the reload
    fails the previous configuration stays in effect, and removing the
    ``scheduler`` block ends the loop.
    """

    def __init__(
        self,
        config_path: Path,
        config: CleanupConfig,
        rule_names: Optional[List[str]] = None,
        agent_factory: AgentFactory = _default_agent_factory,
        stop_event: Optional[threading.Event] = None,
    ) -> None:
        self._config_path = config_path
        self._config = config
        self._settings = _require_scheduler(config.scheduler)
        self._rule_names = rule_names
        self._agent_factory = agent_factory
        self._stop_event = stop_event or threading.Event()
        self.counter = RunCounter()
        self.last_results: List[RuleResult] = []

    @property
    def timezone(self) -> ZoneInfo:
        return self._settings.zone

    def install_signal_handlers(self) -> None:
        def _handle_signal(signum: int, _frame: Optional[object]) -> None:
            LOG.info("Received signal %s; stopping scheduler", signum)
            self._stop_event.set()

        signal.signal(signal.SIGTERM, _handle_signal)
        signal.signal(signal.SIGINT, _handle_signal)

    def stop(self) -> None:
        self._stop_event.set()

    def first_run(self, now: datetime) -> datetime:
        if self._settings.run_on_startup:
            LOG.info("Executing initial cleanup immediately")
            return now
        next_run = next_fire(self._settings.cron, now)
        LOG.info("Next cleanup scheduled for %s", next_run.isoformat())
        return next_run

    def run_forever(self) -> int:
        next_run = self.first_run(datetime.now(self.timezone))
        while not self._stop_event.is_set():
            now = datetime.now(self.timezone)
            if now < next_run:
                self._stop_event.wait(min(max((next_run - now).total_seconds(), 0), MAX_SLEEP_SECONDS))
                continue
            if not self.tick():
                break
            next_run = next_fire(self._settings.cron, datetime.now(self.timezone))
            LOG.info("Next cleanup scheduled for %s", next_run.isoformat())

        LOG.info("Scheduler stopped after %d run(s)", self.counter.value)
        return 0

    def tick(self) -> bool:
        """Reload configuration and run all rules once; False means the loop should end."""
        try:
            config = load_config(self._config_path)
        except ConfigurationError as exc:
            LOG.error("Failed to reload configuration: %s; continuing with previous settings", exc)
        else:
            if not config.scheduler:
                LOG.info("Scheduler removed from configuration; exiting loop")
                return False
            self._config = config
            self._settings = config.scheduler

        agent = self._agent_factory(self._config, self.counter)
        try:
            self.last_results = agent.run(self._rule_names)
        except ConfigurationError as exc:
            LOG.error("Scheduled cleanup could not start: %s", exc)
            self.last_results = []
            return True

        failed = [result.rule_name for result in self.last_results if not result.success]
        if failed:
            LOG.warning("Scheduled cleanup completed with errors in: %s", ", ".join(failed))
        return True


def _require_scheduler(scheduler: Optional[SchedulerConfig]) -> SchedulerConfig:
    if not scheduler:
        raise ValueError("Scheduler configuration is required")
    return scheduler


def next_fire(cron_expression: str, reference: datetime) -> datetime:
    return croniter(cron_expression, reference).get_next(datetime)
