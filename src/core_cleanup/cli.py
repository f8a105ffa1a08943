from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from .agent import CleanupAgent
from .config import CleanupConfig, ConfigurationError, load_config
from .logger import configure_logging
from .scheduler import CleanupScheduler

DEFAULT_CONFIG_PATH = "/opt/core-cleanup/config/core-cleanup.yaml"


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="core-cleanup",
        description=(
            "Delete files and folders that outlive their retention rules. "
            "Runs once, or on the cron schedule from the configuration's scheduler block."
        ),
    )
    parser.add_argument(
        "--config",
        default=os.getenv("CORE_CLEANUP_CONFIG", DEFAULT_CONFIG_PATH),
        metavar="PATH",
        help="Retention rules YAML (env CORE_CLEANUP_CONFIG).",
    )
    parser.add_argument(
        "--rule",
        action="append",
        metavar="NAME",
        help="Only run the named rule; repeatable. Inactive rules are reported but never touch the disk.",
    )
    parser.add_argument(
        "--list-rules",
        action="store_true",
        help="Print each rule's folder, pattern and active state, then exit without deleting anything.",
    )
    parser.add_argument(
        "--log-level",
        default=os.getenv("LOG_LEVEL", "INFO"),
        help="Verbosity of the deletion report (env LOG_LEVEL, default INFO).",
    )
    return parser.parse_args(argv)


def read_rules(path: Path) -> CleanupConfig:
    """Load the rules file, turning any configuration problem into a process exit."""
    try:
        return load_config(path)
    except ConfigurationError as exc:
        raise SystemExit(f"Configuration error in {path}: {exc}") from exc


def list_rules(config: CleanupConfig) -> None:
    for rule in config.rules:
        state = "active" if rule.active else "inactive"
        print(f"{rule.name}\t{rule.folder}\t{rule.pattern or '-'}\t{state}")


def run_rules(config: CleanupConfig, rule_names: Optional[List[str]], agent: Optional[CleanupAgent] = None) -> int:
    agent = agent or CleanupAgent(config=config)
    try:
        results = agent.run(rule_names)
    except ConfigurationError as exc:
        logging.error("%s", exc)
        return 2

    success = True
    for result in results:
        if result.status == "inactive":
            continue
        if result.success:
            logging.info(
                "Rule %s finished in %.2fs: %d deleted, %d skipped",
                result.rule_name,
                (result.completed_at - result.started_at).total_seconds(),
                len(result.deleted),
                len(result.skipped),
            )
        else:
            success = False
            logging.error("Rule %s failed: %s", result.rule_name, "; ".join(result.errors))

    return 0 if success else 1


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    try:
        configure_logging(args.log_level)
    except ValueError as exc:
        raise SystemExit(str(exc)) from exc

    config_path = Path(args.config).expanduser()
    config = read_rules(config_path)

    if args.list_rules:
        list_rules(config)
        return 0

    rule_names = args.rule if args.rule else None
    if config.scheduler:
        scheduler = CleanupScheduler(config_path=config_path, config=config, rule_names=rule_names)
        scheduler.install_signal_handlers()
        return scheduler.run_forever()
    return run_rules(config, rule_names)


if __name__ == "__main__":
    sys.exit(main())
