"""Core Cleanup file retention package."""

from __future__ import annotations

from .config import load_config, CleanupConfig, RuleConfig  # noqa: F401
from .agent import CleanupAgent  # noqa: F401
from .engine import RuleEngine, RuleResult  # noqa: F401
