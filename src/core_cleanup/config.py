from __future__ import annotations

import re
from datetime import timedelta
from pathlib import Path
from typing import Any, List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from croniter import croniter
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .retention.buckets import BucketQuotas

DEFAULT_RULE_NAME = "[no name specified]"
DEFAULT_MIN_AGE = timedelta(minutes=30)
DEFAULT_STRATEGY = "2,2,2,2,2"

_TIMESPAN_RE = re.compile(
    r"^(?:(?P<days>\d+)\.)?(?P<hours>\d{1,2}):(?P<minutes>\d{1,2})"
    r"(?::(?P<seconds>\d{1,2})(?:\.(?P<fraction>\d{1,7}))?)?$"
)
_SUFFIXED_RE = re.compile(r"^(?P<value>\d+(?:\.\d+)?)\s*(?P<unit>[smhdw])$", re.IGNORECASE)
_NUMBER_RE = re.compile(r"^\d+(?:\.\d+)?$")
_UNITS = {"s": "seconds", "m": "minutes", "h": "hours", "d": "days", "w": "weeks"}


class ConfigurationError(Exception):
    """Raised when the cleanup configuration is invalid."""


def parse_duration(value: Any) -> timedelta:
    """Parse a duration from configuration.

    Accepted forms:

    * ``timedelta`` instances, returned as-is;
    * plain numbers, interpreted as days (``7`` or ``"7"``);
    * time spans ``[d.]hh:mm[:ss[.fffffff]]`` such as ``"00:30:00"`` or ``"7.00:00:00"``;
    * unit suffixed values ``<n>s``, ``<n>m``, ``<n>h``, ``<n>d`` and ``<n>w``.
    """
    if isinstance(value, timedelta):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Invalid duration {value!r}")
    if isinstance(value, (int, float)):
        return timedelta(days=value)

    text = str(value).strip()
    if _NUMBER_RE.match(text):
        return timedelta(days=float(text))

    match = _SUFFIXED_RE.match(text)
    if match:
        unit = _UNITS[match.group("unit").lower()]
        return timedelta(**{unit: float(match.group("value"))})

    match = _TIMESPAN_RE.match(text)
    if match:
        hours, minutes = int(match.group("hours")), int(match.group("minutes"))
        seconds = int(match.group("seconds") or 0)
        if hours > 23 or minutes > 59 or seconds > 59:
            raise ValueError(f"Duration component out of range in '{text}'")
        fraction = match.group("fraction") or "0"
        return timedelta(
            days=int(match.group("days") or 0),
            hours=hours,
            minutes=minutes,
            seconds=seconds,
            microseconds=int(fraction.ljust(7, "0")[:6]),
        )

    raise ValueError(f"Invalid duration '{text}'")


# --- Rules -------------------------------------------------------------------


class RuleConfig(BaseModel):
    """Retention settings for one folder. Instances are frozen once loaded."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = DEFAULT_RULE_NAME
    folder: Optional[Path] = Field(default=None, description="Folder to clean; relative to data_folder.")
    pattern: str = Field(default="", description="Glob matched against entry names.")
    recursive: bool = False
    mode: str = "on"
    min_age: timedelta = Field(default=DEFAULT_MIN_AGE, alias="minAge")
    max_age: Optional[timedelta] = Field(default=None, alias="maxAge", description="Unbounded when unset or zero.")
    min_count: int = Field(default=0, ge=0, alias="minCount")
    max_count: Optional[int] = Field(default=None, ge=0, alias="maxCount", description="Unbounded when unset.")
    rolling: bool = False
    strategy: str = Field(default=DEFAULT_STRATEGY, description="Bucket quotas: hour,day,week,month,year.")

    @field_validator("name", mode="before")
    def _default_name(cls, value: Any) -> Any:  # noqa: N805
        return value if value else DEFAULT_RULE_NAME

    @field_validator("pattern", mode="before")
    def _default_pattern(cls, value: Any) -> Any:  # noqa: N805
        return "" if value is None else str(value).strip()

    @field_validator("mode", mode="before")
    def _normalize_mode(cls, value: Any) -> str:  # noqa: N805
        # YAML 1.1 reads a bare ``off`` as False.
        if value is None or value is True:
            return "on"
        if value is False:
            return "off"
        return str(value).strip().lower()

    @field_validator("min_age", mode="before")
    def _parse_min_age(cls, value: Any) -> timedelta:  # noqa: N805
        if value is None or value == "":
            return DEFAULT_MIN_AGE
        return _non_negative(parse_duration(value))

    @field_validator("max_age", mode="before")
    def _parse_max_age(cls, value: Any) -> Optional[timedelta]:  # noqa: N805
        if value is None or value == "":
            return None
        parsed = _non_negative(parse_duration(value))
        return parsed or None

    @field_validator("min_count", mode="before")
    def _default_min_count(cls, value: Any) -> Any:  # noqa: N805
        return 0 if value is None or value == "" else value

    @field_validator("max_count", mode="before")
    def _default_max_count(cls, value: Any) -> Any:  # noqa: N805
        return None if value == "" else value

    @field_validator("strategy", mode="before")
    def _validate_strategy(cls, value: Any) -> str:  # noqa: N805
        if value is None:
            return DEFAULT_STRATEGY
        if isinstance(value, (list, tuple)):
            value = ",".join(str(item) for item in value)
        value = str(value)
        BucketQuotas.parse(value)
        return value

    @property
    def active(self) -> bool:
        return self.mode != "off" and bool(self.pattern)

    @property
    def bucket_quotas(self) -> BucketQuotas:
        return BucketQuotas.parse(self.strategy)


def _non_negative(value: timedelta) -> timedelta:
    if value < timedelta(0):
        raise ValueError("Durations must not be negative")
    return value


# --- Scheduler ---------------------------------------------------------------


class SchedulerConfig(BaseModel):
    """Cron schedule for the long-running agent; absent means a single run."""

    cron: str
    timezone: str = "UTC"
    run_on_startup: bool = Field(default=True, description="Run one tick immediately before waiting for the first fire time.")

    @field_validator("cron")
    def _check_cron(cls, value: str) -> str:  # noqa: N805
        expression = " ".join(value.split())
        if not croniter.is_valid(expression):
            raise ValueError(f"'{value}' is not a cron expression")
        return expression

    @field_validator("timezone")
    def _check_timezone(cls, value: str) -> str:  # noqa: N805
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone '{value}'") from exc
        return value

    @property
    def zone(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


# --- Root --------------------------------------------------------------------


class CleanupConfig(BaseModel):
    rules: List[RuleConfig] = Field(default_factory=list)
    data_folder: Path = Field(default=Path("."), description="Base for relative rule folders.")
    log_activity: bool = True
    scheduler: Optional[SchedulerConfig] = None

    @field_validator("rules", mode="before")
    def _default_rules(cls, value: Any) -> Any:  # noqa: N805
        return [] if value is None else value

    @field_validator("data_folder")
    def _expand_data_folder(cls, value: Path) -> Path:  # noqa: N805
        return value.expanduser().absolute()

    @model_validator(mode="after")
    def _resolve_rule_folders(self) -> "CleanupConfig":
        resolved: List[RuleConfig] = []
        for rule in self.rules:
            folder = rule.folder.expanduser() if rule.folder else self.data_folder
            if not folder.is_absolute():
                folder = self.data_folder / folder
            resolved.append(rule.model_copy(update={"folder": folder}))
        self.rules = resolved
        return self

    def active_rules(self) -> List[RuleConfig]:
        return [rule for rule in self.rules if rule.active]


def load_config(path: Path) -> CleanupConfig:
    if not path.exists():
        raise ConfigurationError(f"Configuration file not found: {path}")

    try:
        with path.open("r", encoding="utf-8") as fh:
            raw = yaml.safe_load(fh) or {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Configuration file {path} is not valid YAML: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigurationError(f"Configuration file {path} must contain a mapping")

    try:
        return CleanupConfig.model_validate(raw)
    except ValidationError as exc:
        raise ConfigurationError(str(exc)) from exc
