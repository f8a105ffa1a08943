from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def effective_timestamp(created: datetime, modified: datetime) -> datetime:
    """The later of creation and last modification, which is what entry ages are measured from."""
    return max(_as_utc(created), _as_utc(modified))


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
