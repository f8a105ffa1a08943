from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path

from .timesource import Clock, utc_now


@dataclass
class CandidateEntry:
    """A file or directory matching a rule pattern, found by one scan."""

    path: Path
    is_directory: bool
    effective_timestamp: datetime
    sequence: int = 0
    clock: Clock = field(default=utc_now, repr=False, compare=False)

    @property
    def age(self) -> timedelta:
        # Recomputed on every access so long passes see the current time.
        return self.clock() - self.effective_timestamp

    @property
    def kind(self) -> str:
        return "directory" if self.is_directory else "file"

    def sort_key(self) -> tuple:
        return (self.effective_timestamp, self.sequence)
