"""Age buckets used by the rolling retention strategy."""

from __future__ import annotations

from datetime import timedelta
from enum import Enum
from typing import Dict, Iterator, List, Mapping, Optional

DEFAULT_BUCKET_QUOTA = 2


class Bucket(str, Enum):
    HOUR = "hour"
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"

    @property
    def upper_bound(self) -> timedelta:
        return _UPPER_BOUNDS[self]


_UPPER_BOUNDS: Dict[Bucket, timedelta] = {
    Bucket.HOUR: timedelta(hours=1),
    Bucket.DAY: timedelta(days=1),
    Bucket.WEEK: timedelta(days=7),
    Bucket.MONTH: timedelta(days=30),
    Bucket.YEAR: timedelta(days=365),
}


def classify(age: timedelta) -> Optional[Bucket]:
    """Return the bucket for ``age``, or ``None`` when it is past the rolling cutoff."""
    for bucket in Bucket:
        if age < bucket.upper_bound:
            return bucket
    return None


class BucketQuotas(Mapping[Bucket, int]):
    """Per-bucket quota table; always holds exactly one value for every bucket."""

    def __init__(self, quotas: Optional[Mapping[Bucket, int]] = None) -> None:
        quotas = quotas or {}
        self._quotas: Dict[Bucket, int] = {
            bucket: int(quotas.get(bucket, DEFAULT_BUCKET_QUOTA)) for bucket in Bucket
        }

    @classmethod
    def parse(cls, strategy: str) -> "BucketQuotas":
        """Parse ``"h,d,w,m,y"``; missing trailing values default to 2, surplus values are ignored."""
        parts = [part.strip() for part in strategy.split(",")] if strategy.strip() else []
        values: Dict[Bucket, int] = {}
        for bucket, raw in zip(Bucket, parts):
            try:
                value = int(raw)
            except ValueError as exc:
                raise ValueError(f"Invalid quota '{raw}' for bucket '{bucket.value}' in strategy '{strategy}'") from exc
            if value < 0:
                raise ValueError(f"Quota for bucket '{bucket.value}' must not be negative")
            values[bucket] = value
        return cls(values)

    def __getitem__(self, bucket: Bucket) -> int:
        return self._quotas[bucket]

    def __iter__(self) -> Iterator[Bucket]:
        return iter(self._quotas)

    def __len__(self) -> int:
        return len(self._quotas)

    def as_list(self) -> List[int]:
        return [self._quotas[bucket] for bucket in Bucket]

    def __repr__(self) -> str:
        inner = ", ".join(f"{bucket.value}={quota}" for bucket, quota in self._quotas.items())
        return f"BucketQuotas({inner})"
