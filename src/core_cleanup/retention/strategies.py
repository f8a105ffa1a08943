from __future__ import annotations

import logging
import random
from datetime import timedelta
from typing import TYPE_CHECKING, Dict, List, Optional, Protocol, Sequence

from .buckets import Bucket, classify
from .candidates import CandidateEntry
from .deletion import EntryRemover

if TYPE_CHECKING:
    from core_cleanup.config import RuleConfig

LOG = logging.getLogger(__name__)

BucketGroups = Dict[Bucket, List[CandidateEntry]]


class RetentionStrategy(Protocol):
    def prune(self, candidates: Sequence[CandidateEntry], rule: RuleConfig) -> None:
        ...


class SimpleStrategy:
    """Caps the number of entries, deleting the oldest first.

    The walk stops at the first entry younger than ``min_age``; younger
    entries are never considered even while the folder is over its count.
    """

    def __init__(self, remover: EntryRemover) -> None:
        self._remover = remover

    def prune(self, candidates: Sequence[CandidateEntry], rule: RuleConfig) -> None:
        total = len(candidates)
        if total <= rule.min_count or rule.max_count is None:
            return

        # min_count wins over max_count when the two contradict each other.
        excess = min(total - rule.max_count, total - rule.min_count)
        if excess <= 0:
            return

        for entry in candidates[:excess]:
            if entry.age < rule.min_age:
                LOG.debug("Stopping at %s: younger than min age %s", entry.path, rule.min_age)
                break
            self._remover.remove(entry, f"Number of entries matching pattern exceeds {rule.max_count}")


class RollingStrategy:
    """Keeps a bounded number of entries per age bucket.

    Within a bucket the oldest entry (and the newest one when the quota
    allows more than one) is kept; surplus entries are evicted at random
    from the rest.
    """

    def __init__(self, remover: EntryRemover, rng: Optional[random.Random] = None) -> None:
        self._remover = remover
        self._rng = rng or random.Random()

    def prune(self, candidates: Sequence[CandidateEntry], rule: RuleConfig) -> None:
        groups = self.group(candidates)
        for bucket, quota in rule.bucket_quotas.items():
            entries = groups.get(bucket)
            if entries:
                self._prune_bucket(bucket, entries, quota, rule.min_age)

    def group(self, candidates: Sequence[CandidateEntry]) -> BucketGroups:
        """Assign candidates to buckets, deleting those past the rolling cutoff."""
        groups: BucketGroups = {}
        for entry in candidates:
            bucket = classify(entry.age)
            if bucket is None:
                self._remover.remove(entry, "Entry in rolling cleanup is more than one year old")
                continue
            groups.setdefault(bucket, []).append(entry)
        return groups

    def _prune_bucket(self, bucket: Bucket, entries: List[CandidateEntry], quota: int, min_age: timedelta) -> None:
        excess = len(entries) - quota
        if excess <= 0:
            return

        pool = list(entries)
        if quota > 0:
            pool.pop(0)
        if quota > 1 and pool:
            pool.pop()

        reason = f"Number of entries in rolling bucket '{bucket.value}' matching pattern exceeds {quota}"
        while excess > 0 and pool:
            entry = pool.pop(self._rng.randrange(len(pool)))
            if entry.age < min_age:
                continue
            if self._remover.remove(entry, reason):
                excess -= 1


def create_strategy(rule: RuleConfig, remover: EntryRemover, rng: Optional[random.Random] = None) -> RetentionStrategy:
    if rule.rolling:
        return RollingStrategy(remover, rng=rng)
    return SimpleStrategy(remover)
