from .buckets import Bucket, BucketQuotas, classify
from .candidates import CandidateEntry
from .deletion import EntryRemover
from .scanner import CandidateScanner
from .strategies import RetentionStrategy, RollingStrategy, SimpleStrategy, create_strategy
from .timesource import Clock, effective_timestamp, utc_now
from .walker import RecursiveWalker

__all__ = [
    "Bucket",
    "BucketQuotas",
    "CandidateEntry",
    "CandidateScanner",
    "Clock",
    "EntryRemover",
    "RecursiveWalker",
    "RetentionStrategy",
    "RollingStrategy",
    "SimpleStrategy",
    "classify",
    "create_strategy",
    "effective_timestamp",
    "utc_now",
]
