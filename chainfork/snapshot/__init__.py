"""Storage snapshot acquisition: enumeration, fetching and caching."""

from .cache import SnapshotCache, load_snapshot
from .enumerator import KeyEnumerator
from .fetcher import StoragePairs, fetch_storage_at, fetch_storage_pairs, fetch_values

__all__ = [
    "KeyEnumerator",
    "SnapshotCache",
    "StoragePairs",
    "fetch_storage_at",
    "fetch_storage_pairs",
    "fetch_values",
    "load_snapshot",
]
