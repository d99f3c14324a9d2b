"""
Client-side cache for dashboard resources.

Components:
- store: CacheStore, the keyed TTL table with fetch deduplication,
  stale-while-revalidate and version-guarded fetch results
- entry: CacheEntry and EntryStatus
- diagnostics: supersession events for fetch results dropped by the version check
- keys: key validation, key construction and value equality helpers
"""

from .diagnostics import ConcurrentSupersession, DiagnosticsHub
from .entry import CacheEntry, EntryStatus, Fetcher
from .keys import make_key, same_entity, validate_key, values_equal
from .store import CacheStore, Updater

__all__ = [
    "CacheEntry",
    "CacheStore",
    "ConcurrentSupersession",
    "DiagnosticsHub",
    "EntryStatus",
    "Fetcher",
    "Updater",
    "make_key",
    "same_entity",
    "validate_key",
    "values_equal",
]
