"""
Cache entry record and its status.
"""

import asyncio
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Generic, Optional, TypeVar, Union

from shared.errors import FetchError

T = TypeVar("T")

Fetcher = Callable[[], Union[Awaitable[T], T]]


class EntryStatus(str, Enum):
    """Lifecycle status of a cache entry."""
    IDLE = "idle"          # Created, never fetched
    LOADING = "loading"    # First fetch in flight, no value yet
    READY = "ready"        # Holds a value
    ERROR = "error"        # Last fetch failed; any previous value is kept


class CacheEntry(Generic[T]):
    """
    One logical resource held by a ``CacheStore``.

    Every subscriber of a key receives this same object, so a change made
    through any caller is visible to all of them. ``ttl_seconds`` is fixed
    for the life of the entry.
    """

    __slots__ = (
        "key",
        "_ttl_seconds",
        "value",
        "version",
        "fetched_at",
        "status",
        "last_error",
        "in_flight",
        "revalidating",
        "fetcher",
        "loaded",
        "invalidated",
        "refetch_pending",
    )

    def __init__(self, key: str, ttl_seconds: float):
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")
        self.key = key
        self._ttl_seconds = float(ttl_seconds)
        self.value: Optional[T] = None
        self.version = 0
        self.fetched_at: Optional[float] = None
        self.status = EntryStatus.IDLE
        self.last_error: Optional[FetchError] = None
        self.in_flight: Optional[asyncio.Task] = None
        self.revalidating = False
        self.fetcher: Optional[Fetcher] = None
        # Set once a fetch result has been applied
        self.loaded = False
        self.invalidated = False
        # Invalidated while a fetch was in flight; fetch again once it settles
        self.refetch_pending = False

    @property
    def ttl_seconds(self) -> float:
        return self._ttl_seconds

    @property
    def has_value(self) -> bool:
        """Whether a fetch or mutation ever populated the value."""
        return self.fetched_at is not None

    @property
    def is_loading(self) -> bool:
        return self.status is EntryStatus.LOADING

    def is_stale(self, now: float) -> bool:
        """``now - fetched_at > ttl``; never populated or invalidated entries are stale."""
        if self.fetched_at is None or self.invalidated:
            return True
        return now - self.fetched_at > self._ttl_seconds

    def describe(self) -> Dict[str, Any]:
        """Metadata snapshot for logs and stats."""
        return {
            "key": self.key,
            "version": self.version,
            "status": self.status.value,
            "fetched_at": self.fetched_at,
            "ttl_seconds": self._ttl_seconds,
            "has_value": self.has_value,
            "in_flight": self.in_flight is not None,
            "revalidating": self.revalidating,
            "loaded": self.loaded,
            "invalidated": self.invalidated,
            "last_error": str(self.last_error) if self.last_error else None,
        }

    def __repr__(self) -> str:
        return f"CacheEntry(key={self.key!r}, version={self.version}, status={self.status.value})"
