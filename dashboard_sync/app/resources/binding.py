"""
Resource binding: one consumer's view of a cached key.

Binds a key, a fetcher and a TTL to the store and exposes
``data, loading, error, is_stale, refresh, mutate``. Any number of bindings
may share a key; they all read the same entry.
"""

from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar

from shared.logging import get_logger

from ..cache.entry import CacheEntry, Fetcher
from ..cache.store import CacheStore, Updater
from ..status.indicator import StatusIndicator, resolve_status

T = TypeVar("T")

Listener = Callable[["ResourceBinding"], None]


class ResourceBinding(Generic[T]):
    """A subscribed, self-refreshing view of one cache key."""

    def __init__(self, store: CacheStore, key: str, fetcher: Fetcher, ttl_seconds: Optional[float] = None):
        self.store = store
        self.key = key
        self.fetcher = fetcher
        self.ttl_seconds = ttl_seconds
        self.logger = get_logger("dashboard_sync.resources.binding")

        self._listeners: List[Listener] = []
        self._unsubscribe: Optional[Callable[[], bool]] = store.subscribe(key, self._on_entry_change, ttl_seconds)
        self.entry: CacheEntry = store.ensure_fresh(key, fetcher, ttl_seconds)

    @property
    def data(self) -> Optional[T]:
        return self.entry.value

    @property
    def loading(self) -> bool:
        return self.entry.is_loading

    @property
    def error(self) -> Optional[BaseException]:
        return self.entry.last_error

    @property
    def is_stale(self) -> bool:
        """Stale by TTL, or currently being revalidated in the background."""
        return self.entry.revalidating or self.store.is_stale(self.key)

    @property
    def version(self) -> int:
        return self.entry.version

    @property
    def closed(self) -> bool:
        return self._unsubscribe is None

    def revalidate(self) -> CacheEntry:
        """Re-run the TTL check, starting a background fetch when stale."""
        return self.store.ensure_fresh(self.key, self.fetcher, self.ttl_seconds)

    async def refresh(self) -> CacheEntry:
        return await self.store.refresh(self.key, self.fetcher)

    def mutate(self, updater: Updater) -> CacheEntry:
        return self.store.mutate(self.key, updater)

    def invalidate(self) -> Optional[CacheEntry]:
        """Mark the key stale and fetch it again in the background."""
        return self.store.invalidate(self.key)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Listen for changes to this binding's entry."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def status(self) -> StatusIndicator:
        return resolve_status(
            is_stale=self.is_stale,
            loading=self.loading,
            error=self.error,
            on_refresh=self.refresh,
        )

    def snapshot(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "data": self.data,
            "loading": self.loading,
            "error": str(self.error) if self.error else None,
            "is_stale": self.is_stale,
            "version": self.version,
        }

    def close(self) -> None:
        """Stop observing the key; a pending fetch still lands in the shared entry."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._listeners.clear()

    def _on_entry_change(self, entry: CacheEntry) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception as exc:
                self.logger.error(
                    "Binding listener failed",
                    key=self.key,
                    version=entry.version,
                    error=str(exc)
                )
                self.store.metrics.record_subscriber_error(self.key)


def bind_resource(store: CacheStore, key: str, fetcher: Fetcher, ttl_seconds: Optional[float] = None) -> ResourceBinding:
    """Bind ``key`` to ``fetcher`` with a TTL and start it fresh."""
    return ResourceBinding(store, key, fetcher, ttl_seconds)
