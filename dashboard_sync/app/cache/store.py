"""
Keyed TTL cache with fetch deduplication and version-guarded updates.

The store is constructed explicitly (empty) at session start and torn down
with ``close()`` at session end. Everything runs on one asyncio loop; the
only suspension points are the awaits inside supplied fetchers, so entry
transitions need no locking. Ordering between an in-flight fetch and a local
mutation is settled by the version check: a fetch result is applied only if
the entry version still equals the version captured when the fetch started.

Usage:
    store = CacheStore(default_ttl_seconds=120)
    unsubscribe = store.subscribe("clients", on_change)
    entry = store.ensure_fresh("clients", api.list_clients)
    ...
    await store.close()
"""

import asyncio
import inspect
import time
from typing import Any, Callable, Dict, List, Optional, TypeVar

from shared.errors import FetchError, ValidationError
from shared.logging import get_logger
from shared.metrics import SyncMetrics

from ..subscriptions.manager import Subscriber, SubscriptionManager
from .diagnostics import ConcurrentSupersession, DiagnosticsHub, SupersessionHook
from .entry import CacheEntry, EntryStatus, Fetcher
from .keys import validate_key

T = TypeVar("T")

Updater = Callable[[Optional[T]], T]


class CacheStore:
    """Process-lifetime table of ``CacheEntry`` objects keyed by string."""

    def __init__(
        self,
        default_ttl_seconds: float = 300.0,
        *,
        clock: Callable[[], float] = time.time,
        metrics: Optional[SyncMetrics] = None,
        subscriptions: Optional[SubscriptionManager] = None,
    ):
        if default_ttl_seconds <= 0:
            raise ValueError("default_ttl_seconds must be positive")
        self.default_ttl_seconds = default_ttl_seconds
        self.clock = clock
        self.metrics = metrics or SyncMetrics()
        self.subscriptions = subscriptions or SubscriptionManager(self.metrics)
        self.diagnostics = DiagnosticsHub()
        self.logger = get_logger("dashboard_sync.cache.store")

        self._entries: Dict[str, CacheEntry] = {}

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def keys(self) -> List[str]:
        return list(self._entries)

    def get(self, key: str) -> Optional[CacheEntry]:
        """Entry for ``key`` without creating it."""
        return self._entries.get(key)

    def get_or_create(self, key: str, ttl_seconds: Optional[float] = None) -> CacheEntry:
        """Return the entry for ``key``, creating it in IDLE status when absent.

        ``ttl_seconds`` only applies on creation; an existing entry keeps its TTL.
        """
        entry = self._entries.get(key)
        if entry is None:
            validate_key(key)
            entry = CacheEntry(key, ttl_seconds if ttl_seconds is not None else self.default_ttl_seconds)
            self._entries[key] = entry
            self.metrics.set_entry_count(len(self._entries))
            self.logger.debug("Cache entry created", key=key, ttl_seconds=entry.ttl_seconds)
        return entry

    def is_stale(self, key: str) -> bool:
        """``now - fetched_at > ttl``; unknown or never populated keys are stale."""
        entry = self._entries.get(key)
        if entry is None:
            return True
        return entry.is_stale(self.clock())

    def ensure_fresh(self, key: str, fetcher: Fetcher, ttl_seconds: Optional[float] = None) -> CacheEntry:
        """Start a fetch if the entry needs one and return the entry immediately.

        A fetch starts when the entry was never fetched, or is READY/ERROR and
        stale, and no fetch is already in flight. A caller arriving while a
        fetch is in flight attaches to it. Must be called with a running loop.
        """
        entry = self.get_or_create(key, ttl_seconds)
        entry.fetcher = fetcher

        if entry.in_flight is not None:
            self.logger.debug("Attached to in-flight fetch", key=key, version=entry.version)
            return entry

        needs_fetch = entry.status is EntryStatus.IDLE or (
            entry.status in (EntryStatus.READY, EntryStatus.ERROR) and entry.is_stale(self.clock())
        )
        if needs_fetch:
            self._start_fetch(entry, fetcher)
        return entry

    async def refresh(self, key: str, fetcher: Optional[Fetcher] = None) -> CacheEntry:
        """Fetch regardless of TTL and wait for the outcome.

        Attaches to an in-flight fetch instead of starting a second one. Uses
        the fetcher remembered from ``ensure_fresh`` when none is given. A
        failed fetch is recorded on the entry, not raised.
        """
        entry = self.get_or_create(key)
        if fetcher is not None:
            entry.fetcher = fetcher

        if entry.in_flight is None:
            if entry.fetcher is None:
                raise ValidationError("No fetcher registered for key", details={"key": key})
            self._start_fetch(entry, entry.fetcher)

        return await self.wait(key)

    async def wait(self, key: str) -> CacheEntry:
        """Wait until ``key`` has no fetch in flight.

        Follows a fetch started because the key was invalidated while the
        awaited one was running.
        """
        entry = self.get_or_create(key)
        while entry.in_flight is not None:
            # Cancelling a waiter leaves the shared fetch running
            await asyncio.shield(entry.in_flight)
        return entry

    def mutate(self, key: str, updater: Updater) -> CacheEntry:
        """Apply a local change synchronously: ``value = updater(value)``.

        Bumps the version, so any fetch started before this call will be
        discarded when it completes. Used for optimistic writes, for merging
        authoritative results and for rollbacks.
        """
        entry = self.get_or_create(key)
        new_value = updater(entry.value)

        entry.value = new_value
        entry.version += 1
        entry.fetched_at = self.clock()
        entry.status = EntryStatus.READY
        entry.last_error = None
        entry.invalidated = False

        self.metrics.record_mutation(key)
        self.logger.debug("Cache entry mutated", key=key, version=entry.version)
        self._notify(entry)
        return entry

    def set(self, key: str, value: Any) -> CacheEntry:
        """Replace the value of ``key`` outright."""
        return self.mutate(key, lambda _current: value)

    def invalidate(self, key: str) -> Optional[CacheEntry]:
        """Mark ``key`` stale and fetch it again with the remembered fetcher.

        The current value keeps being served while the fetch runs. When a
        fetch is already in flight another one follows it, since the running
        one may have started before whatever made the key outdated. Returns
        None for a key the store has never seen.
        """
        entry = self._entries.get(key)
        if entry is None:
            return None

        entry.invalidated = True
        self.logger.debug("Cache entry invalidated", key=key, in_flight=entry.in_flight is not None)

        if entry.in_flight is not None:
            entry.refetch_pending = True
        elif entry.fetcher is not None:
            self._start_fetch(entry, entry.fetcher)
            return entry
        self._notify(entry)
        return entry

    def reset(self, key: str) -> CacheEntry:
        """Return ``key`` to its never-populated state.

        Bumps the version like ``mutate``, so a fetch started before this
        call is discarded; that fetch is then followed by a fresh one.
        """
        entry = self.get_or_create(key)
        entry.value = None
        entry.version += 1
        entry.fetched_at = None
        entry.last_error = None
        entry.invalidated = False
        if entry.in_flight is not None:
            entry.status = EntryStatus.LOADING
            entry.refetch_pending = True
        else:
            entry.status = EntryStatus.IDLE

        self.metrics.record_mutation(key)
        self.logger.debug("Cache entry reset", key=key, version=entry.version)
        self._notify(entry)
        return entry

    def subscribe(self, key: str, callback: Subscriber, ttl_seconds: Optional[float] = None) -> Callable[[], bool]:
        """Observe ``key``; the entry is created lazily on first subscription."""
        self.get_or_create(key, ttl_seconds)
        return self.subscriptions.subscribe(key, callback)

    def add_supersession_hook(self, hook: SupersessionHook) -> Callable[[], None]:
        """Observe fetch results discarded by the version check."""
        return self.diagnostics.add_hook(hook)

    def stats(self) -> Dict[str, Any]:
        """Store statistics."""
        statuses: Dict[str, int] = {}
        for entry in self._entries.values():
            statuses[entry.status.value] = statuses.get(entry.status.value, 0) + 1
        return {
            "entries": len(self._entries),
            "in_flight": sum(1 for e in self._entries.values() if e.in_flight is not None),
            "statuses": statuses,
            "supersessions": len(self.diagnostics.history),
            **self.subscriptions.get_subscription_stats(),
        }

    def clear(self) -> int:
        """Drop all entries and subscriptions; returns the number of entries dropped."""
        count = len(self._entries)
        self._entries.clear()
        self.subscriptions.clear()
        self.diagnostics.clear()
        self.metrics.set_entry_count(0)
        self.logger.info("Cleared cache entries", count=count)
        return count

    async def close(self, *, cancel_pending: bool = False) -> None:
        """Tear the store down at session end.

        Waits for in-flight fetches to settle (or cancels them when
        ``cancel_pending``), then clears every entry and subscription.
        """
        while True:
            tasks = [e.in_flight for e in self._entries.values() if e.in_flight is not None]
            if not tasks:
                break
            if cancel_pending:
                for task in tasks:
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
        self.clear()

    async def __aenter__(self) -> "CacheStore":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _start_fetch(self, entry: CacheEntry, fetcher: Fetcher) -> asyncio.Task:
        """Run the pre-await transitions and schedule the fetch."""
        loop = asyncio.get_running_loop()
        start_version = entry.version

        if entry.has_value:
            # Serve the current value while the fetch runs
            entry.revalidating = True
        else:
            entry.status = EntryStatus.LOADING

        task = loop.create_task(self._run_fetch(entry, fetcher, start_version))
        entry.in_flight = task

        self.metrics.record_fetch(entry.key, "started")
        self.logger.debug(
            "Fetch started",
            key=entry.key,
            start_version=start_version,
            revalidating=entry.revalidating
        )
        self._notify(entry)
        return task

    async def _run_fetch(self, entry: CacheEntry, fetcher: Fetcher, start_version: int) -> None:
        key = entry.key
        try:
            with self.metrics.time_fetch(key):
                result = fetcher()
                if inspect.isawaitable(result):
                    result = await result
        except asyncio.CancelledError:
            entry.in_flight = None
            entry.revalidating = False
            entry.refetch_pending = False
            if entry.status is EntryStatus.LOADING:
                entry.status = EntryStatus.IDLE
            self._notify(entry)
            raise
        except Exception as exc:
            self._apply_failure(entry, exc)
        else:
            entry.in_flight = None
            entry.revalidating = False

            if entry.version != start_version:
                self._discard(entry, result, start_version)
            else:
                self._apply_result(entry, result)

        if entry.refetch_pending:
            entry.refetch_pending = False
            if entry.fetcher is not None:
                self._start_fetch(entry, entry.fetcher)

    def _apply_result(self, entry: CacheEntry, result: Any) -> None:
        entry.value = result
        entry.version += 1
        entry.status = EntryStatus.READY
        entry.fetched_at = self.clock()
        entry.last_error = None
        entry.loaded = True
        # Stays stale until the follow-up fetch lands
        entry.invalidated = entry.refetch_pending

        self.metrics.record_fetch(entry.key, "applied")
        self.logger.debug("Fetch applied", key=entry.key, version=entry.version)
        self._notify(entry)

    def _apply_failure(self, entry: CacheEntry, exc: Exception) -> None:
        error = FetchError(entry.key, exc)
        error.__cause__ = exc

        entry.in_flight = None
        entry.revalidating = False
        entry.last_error = error
        entry.status = EntryStatus.ERROR
        entry.version += 1

        self.metrics.record_fetch(entry.key, "failed")
        self.logger.warning(
            "Fetch failed, keeping last value",
            key=entry.key,
            version=entry.version,
            has_value=entry.has_value,
            error=str(exc)
        )
        self._notify(entry)

    def _discard(self, entry: CacheEntry, result: Any, start_version: int) -> None:
        event = ConcurrentSupersession(
            key=entry.key,
            start_version=start_version,
            current_version=entry.version,
            discarded_value=result,
            detected_at=self.clock(),
        )
        self.metrics.record_fetch(entry.key, "superseded")
        self.logger.info(
            "Fetch result superseded by newer mutation",
            key=entry.key,
            start_version=start_version,
            current_version=entry.version
        )
        self.diagnostics.emit(event)
        if entry.status is EntryStatus.LOADING:
            # Reset while loading; nothing was applied
            entry.status = EntryStatus.IDLE
        self._notify(entry)

    def _notify(self, entry: CacheEntry) -> None:
        self.subscriptions.notify(entry.key, entry)
