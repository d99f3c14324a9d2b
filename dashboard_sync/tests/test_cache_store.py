"""
Unit tests for the cache store.
"""

import asyncio

import pytest

from dashboard_sync.app.cache import CacheStore, ConcurrentSupersession, EntryStatus
from shared.errors import FetchError, ValidationError
from shared.test_helpers import ControlledFetcher, FakeClock


class TestCacheStoreEntries:
    """Test cases for entry creation and staleness."""

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def store(self, clock):
        return CacheStore(default_ttl_seconds=60, clock=clock)

    def test_get_or_create_creates_idle_entry(self, store):
        """Test an unseen key gets an idle, empty entry."""
        entry = store.get_or_create("clients")

        assert entry.status is EntryStatus.IDLE
        assert entry.value is None
        assert entry.version == 0
        assert entry.ttl_seconds == 60
        assert "clients" in store

    def test_get_or_create_returns_same_entry(self, store):
        """Test repeated lookups share one entry and keep the first TTL."""
        first = store.get_or_create("clients", ttl_seconds=10)
        second = store.get_or_create("clients", ttl_seconds=999)

        assert first is second
        assert second.ttl_seconds == 10

    def test_invalid_key_rejected(self, store):
        """Test keys are validated on creation."""
        with pytest.raises(ValueError):
            store.get_or_create("")
        with pytest.raises(TypeError):
            store.get_or_create(42)

    def test_non_positive_ttl_rejected(self, store):
        """Test an entry cannot be created with a zero TTL."""
        with pytest.raises(ValueError):
            store.get_or_create("clients", ttl_seconds=0)

    def test_is_stale_for_unknown_and_never_fetched(self, store):
        """Test keys without a value count as stale."""
        assert store.is_stale("missing") is True
        store.get_or_create("clients")
        assert store.is_stale("clients") is True

    def test_is_stale_follows_ttl(self, store, clock):
        """Test staleness is now - fetched_at > ttl."""
        store.mutate("clients", lambda _: ["a"])
        assert store.is_stale("clients") is False

        clock.advance(60)
        assert store.is_stale("clients") is False

        clock.advance(0.001)
        assert store.is_stale("clients") is True

        store.mutate("clients", lambda value: value + ["b"])
        assert store.is_stale("clients") is False

    def test_mutate_bumps_version_and_clears_error(self, store):
        """Test a mutate applies the updater and moves to READY."""
        entry = store.get_or_create("clients")
        entry.status = EntryStatus.ERROR
        entry.last_error = FetchError("clients", RuntimeError("boom"))

        store.mutate("clients", lambda value: (value or []) + [1])

        assert entry.value == [1]
        assert entry.version == 1
        assert entry.status is EntryStatus.READY
        assert entry.last_error is None

    def test_set_replaces_value(self, store):
        store.set("clients", ["x"])
        assert store.get("clients").value == ["x"]
        assert store.get("clients").version == 1

    def test_stats(self, store):
        """Test store statistics."""
        store.set("clients", [])
        store.get_or_create("projects")
        store.subscribe("clients", lambda entry: None)

        stats = store.stats()

        assert stats["entries"] == 2
        assert stats["in_flight"] == 0
        assert stats["statuses"] == {"ready": 1, "idle": 1}
        assert stats["total_subscriptions"] == 1


class TestCacheStoreFetching:
    """Test cases for fetch deduplication, TTL and version checks."""

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def store(self, clock):
        return CacheStore(default_ttl_seconds=60, clock=clock)

    @pytest.mark.asyncio
    async def test_concurrent_ensure_fresh_fetches_once(self, store):
        """Test two ensure_fresh calls before settling invoke the fetcher once."""
        fetcher = ControlledFetcher()

        first = store.ensure_fresh("clients", fetcher)
        second = store.ensure_fresh("clients", fetcher)
        await asyncio.sleep(0)

        assert first is second
        assert fetcher.calls == 1
        assert first.status is EntryStatus.LOADING

        fetcher.resolve(["acme"])
        await store.wait("clients")

        assert first.value == ["acme"]
        assert first.status is EntryStatus.READY
        assert first.version == 1
        assert first.in_flight is None

    @pytest.mark.asyncio
    async def test_ensure_fresh_returns_synchronously(self, store):
        """Test the caller gets the current snapshot before the fetch settles."""
        fetcher = ControlledFetcher()

        entry = store.ensure_fresh("clients", fetcher)

        assert entry.value is None
        assert entry.in_flight is not None
        await asyncio.sleep(0)
        fetcher.resolve([])
        await store.wait("clients")

    @pytest.mark.asyncio
    async def test_fresh_entry_not_refetched(self, store, clock):
        """Test a fresh READY entry does not start a fetch."""
        calls = []

        async def fetcher():
            calls.append(1)
            return ["acme"]

        store.ensure_fresh("clients", fetcher)
        await store.wait("clients")
        clock.advance(30)
        store.ensure_fresh("clients", fetcher)
        await store.wait("clients")

        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_stale_entry_revalidates_while_serving_value(self, store, clock):
        """Test a stale entry keeps serving its value while refetching."""
        store.set("clients", ["old"])
        clock.advance(61)
        fetcher = ControlledFetcher()

        entry = store.ensure_fresh("clients", fetcher)

        assert entry.in_flight is not None
        assert entry.value == ["old"]
        assert entry.status is EntryStatus.READY
        assert entry.revalidating is True

        await asyncio.sleep(0)
        fetcher.resolve(["new"])
        await store.wait("clients")

        assert entry.value == ["new"]
        assert entry.revalidating is False
        assert store.is_stale("clients") is False

    @pytest.mark.asyncio
    async def test_sync_fetcher_supported(self, store):
        """Test a fetcher returning a plain value."""
        entry = store.ensure_fresh("clients", lambda: ["plain"])
        await store.wait("clients")

        assert entry.value == ["plain"]
        assert entry.status is EntryStatus.READY

    @pytest.mark.asyncio
    async def test_mutation_during_fetch_wins(self, store):
        """Test a fetch result is discarded when a mutation landed meanwhile."""
        fetcher = ControlledFetcher()
        entry = store.ensure_fresh("clients", fetcher)

        store.mutate("clients", lambda _: ["local"])
        await asyncio.sleep(0)
        fetcher.resolve(["remote"])
        await store.wait("clients")

        assert entry.value == ["local"]
        assert entry.version == 1
        assert entry.in_flight is None

    @pytest.mark.asyncio
    async def test_discarded_fetch_emits_supersession(self, store):
        """Test supersession hooks see the discarded result."""
        events = []
        store.add_supersession_hook(events.append)
        fetcher = ControlledFetcher()
        store.ensure_fresh("clients", fetcher)

        store.mutate("clients", lambda _: ["local"])
        await asyncio.sleep(0)
        fetcher.resolve(["remote"])
        await store.wait("clients")

        assert len(events) == 1
        event = events[0]
        assert isinstance(event, ConcurrentSupersession)
        assert event.key == "clients"
        assert event.start_version == 0
        assert event.current_version == 1
        assert event.discarded_value == ["remote"]
        assert store.metrics.sample("fetches_total", key="clients", outcome="superseded") == 1.0

    @pytest.mark.asyncio
    async def test_failed_refresh_keeps_value(self, store):
        """Test a failed fetch keeps the last good value and records the error."""
        store.set("clients", ["good"])

        async def offline():
            raise ConnectionError("offline")

        entry = await store.refresh("clients", offline)

        assert entry.value == ["good"]
        assert entry.status is EntryStatus.ERROR
        assert entry.version == 2
        assert isinstance(entry.last_error, FetchError)
        assert isinstance(entry.last_error.__cause__, ConnectionError)
        assert entry.revalidating is False

    @pytest.mark.asyncio
    async def test_failed_first_fetch_retried_on_next_ensure_fresh(self, store):
        """Test an entry whose first fetch failed is fetched again."""
        calls = []

        async def flaky():
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("boom")
            return ["ok"]

        entry = store.ensure_fresh("clients", flaky)
        await store.wait("clients")
        assert entry.status is EntryStatus.ERROR
        assert entry.value is None

        store.ensure_fresh("clients", flaky)
        await store.wait("clients")

        assert entry.value == ["ok"]
        assert entry.last_error is None
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_refresh_bypasses_ttl(self, store):
        """Test refresh fetches even when the entry is fresh."""
        store.set("clients", ["old"])

        entry = await store.refresh("clients", lambda: ["new"])

        assert entry.value == ["new"]
        assert entry.version == 2

    @pytest.mark.asyncio
    async def test_refresh_uses_remembered_fetcher(self, store):
        """Test refresh without a fetcher reuses the one from ensure_fresh."""
        store.ensure_fresh("clients", lambda: ["first"])
        await store.wait("clients")

        entry = await store.refresh("clients")

        assert entry.version == 2

    @pytest.mark.asyncio
    async def test_refresh_attaches_to_in_flight_fetch(self, store):
        """Test refresh during a fetch does not start another one."""
        fetcher = ControlledFetcher()
        store.ensure_fresh("clients", fetcher)

        refresh = asyncio.ensure_future(store.refresh("clients"))
        await asyncio.sleep(0)
        fetcher.resolve(["acme"])
        entry = await refresh

        assert fetcher.calls == 1
        assert entry.value == ["acme"]

    @pytest.mark.asyncio
    async def test_refresh_without_fetcher_raises(self, store):
        with pytest.raises(ValidationError):
            await store.refresh("unknown")

    @pytest.mark.asyncio
    async def test_every_transition_notifies(self, store):
        """Test fetch start and completion both notify."""
        seen = []
        store.subscribe("clients", lambda entry: seen.append((entry.status, entry.version)))
        fetcher = ControlledFetcher()

        store.ensure_fresh("clients", fetcher)
        await asyncio.sleep(0)
        fetcher.resolve(["acme"])
        await store.wait("clients")

        assert seen == [(EntryStatus.LOADING, 0), (EntryStatus.READY, 1)]

    @pytest.mark.asyncio
    async def test_metrics_recorded(self, store):
        store.ensure_fresh("clients", lambda: [])
        await store.wait("clients")

        assert store.metrics.sample("fetches_total", key="clients", outcome="started") == 1.0
        assert store.metrics.sample("fetches_total", key="clients", outcome="applied") == 1.0
        assert store.metrics.sample("entries") == 1.0

    @pytest.mark.asyncio
    async def test_invalidate_refetches_with_remembered_fetcher(self, store):
        """Test an invalidated key serves its value while fetching again."""
        results = iter([["acme"], ["acme", "globex"]])
        store.ensure_fresh("clients", lambda: next(results))
        await store.wait("clients")

        entry = store.invalidate("clients")

        assert entry.revalidating is True
        assert entry.value == ["acme"]
        assert store.is_stale("clients") is True
        await store.wait("clients")
        assert entry.value == ["acme", "globex"]
        assert store.is_stale("clients") is False
        assert entry.invalidated is False

    @pytest.mark.asyncio
    async def test_invalidate_during_fetch_fetches_again(self, store):
        """Test a fetch started before the invalidation is followed by another."""
        fetcher = ControlledFetcher()
        entry = store.ensure_fresh("clients", fetcher)
        await asyncio.sleep(0)

        store.invalidate("clients")
        fetcher.resolve(["before-write"])
        await asyncio.sleep(0)

        assert entry.value == ["before-write"]
        assert store.is_stale("clients") is True

        await asyncio.sleep(0)
        assert fetcher.calls == 2
        fetcher.resolve(["after-write"])
        await store.wait("clients")

        assert entry.value == ["after-write"]
        assert store.is_stale("clients") is False

    def test_invalidate_without_fetcher_marks_stale(self, store):
        store.set("clients", ["acme"])
        seen = []
        store.subscribe("clients", seen.append)

        entry = store.invalidate("clients")

        assert store.is_stale("clients") is True
        assert entry.in_flight is None
        assert seen == [entry]
        assert store.invalidate("unknown") is None

    def test_reset_returns_entry_to_idle(self, store):
        store.set("clients", ["acme"])

        entry = store.reset("clients")

        assert entry.status is EntryStatus.IDLE
        assert entry.value is None
        assert entry.version == 2
        assert store.is_stale("clients") is True

    @pytest.mark.asyncio
    async def test_reset_during_first_fetch_loads_again(self, store):
        """Test a reset entry does not stay LOADING once the discarded fetch lands."""
        results = iter(["old", "new"])
        entry = store.ensure_fresh("clients", lambda: next(results))
        store.set("clients", "local")

        store.reset("clients")
        assert entry.status is EntryStatus.LOADING

        await store.wait("clients")

        assert entry.value == "new"
        assert entry.status is EntryStatus.READY
        assert entry.loaded is True


class TestCacheStoreLifecycle:
    """Test cases for teardown."""

    @pytest.mark.asyncio
    async def test_close_waits_for_in_flight_and_clears(self):
        """Test close lets pending fetches settle, then empties the store."""
        store = CacheStore(clock=FakeClock())
        seen = []
        store.subscribe("clients", lambda entry: seen.append(entry.value))

        async def fetcher():
            await asyncio.sleep(0)
            return ["acme"]

        store.ensure_fresh("clients", fetcher)
        await store.close()

        assert ["acme"] in seen
        assert len(store) == 0
        assert store.subscriptions.subscriber_count("clients") == 0

    @pytest.mark.asyncio
    async def test_close_can_cancel_pending(self):
        """Test close(cancel_pending=True) cancels outstanding fetches."""
        store = CacheStore(clock=FakeClock())
        fetcher = ControlledFetcher()
        seen = []
        store.subscribe("clients", lambda entry: seen.append(entry.status))
        entry = store.ensure_fresh("clients", fetcher)
        task = entry.in_flight
        await asyncio.sleep(0)

        await store.close(cancel_pending=True)

        assert task.cancelled()
        assert entry.status is EntryStatus.IDLE
        assert seen == [EntryStatus.LOADING, EntryStatus.IDLE]
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_async_context_manager(self):
        async with CacheStore(clock=FakeClock()) as store:
            store.set("clients", [])
            assert len(store) == 1
        assert len(store) == 0

    def test_default_ttl_must_be_positive(self):
        with pytest.raises(ValueError):
            CacheStore(default_ttl_seconds=0)
