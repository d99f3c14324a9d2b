"""
Dashboard resource families.

Maps each dashboard resource to its cache key, TTL and data-access
function. Every call returns a new binding over the shared store; bindings
are tracked so ``close()`` can release them at session end. A committed
write to a collection invalidates the aggregates computed from it.
"""

from functools import partial
from typing import Any, Dict, List, Optional, Tuple

from shared.config import SyncSettings
from shared.logging import get_logger

from ..adapters.base import DashboardDataSource
from ..cache.keys import key_family, make_key
from ..cache.store import CacheStore
from ..domain.models import (
    Client,
    ClientStats,
    MonthlyRevenue,
    Project,
    ProjectStats,
    RevenueByType,
    RevenueEntry,
    RevenueStats,
)
from .binding import ResourceBinding
from .collections import EntityCollection, ProjectCollection

CLIENTS = "clients"
PROJECTS = "projects"
REVENUE = "revenue"
CLIENT_STATS = "client-stats"
PROJECT_STATS = "project-stats"
REVENUE_SUMMARY = "revenue-summary"
MONTHLY_TRENDS = "monthly-trends"
REVENUE_BY_TYPE = "revenue-by-type"

RESOURCE_FAMILIES = [
    CLIENTS,
    PROJECTS,
    REVENUE,
    CLIENT_STATS,
    PROJECT_STATS,
    REVENUE_SUMMARY,
    MONTHLY_TRENDS,
    REVENUE_BY_TYPE,
]

# Collection family -> families derived from it
DEPENDENT_FAMILIES: Dict[str, Tuple[str, ...]] = {
    CLIENTS: (CLIENT_STATS,),
    PROJECTS: (PROJECT_STATS,),
    REVENUE: (REVENUE_SUMMARY, MONTHLY_TRENDS, REVENUE_BY_TYPE),
}


class DashboardResources:
    """Resource bindings for the dashboard, backed by one store and one data source."""

    def __init__(self, store: CacheStore, source: DashboardDataSource, settings: Optional[SyncSettings] = None):
        self.store = store
        self.source = source
        self.settings = settings or SyncSettings()
        self.ttls = self.settings.resource_ttls()
        self.logger = get_logger("dashboard_sync.resources.dashboard")
        self._bindings: List[ResourceBinding] = []

    def clients(self) -> EntityCollection[Client]:
        return self._track(EntityCollection(
            self.store,
            CLIENTS,
            self.source.list_clients,
            Client,
            self.ttls[CLIENTS],
            create=self.source.create_client,
            update=self.source.update_client,
            delete=self.source.delete_client,
            on_success=partial(self.invalidate_dependents, CLIENTS),
        ))

    def projects(self) -> ProjectCollection:
        return self._track(ProjectCollection(
            self.store,
            PROJECTS,
            self.source.list_projects,
            Project,
            self.ttls[PROJECTS],
            create=self.source.create_project,
            update=self.source.update_project,
            delete=self.source.delete_project,
            on_success=partial(self.invalidate_dependents, PROJECTS),
        ))

    def revenue(self) -> EntityCollection[RevenueEntry]:
        """Revenue entries; add-only."""
        return self._track(EntityCollection(
            self.store,
            REVENUE,
            self.source.list_revenue,
            RevenueEntry,
            self.ttls[REVENUE],
            create=self.source.create_revenue,
            on_success=partial(self.invalidate_dependents, REVENUE),
        ))

    def client_stats(self) -> ResourceBinding[ClientStats]:
        return self._bind(CLIENT_STATS, self.source.client_stats)

    def project_stats(self) -> ResourceBinding[ProjectStats]:
        return self._bind(PROJECT_STATS, self.source.project_stats)

    def revenue_summary(self) -> ResourceBinding[RevenueStats]:
        return self._bind(REVENUE_SUMMARY, self.source.revenue_stats)

    def monthly_trends(self, year: Optional[int] = None) -> ResourceBinding[List[MonthlyRevenue]]:
        return self._bind(
            make_key(MONTHLY_TRENDS, year),
            partial(self.source.monthly_trends, year),
            self.ttls[MONTHLY_TRENDS],
        )

    def revenue_by_type(self, year: Optional[int] = None) -> ResourceBinding[RevenueByType]:
        return self._bind(
            make_key(REVENUE_BY_TYPE, year),
            partial(self.source.revenue_by_type, year),
            self.ttls[REVENUE_BY_TYPE],
        )

    def invalidate_dependents(self, family: str, _record: Any = None) -> List[str]:
        """Invalidate every cached key derived from ``family``; returns those keys."""
        dependents = DEPENDENT_FAMILIES.get(family, ())
        keys = [k for k in self.store.keys() if key_family(k, RESOURCE_FAMILIES) in dependents]
        for key in keys:
            self.store.invalidate(key)
        if keys:
            self.logger.debug("Invalidated derived resources", family=family, keys=keys)
        return keys

    @property
    def bindings(self) -> List[ResourceBinding]:
        return [b for b in self._bindings if not b.closed]

    def close(self) -> int:
        """Close every binding handed out; returns how many were open."""
        open_bindings = self.bindings
        for binding in open_bindings:
            binding.close()
        self._bindings.clear()
        self.logger.debug("Closed dashboard resources", bindings=len(open_bindings))
        return len(open_bindings)

    def _bind(self, key: str, fetcher, ttl_seconds: Optional[float] = None) -> ResourceBinding:
        return self._track(ResourceBinding(self.store, key, fetcher, ttl_seconds or self.ttls[key]))

    def _track(self, binding):
        self._bindings.append(binding)
        return binding
