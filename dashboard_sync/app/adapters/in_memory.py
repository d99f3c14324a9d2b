"""
In-memory data source.

Serves the dashboard from process memory: offline/demo mode and tests.
Aggregates are computed on read, the way the hosted API computes them.
"""

import uuid
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence, Type, TypeVar

from shared.errors import NotFoundError
from shared.logging import get_logger

from ..domain import aggregates
from ..domain.models import (
    Client,
    ClientStats,
    Entity,
    MonthlyRevenue,
    Project,
    ProjectStats,
    RevenueByType,
    RevenueEntry,
    RevenueStats,
)

E = TypeVar("E", bound=Entity)


class InMemoryDataSource:
    """Dict-backed implementation of ``DashboardDataSource``."""

    def __init__(
        self,
        clients: Sequence[Client] = (),
        projects: Sequence[Project] = (),
        revenue: Sequence[RevenueEntry] = (),
        *,
        monthly_target: float = 75000.0,
        today: Callable[[], date] = date.today,
        id_factory: Callable[[], str] = lambda: uuid.uuid4().hex,
    ):
        self.clients: Dict[str, Client] = {c.id: c for c in clients}
        self.projects: Dict[str, Project] = {p.id: p for p in projects}
        self.revenue: Dict[str, RevenueEntry] = {r.id: r for r in revenue}
        self.monthly_target = monthly_target
        self.today = today
        self.id_factory = id_factory
        self.logger = get_logger("dashboard_sync.adapters.in_memory")

    async def list_clients(self) -> List[Client]:
        return self._newest_first(self.clients)

    async def create_client(self, data: Dict[str, Any]) -> Client:
        return self._create(self.clients, Client, data)

    async def update_client(self, client_id: str, changes: Dict[str, Any]) -> Client:
        return self._update(self.clients, client_id, changes, "Client")

    async def delete_client(self, client_id: str) -> None:
        self._delete(self.clients, client_id, "Client")

    async def list_projects(self) -> List[Project]:
        return self._newest_first(self.projects)

    async def create_project(self, data: Dict[str, Any]) -> Project:
        if data.get("client_id") not in self.clients:
            raise NotFoundError("Client not found", {"client_id": data.get("client_id")})
        return self._create(self.projects, Project, data)

    async def update_project(self, project_id: str, changes: Dict[str, Any]) -> Project:
        return self._update(self.projects, project_id, changes, "Project")

    async def delete_project(self, project_id: str) -> None:
        self._delete(self.projects, project_id, "Project")

    async def list_revenue(self) -> List[RevenueEntry]:
        return sorted(self.revenue.values(), key=lambda r: (r.year, r.month), reverse=True)

    async def create_revenue(self, data: Dict[str, Any]) -> RevenueEntry:
        return self._create(self.revenue, RevenueEntry, data)

    async def client_stats(self) -> ClientStats:
        return aggregates.client_stats(list(self.clients.values()))

    async def project_stats(self) -> ProjectStats:
        return aggregates.project_stats(list(self.projects.values()), self.today())

    async def revenue_stats(self) -> RevenueStats:
        return aggregates.revenue_stats(list(self.revenue.values()), self.today(), self.monthly_target)

    async def monthly_trends(self, year: Optional[int] = None) -> List[MonthlyRevenue]:
        return aggregates.monthly_trends(list(self.revenue.values()), year or self.today().year)

    async def revenue_by_type(self, year: Optional[int] = None) -> RevenueByType:
        return aggregates.revenue_by_type(list(self.revenue.values()), year or self.today().year)

    @staticmethod
    def _newest_first(table: Dict[str, E]) -> List[E]:
        return sorted(table.values(), key=lambda e: e.created_at, reverse=True)

    def _create(self, table: Dict[str, E], model: Type[E], data: Dict[str, Any]) -> E:
        payload = {k: v for k, v in data.items() if k not in ("id", "created_at", "updated_at")}
        record = model(id=self.id_factory(), **payload)
        table[record.id] = record
        self.logger.debug("Record created", model=model.__name__, id=record.id)
        return record

    def _update(self, table: Dict[str, E], record_id: str, changes: Dict[str, Any], label: str) -> E:
        current = table.get(record_id)
        if current is None:
            raise NotFoundError(f"{label} not found", {"id": record_id})
        merged = {**current.model_dump(), **changes, "id": record_id}
        if "updated_at" in type(current).model_fields:
            merged["updated_at"] = datetime.now(timezone.utc)
        record = type(current).model_validate(merged)
        table[record_id] = record
        return record

    def _delete(self, table: Dict[str, E], record_id: str, label: str) -> None:
        if table.pop(record_id, None) is None:
            raise NotFoundError(f"{label} not found", {"id": record_id})
