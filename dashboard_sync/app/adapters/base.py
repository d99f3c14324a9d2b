"""
Data-access contract consumed by the dashboard resources.

Implementations own transport concerns (timeouts, retries, auth); the cache
core only awaits the coroutines they return.
"""

from typing import Any, Dict, List, Optional, Protocol

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


class DashboardDataSource(Protocol):
    async def list_clients(self) -> List[Client]: ...

    async def create_client(self, data: Dict[str, Any]) -> Client: ...

    async def update_client(self, client_id: str, changes: Dict[str, Any]) -> Client: ...

    async def delete_client(self, client_id: str) -> None: ...

    async def list_projects(self) -> List[Project]: ...

    async def create_project(self, data: Dict[str, Any]) -> Project: ...

    async def update_project(self, project_id: str, changes: Dict[str, Any]) -> Project: ...

    async def delete_project(self, project_id: str) -> None: ...

    async def list_revenue(self) -> List[RevenueEntry]: ...

    async def create_revenue(self, data: Dict[str, Any]) -> RevenueEntry: ...

    async def client_stats(self) -> ClientStats: ...

    async def project_stats(self) -> ProjectStats: ...

    async def revenue_stats(self) -> RevenueStats: ...

    async def monthly_trends(self, year: Optional[int] = None) -> List[MonthlyRevenue]: ...

    async def revenue_by_type(self, year: Optional[int] = None) -> RevenueByType: ...
