"""
Dashboard session: wires the sync layer for one signed-in user.

Usage:
    async with DashboardSession(get_settings()) as session:
        clients = session.resources.clients()
        await clients.refresh()
"""

from typing import Optional

from shared.config import SyncSettings, get_settings
from shared.logging import clear_context, configure_logging, get_logger, set_session_id, set_user_context
from shared.metrics import SyncMetrics

from .adapters.base import DashboardDataSource
from .adapters.data_api_client import DataApiClient
from .cache.store import CacheStore
from .resources.dashboard import DashboardResources
from .utils.roles import UserRole, can_edit


class DashboardSession:
    """Owns the store, the data source and the resource bindings of a session.

    The store is created empty here and torn down in ``close()``; there is no
    module-level cache.
    """

    def __init__(
        self,
        settings: Optional[SyncSettings] = None,
        source: Optional[DashboardDataSource] = None,
        *,
        session_id: Optional[str] = None,
        user_id: Optional[str] = None,
        role: UserRole = UserRole.VIEWER,
        configure_logs: bool = True,
    ):
        self.settings = settings or get_settings()
        if configure_logs:
            configure_logging("dashboard-sync", self.settings.log_level)

        self.session_id = set_session_id(session_id)
        set_user_context(user_id)
        self.user_id = user_id
        self.role = role
        self.logger = get_logger("dashboard_sync.session")

        self.metrics = SyncMetrics()
        self.store = CacheStore(self.settings.default_ttl_seconds, metrics=self.metrics)
        self._owns_source = source is None
        self.source = source if source is not None else DataApiClient.from_settings(self.settings)
        self.resources = DashboardResources(self.store, self.source, self.settings)
        self.closed = False

        self.logger.info(
            "Dashboard session started",
            env=self.settings.env,
            role=role.value,
            data_source=type(self.source).__name__
        )

    @property
    def can_edit(self) -> bool:
        return can_edit(self.role)

    async def close(self, *, cancel_pending: bool = False) -> None:
        if self.closed:
            return
        self.closed = True

        released = self.resources.close()
        await self.store.close(cancel_pending=cancel_pending)
        if self._owns_source and isinstance(self.source, DataApiClient):
            await self.source.close()

        self.logger.info("Dashboard session closed", bindings_released=released)
        clear_context()

    async def __aenter__(self) -> "DashboardSession":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
