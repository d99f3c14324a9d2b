"""
HTTP client for the dashboard data API.
"""

from typing import Any, Dict, List, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel

from shared.circuit_breaker import CircuitBreaker
from shared.config import SyncSettings
from shared.errors import ExternalServiceError, NotFoundError
from shared.logging import get_logger
from shared.retry import RetryConfig, retry_on_exception

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

M = TypeVar("M", bound=BaseModel)

SERVICE_NAME = "data_api"


class DataApiClient:
    """Remote data-access functions for clients, projects and revenue.

    Reads are retried on transport failures; writes are sent once. Every
    request goes through a circuit breaker.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        token: Optional[str] = None,
        retry_config: Optional[RetryConfig] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.token = token
        self.transport = transport
        self.logger = get_logger("dashboard_sync.adapters.data_api")

        self.retry_config = retry_config or RetryConfig(max_attempts=3, base_delay=0.5, max_delay=5.0)
        self.circuit_breaker = circuit_breaker or CircuitBreaker(SERVICE_NAME, failure_threshold=3, recovery_timeout=30.0)

        self._client: Optional[httpx.AsyncClient] = None
        self._get = retry_on_exception((httpx.TransportError,), config=self.retry_config)(self._get_once)

    @classmethod
    def from_settings(cls, settings: SyncSettings, **kwargs) -> "DataApiClient":
        return cls(
            settings.data_api_url,
            timeout=settings.data_api_timeout,
            token=settings.data_api_token,
            retry_config=RetryConfig(
                max_attempts=settings.retry_max_attempts,
                base_delay=settings.retry_base_delay,
                max_delay=settings.retry_max_delay,
            ),
            circuit_breaker=CircuitBreaker(
                SERVICE_NAME,
                failure_threshold=settings.breaker_failure_threshold,
                recovery_timeout=settings.breaker_recovery_timeout,
            ),
            **kwargs,
        )

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {"Accept": "application/json"}
            if self.token:
                headers["Authorization"] = f"Bearer {self.token}"
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers=headers,
                transport=self.transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # Clients

    async def list_clients(self) -> List[Client]:
        return self._parse_list(Client, await self._get("/clients"))

    async def create_client(self, data: Dict[str, Any]) -> Client:
        return Client.model_validate(await self._send("POST", "/clients", json=data))

    async def update_client(self, client_id: str, changes: Dict[str, Any]) -> Client:
        return Client.model_validate(await self._send("PATCH", f"/clients/{client_id}", json=changes))

    async def delete_client(self, client_id: str) -> None:
        await self._send("DELETE", f"/clients/{client_id}")

    # Projects

    async def list_projects(self) -> List[Project]:
        return self._parse_list(Project, await self._get("/projects"))

    async def create_project(self, data: Dict[str, Any]) -> Project:
        return Project.model_validate(await self._send("POST", "/projects", json=data))

    async def update_project(self, project_id: str, changes: Dict[str, Any]) -> Project:
        return Project.model_validate(await self._send("PATCH", f"/projects/{project_id}", json=changes))

    async def delete_project(self, project_id: str) -> None:
        await self._send("DELETE", f"/projects/{project_id}")

    # Revenue

    async def list_revenue(self) -> List[RevenueEntry]:
        return self._parse_list(RevenueEntry, await self._get("/revenue"))

    async def create_revenue(self, data: Dict[str, Any]) -> RevenueEntry:
        return RevenueEntry.model_validate(await self._send("POST", "/revenue", json=data))

    # Aggregates

    async def client_stats(self) -> ClientStats:
        return ClientStats.model_validate(await self._get("/stats/clients"))

    async def project_stats(self) -> ProjectStats:
        return ProjectStats.model_validate(await self._get("/stats/projects"))

    async def revenue_stats(self) -> RevenueStats:
        return RevenueStats.model_validate(await self._get("/stats/revenue"))

    async def monthly_trends(self, year: Optional[int] = None) -> List[MonthlyRevenue]:
        params = {"year": year} if year is not None else None
        return self._parse_list(MonthlyRevenue, await self._get("/revenue/trends", params=params))

    async def revenue_by_type(self, year: Optional[int] = None) -> RevenueByType:
        params = {"year": year} if year is not None else None
        return RevenueByType.model_validate(await self._get("/revenue/by-type", params=params))

    async def _get_once(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self._send("GET", path, params=params)

    async def _send(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Execute one request with circuit breaker + status handling."""

        async def _request():
            response = await self._get_client().request(method, path, params=params, json=json)

            if response.status_code == 404:
                self.logger.info("Data API resource not found", method=method, path=path)
                raise NotFoundError("Resource not found", {"path": path})

            if response.status_code >= 400:
                self.logger.error(
                    "Data API request failed",
                    method=method,
                    path=path,
                    status_code=response.status_code,
                    response=response.text
                )
                raise ExternalServiceError(
                    service=SERVICE_NAME,
                    message=f"Unexpected status {response.status_code}",
                    details={"status_code": response.status_code, "path": path, "body": response.text}
                )

            self.logger.debug("Data API request succeeded", method=method, path=path)
            if response.status_code == 204 or not response.content:
                return None
            return response.json()

        return await self.circuit_breaker.call(_request)

    @staticmethod
    def _parse_list(model: Type[M], payload: Any) -> List[M]:
        """Accept a bare list or a paginated ``{"data": [...]}`` envelope."""
        if isinstance(payload, dict):
            payload = payload.get("data", [])
        if payload is None:
            return []
        return [model.model_validate(item) for item in payload]
