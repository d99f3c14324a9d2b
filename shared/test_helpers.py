"""
Test helper functions and factory methods for the dashboard sync layer.
"""

import asyncio
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

from dashboard_sync.app.adapters.in_memory import InMemoryDataSource
from dashboard_sync.app.domain.models import Client, Project, RevenueEntry


class FakeClock:
    """Manually advanced clock, in seconds."""

    def __init__(self, start: float = 1_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


class ControlledFetcher:
    """Fetcher whose calls stay pending until the test resolves or fails them."""

    def __init__(self):
        self.calls = 0
        self._futures: List[asyncio.Future] = []

    def __call__(self) -> asyncio.Future:
        self.calls += 1
        future = asyncio.get_running_loop().create_future()
        self._futures.append(future)
        return future

    @property
    def pending(self) -> int:
        return sum(1 for f in self._futures if not f.done())

    def resolve(self, value: Any, index: int = -1) -> None:
        self._futures[index].set_result(value)

    def fail(self, error: BaseException, index: int = -1) -> None:
        self._futures[index].set_exception(error)


class DashboardDataFactory:
    """Factory for creating dashboard test data."""

    REFERENCE_DATE = date(2024, 6, 15)

    @staticmethod
    def created(days_ago: int, reference: date = REFERENCE_DATE) -> datetime:
        day = reference - timedelta(days=days_ago)
        return datetime(day.year, day.month, day.day, 9, 0, tzinfo=timezone.utc)

    @classmethod
    def create_test_clients(cls) -> List[Client]:
        """Create test clients."""
        return [
            Client(
                id="client-1",
                name="Acme Holdings",
                email="books@acme.example",
                status="active",
                entity_type="business",
                created_at=cls.created(10),
            ),
            Client(
                id="client-2",
                name="Jordan Lee",
                email="jordan@example.com",
                status="prospect",
                entity_type="individual",
                created_at=cls.created(45),
            ),
            Client(
                id="client-3",
                name="Riverside Partners",
                status="inactive",
                entity_type="partnership",
                created_at=cls.created(200),
            ),
        ]

    @classmethod
    def create_test_projects(cls) -> List[Project]:
        """Create test projects."""
        return [
            Project(
                id="project-1",
                client_id="client-1",
                name="2023 Nexus Review",
                type="nexus_analysis",
                status="in_progress",
                amount=12000.0,
                estimated_hours=40.0,
                actual_hours=12.5,
                due_date=cls.REFERENCE_DATE + timedelta(days=5),
                created_at=cls.created(20),
            ),
            Project(
                id="project-2",
                client_id="client-1",
                name="Monthly Books",
                type="bookkeeping",
                status="pending",
                amount=3000.0,
                estimated_hours=10.0,
                due_date=cls.REFERENCE_DATE - timedelta(days=3),
                created_at=cls.created(30),
            ),
            Project(
                id="project-3",
                client_id="client-2",
                name="Individual Return",
                type="tax_prep",
                status="completed",
                amount=800.0,
                estimated_hours=4.0,
                actual_hours=3.5,
                due_date=cls.REFERENCE_DATE - timedelta(days=60),
                created_at=cls.created(90),
            ),
        ]

    @classmethod
    def create_test_revenue(cls) -> List[RevenueEntry]:
        """Create test revenue entries across this year and last."""
        year = cls.REFERENCE_DATE.year
        return [
            RevenueEntry(id="rev-1", type="project", amount=10000.0, month=6, year=year),
            RevenueEntry(id="rev-2", type="returns", amount=5000.0, month=6, year=year),
            RevenueEntry(id="rev-3", type="project", amount=8000.0, month=5, year=year),
            RevenueEntry(id="rev-4", type="on_call", amount=2000.0, month=1, year=year),
            RevenueEntry(id="rev-5", type="project", amount=6000.0, month=6, year=year - 1),
            RevenueEntry(id="rev-6", type="returns", amount=4000.0, month=5, year=year - 1),
        ]

    @staticmethod
    def client_payload(**overrides) -> Dict[str, Any]:
        payload = {"name": "New Client", "email": "new@example.com", "status": "prospect"}
        payload.update(overrides)
        return payload

    @staticmethod
    def project_payload(client_id: str = "client-1", **overrides) -> Dict[str, Any]:
        payload = {"client_id": client_id, "name": "New Project", "type": "advisory", "amount": 1500.0}
        payload.update(overrides)
        return payload

    @classmethod
    def create_data_source(cls, today: Optional[Callable[[], date]] = None, **kwargs) -> InMemoryDataSource:
        """In-memory data source seeded with the test clients, projects and revenue."""
        counter = iter(range(1, 1_000_000))
        return InMemoryDataSource(
            cls.create_test_clients(),
            cls.create_test_projects(),
            cls.create_test_revenue(),
            today=today or (lambda: cls.REFERENCE_DATE),
            id_factory=kwargs.pop("id_factory", lambda: f"srv-{next(counter)}"),
            **kwargs,
        )


class TestEnvironment:
    """Test environment configuration."""

    @staticmethod
    def get_test_settings_overrides() -> Dict[str, Any]:
        return {
            "env": "test",
            "log_level": "debug",
            "data_api_url": "http://data-api.test/api/v1",
            "retry_max_attempts": 2,
            "retry_base_delay": 0.0,
            "retry_max_delay": 0.0,
        }
