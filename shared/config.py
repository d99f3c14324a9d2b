"""
Shared configuration management for the dashboard sync layer.
"""

from typing import Dict, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SyncSettings(BaseSettings):
    """Settings for the sync layer and its data-access adapters.

    Every field can be overridden through a ``DASHBOARD_``-prefixed
    environment variable or a ``.env`` file, e.g. ``DASHBOARD_LOG_LEVEL=debug``.
    """

    model_config = SettingsConfigDict(
        env_prefix="DASHBOARD_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment
    env: str = "local"
    log_level: str = "info"

    # Remote data API
    data_api_url: str = "http://localhost:8000/api/v1"
    data_api_timeout: float = 10.0
    data_api_token: Optional[str] = None

    # Cache TTLs (seconds)
    default_ttl_seconds: float = Field(default=300.0, gt=0)
    clients_ttl_seconds: float = Field(default=120.0, gt=0)
    projects_ttl_seconds: float = Field(default=120.0, gt=0)
    revenue_ttl_seconds: float = Field(default=300.0, gt=0)
    stats_ttl_seconds: float = Field(default=180.0, gt=0)
    revenue_summary_ttl_seconds: float = Field(default=300.0, gt=0)
    trends_ttl_seconds: float = Field(default=600.0, gt=0)

    # Resilience for remote calls
    retry_max_attempts: int = Field(default=3, ge=1)
    retry_base_delay: float = 1.0
    retry_max_delay: float = 10.0
    breaker_failure_threshold: int = Field(default=5, ge=1)
    breaker_recovery_timeout: float = 60.0

    # Business
    monthly_revenue_target: float = 75000.0

    def resource_ttls(self) -> Dict[str, float]:
        """TTL per resource family."""
        return {
            "clients": self.clients_ttl_seconds,
            "projects": self.projects_ttl_seconds,
            "revenue": self.revenue_ttl_seconds,
            "client-stats": self.stats_ttl_seconds,
            "project-stats": self.stats_ttl_seconds,
            "revenue-summary": self.revenue_summary_ttl_seconds,
            "monthly-trends": self.trends_ttl_seconds,
            "revenue-by-type": self.trends_ttl_seconds,
        }


def get_settings(**overrides) -> SyncSettings:
    """Build settings from the environment, applying explicit overrides."""
    return SyncSettings(**overrides)
