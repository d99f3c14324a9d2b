"""
Data-access adapters supplying fetchers and remote writes to the resources.
"""

from .base import DashboardDataSource
from .data_api_client import DataApiClient
from .in_memory import InMemoryDataSource

__all__ = ["DashboardDataSource", "DataApiClient", "InMemoryDataSource"]
