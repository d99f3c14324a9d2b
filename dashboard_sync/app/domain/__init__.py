"""
Dashboard domain: entity models and the aggregates computed from them.
"""

from .models import (
    Client,
    ClientStats,
    Entity,
    MonthlyRevenue,
    PaginatedResponse,
    Project,
    ProjectStats,
    RevenueByType,
    RevenueEntry,
    RevenueStats,
)

__all__ = [
    "Client",
    "ClientStats",
    "Entity",
    "MonthlyRevenue",
    "PaginatedResponse",
    "Project",
    "ProjectStats",
    "RevenueByType",
    "RevenueEntry",
    "RevenueStats",
]
