"""
Resource bindings: the consumer-facing surface over the cache store.
"""

from .binding import ResourceBinding, bind_resource
from .collections import EntityCollection, ProjectCollection, is_temp_id, temp_id
from .dashboard import RESOURCE_FAMILIES, DashboardResources

__all__ = [
    "DashboardResources",
    "EntityCollection",
    "ProjectCollection",
    "RESOURCE_FAMILIES",
    "ResourceBinding",
    "bind_resource",
    "is_temp_id",
    "temp_id",
]
