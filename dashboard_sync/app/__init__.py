"""
Dashboard sync application package.
"""

from .session import DashboardSession

__all__ = ["DashboardSession"]
