"""
Optimistic writes with reconciliation and rollback.
"""

from .coordinator import OptimisticUpdater, UpdateAttempt, UpdateState, replace_value

__all__ = ["OptimisticUpdater", "UpdateAttempt", "UpdateState", "replace_value"]
