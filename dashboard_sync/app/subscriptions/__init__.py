"""
Change notification for cache entries.
"""

from .manager import Subscriber, Subscription, SubscriptionManager

__all__ = ["Subscriber", "Subscription", "SubscriptionManager"]
