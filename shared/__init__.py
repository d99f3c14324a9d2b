"""
Shared utilities for the dashboard sync layer.

This package aggregates common building blocks consumed by the sync core
and its adapters:

- config: Settings via pydantic-settings
- logging: Structured logging with session correlation
- metrics: Prometheus collectors for cache and write activity
- errors: Canonical error types and responses
- retry: Retry decorator for remote data-access functions
- circuit_breaker: Protection for remote data-access calls
- test_helpers: Test data factories, fake clock and controllable fetcher

Only test_helpers imports from dashboard_sync.
"""
