"""
Dashboard Sync - client-side data synchronization for the practice dashboard.
"""
