"""
Dashboard client - Python side of the chairman dashboard filters.

- api.py: DashboardAPI, retrying HTTP client for /api/dashboard
- cache.py: ClientCache, TTL cache with optional JSON file persistence
- filter_state.py: FilterStateCoordinator, debounced cascading filters
"""

from dashboard_client.api import ApiError, ApiResponse, DashboardAPI
from dashboard_client.cache import ClientCache
from dashboard_client.filter_state import (
    FilterOptionSet,
    FilterState,
    FilterStateCoordinator,
    LevelStatus,
)

__all__ = [
    'ApiError',
    'ApiResponse',
    'ClientCache',
    'DashboardAPI',
    'FilterOptionSet',
    'FilterState',
    'FilterStateCoordinator',
    'LevelStatus',
]
