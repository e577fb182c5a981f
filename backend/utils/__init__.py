"""
Utility modules for the backend and the dashboard client.
"""
from .cache_key import (
    ALL_LEVELS,
    FilterCacheKey,
    business_key,
    months_key,
    site_key,
    vertical_key,
    years_key,
)
from .debounce import debounce, throttle
from .retry import retry_with_backoff

__all__ = [
    'ALL_LEVELS',
    'FilterCacheKey',
    'business_key',
    'months_key',
    'site_key',
    'vertical_key',
    'years_key',
    'debounce',
    'throttle',
    'retry_with_backoff',
]
