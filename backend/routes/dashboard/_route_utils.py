"""
Shared route utilities for dashboard endpoints.

Keeps handlers small: structured success/error logging and access to the
per-app cache, monitor and filter service.
"""

import time
import logging
from typing import Any, Dict, Optional

from flask import current_app

from models.database import db
from services.filter_service import FilterService
from services.performance_monitor import PerformanceMonitor
from services.ttl_cache import TTLCache

FILTER_CACHE_EXTENSION = 'filter_cache'
PERFORMANCE_MONITOR_EXTENSION = 'performance_monitor'


def route_logger(name: str) -> logging.Logger:
    """Return namespaced logger for dashboard routes."""
    return logging.getLogger(f"dashboard.{name}")


def elapsed_ms(start_time: float) -> int:
    """Milliseconds since a time.perf_counter() start value."""
    return int((time.perf_counter() - start_time) * 1000)


def log_success(
    logger: logging.Logger,
    route: str,
    start_time: float,
    details: Optional[Dict[str, Any]] = None,
) -> None:
    payload = {"route": route, "elapsed_ms": elapsed_ms(start_time)}
    if details:
        payload.update(details)
    logger.info("route_success %s", payload)


def log_error(
    logger: logging.Logger,
    route: str,
    start_time: float,
    err: Exception,
    details: Optional[Dict[str, Any]] = None,
) -> None:
    payload = {"route": route, "elapsed_ms": elapsed_ms(start_time)}
    if details:
        payload.update(details)
    logger.exception("route_error %s err=%s", payload, err)


def get_filter_cache() -> TTLCache:
    return current_app.extensions[FILTER_CACHE_EXTENSION]


def get_performance_monitor() -> PerformanceMonitor:
    return current_app.extensions[PERFORMANCE_MONITOR_EXTENSION]


def get_filter_service() -> FilterService:
    return FilterService(
        db,
        get_filter_cache(),
        monitor=get_performance_monitor(),
        group_security_level=current_app.config.get('GROUP_SECURITY_LEVEL', 'GROUP SECURITY'),
    )
