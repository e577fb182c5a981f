"""
Request logging middleware - one line per API call.

Filter endpoints attach what they served (see note_filter_request), so the
line tells whether an option list came from cache, how many rows it had and
whether the caller still uses a legacy getXxx alias:

    dashboard_request route=filters/business method=POST status=200
        duration_ms=3.21 cached=true rows=2 legacy_alias=false request_id=...

Other /api paths log with route=<path> and cached=- rows=-.

Config (app.config, from env in config.py):
  - REQUEST_LOG_ENABLED (default: true)
  - REQUEST_LOG_SAMPLE_RATE (default: 1.0)
  - REQUEST_LOG_ENDPOINTS (comma-separated path prefixes; when set, only
    these are logged)

5xx responses bypass sampling and log at WARNING.
"""

import logging
import random
import time
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple

from flask import Flask, g, request

logger = logging.getLogger("dashboard.request")

API_PREFIX = "/api"


@dataclass(frozen=True)
class RequestLogPolicy:
    enabled: bool = True
    sample_rate: float = 1.0
    watchlist: Tuple[str, ...] = ()

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "RequestLogPolicy":
        raw = config.get("REQUEST_LOG_ENDPOINTS") or ()
        if isinstance(raw, str):
            raw = raw.split(",")
        try:
            sample_rate = float(config.get("REQUEST_LOG_SAMPLE_RATE", 1.0))
        except (TypeError, ValueError):
            sample_rate = 1.0
        return cls(
            enabled=bool(config.get("REQUEST_LOG_ENABLED", True)),
            sample_rate=sample_rate,
            watchlist=tuple(p.strip() for p in raw if p.strip()),
        )

    def wants(self, path: str, status: int) -> bool:
        if status >= 500:
            return True
        if self.watchlist:
            return path.startswith(self.watchlist)
        return self.sample_rate >= 1 or random.random() < self.sample_rate


def note_filter_request(route: str, rows: Optional[int] = None, cached: Optional[bool] = None) -> None:
    """Record the filter route (and, once served, its outcome) for the log line."""
    g.filter_route = route
    g.filter_rows = rows
    g.filter_cached = cached


def _flag(value: Optional[bool]) -> str:
    if value is None:
        return "-"
    return "true" if value else "false"


def setup_request_logging_middleware(app: Flask) -> RequestLogPolicy:
    policy = RequestLogPolicy.from_config(app.config)
    if not policy.enabled:
        return policy

    @app.before_request
    def start_request_clock():
        g.request_start = time.perf_counter()

    @app.after_request
    def log_dashboard_request(response):
        path = request.path
        status = response.status_code
        if not path.startswith(API_PREFIX) or not policy.wants(path, status):
            return response

        start = getattr(g, "request_start", None)
        duration_ms = None if start is None else round((time.perf_counter() - start) * 1000, 2)
        route = getattr(g, "filter_route", None)
        rows = getattr(g, "filter_rows", None)

        logger.log(
            logging.WARNING if status >= 500 else logging.INFO,
            "dashboard_request route=%s method=%s status=%s duration_ms=%s "
            "cached=%s rows=%s legacy_alias=%s request_id=%s",
            route or path,
            request.method,
            status,
            duration_ms,
            _flag(getattr(g, "filter_cached", None)),
            "-" if rows is None else rows,
            _flag(None if route is None else not path.endswith(route)),
            getattr(g, "request_id", None),
        )
        return response

    return policy
