"""
Query timing middleware - Lightweight SQL timing for observability.

Captures:
- Query execution time (db_time_ms)
- Query count per request
- Correlates with request_id

Log format:
    SLOW_QUERY request_id=<uuid> elapsed_ms=<float> stmt=<first 80 chars>
"""

import logging
import time
from threading import local

from flask import Flask
from sqlalchemy import event
from sqlalchemy.engine import Engine

from api.middleware.request_id import get_request_id

logger = logging.getLogger('query_timing')

# Thread-local storage for query timing (safe for concurrent requests)
_timing = local()

SLOW_QUERY_THRESHOLD_MS = 500


def _before_execute(conn, cursor, statement, parameters, context, executemany):
    context._query_start_time = time.perf_counter()


def _after_execute(conn, cursor, statement, parameters, context, executemany):
    start_time = getattr(context, '_query_start_time', None)
    if start_time is None:
        return

    elapsed_ms = (time.perf_counter() - start_time) * 1000

    if not hasattr(_timing, 'queries'):
        _timing.queries = []
    _timing.queries.append(round(elapsed_ms, 2))

    if elapsed_ms > SLOW_QUERY_THRESHOLD_MS:
        stmt = ' '.join((statement or '').split())
        stmt_preview = (stmt[:80] + '...') if len(stmt) > 80 else stmt
        logger.warning(
            "SLOW_QUERY request_id=%s elapsed_ms=%.2f stmt=%s",
            get_request_id(), elapsed_ms, stmt_preview,
        )


def _register_engine_listeners() -> None:
    # Listeners are process-wide; several apps (tests) must not stack them
    if not event.contains(Engine, "before_cursor_execute", _before_execute):
        event.listen(Engine, "before_cursor_execute", _before_execute)
    if not event.contains(Engine, "after_cursor_execute", _after_execute):
        event.listen(Engine, "after_cursor_execute", _after_execute)


def setup_query_timing_middleware(app: Flask) -> None:
    """
    Hook SQLAlchemy engine events to time all queries and add
    X-DB-Time-Ms / X-Query-Count headers to responses that ran SQL.
    """
    _register_engine_listeners()

    @app.before_request
    def reset_query_timing():
        _timing.queries = []

    @app.after_request
    def inject_timing_headers(response):
        queries = getattr(_timing, 'queries', [])
        if not queries:
            return response

        response.headers['X-DB-Time-Ms'] = str(round(sum(queries), 2))
        response.headers['X-Query-Count'] = str(len(queries))
        return response


def get_request_timing() -> dict:
    """Timing data for the current request."""
    queries = getattr(_timing, 'queries', [])
    return {
        'total_db_ms': round(sum(queries), 2),
        'query_count': len(queries),
    }
