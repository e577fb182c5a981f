"""
Global middleware for API requests.

Provides:
- Request ID injection (X-Request-ID)
- Error envelope standardization
- Query timing instrumentation (X-DB-Time-Ms, X-Query-Count)
- Request logging with filter outcome (sampling + watchlist)
- Cache-Control headers for dashboard endpoints
- gzip compression of JSON responses (Flask-Compress)
"""

from .request_id import setup_request_id_middleware
from .error_envelope import setup_error_handlers
from .query_timing import setup_query_timing_middleware
from .request_logging import setup_request_logging_middleware
from .cache_headers import setup_cache_headers_middleware
from .compression import setup_compression_middleware

__all__ = [
    'setup_request_id_middleware',
    'setup_error_handlers',
    'setup_query_timing_middleware',
    'setup_request_logging_middleware',
    'setup_cache_headers_middleware',
    'setup_compression_middleware',
]
