"""
Metrics and cache management endpoints.

Endpoints:
- GET    /metrics - {cache: stats, performance: stats, timestamp}
- GET    /cache   - cache statistics
- DELETE /cache   - clear the filter cache (used by the dashboard refresh)
"""

import time

from flask import jsonify, request

from routes.dashboard import dashboard_bp
from routes.dashboard._route_utils import (
    get_filter_cache,
    get_performance_monitor,
    route_logger,
)

logger = route_logger("metrics")


@dashboard_bp.route("/metrics", methods=["GET"])
def metrics():
    return jsonify({
        "cache": get_filter_cache().stats(),
        "performance": get_performance_monitor().stats(),
        "timestamp": int(time.time() * 1000),
    })


@dashboard_bp.route("/cache", methods=["GET", "DELETE"])
def dashboard_cache():
    """
    GET: Return cache statistics
    DELETE: Clear cache
    """
    cache = get_filter_cache()

    if request.method == 'DELETE':
        cache.clear()
        logger.info("filter_cache_cleared")
        return jsonify({"status": "cache cleared"})

    return jsonify(cache.stats())
