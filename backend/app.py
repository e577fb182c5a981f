"""
Flask Application Factory - Chairman Dashboard API

Serves the cascading filter option lists (vertical > business > site,
year > month) for the dashboard, backed by SQL queries and an in-memory
TTL cache.

The filter cache and performance monitor are created per app and stored on
app.extensions, so tests get isolated instances. The cache sweeper starts
with the app; a single interpreter-exit hook stops the sweeper and clears
the cache of every app still alive.
"""

import atexit
import logging
import os
import weakref
from typing import Any, Dict, Optional

from flask import Flask, jsonify
from flask_cors import CORS
from sqlalchemy import text

from config import Config
from models.database import db
from services.performance_monitor import PerformanceMonitor
from services.ttl_cache import TTLCache

logger = logging.getLogger(__name__)


def _configure_logging() -> None:
    level = os.getenv('LOG_LEVEL', 'INFO').upper()
    logging.basicConfig(
        level=level,
        format='%(asctime)s %(levelname)s %(name)s %(message)s',
    )


# Caches with a running sweeper; one atexit hook closes whatever is still alive
_live_caches: "weakref.WeakSet[TTLCache]" = weakref.WeakSet()


def _close_live_caches() -> None:
    for cache in list(_live_caches):
        cache.close()


atexit.register(_close_live_caches)


def _init_filter_cache(app: Flask) -> TTLCache:
    cache = TTLCache(
        max_size=app.config['CACHE_MAX_SIZE'],
        default_ttl_ms=app.config['CACHE_DEFAULT_TTL_MS'],
        name='filter-cache',
    )
    if app.config.get('CACHE_SWEEPER_ENABLED', True):
        cache.start_sweeper(app.config['CACHE_SWEEP_INTERVAL_SECONDS'])
        _live_caches.add(cache)

    app.extensions['filter_cache'] = cache
    app.extensions['performance_monitor'] = PerformanceMonitor()
    return cache


def create_app(config_overrides: Optional[Dict[str, Any]] = None) -> Flask:
    _configure_logging()

    app = Flask(__name__)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    CORS(app,
         resources={r"/api/*": {"origins": app.config.get('CORS_ORIGINS', '*')}},
         methods=["GET", "POST", "DELETE", "OPTIONS"],
         allow_headers=["Content-Type", "X-Request-ID", "X-No-Compression"],
         expose_headers=["X-Request-ID", "X-DB-Time-Ms", "X-Query-Count"])

    # === MIDDLEWARE ===
    from api.middleware import (
        setup_cache_headers_middleware,
        setup_compression_middleware,
        setup_error_handlers,
        setup_query_timing_middleware,
        setup_request_id_middleware,
        setup_request_logging_middleware,
    )
    # Registered first so it runs after every other after_request hook
    setup_compression_middleware(app)
    setup_request_id_middleware(app)
    setup_query_timing_middleware(app)
    setup_request_logging_middleware(app)
    setup_cache_headers_middleware(app)
    setup_error_handlers(app)

    db.init_app(app)
    _init_filter_cache(app)

    # Register models with the metadata (tables are mapped, not migrated)
    import models  # noqa: F401

    from routes.dashboard import dashboard_bp
    app.register_blueprint(dashboard_bp, url_prefix='/api/dashboard')

    @app.route("/api/ping", methods=["GET"])
    def ping():
        return jsonify({"ok": True})

    @app.route("/api/health", methods=["GET"])
    def health():
        try:
            db.session.execute(text("SELECT 1"))
            db_ok = True
        except Exception as e:
            logger.warning("health_check_db_failed err=%s", e)
            db_ok = False
        body = {
            "status": "healthy" if db_ok else "unhealthy",
            "database": "connected" if db_ok else "disconnected",
        }
        return jsonify(body), (200 if db_ok else 503)

    logger.info("app_created cache_max_size=%s", app.config['CACHE_MAX_SIZE'])
    return app


def run_app():
    """Main entry point for local development - starts Flask's dev server."""
    app = create_app()
    port = int(os.getenv('PORT', '5000'))
    app.run(debug=app.config.get('DEBUG', False), host="0.0.0.0", port=port)


if __name__ == "__main__":
    run_app()
