"""
Cache-Control middleware for dashboard endpoints.

Filter option lists change rarely, so browsers and proxies may reuse them
for a few minutes. Applies to every response under DASHBOARD_PATH_PREFIX.
"""

from flask import Flask, request

DASHBOARD_PATH_PREFIX = '/api/dashboard'
DEFAULT_CACHE_CONTROL = 'public, max-age=300'


def setup_cache_headers_middleware(app: Flask, prefix: str = DASHBOARD_PATH_PREFIX) -> None:

    @app.after_request
    def add_dashboard_cache_control(response):
        if request.path.startswith(prefix):
            response.headers['Cache-Control'] = app.config.get(
                'DASHBOARD_CACHE_CONTROL', DEFAULT_CACHE_CONTROL
            )
        return response
