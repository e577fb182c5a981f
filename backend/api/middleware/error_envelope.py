"""
Error envelope middleware - Standardize all error responses.

The dashboard client reads a flat envelope:
{
    "error": "Internal server error"
}

Route handlers already convert their own failures; these handlers catch
whatever escapes (unknown routes, wrong methods, bugs) so nothing reaches
the transport layer as an HTML error page.
"""

import logging
from flask import Flask, jsonify, g
from werkzeug.exceptions import HTTPException


logger = logging.getLogger('api.middleware.error')

INTERNAL_ERROR_MESSAGE = "Internal server error"


def setup_error_handlers(app: Flask) -> None:
    """
    Set up standardized error handlers on Flask app.

    Handles:
    - HTTP exceptions (400, 404, 405, etc.) - status code preserved
    - Unhandled Python exceptions - converted to 500

    Args:
        app: Flask application instance
    """

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        """Handle Flask/Werkzeug HTTP exceptions."""
        return make_error_response(error.description or error.name, error.code)

    @app.errorhandler(Exception)
    def handle_generic_error(error):
        """Handle unhandled Python exceptions."""
        request_id = getattr(g, 'request_id', None)

        logger.exception(
            "unhandled_error request_id=%s error_type=%s err=%s",
            request_id, type(error).__name__, error,
        )

        return make_error_response(INTERNAL_ERROR_MESSAGE, 500)


def make_error_response(message: str, status_code: int, details: dict = None):
    """
    Create a flat error response.

    Args:
        message: Human-readable error message
        status_code: HTTP status code
        details: Optional field-level details (validation errors)

    Returns:
        Tuple of (response, status_code)
    """
    body = {"error": message}
    if details:
        body["details"] = details

    response = jsonify(body)
    request_id = getattr(g, 'request_id', None)
    if request_id:
        response.headers['X-Request-ID'] = request_id

    return response, status_code
