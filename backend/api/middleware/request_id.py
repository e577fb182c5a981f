"""
Request ID middleware - Inject X-Request-ID for request correlation.

Client-supplied IDs are accepted (truncated) so a dashboard session can
correlate its own retries with server logs.
"""

import uuid
from flask import Flask, request, g

REQUEST_ID_HEADER = 'X-Request-ID'
MAX_REQUEST_ID_LENGTH = 64


def setup_request_id_middleware(app: Flask) -> None:
    """
    Set up request ID middleware on Flask app.

    Injects X-Request-ID into:
    - Flask's g object (g.request_id)
    - Response headers (X-Request-ID)
    """

    @app.before_request
    def inject_request_id():
        incoming = (request.headers.get(REQUEST_ID_HEADER) or '').strip()
        g.request_id = incoming[:MAX_REQUEST_ID_LENGTH] or str(uuid.uuid4())

    @app.after_request
    def add_request_id_header(response):
        if hasattr(g, 'request_id'):
            response.headers[REQUEST_ID_HEADER] = g.request_id
        return response


def get_request_id() -> str:
    """Current request ID, or 'no-request-id' outside a request."""
    return getattr(g, 'request_id', None) or 'no-request-id'
