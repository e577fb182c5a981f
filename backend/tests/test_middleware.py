"""
Error envelope, request id and cache header middleware on a bare Flask app.
"""

import logging

import pytest
from flask import Flask, abort, jsonify

from api.middleware.cache_headers import setup_cache_headers_middleware
from api.middleware.error_envelope import make_error_response, setup_error_handlers
from api.middleware.request_id import (
    MAX_REQUEST_ID_LENGTH,
    get_request_id,
    setup_request_id_middleware,
)


@pytest.fixture
def bare_app():
    app = Flask(__name__)
    app.config["TESTING"] = True
    app.config["DASHBOARD_CACHE_CONTROL"] = "public, max-age=60"

    @app.route("/api/dashboard/ok")
    def ok():
        return jsonify({"request_id": get_request_id()})

    @app.route("/api/dashboard/crash")
    def crash():
        raise RuntimeError("secret connection string")

    @app.route("/api/dashboard/forbidden")
    def forbidden():
        abort(403)

    @app.route("/api/dashboard/invalid")
    def invalid():
        return make_error_response("Validation error", 400, details={"year": "bad"})

    setup_request_id_middleware(app)
    setup_cache_headers_middleware(app)
    setup_error_handlers(app)
    return app


def test_unhandled_exception_is_flat_500_without_internals(bare_app, caplog):
    client = bare_app.test_client()

    with caplog.at_level(logging.ERROR, logger="api.middleware.error"):
        response = client.get("/api/dashboard/crash")

    assert response.status_code == 500
    assert response.get_json() == {"error": "Internal server error"}
    assert "secret" not in response.get_data(as_text=True)
    assert response.headers["X-Request-ID"]
    assert any("unhandled_error" in r.getMessage() for r in caplog.records)


def test_http_exception_keeps_status(bare_app):
    response = bare_app.test_client().get("/api/dashboard/forbidden")
    assert response.status_code == 403
    assert set(response.get_json()) == {"error"}


def test_error_details_included(bare_app):
    response = bare_app.test_client().get("/api/dashboard/invalid")
    assert response.status_code == 400
    assert response.get_json() == {"error": "Validation error", "details": {"year": "bad"}}


def test_request_id_generated_when_absent(bare_app):
    response = bare_app.test_client().get("/api/dashboard/ok")
    rid = response.headers["X-Request-ID"]
    assert len(rid) == 36
    assert response.get_json()["request_id"] == rid


def test_request_id_truncated(bare_app):
    response = bare_app.test_client().get("/api/dashboard/ok", headers={"X-Request-ID": "x" * 200})
    assert response.headers["X-Request-ID"] == "x" * MAX_REQUEST_ID_LENGTH


def test_get_request_id_outside_request(bare_app):
    with bare_app.app_context():
        assert get_request_id() == "no-request-id"


def test_cache_control_from_config(bare_app):
    response = bare_app.test_client().get("/api/dashboard/ok")
    assert response.headers["Cache-Control"] == "public, max-age=60"
