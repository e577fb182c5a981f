"""
Filter Option Endpoints

Each endpoint returns {"data": [...], "cached": bool}.

Endpoints:
- POST /filters/vertical   {bucketId, userId}
- POST /filters/business   {bucketId, userId, vertical}
- POST /filters/site       {bucketId, userId, business}
- GET  /filters/years
- POST /filters/months     {year}

The getVertical/getBusiness/getSite/getYearsFromSecAuto/getMonthFromSecAuto
paths are kept as aliases for older dashboard pages.

Errors:
- 400 {"error": "Validation error", "details": {...}} - non-numeric ids/year
- 404 {"error": "No matching <VID|BUID|SIID> found"} - user has no scope ids
- 500 {"error": "Internal server error"} - anything else
"""

import time
from typing import Callable, Optional, Type

from flask import jsonify, request
from pydantic import ValidationError

from api.contracts.filters import (
    BusinessParams,
    MonthParams,
    SiteParams,
    VerticalParams,
    parse_params,
    validation_details,
)
from api.middleware.error_envelope import INTERNAL_ERROR_MESSAGE, make_error_response
from api.middleware.request_logging import note_filter_request
from routes.dashboard import dashboard_bp
from routes.dashboard._route_utils import (
    get_filter_service,
    get_performance_monitor,
    log_error,
    log_success,
    route_logger,
)
from services.filter_service import NotFoundError

logger = route_logger("filters")


def _respond(route: str, fetch: Callable, params_model: Optional[Type] = None):
    start = time.perf_counter()
    monitor = get_performance_monitor()
    monitor.record_api_call()
    note_filter_request(route)

    params = None
    if params_model is not None:
        try:
            params = parse_params(params_model, request.get_json(silent=True))
        except ValidationError as e:
            logger.warning("route_validation_error route=%s details=%s", route, validation_details(e))
            return make_error_response("Validation error", 400, details=validation_details(e))

    try:
        rows, cached = fetch(get_filter_service(), params)
    except NotFoundError as e:
        logger.info("route_not_found route=%s reason=%s", route, e)
        return make_error_response(str(e), 404)
    except Exception as e:
        monitor.record_error()
        log_error(logger, route, start, e)
        return make_error_response(INTERNAL_ERROR_MESSAGE, 500)

    note_filter_request(route, len(rows), cached)
    log_success(logger, route, start, {"rows": len(rows), "cached": cached})
    return jsonify({"data": rows, "cached": cached})


@dashboard_bp.route("/filters/vertical", methods=["POST"])
@dashboard_bp.route("/getVertical", methods=["POST"])
def filter_vertical():
    """Active verticals visible to the caller, A-Z."""
    return _respond(
        "filters/vertical",
        lambda svc, p: svc.verticals(p.bucket_id, p.user_id),
        VerticalParams,
    )


@dashboard_bp.route("/filters/business", methods=["POST"])
@dashboard_bp.route("/getBusiness", methods=["POST"])
def filter_business():
    """Active businesses under a vertical ("All" = every vertical), A-Z."""
    return _respond(
        "filters/business",
        lambda svc, p: svc.businesses(p.bucket_id, p.user_id, p.vertical),
        BusinessParams,
    )


@dashboard_bp.route("/filters/site", methods=["POST"])
@dashboard_bp.route("/getSite", methods=["POST"])
def filter_site():
    """Active sites under a business ("All" = every business), A-Z."""
    return _respond(
        "filters/site",
        lambda svc, p: svc.sites(p.bucket_id, p.user_id, p.business),
        SiteParams,
    )


@dashboard_bp.route("/filters/years", methods=["GET"])
@dashboard_bp.route("/getYearsFromSecAuto", methods=["GET"])
def filter_years():
    """Report years, most recent first."""
    return _respond("filters/years", lambda svc, p: svc.years())


@dashboard_bp.route("/filters/months", methods=["POST"])
@dashboard_bp.route("/getMonthFromSecAuto", methods=["POST"])
def filter_months():
    """Months reported for a year, most recent first."""
    return _respond(
        "filters/months",
        lambda svc, p: svc.months(p.year),
        MonthParams,
    )
