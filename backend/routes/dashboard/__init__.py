"""
Dashboard API Routes

- filters.py: cascading filter option endpoints (vertical, business, site,
  years, months) plus the legacy getXxx aliases
- metrics.py: cache/performance metrics and cache management

All modules share the same blueprint (dashboard_bp) registered at /api/dashboard.
"""

from flask import Blueprint

dashboard_bp = Blueprint('dashboard', __name__)

# Import route modules to register their routes with the blueprint
from routes.dashboard import filters  # noqa: E402,F401
from routes.dashboard import metrics  # noqa: E402,F401
