"""
Models package - SQLAlchemy models
"""
from models.database import db
from models.organization import AnalyticsGroup, Vertical, Business, Site, UserGroup, STATUS_ACTIVE
from models.report_period import ReportPeriod

__all__ = [
    'db',
    'AnalyticsGroup',
    'Vertical',
    'Business',
    'Site',
    'UserGroup',
    'ReportPeriod',
    'STATUS_ACTIVE',
]
