"""
Organization hierarchy models - vertical > business > site.

These map existing reporting tables; the dashboard only reads them.
Status columns hold 'ACTIVE' for rows that should appear in filters.
"""
from models.database import db

STATUS_ACTIVE = 'ACTIVE'


class AnalyticsGroup(db.Model):
    """Bucket (tenant) scope. level_name decides group vs per-user security."""
    __tablename__ = 'analytics_groups'

    analytics_group_id = db.Column(db.Integer, primary_key=True)
    analytics_group_level_name = db.Column(db.String(100), nullable=False)


class Vertical(db.Model):
    __tablename__ = 'vertical'

    vid = db.Column(db.Integer, primary_key=True)
    vname = db.Column(db.String(200), nullable=False, index=True)
    vstatus = db.Column(db.String(20), nullable=False, default=STATUS_ACTIVE)


class Business(db.Model):
    __tablename__ = 'business'

    buid = db.Column(db.Integer, primary_key=True)
    vid = db.Column(db.Integer, db.ForeignKey('vertical.vid'), nullable=False, index=True)
    buname = db.Column(db.String(200), nullable=False, index=True)
    bustatus = db.Column(db.String(20), nullable=False, default=STATUS_ACTIVE)


class Site(db.Model):
    __tablename__ = 'site'

    siid = db.Column(db.Integer, primary_key=True)
    buid = db.Column(db.Integer, db.ForeignKey('business.buid'), nullable=False, index=True)
    siname = db.Column(db.String(200), nullable=False, index=True)
    sistatus = db.Column(db.String(20), nullable=False, default=STATUS_ACTIVE)


class UserGroup(db.Model):
    """
    Per-user associations. Any of vid/buid/siid may be null on a row;
    each filter level reads only its own id column.
    """
    __tablename__ = 'usergroups'

    id = db.Column(db.Integer, primary_key=True)
    userid = db.Column(db.Integer, nullable=False, index=True)
    vid = db.Column(db.Integer)
    buid = db.Column(db.Integer)
    siid = db.Column(db.Integer)
