"""
Report period model - the year/month grid of the daily security report feed.
"""
from models.database import db


class ReportPeriod(db.Model):
    __tablename__ = 'ol_dsrsecauto'

    id = db.Column(db.Integer, primary_key=True)
    year = db.Column(db.Integer, nullable=False, index=True)
    month = db.Column(db.Integer, nullable=False)
    monthname = db.Column(db.String(20), nullable=False)
