"""
Shared Flask-SQLAlchemy handle.

The app factory calls db.init_app(app); models and services import db from here.
"""
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
