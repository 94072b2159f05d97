"""
SQLAlchemy handle shared by every model module.

Usage:
    from readiness_gov.models import db
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
