"""
WSGI / Flask-Migrate entry point.

Usage:
    flask --app wsgi db upgrade
    gunicorn wsgi:app

APP_ENV selects the configuration (development | testing | production).
"""

from readiness_gov import create_app

app = create_app()
