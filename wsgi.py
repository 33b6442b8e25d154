"""
WSGI entry point.

Usage:
    flask --app wsgi run
    gunicorn wsgi:app

APP_ENV picks the config class (development by default).
"""

from dwm import create_app

app = create_app()
