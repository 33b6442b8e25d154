"""
DWM Platform
Shared SQLAlchemy handle.

Every model module imports ``db`` from here; ``create_app`` binds it to the
in-memory SQLite engine configured in ``dwm.config``.
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
