"""
DWM Platform
Flask Application Factory.

Usage:
    from dwm import create_app
    app = create_app()           # defaults to "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

from flask import Flask
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from sqlalchemy import event as _sa_event, engine as _sa_engine

from dwm.config import config
from dwm.models import db
from dwm.middleware.logging_config import configure_logging
from dwm.middleware.rate_limiter import init_rate_limits
from dwm.middleware.timing import init_request_timing
from dwm.utils.errors import register_error_handlers

logger = logging.getLogger(__name__)


# ── SQLite FK enforcement (global engine event) ─────────────────────────
@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """Enable foreign key enforcement for SQLite connections."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],                     # per-blueprint limits only
)


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__)
    # Instantiate so ProductionConfig can refuse a missing SECRET_KEY
    app.config.from_object(config[config_name]())

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    else:
        CORS(app)

    # ── Request timing middleware ────────────────────────────────────────
    init_request_timing(app)

    # ── Import all models so create_all() sees every table ──────────────
    from dwm.models import organization as _organization_models  # noqa: F401
    from dwm.models import sop as _sop_models                    # noqa: F401
    from dwm.models import work_inventory as _work_inventory_models  # noqa: F401

    # ── Schema + reference data (in-memory DB starts empty every run) ───
    from dwm.services.seed_service import ensure_default_tiers, seed_demo_data

    with app.app_context():
        db.create_all()
        ensure_default_tiers()
        if app.config.get("SEED_DEMO_DATA"):
            counts = seed_demo_data()
            app.logger.info("Demo data loaded: %s", counts)

    # ── Blueprints ───────────────────────────────────────────────────────
    from dwm.blueprints.ai_bp import ai_bp
    from dwm.blueprints.health_bp import health_bp
    from dwm.blueprints.organization_bp import organization_bp
    from dwm.blueprints.sop_bp import sop_bp
    from dwm.blueprints.work_inventory_bp import work_inventory_bp
    from dwm.blueprints.workspace_bp import workspace_bp

    app.register_blueprint(organization_bp)
    app.register_blueprint(sop_bp)
    app.register_blueprint(work_inventory_bp)
    app.register_blueprint(workspace_bp)
    app.register_blueprint(ai_bp)
    app.register_blueprint(health_bp)

    # ── Error handlers ───────────────────────────────────────────────────
    register_error_handlers(app)

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    return app
