"""
Probes for load balancers and operators.

    GET /api/v1/health        app name + status
    GET /api/v1/health/ready  200 while the process is up
    GET /api/v1/health/live   database round-trip, row counts, app flags
"""

import logging
import time

from flask import Blueprint, current_app, jsonify

from dwm.models import db

logger = logging.getLogger(__name__)

health_bp = Blueprint("health", __name__, url_prefix="/api/v1/health")

APP_NAME = "DWM Platform"

# Row counts reported by /live
_COUNTED_TABLES = (
    "role_tiers", "org_roles", "departments",
    "business_processes", "sop_records", "work_modules", "work_tasks",
)


def _check_database() -> dict:
    started = time.perf_counter()
    db.session.execute(db.text("SELECT 1"))
    latency_ms = round((time.perf_counter() - started) * 1000, 1)
    rows = {
        table: db.session.execute(db.text(f"SELECT COUNT(*) FROM {table}")).scalar()
        for table in _COUNTED_TABLES
    }
    return {"status": "ok", "latency_ms": latency_ms, "rows": rows}


@health_bp.route("", methods=["GET"])
def health():
    return jsonify({"status": "ok", "app": APP_NAME}), 200


@health_bp.route("/ready", methods=["GET"])
def ready():
    return jsonify({"status": "ok"}), 200


@health_bp.route("/live", methods=["GET"])
def live():
    """Report 503 / degraded when the database round-trip fails."""
    healthy = True
    try:
        database = _check_database()
    except Exception as exc:
        db.session.rollback()
        logger.error("Liveness probe: database check failed: %s", exc)
        database = {"status": "error", "detail": str(exc)}
        healthy = False

    checks = {
        "database": database,
        "app": {
            "name": APP_NAME,
            "debug": current_app.debug,
            "testing": current_app.testing,
            "seed_demo_data": bool(current_app.config.get("SEED_DEMO_DATA")),
        },
    }
    return jsonify({
        "status": "healthy" if healthy else "degraded",
        "checks": checks,
    }), 200 if healthy else 503
