"""
Rate limiting configuration.

Applies per-blueprint rate limits using Flask-Limiter.
The Limiter instance is created in dwm/__init__.py with no default limits;
this module applies granular limits per route category.

Usage:
    from dwm.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

logger = logging.getLogger(__name__)

DEFAULT_AI_LIMIT = "10/minute"
DEFAULT_WRITE_LIMIT = "120/minute"


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits (per remote IP):
        - AI endpoints:        AI_RATE_LIMIT (default 10/minute; LLM calls are expensive)
        - Admin CRUD:          API_RATE_LIMIT (default 120/minute)
        - Health check:        exempt

    Rate limiting is disabled in testing mode or when RATELIMIT_ENABLED is off.
    """

    if app.config.get("TESTING") or not app.config.get("RATELIMIT_ENABLED", True):
        app.logger.info("Rate limiter disabled")
        return

    ai_limit = app.config.get("AI_RATE_LIMIT", DEFAULT_AI_LIMIT)
    write_limit = app.config.get("API_RATE_LIMIT", DEFAULT_WRITE_LIMIT)

    bp = app.blueprints.get("ai")
    if bp:
        limiter.limit(ai_limit)(bp)

    for bp_name in ("organization", "sop", "work_inventory", "workspace"):
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit(write_limit)(bp)

    bp = app.blueprints.get("health")
    if bp:
        limiter.exempt(bp)

    app.logger.info("Rate limiter configured: AI=%s, API=%s", ai_limit, write_limit)
