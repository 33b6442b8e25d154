"""
Request timing middleware.

Every response carries X-Request-Duration-Ms and X-Request-ID. A caller-sent
X-Request-ID is echoed back; otherwise a 12-char id is generated. The id sits
on flask.g so log records emitted while serving the request carry it too.

One access line per request: WARNING when slower than SLOW_REQUEST_MS,
ERROR on 5xx, DEBUG otherwise. Health probes are not logged.
"""

import logging
import time
import uuid

from flask import Flask, g, request

logger = logging.getLogger(__name__)

_UNLOGGED_PREFIX = "/api/v1/health"
DEFAULT_SLOW_REQUEST_MS = 1000


def _new_request_id() -> str:
    return uuid.uuid4().hex[:12]


def _access_level(status_code: int, duration_ms: float, slow_ms: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if duration_ms > slow_ms:
        return logging.WARNING
    return logging.DEBUG


def init_request_timing(app: Flask):
    """Register the before/after request hooks."""
    slow_ms = app.config.get("SLOW_REQUEST_MS", DEFAULT_SLOW_REQUEST_MS)

    @app.before_request
    def _start_timer():
        g.request_start = time.perf_counter()
        g.request_id = request.headers.get("X-Request-ID") or _new_request_id()

    @app.after_request
    def _stamp_response(response):
        started = getattr(g, "request_start", None)
        if started is None:
            return response

        elapsed_ms = (time.perf_counter() - started) * 1000
        response.headers["X-Request-Duration-Ms"] = f"{elapsed_ms:.1f}"
        response.headers["X-Request-ID"] = g.request_id

        if request.path.startswith(_UNLOGGED_PREFIX):
            return response

        level = _access_level(response.status_code, elapsed_ms, slow_ms)
        logger.log(
            level,
            "%s %s -> %d in %.0fms%s",
            request.method, request.path, response.status_code, elapsed_ms,
            " (slow)" if elapsed_ms > slow_ms else "",
            extra={
                "method": request.method,
                "path": request.path,
                "status": response.status_code,
                "duration_ms": round(elapsed_ms, 1),
                "remote_addr": request.remote_addr,
                "request_id": g.request_id,
            },
        )
        return response
