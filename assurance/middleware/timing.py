"""
Request timing middleware.

Every response carries X-Request-ID (propagated from the caller when sent)
and X-Request-Duration-Ms. One access-log record is written per request:
WARNING when slower than SLOW_THRESHOLD_MS, ERROR for 5xx, DEBUG otherwise.
Health probes are not logged.
"""

import logging
import time
import uuid

from flask import Flask, g, request

logger = logging.getLogger(__name__)

_SKIP_LOG = frozenset({"/api/v1/health/live", "/api/v1/health/ready"})

SLOW_THRESHOLD_MS = 1000


def _new_request_id() -> str:
    return uuid.uuid4().hex[:12]


def _access_log_level(status: int, duration_ms: float) -> tuple[int, str]:
    if duration_ms > SLOW_THRESHOLD_MS:
        return logging.WARNING, "Slow request"
    if status >= 500:
        return logging.ERROR, "Server error"
    return logging.DEBUG, "Request"


def init_request_timing(app: Flask):
    """Register the before/after hooks on *app*."""

    @app.before_request
    def _start_timer():
        g.request_start = time.perf_counter()
        g.request_id = request.headers.get("X-Request-ID") or _new_request_id()

    @app.after_request
    def _stamp_and_log(response):
        start = getattr(g, "request_start", None)
        if start is None:
            return response

        duration_ms = (time.perf_counter() - start) * 1000
        response.headers["X-Request-ID"] = g.request_id
        response.headers["X-Request-Duration-Ms"] = f"{duration_ms:.1f}"

        if request.path in _SKIP_LOG:
            return response

        level, label = _access_log_level(response.status_code, duration_ms)
        logger.log(
            level, "%s: %s %s %d (%.0fms)",
            label, request.method, request.path, response.status_code, duration_ms,
            extra={
                "method": request.method,
                "path": request.path,
                "status": response.status_code,
                "duration_ms": duration_ms,
                "remote_addr": request.remote_addr,
            },
        )
        return response
