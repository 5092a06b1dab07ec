"""
Health check blueprint.

Endpoints:
    GET /api/v1/health/ready   process is up (load balancer probe)
    GET /api/v1/health/live    dependency checks; 503 when the database is unreachable
"""

import logging
import time

import redis as redis_lib
from flask import Blueprint, current_app, jsonify
from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError

from assurance.models import db

logger = logging.getLogger(__name__)

health_bp = Blueprint("health", __name__, url_prefix="/api/v1/health")


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 1)


def _check_database() -> dict:
    start = time.perf_counter()
    try:
        db.session.execute(db.text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.error("Health check: database failed: %s", exc)
        db.session.rollback()
        return {"status": "error", "detail": str(exc)}
    return {"status": "ok", "latency_ms": _elapsed_ms(start)}


def _check_redis(redis_url: str) -> dict:
    if not redis_url.startswith("redis"):
        return {"status": "skipped", "detail": "no REDIS_URL configured"}
    start = time.perf_counter()
    try:
        redis_lib.from_url(redis_url, socket_timeout=2).ping()
    except RedisError as exc:
        logger.warning("Health check: redis unreachable: %s", exc)
        return {"status": "error", "detail": str(exc)}
    return {"status": "ok", "latency_ms": _elapsed_ms(start)}


@health_bp.route("/ready", methods=["GET"])
def ready():
    return jsonify({"status": "ok"}), 200


@health_bp.route("/live", methods=["GET"])
def live():
    """Database is required; redis only backs the rate limiter and never degrades health."""
    checks = {
        "database": _check_database(),
        "redis": _check_redis(current_app.config.get("REDIS_URL") or ""),
        "app": {
            "name": "Service Assurance Tracker",
            "debug": current_app.debug,
            "testing": current_app.testing,
        },
    }
    healthy = checks["database"]["status"] == "ok"
    return jsonify({
        "status": "healthy" if healthy else "degraded",
        "checks": checks,
    }), 200 if healthy else 503
