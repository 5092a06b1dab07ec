"""
Service Assurance Tracker
Insights blueprint — delivery prioritisation.

Endpoints:
    GET /api/v1/insights/prioritisation
        ?standardThreshold=14   days without an assessment change before a delivery is stale
        &worseningDays=14       window in which a standard must have changed
        &historyDepth=5         status history length per worsening standard (1..50)
"""

import logging

from flask import Blueprint, current_app, jsonify

from assurance.blueprints import register_error_handlers
from assurance.services import insights_service
from assurance.utils.errors import E, api_error
from assurance.utils.helpers import query_int

logger = logging.getLogger(__name__)

insights_bp = register_error_handlers(Blueprint("insights", __name__, url_prefix="/api/v1"))


@insights_bp.route("/insights/prioritisation", methods=["GET"])
def prioritisation():
    cfg = current_app.config
    try:
        threshold = query_int("standardThreshold", cfg["INSIGHTS_STANDARD_THRESHOLD_DAYS"], "standard_threshold")
        worsening = query_int("worseningDays", cfg["INSIGHTS_WORSENING_DAYS"], "worsening_days")
        depth = query_int("historyDepth", cfg["INSIGHTS_HISTORY_DEPTH"], "history_depth")
    except ValueError:
        return api_error(E.VALIDATION_INVALID, "standardThreshold, worseningDays and historyDepth must be integers")

    if threshold < 0 or worsening < 0:
        return api_error(E.VALIDATION_INVALID, "standardThreshold and worseningDays must not be negative")
    depth = max(1, min(depth, insights_service.MAX_HISTORY_DEPTH))

    logger.info(
        "Prioritisation requested threshold=%d worsening=%d depth=%d", threshold, worsening, depth,
    )
    return jsonify(insights_service.prioritisation(threshold, worsening, depth))
