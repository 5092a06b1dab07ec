"""
Rate limiting configuration.

Applies per-blueprint rate limits using Flask-Limiter.
The Limiter instance is created in assurance/__init__.py with no default
limits; this module applies granular limits per route category.

Usage:
    from assurance.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

logger = logging.getLogger(__name__)

WRITE_LIMIT = "60/minute"
READ_LIMIT = "200/minute"
INSIGHTS_LIMIT = "30/minute"


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits (per remote IP):
        - Insights:                30/minute  (full ledger scan per call)
        - Projects / assessments:  60/minute
        - Definitions:             200/minute
        - Health check:            exempt

    Rate limiting is disabled in testing mode or when RATELIMIT_ENABLED is false.
    """

    if app.config.get("TESTING") or not app.config.get("RATELIMIT_ENABLED", True):
        app.logger.info("Rate limiter disabled")
        return

    bp = app.blueprints.get("insights")
    if bp:
        limiter.limit(INSIGHTS_LIMIT)(bp)

    for bp_name in ("projects", "assessments"):
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit(WRITE_LIMIT)(bp)

    bp = app.blueprints.get("definitions")
    if bp:
        limiter.limit(READ_LIMIT)(bp)

    bp = app.blueprints.get("health")
    if bp:
        limiter.exempt(bp)

    app.logger.info(
        "Rate limiter configured: insights %s, projects/assessments %s, definitions %s",
        INSIGHTS_LIMIT, WRITE_LIMIT, READ_LIMIT,
    )
