"""
Rate limiting configuration.

Applies per-blueprint rate limits using Flask-Limiter.
The Limiter instance is created in ogsm_manager/__init__.py with no default
limits; this module applies limits per route category.

Usage:
    from ogsm_manager.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

logger = logging.getLogger(__name__)

WRITE_LIMIT = "60/minute"

# Blueprints whose routes mutate the hierarchy
_WRITE_BLUEPRINTS = ("ogsm", "ogsm_templates")


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints (per remote IP).

        - OGSM + template endpoints: 60/minute
        - Health check:              exempt

    Rate limiting is disabled in testing mode.
    """
    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    for bp_name in _WRITE_BLUEPRINTS:
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit(WRITE_LIMIT)(bp)

    bp = app.blueprints.get("health")
    if bp:
        limiter.exempt(bp)

    app.logger.info("Rate limiter configured — ogsm/templates: %s, health: exempt", WRITE_LIMIT)
