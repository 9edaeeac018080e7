"""
Health check blueprint.

Endpoints:
    GET /api/v1/health        — alias of /ready
    GET /api/v1/health/ready  — simple 200 for load balancers
    GET /api/v1/health/live   — database connectivity and table counts
"""

import logging
import time

from flask import Blueprint, current_app, jsonify

from ogsm_manager.models import db

logger = logging.getLogger(__name__)

health_bp = Blueprint("health", __name__, url_prefix="/api/v1/health")

_TABLES = ("ogsm_components", "ogsm_templates")


@health_bp.route("", methods=["GET"])
@health_bp.route("/ready", methods=["GET"])
def ready():
    """Simple readiness probe — always 200 if app is running."""
    return jsonify({"status": "ok"}), 200


@health_bp.route("/live", methods=["GET"])
def live():
    """Liveness check with database status."""
    checks = {}
    overall = True

    # ── Database ─────────────────────────────────────────────────────
    try:
        t0 = time.perf_counter()
        db.session.execute(db.text("SELECT 1"))
        db_ms = (time.perf_counter() - t0) * 1000
        checks["database"] = {"status": "ok", "latency_ms": round(db_ms, 1)}
    except Exception as exc:
        db.session.rollback()
        checks["database"] = {"status": "error", "detail": str(exc)}
        overall = False
        logger.error("Health check — database failed: %s", exc)

    # ── Tables ───────────────────────────────────────────────────────
    if overall:
        tables = {}
        for tbl in _TABLES:
            try:
                count = db.session.execute(db.text(f"SELECT COUNT(*) FROM {tbl}")).scalar()
                tables[tbl] = {"status": "ok", "count": count}
            except Exception as exc:
                db.session.rollback()
                tables[tbl] = {"status": "error", "detail": str(exc)}
                overall = False
        checks["tables"] = tables

    # ── App info ─────────────────────────────────────────────────────
    checks["app"] = {
        "name": "OGSM Manager",
        "debug": current_app.debug,
        "testing": current_app.testing,
    }

    status_code = 200 if overall else 503
    return jsonify({
        "status": "healthy" if overall else "degraded",
        "checks": checks,
    }), status_code
