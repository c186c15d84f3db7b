"""
Health check blueprint.

Endpoints:
    GET /api/v1/health        — simple 200 for load balancers
    GET /api/v1/health/live   — detailed system health (DB, Redis, LLM providers)
"""

import logging
import time

import redis as redis_lib
from flask import Blueprint, current_app, jsonify

from team_reports.models import db

logger = logging.getLogger(__name__)

health_bp = Blueprint("health", __name__, url_prefix="/api/v1/health")


@health_bp.route("", methods=["GET"])
def ready():
    """Simple readiness check: always 200 if the app is running."""
    return jsonify({"status": "ok", "app": "Team Diagnostics Report Service"}), 200


@health_bp.route("/live", methods=["GET"])
def live():
    """Detailed liveness check with dependency status."""
    checks = {}
    overall = True

    # ── Database ─────────────────────────────────────────────────────
    try:
        t0 = time.perf_counter()
        db.session.execute(db.text("SELECT 1"))
        db_ms = (time.perf_counter() - t0) * 1000
        checks["database"] = {"status": "ok", "latency_ms": round(db_ms, 1)}
    except Exception as exc:
        checks["database"] = {"status": "error", "detail": str(exc)}
        overall = False
        logger.error("Health check — database failed: %s", exc)

    # ── Redis (rate-limit storage) ───────────────────────────────────
    redis_url = current_app.config.get("REDIS_URL", "")
    if redis_url and "redis" in redis_url:
        try:
            t0 = time.perf_counter()
            r = redis_lib.from_url(redis_url, socket_timeout=2)
            r.ping()
            redis_ms = (time.perf_counter() - t0) * 1000
            checks["redis"] = {"status": "ok", "latency_ms": round(redis_ms, 1)}
        except Exception as exc:
            # Redis only backs rate limiting; don't fail overall health
            checks["redis"] = {"status": "error", "detail": str(exc)}
    else:
        checks["redis"] = {"status": "skipped", "detail": "no REDIS_URL configured"}

    # ── LLM ──────────────────────────────────────────────────────────
    gateway = getattr(current_app, "_ai_gateway", None)
    checks["llm"] = {
        "default_model": current_app.config.get("LLM_DEFAULT_CHAT_MODEL"),
        "providers": gateway.available_providers if gateway is not None else [],
    }

    # ── App info ─────────────────────────────────────────────────────
    checks["app"] = {
        "name": "Team Diagnostics Report Service",
        "report_version": current_app.config.get("REPORT_VERSION"),
        "report_modules": len(current_app.extensions["module_registry"]),
        "debug": current_app.debug,
        "testing": current_app.testing,
    }

    status_code = 200 if overall else 503
    return jsonify({
        "status": "healthy" if overall else "degraded",
        "checks": checks,
    }), status_code
