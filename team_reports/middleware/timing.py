"""
Request timing middleware.

Records request duration and logs slow or failed requests.
Adds X-Request-ID and X-Request-Duration-Ms headers to all responses.
"""

import logging
import time
import uuid

from flask import Flask, g, request

logger = logging.getLogger(__name__)

# Endpoints excluded from timing logs (high frequency, low value)
_SKIP_LOG = frozenset({"/api/v1/health", "/api/health"})

# Slow request thresholds (ms). Report generation waits on the LLM, so it
# gets its own, much higher, threshold.
SLOW_THRESHOLD_MS = 1000
SLOW_GENERATION_THRESHOLD_MS = 60_000
_GENERATION_PATHS = frozenset({"/api/v1/reports/generate", "/api/generate-report"})


def _team_id_from_request() -> str | None:
    view_args = request.view_args or {}
    team_id = view_args.get("team_id")
    if team_id:
        return team_id
    if request.method in ("POST", "PUT", "PATCH") and request.is_json:
        payload = request.get_json(silent=True)
        if isinstance(payload, dict) and isinstance(payload.get("teamId"), str):
            return payload["teamId"]
    return None


def init_request_timing(app: Flask):
    """Register before/after hooks for request timing."""

    @app.before_request
    def _start_timer():
        g.request_start = time.perf_counter()
        g.request_id = request.headers.get("X-Request-ID", uuid.uuid4().hex[:12])

    @app.after_request
    def _log_request(response):
        start = getattr(g, "request_start", None)
        if start is None:
            return response

        duration_ms = (time.perf_counter() - start) * 1000
        response.headers["X-Request-Duration-Ms"] = f"{duration_ms:.1f}"
        response.headers["X-Request-ID"] = getattr(g, "request_id", "")

        if request.path in _SKIP_LOG or request.path.startswith("/static"):
            return response

        extra = {
            "method": request.method,
            "path": request.path,
            "status": response.status_code,
            "duration_ms": duration_ms,
            "remote_addr": request.remote_addr,
            "request_id": getattr(g, "request_id", ""),
            "team_id": _team_id_from_request(),
        }
        threshold = (SLOW_GENERATION_THRESHOLD_MS if request.path in _GENERATION_PATHS
                     else SLOW_THRESHOLD_MS)
        if response.status_code >= 500:
            logger.error("Server error: %s %s %d (%.0fms)",
                         request.method, request.path,
                         response.status_code, duration_ms, extra=extra)
        elif duration_ms > threshold:
            logger.warning("Slow request: %s %s %d (%.0fms)",
                           request.method, request.path,
                           response.status_code, duration_ms, extra=extra)
        else:
            logger.debug("Request: %s %s %d (%.0fms)",
                         request.method, request.path,
                         response.status_code, duration_ms, extra=extra)

        return response
