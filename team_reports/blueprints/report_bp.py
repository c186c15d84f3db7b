"""
Team Diagnostics Report Service
Report Blueprint.

Endpoints:
    CATALOG   /api/v1/report-modules                     GET
    GENERATE  /api/v1/reports/generate                   POST  (?save=true persists)
              /api/v1/reports/prompt-preview             POST  (no LLM call)
    STORE     /api/v1/reports                            POST  → {createdAt}
              /api/v1/teams/<team_id>/reports/latest     GET   → {report: {...} | null}
              /api/v1/teams/<team_id>/reports            GET   (history, ?limit=)

    COMPAT    /api/generate-report                       POST
              /api/health                                GET
"""

import logging

from flask import Blueprint, current_app, jsonify, request

from team_reports import limiter
from team_reports.ai.gateway import LLMGateway
from team_reports.blueprints import json_body, register_error_handlers
from team_reports.core.exceptions import InvalidRequestError
from team_reports.models import db
from team_reports.models.report import to_epoch_ms
from team_reports.services.report_generation import GenerationRequest, ReportGenerationService
from team_reports.services.report_store import ReportStore

logger = logging.getLogger(__name__)

report_bp = Blueprint("report", __name__, url_prefix="/api/v1")
register_error_handlers(report_bp)

compat_bp = Blueprint("compat", __name__, url_prefix="/api")
register_error_handlers(compat_bp)

# ── Rate limiting ─────────────────────────────────────────────────────────
_generate_limit = limiter.shared_limit(
    lambda: current_app.config.get("REPORT_RATE_LIMIT", "10 per minute"),
    scope="report_generate",
)


# ── Lazy singletons stored on Flask app (test-isolation safe) ───────────────

def _get_gateway():
    if not hasattr(current_app, "_ai_gateway"):
        current_app._ai_gateway = LLMGateway(app=current_app)
    return current_app._ai_gateway


def _get_registry():
    return current_app.extensions["module_registry"]


def _get_service() -> ReportGenerationService:
    return ReportGenerationService(
        _get_gateway(),
        _get_registry(),
        store=ReportStore(),
        base_prompt=current_app.extensions.get("base_prompt"),
        model=current_app.config.get("LLM_DEFAULT_CHAT_MODEL"),
        version=current_app.config.get("REPORT_VERSION", "v1"),
    )


def _truthy(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def _commit_usage_logs():
    """Commit AI usage rows flushed by the gateway (no-op when nothing is pending)."""
    try:
        db.session.commit()
    except Exception as exc:
        logger.error("Failed to commit AI usage log: %s", exc)
        db.session.rollback()


def _generate(body: dict, save: bool):
    gen_request = GenerationRequest.from_payload(body)
    try:
        result = _get_service().generate(gen_request, save=save)
    finally:
        _commit_usage_logs()
    return jsonify(result.to_dict()), 200


# ═════════════════════════════════════════════════════════════════════════
# Catalog
# ═════════════════════════════════════════════════════════════════════════


@report_bp.route("/report-modules", methods=["GET"])
def list_report_modules():
    """Module catalog in default order. ``?include_prompts=false`` drops the templates."""
    modules = _get_registry().to_dict()
    if not _truthy(request.args.get("include_prompts", "true")):
        modules = [{"id": m["id"], "title": m["title"]} for m in modules]
    return jsonify(modules), 200


# ═════════════════════════════════════════════════════════════════════════
# Generation
# ═════════════════════════════════════════════════════════════════════════


@report_bp.route("/reports/generate", methods=["POST"])
@_generate_limit
def generate_report():
    """
    Generate a Markdown report for a team.

    Body: {teamId, team, narrative?, valuesVector?, modules?, save?}
    Returns: {markdown, version, modules[, createdAt, saved, persistenceError]}
    """
    body = json_body()
    save = _truthy(request.args.get("save", body.get("save", False)))
    return _generate(body, save)


@report_bp.route("/reports/prompt-preview", methods=["POST"])
def preview_prompt():
    """Compile the prompt exactly as generation would, without calling the LLM."""
    gen_request = GenerationRequest.from_payload(json_body())
    prompt, modules = _get_service().build_prompt(gen_request)
    return jsonify({
        "teamId": gen_request.team_id,
        "modules": [m.id for m in modules],
        "prompt": prompt,
    }), 200


# ═════════════════════════════════════════════════════════════════════════
# Persistence
# ═════════════════════════════════════════════════════════════════════════


@report_bp.route("/reports", methods=["POST"])
def save_report():
    """
    Persist an already generated report.

    Body: {teamId, version?, modules: [ids], markdown}
    Returns: {createdAt} (epoch ms), 201
    """
    body = json_body()
    modules = body.get("modules") or []
    if not isinstance(modules, list) or not all(isinstance(m, str) for m in modules):
        raise InvalidRequestError("modules must be a list of module ids")
    markdown = body.get("markdown")
    if markdown is not None and not isinstance(markdown, str):
        raise InvalidRequestError("markdown must be a string")

    created_at = ReportStore().save_report(
        body.get("teamId"),
        body.get("version") or current_app.config.get("REPORT_VERSION", "v1"),
        modules,
        markdown,
    )
    return jsonify({"createdAt": to_epoch_ms(created_at)}), 201


@report_bp.route("/teams/<team_id>/reports/latest", methods=["GET"])
def get_latest_report(team_id):
    report = ReportStore().get_latest_report(team_id)
    return jsonify({"report": report.to_dict() if report else None}), 200


@report_bp.route("/teams/<team_id>/reports", methods=["GET"])
def list_team_reports(team_id):
    limit = request.args.get("limit", 20, type=int)
    reports = ReportStore().list_reports(team_id, limit=limit)
    return jsonify({"items": [r.to_dict() for r in reports], "total": len(reports)}), 200


# ═════════════════════════════════════════════════════════════════════════
# Compatibility routes (pre-/api/v1 clients)
# ═════════════════════════════════════════════════════════════════════════


@compat_bp.route("/generate-report", methods=["POST"])
@_generate_limit
def legacy_generate_report():
    return _generate(json_body(), save=False)


@compat_bp.route("/health", methods=["GET"])
def legacy_health():
    return jsonify({"status": "ok"}), 200
