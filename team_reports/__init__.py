"""
Team Diagnostics Report Service
Flask Application Factory.

Usage:
    from team_reports import create_app
    app = create_app()           # defaults to "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

import click
from flask import Flask, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate

from team_reports.config import config
from team_reports.models import db
from team_reports.middleware.logging_config import configure_logging
from team_reports.middleware.timing import init_request_timing
from team_reports.utils.errors import E, api_error

logger = logging.getLogger(__name__)

migrate = Migrate()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],                     # no global limit, applied per route
    storage_uri=os.getenv("REDIS_URL") or "memory://",  # Redis in production, memory for dev
)


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    # Instantiated so ProductionConfig can refuse to start without DATABASE_URL / SECRET_KEY
    app.config.from_object(config[config_name]())
    os.makedirs(app.instance_path, exist_ok=True)

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    else:
        CORS(app)

    # ── Request timing middleware ────────────────────────────────────────
    init_request_timing(app)

    # ── Request guards (input length + Content-Type) ─────────────────────
    @app.before_request
    def _guard_request():
        from flask import abort
        max_len = app.config.get("MAX_CONTENT_LENGTH")
        if max_len and request.content_length and request.content_length > max_len:
            abort(413, description="Request body too large")
        if request.method in ("POST", "PUT", "PATCH") and request.path.startswith("/api/"):
            ct = request.content_type or ""
            if request.data and "json" not in ct:
                abort(415, description="Content-Type must be application/json")

    # ── Report catalog + base prompt (static, loaded once) ───────────────
    from team_reports.ai.module_registry import ModuleRegistry
    from team_reports.ai.preamble import load_base_prompt

    registry = ModuleRegistry(catalog_path=app.config.get("REPORT_MODULES_PATH"))
    app.extensions["module_registry"] = registry
    app.extensions["base_prompt"] = load_base_prompt(app.config.get("BASE_PROMPT_PATH"))
    logger.info("Report catalog ready: %d modules (%s)", len(registry), ", ".join(registry.ids()))

    # ── Import all models so Alembic can detect them ─────────────────────
    from team_reports.models import ai as _ai_models          # noqa: F401
    from team_reports.models import report as _report_models  # noqa: F401
    from team_reports.models import team as _team_models      # noqa: F401

    # ── Auto-create tables (CREATE IF NOT EXISTS) ─────────────────────────
    with app.app_context():
        try:
            db.create_all()
            app.logger.info("db.create_all() completed successfully")
        except Exception as e:
            app.logger.warning("db.create_all() failed: %s", e)

    # ── Blueprints ───────────────────────────────────────────────────────
    from team_reports.blueprints.health_bp import health_bp
    from team_reports.blueprints.report_bp import compat_bp, report_bp
    from team_reports.blueprints.team_bp import team_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(team_bp)
    app.register_blueprint(report_bp)
    app.register_blueprint(compat_bp)
    limiter.exempt(health_bp)

    # ── CLI commands ─────────────────────────────────────────────────────
    @app.cli.command("seed-demo")
    @click.option("--teams", "teams_per_org", default=50, show_default=True,
                  help="Teams to create per organization.")
    @click.option("--seed", default=42, show_default=True, help="RNG seed.")
    @click.option("--export", "export_path", default=None,
                  help="Write the seed data to this JSON file instead of the database.")
    def seed_demo_cmd(teams_per_org, seed, export_path):
        """Seed demo organizations and teams (idempotent)."""
        from team_reports.services.seed import export_seed_data, seed_demo_data
        if export_path:
            target = export_seed_data(export_path, teams_per_org=teams_per_org, seed=seed)
            click.echo(f"Seed data written to {target}")
            return
        stats = seed_demo_data(teams_per_org=teams_per_org, seed=seed)
        click.echo(
            f"Organizations: {stats['orgs_created']} created, {stats['orgs_skipped']} skipped. "
            f"Teams: {stats['teams_created']} created, {stats['teams_skipped']} skipped."
        )

    # ── Error handlers ───────────────────────────────────────────────────
    @app.errorhandler(400)
    def bad_request(e):
        return api_error(E.VALIDATION_INVALID, e.description or "Bad request")

    @app.errorhandler(404)
    def not_found(e):
        return api_error(E.NOT_FOUND, "Not found", details={"path": request.path})

    @app.errorhandler(405)
    def method_not_allowed(e):
        return api_error(E.METHOD_NOT_ALLOWED, "Method not allowed")

    @app.errorhandler(413)
    def payload_too_large(e):
        return api_error(E.PAYLOAD_TOO_LARGE, "Request body too large")

    @app.errorhandler(415)
    def unsupported_media(e):
        return api_error(E.UNSUPPORTED_MEDIA, e.description or "Unsupported media type")

    @app.errorhandler(429)
    def rate_limited(e):
        return api_error(E.RATE_LIMITED, "Too many requests", details=str(e.description))

    @app.errorhandler(500)
    def server_error(e):
        original = getattr(e, "original_exception", None) or e
        logger.error("500 error on %s: %s", request.path, original, exc_info=original)
        return api_error(E.INTERNAL, "Internal server error")

    return app
