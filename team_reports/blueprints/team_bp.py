"""
Team Diagnostics Report Service
Organization / Team Blueprint.

Endpoints:
    GET /api/v1/organizations                    — list organizations
    GET /api/v1/teams?org_id=                    — list teams (optionally per org)
    GET /api/v1/teams/<team_id>/aggregate        — team aggregate snapshot
    GET /api/v1/teams/<team_id>/mindset-chart    — clamped capacity/friction rows
"""

import logging

from flask import Blueprint, jsonify, request

from team_reports.blueprints import register_error_handlers
from team_reports.services import team_service

logger = logging.getLogger(__name__)

team_bp = Blueprint("team", __name__, url_prefix="/api/v1")
register_error_handlers(team_bp)


@team_bp.route("/organizations", methods=["GET"])
def list_organizations():
    return jsonify(team_service.list_organizations()), 200


@team_bp.route("/teams", methods=["GET"])
def list_teams():
    org_id = request.args.get("org_id") or request.args.get("orgId")
    return jsonify(team_service.list_teams(org_id)), 200


@team_bp.route("/teams/<team_id>/aggregate", methods=["GET"])
def get_team_aggregate(team_id):
    aggregate = team_service.get_team_aggregate(team_id)
    return jsonify(aggregate.to_dict()), 200


@team_bp.route("/teams/<team_id>/mindset-chart", methods=["GET"])
def get_mindset_chart(team_id):
    """Chart rows; raw scores are clamped for display only."""
    return jsonify({"teamId": team_id, "rows": team_service.get_mindset_chart(team_id)}), 200
