"""
Team Diagnostics Report Service
Organization / team lookups.

Read-only plumbing behind the dashboard selectors: list organizations, list
teams (optionally per organization), and load one team's aggregate.
"""

import logging

from team_reports.core.exceptions import NotFoundError
from team_reports.models import db
from team_reports.models.team import Organization, Team, TeamAggregate

logger = logging.getLogger(__name__)


def list_organizations() -> list[dict]:
    """All organizations, ordered by name."""
    orgs = Organization.query.order_by(Organization.org_name, Organization.org_id).all()
    return [o.to_dict() for o in orgs]


def list_teams(org_id: str | None = None) -> list[dict]:
    """Team summaries, optionally restricted to one organization."""
    q = Team.query
    if org_id:
        q = q.filter(Team.org_id == org_id)
    return [t.to_summary() for t in q.order_by(Team.team_name, Team.team_id).all()]


def get_team_aggregate(team_id: str) -> TeamAggregate:
    """
    Load a team's aggregate snapshot.

    Raises:
        NotFoundError: No team with that id.
    """
    team = Team.query.filter_by(team_id=team_id).first()
    if team is None:
        raise NotFoundError(resource="Team", resource_id=team_id)

    org_name = None
    if team.org_id:
        org = db.session.query(Organization).filter_by(org_id=team.org_id).first()
        org_name = org.org_name if org else None
    return team.to_aggregate(org_name=org_name)


def get_mindset_chart(team_id: str) -> list[dict]:
    """Chart rows for a team with capacity/friction clamped to 0-100."""
    aggregate = get_team_aggregate(team_id)
    return [score.display() for score in aggregate.mindset_scores]
