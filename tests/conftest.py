"""
Shared pytest fixtures for the Team Diagnostics Report Service test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - registry: Small synthetic module catalog A/B/C
    - team: TeamAggregate with both narrative fields set
    - team_payload: JSON snapshot for generation requests
    - fake_gateway: Recording LLM gateway double
    - seeded_team: One organization + team persisted in the DB
"""

import pytest

from team_reports import create_app
from team_reports.ai.module_registry import ModuleDefinition, ModuleRegistry
from team_reports.core.exceptions import GenerationFailedError
from team_reports.models import db as _db
from team_reports.models.team import MindsetScore, Organization, Team, TeamAggregate


# ── Test doubles ─────────────────────────────────────────────────────────


class FakeGateway:
    """LLM gateway double: records every prompt, returns canned markdown.

    Pass ``error`` to make every call raise GenerationFailedError with that
    upstream message.
    """

    def __init__(self, content="# Report\n\n### MODULE 1: STUB", error=None):
        self.content = content
        self.error = error
        self.calls = []

    def complete(self, prompt, model=None, *, purpose="", team_id=None):
        self.calls.append({"prompt": prompt, "model": model, "purpose": purpose, "team_id": team_id})
        if self.error is not None:
            raise GenerationFailedError(upstream=self.error)
        return {"content": self.content, "prompt_tokens": 10, "completion_tokens": 5, "model": model}

    @property
    def last_prompt(self):
        return self.calls[-1]["prompt"] if self.calls else None


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Domain fixtures ──────────────────────────────────────────────────────


@pytest.fixture()
def registry():
    """Three-module catalog whose templates carry misleading numbers."""
    return ModuleRegistry(modules=[
        ModuleDefinition(id="a", title="Alpha", prompt_template="### MODULE 7: ALPHA\nSee MODULE 7 notes.\n1. first item"),
        ModuleDefinition(id="b", title="Bravo", prompt_template="### MODULE 2: BRAVO\nBody of bravo."),
        ModuleDefinition(id="c", title="Charlie", prompt_template="### module 9: CHARLIE\n3 Ways to Shift"),
    ])


@pytest.fixture()
def team():
    return TeamAggregate(
        team_id="team-1",
        team_name="Platform Squad",
        org_id="org-1",
        org_name="Northwind Labs",
        values_vector="Bias to action; calm focus.",
        aggregated_narrative="Canonical narrative text.",
        narrative="Deprecated alias narrative.",
        mindset_scores=[MindsetScore("growth", "Growth", 72, 31)],
    )


@pytest.fixture()
def team_payload():
    return {
        "teamId": "org-1-team-1",
        "teamName": "Northwind Labs Team 1",
        "orgId": "org-1",
        "orgName": "Northwind Labs",
        "valuesVector": "Craft and quality; build with users.",
        "aggregatedNarrative": "A dependable crew with calm focus.",
        "mindsetScores": [
            {"mindsetId": "growth", "mindsetName": "Growth", "capacity": 70, "friction": 30},
        ],
    }


@pytest.fixture()
def fake_gateway():
    return FakeGateway()


@pytest.fixture()
def seeded_team():
    """Persist one organization with one team and return the Team row."""
    _db.session.add(Organization(org_id="org-1", org_name="Northwind Labs"))
    row = Team(
        team_id="org-1-team-1",
        team_name="Northwind Labs Team 1",
        org_id="org-1",
        values_vector="Craft and quality; build with users.",
        aggregated_narrative="A dependable crew with calm focus.",
        mindset_scores=[
            {"mindsetId": "growth", "mindsetName": "Growth", "capacity": 104, "friction": -3},
            {"mindsetId": "clarity", "mindsetName": "Clarity", "capacity": 55.56, "friction": 40},
        ],
    )
    _db.session.add(row)
    _db.session.commit()
    return row
