"""
Team Diagnostics Report Service
Tests — Organization / Team API.
"""

from team_reports.models import db
from team_reports.models.team import Organization, Team


def _add_team(team_id, org_id, name):
    db.session.add(Team(team_id=team_id, team_name=name, org_id=org_id, mindset_scores=[]))
    db.session.commit()


class TestOrganizations:

    def test_empty(self, client):
        res = client.get("/api/v1/organizations")
        assert res.status_code == 200
        assert res.get_json() == []

    def test_listed_by_name(self, client):
        db.session.add(Organization(org_id="org-2", org_name="Helix Industries"))
        db.session.add(Organization(org_id="org-1", org_name="Northwind Labs"))
        db.session.commit()
        data = client.get("/api/v1/organizations").get_json()
        assert [o["orgName"] for o in data] == ["Helix Industries", "Northwind Labs"]
        assert data[0] == {"orgId": "org-2", "orgName": "Helix Industries"}


class TestTeams:

    def test_filter_by_org(self, client, seeded_team):
        _add_team("org-2-team-1", "org-2", "Helix Industries Team 1")
        all_teams = client.get("/api/v1/teams").get_json()
        assert len(all_teams) == 2

        org1 = client.get("/api/v1/teams?org_id=org-1").get_json()
        assert [t["teamId"] for t in org1] == ["org-1-team-1"]

    def test_camel_case_filter_accepted(self, client, seeded_team):
        data = client.get("/api/v1/teams?orgId=org-1").get_json()
        assert len(data) == 1

    def test_aggregate(self, client, seeded_team):
        res = client.get("/api/v1/teams/org-1-team-1/aggregate")
        assert res.status_code == 200
        data = res.get_json()
        assert data["teamName"] == "Northwind Labs Team 1"
        assert data["orgName"] == "Northwind Labs"
        assert data["aggregatedNarrative"] == "A dependable crew with calm focus."
        assert data["narrative"] == data["aggregatedNarrative"]
        # Raw scores are returned unclamped
        assert data["mindsetScores"][0]["capacity"] == 104

    def test_aggregate_not_found(self, client):
        res = client.get("/api/v1/teams/nope/aggregate")
        assert res.status_code == 404
        assert res.get_json()["code"] == "ERR_NOT_FOUND"


class TestMindsetChart:

    def test_scores_clamped_for_display(self, client, seeded_team):
        res = client.get("/api/v1/teams/org-1-team-1/mindset-chart")
        assert res.status_code == 200
        data = res.get_json()
        assert data["teamId"] == "org-1-team-1"
        growth, clarity = data["rows"]
        assert growth == {"mindset": "Growth", "mindsetId": "growth", "capacity": 100.0, "friction": 0.0}
        assert clarity["capacity"] == 55.6
        assert clarity["friction"] == 40.0

    def test_unknown_team(self, client):
        assert client.get("/api/v1/teams/nope/mindset-chart").status_code == 404
