"""
Team Diagnostics Report Service
Demo data seeding.

Seeds three demo organizations with N teams each: values vector, aggregated
narrative and seven mindset scores per team. A seeded RNG keeps the data
reproducible; rows whose ids already exist are skipped, so running the
seed twice is a no-op.

Run via the Flask CLI:
    flask seed-demo                 # 50 teams per org
    flask seed-demo --teams 5
    flask seed-demo --export seed-data.json
"""

import json
import logging
import random
from pathlib import Path

from team_reports.models import db
from team_reports.models.team import Organization, Team

logger = logging.getLogger(__name__)

ORGS = [
    {"orgId": "org-1", "orgName": "Northwind Labs"},
    {"orgId": "org-2", "orgName": "Helix Industries"},
    {"orgId": "org-3", "orgName": "Nova Collective"},
]

VALUE_VECTORS = [
    "Bias to action; customer intimacy; radical candor; measure what matters; resilience in adversity.",
    "Craft and quality; build with users; calm focus; default to open; celebrate learning loops.",
    "Operational excellence; service mindset; kindness; reliability; disciplined process ownership.",
    "Learning velocity; safety to experiment; shared accountability; transparency by default.",
    "Strategic clarity; disciplined prioritisation; partnership mindset; evidence-based decisions.",
]

NARRATIVES = [
    "The team is ambitious with strong execution muscle, experimenting rapidly but feeling tension "
    "between short-term targets and longer-term positioning.",
    "A dependable crew with calm focus; they show caution around launch risk which slows velocity "
    "but maintain high craft standards.",
    "Service-oriented operators absorbing tool churn, creating fatigue; they remain the cultural glue "
    "yet need clearer escalation pathways.",
    "Product-minded collaborators who ideate well but need stronger delivery rhythms and clearer "
    "leadership priorities.",
    "Cross-functional group with rising innovation energy, yet role clarity and handoff rituals lag "
    "behind ambition.",
]

MINDSETS = [
    ("growth", "Growth"),
    ("stability", "Stability"),
    ("agility", "Agility"),
    ("cohesion", "Cohesion"),
    ("experimentation", "Experimentation"),
    ("resilience", "Resilience"),
    ("clarity", "Clarity"),
]

DEFAULT_TEAMS_PER_ORG = 50
DEFAULT_SEED = 42


def mindset_scores(rng: random.Random) -> list[dict]:
    """Seven capacity/friction pairs in display order."""
    scores = []
    for idx, (mindset_id, name) in enumerate(MINDSETS):
        base = 55 + (idx * 7) % 20
        scores.append({
            "mindsetId": mindset_id,
            "mindsetName": name,
            "capacity": min(95, base + rng.randrange(20)),
            "friction": max(15, 30 + rng.randrange(25)),
        })
    return scores


def build_seed_data(teams_per_org: int = DEFAULT_TEAMS_PER_ORG, seed: int = DEFAULT_SEED) -> dict:
    """Generate the demo dataset as plain dicts ({"orgs": [...], "teams": [...]})."""
    rng = random.Random(seed)
    teams = []
    for org in ORGS:
        for i in range(1, teams_per_org + 1):
            idx = i % len(VALUE_VECTORS)
            teams.append({
                "orgId": org["orgId"],
                "teamId": f"{org['orgId']}-team-{i}",
                "teamName": f"{org['orgName']} Team {i}",
                "valuesVector": VALUE_VECTORS[idx],
                "aggregatedNarrative": NARRATIVES[idx],
                "mindsetScores": mindset_scores(rng),
            })
    return {"orgs": [dict(o) for o in ORGS], "teams": teams}


def seed_demo_data(teams_per_org: int = DEFAULT_TEAMS_PER_ORG, seed: int = DEFAULT_SEED) -> dict:
    """
    Insert the demo dataset, skipping ids that already exist.

    Returns:
        dict: counts of inserted / skipped organizations and teams.
    """
    data = build_seed_data(teams_per_org=teams_per_org, seed=seed)
    stats = {"orgs_created": 0, "orgs_skipped": 0, "teams_created": 0, "teams_skipped": 0}

    existing_orgs = {o.org_id for o in Organization.query.all()}
    for org in data["orgs"]:
        if org["orgId"] in existing_orgs:
            stats["orgs_skipped"] += 1
            continue
        db.session.add(Organization(org_id=org["orgId"], org_name=org["orgName"]))
        stats["orgs_created"] += 1

    existing_teams = {t.team_id for t in Team.query.with_entities(Team.team_id).all()}
    for team in data["teams"]:
        if team["teamId"] in existing_teams:
            stats["teams_skipped"] += 1
            continue
        db.session.add(Team(
            team_id=team["teamId"],
            team_name=team["teamName"],
            org_id=team["orgId"],
            values_vector=team["valuesVector"],
            aggregated_narrative=team["aggregatedNarrative"],
            mindset_scores=team["mindsetScores"],
        ))
        stats["teams_created"] += 1

    db.session.commit()
    logger.info("Demo seed complete: %s", stats)
    return stats


def export_seed_data(path: str, teams_per_org: int = DEFAULT_TEAMS_PER_ORG, seed: int = DEFAULT_SEED) -> Path:
    """Write the demo dataset to a JSON file for manual import elsewhere."""
    target = Path(path)
    data = build_seed_data(teams_per_org=teams_per_org, seed=seed)
    target.write_text(json.dumps(data, indent=2), encoding="utf-8")
    logger.info("Seed data written to %s", target)
    return target
