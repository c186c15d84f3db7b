"""
Team Diagnostics Report Service
Organization & team models.

Models:
    - Organization: Customer organization (orgId / orgName)
    - Team: Team row holding the precomputed behavioural aggregate

Value objects:
    - MindsetScore: One {capacity, friction} pair for a named mindset
    - TeamAggregate: Read-only team snapshot fed into report generation

Wire format is camelCase (``teamId``, ``valuesVector``, ...) to stay
compatible with the dashboard front-end; snake_case keys are accepted on
input as well.
"""

from dataclasses import dataclass, field

from team_reports.core.exceptions import InvalidRequestError
from team_reports.models import db


def clamp_pct(value) -> float:
    """Clamp a score into the 0-100 display range."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return max(0.0, min(100.0, number))


def _pick(data: dict, camel: str, snake: str, default=None):
    if camel in data:
        return data[camel]
    return data.get(snake, default)


def _optional_text(value, label: str):
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidRequestError(f"{label} must be a string")
    return value


def _as_number(value, label: str):
    if isinstance(value, bool):
        raise InvalidRequestError(f"{label} must be a number")
    if isinstance(value, (int, float)):
        return value
    try:
        return float(value)
    except (TypeError, ValueError):
        raise InvalidRequestError(f"{label} must be a number")


# ── Value objects ────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class MindsetScore:
    """Capacity (strength) vs. friction (drag) for one behavioural mindset.

    Values are kept exactly as produced upstream; producers occasionally
    overshoot 0-100, so only ``display()`` clamps.
    """

    mindset_id: str
    mindset_name: str
    capacity: float
    friction: float

    @classmethod
    def from_dict(cls, data: dict) -> "MindsetScore":
        if not isinstance(data, dict):
            raise InvalidRequestError("mindsetScores entries must be objects")
        mindset_id = str(_pick(data, "mindsetId", "mindset_id", "") or "")
        name = str(_pick(data, "mindsetName", "mindset_name", "") or mindset_id)
        return cls(
            mindset_id=mindset_id,
            mindset_name=name,
            capacity=_as_number(data.get("capacity", 0), f"{name}.capacity"),
            friction=_as_number(data.get("friction", 0), f"{name}.friction"),
        )

    def to_dict(self) -> dict:
        return {
            "mindsetId": self.mindset_id,
            "mindsetName": self.mindset_name,
            "capacity": self.capacity,
            "friction": self.friction,
        }

    def display(self) -> dict:
        """Chart-ready row with both scores clamped to 0-100."""
        return {
            "mindset": self.mindset_name,
            "mindsetId": self.mindset_id,
            "capacity": round(clamp_pct(self.capacity), 1),
            "friction": round(clamp_pct(self.friction), 1),
        }


@dataclass
class TeamAggregate:
    """Team-level behavioural summary used as report context.

    ``aggregated_narrative`` is canonical. ``narrative`` is the deprecated
    alias kept for older snapshots; it is only read when the canonical
    field is empty.
    """

    team_id: str
    team_name: str
    org_id: str = ""
    org_name: str | None = None
    values_vector: str = ""
    aggregated_narrative: str | None = None
    narrative: str | None = None
    mindset_scores: list[MindsetScore] = field(default_factory=list)

    @property
    def narrative_text(self) -> str:
        return self.aggregated_narrative or self.narrative or ""

    @classmethod
    def from_dict(cls, data: dict) -> "TeamAggregate":
        """Build an aggregate from a JSON snapshot.

        Raises:
            InvalidRequestError: snapshot is not an object, has no team name,
                or a text field (org name, values, narratives) is not a string.
        """
        if not isinstance(data, dict):
            raise InvalidRequestError("team aggregate must be an object")
        team_name = (_optional_text(_pick(data, "teamName", "team_name"), "team.teamName") or "").strip()
        if not team_name:
            raise InvalidRequestError("team.teamName is required")
        scores = _pick(data, "mindsetScores", "mindset_scores") or []
        if not isinstance(scores, list):
            raise InvalidRequestError("team.mindsetScores must be a list")
        return cls(
            team_id=str(_pick(data, "teamId", "team_id", "") or ""),
            team_name=team_name,
            org_id=str(_pick(data, "orgId", "org_id", "") or ""),
            org_name=_optional_text(_pick(data, "orgName", "org_name"), "team.orgName") or None,
            values_vector=_optional_text(_pick(data, "valuesVector", "values_vector"), "team.valuesVector") or "",
            aggregated_narrative=_optional_text(
                _pick(data, "aggregatedNarrative", "aggregated_narrative"), "team.aggregatedNarrative",
            ),
            narrative=_optional_text(data.get("narrative"), "team.narrative"),
            mindset_scores=[MindsetScore.from_dict(s) for s in scores],
        )

    def to_dict(self) -> dict:
        return {
            "teamId": self.team_id,
            "teamName": self.team_name,
            "orgId": self.org_id,
            "orgName": self.org_name,
            "valuesVector": self.values_vector,
            "aggregatedNarrative": self.aggregated_narrative or "",
            # Old clients still read "narrative"; mirror the resolved text.
            "narrative": self.narrative_text,
            "mindsetScores": [s.to_dict() for s in self.mindset_scores],
        }


# ── ORM models ───────────────────────────────────────────────────────────────


class Organization(db.Model):
    """Customer organization owning one or more teams."""

    __tablename__ = "organizations"

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.String(64), nullable=False, unique=True, index=True)
    org_name = db.Column(db.String(200), nullable=False)

    def to_dict(self):
        return {"orgId": self.org_id, "orgName": self.org_name}

    def __repr__(self):
        return f"<Organization {self.org_id}>"


class Team(db.Model):
    """Team with its precomputed aggregate.

    Written by the seeding / intake process only; report generation reads it.
    """

    __tablename__ = "teams"

    id = db.Column(db.Integer, primary_key=True)
    team_id = db.Column(db.String(64), nullable=False, unique=True, index=True)
    team_name = db.Column(db.String(200), nullable=False)
    org_id = db.Column(db.String(64), nullable=True, index=True)
    values_vector = db.Column(db.Text, nullable=True)
    aggregated_narrative = db.Column(db.Text, nullable=True)
    mindset_scores = db.Column(
        db.JSON, nullable=True,
        comment="[{mindsetId, mindsetName, capacity, friction}] in display order",
    )

    def to_summary(self):
        return {"teamId": self.team_id, "teamName": self.team_name, "orgId": self.org_id}

    def to_aggregate(self, org_name: str | None = None) -> TeamAggregate:
        return TeamAggregate(
            team_id=self.team_id,
            team_name=self.team_name,
            org_id=self.org_id or "",
            org_name=org_name,
            values_vector=self.values_vector or "",
            aggregated_narrative=self.aggregated_narrative,
            narrative=self.aggregated_narrative,
            mindset_scores=[MindsetScore.from_dict(s) for s in (self.mindset_scores or [])],
        )

    def __repr__(self):
        return f"<Team {self.team_id}>"
