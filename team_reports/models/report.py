"""
Team Diagnostics Report Service
Generated report model.

Models:
    - GeneratedReport: One immutable Markdown report per generation request

``modules`` is the audit trail: the exact ordered module-id selection whose
prompt produced ``markdown``.
"""

from datetime import datetime, timezone

from team_reports.models import db


def to_epoch_ms(value: datetime | None) -> int | None:
    """Milliseconds since epoch. Naive datetimes (SQLite) are read as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp() * 1000)


class GeneratedReport(db.Model):
    """Append-only record of a generated team report."""

    __tablename__ = "generated_reports"
    __table_args__ = (
        db.Index("ix_generated_reports_team_created", "team_id", "created_at"),
    )

    id = db.Column(db.Integer, primary_key=True)
    team_id = db.Column(db.String(64), nullable=False)
    created_at = db.Column(
        db.DateTime(timezone=True), nullable=False,
        default=lambda: datetime.now(timezone.utc),
        comment="Assigned by ReportStore at save time",
    )
    version = db.Column(db.String(20), nullable=False, default="v1")
    modules = db.Column(db.JSON, nullable=False, default=list, comment="Ordered module ids")
    markdown = db.Column(db.Text, nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "teamId": self.team_id,
            "createdAt": to_epoch_ms(self.created_at),
            "version": self.version,
            "modules": list(self.modules or []),
            "markdown": self.markdown,
        }

    def __repr__(self):
        return f"<GeneratedReport {self.id} team={self.team_id} {self.version}>"
