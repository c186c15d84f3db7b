"""
Team Diagnostics Report Service
Report Persistence Adapter.

Append-only storage of generated reports keyed by team, retrieval of the
most recent one. Reports are never updated in place; every save is a new
row, so history is preserved.

Ordering: ``created_at`` is assigned here, never by the caller. Saves for
the same team get strictly increasing timestamps at millisecond resolution
(the wire format), so "latest" is unambiguous even for back-to-back saves.
Ties that still reach the DB (other processes) are broken by ``id``.
"""

import logging
import threading
from datetime import datetime, timedelta, timezone

from sqlalchemy.exc import SQLAlchemyError

from team_reports.core.exceptions import InvalidRequestError, PersistenceFailedError
from team_reports.models import db
from team_reports.models.report import GeneratedReport, to_epoch_ms

logger = logging.getLogger(__name__)

_save_lock = threading.Lock()
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _short_detail(exc: SQLAlchemyError) -> str:
    """Client-safe detail: the error class, never the SQL or its parameters."""
    return f"database error ({type(exc).__name__})"


class ReportStore:
    """SQLAlchemy-backed report store bound to the Flask-SQLAlchemy session."""

    def __init__(self, session=None):
        self._session = session

    @property
    def session(self):
        return self._session if self._session is not None else db.session

    # ── Writes ────────────────────────────────────────────────────────────

    def save_report(self, team_id: str, version: str, module_ids, markdown: str) -> datetime:
        """
        Persist one generated report.

        Args:
            team_id: Owning team.
            version: Prompt/report version tag (e.g. "v1").
            module_ids: Ordered module-id selection the report was built from.
            markdown: Generated report body.

        Returns:
            The assigned ``created_at`` (timezone-aware UTC).

        Raises:
            InvalidRequestError: Missing team id or markdown.
            PersistenceFailedError: The insert failed (only its savepoint is
                rolled back) or the commit failed (the session is rolled back).
        """
        if not team_id or not str(team_id).strip():
            raise InvalidRequestError("teamId is required")
        if not markdown:
            raise InvalidRequestError("markdown is required")

        with _save_lock:
            # Savepoint: a failed insert leaves the caller's pending rows
            # (the AI usage log of the call that produced ``markdown``) intact.
            try:
                with self.session.begin_nested():
                    created_at = self._next_timestamp(team_id)
                    report = GeneratedReport(
                        team_id=team_id,
                        created_at=created_at,
                        version=version or "v1",
                        modules=list(module_ids or []),
                        markdown=markdown,
                    )
                    self.session.add(report)
            except SQLAlchemyError as exc:
                raise self._save_failed(team_id, exc) from exc

            try:
                self.session.commit()
            except SQLAlchemyError as exc:
                self.session.rollback()
                raise self._save_failed(team_id, exc) from exc

        logger.info(
            "Saved report id=%s team=%s modules=%d",
            report.id, team_id, len(report.modules),
        )
        return created_at

    @staticmethod
    def _save_failed(team_id: str, exc: SQLAlchemyError) -> PersistenceFailedError:
        """Log the full DB error; the client only gets ``_short_detail``."""
        logger.error("Saving report failed", exc_info=exc, extra={"team_id": team_id, "error": str(exc)})
        return PersistenceFailedError("Failed to save report", details=_short_detail(exc))

    def _next_timestamp(self, team_id: str) -> datetime:
        """Now (ms precision), bumped past the team's latest stored report."""
        now = datetime.now(timezone.utc)
        now = now.replace(microsecond=(now.microsecond // 1000) * 1000)

        latest = self._latest_query(team_id).with_entities(GeneratedReport.created_at).first()
        if latest is not None and latest[0] is not None:
            latest_ms = to_epoch_ms(latest[0])
            if to_epoch_ms(now) <= latest_ms:
                now = _EPOCH + timedelta(milliseconds=latest_ms + 1)
        return now

    # ── Reads ─────────────────────────────────────────────────────────────

    def _latest_query(self, team_id: str):
        return (
            self.session.query(GeneratedReport)
            .filter(GeneratedReport.team_id == team_id)
            .order_by(GeneratedReport.created_at.desc(), GeneratedReport.id.desc())
        )

    def get_latest_report(self, team_id: str) -> GeneratedReport | None:
        """Most recent report for the team, or None when it has none."""
        try:
            return self._latest_query(team_id).first()
        except SQLAlchemyError as exc:
            logger.error("Loading latest report failed", exc_info=exc, extra={"team_id": team_id, "error": str(exc)})
            raise PersistenceFailedError("Failed to load report", details=_short_detail(exc)) from exc

    def list_reports(self, team_id: str, limit: int = 20) -> list[GeneratedReport]:
        """Newest-first report history for the team."""
        limit = max(1, min(int(limit), 100))
        try:
            return self._latest_query(team_id).limit(limit).all()
        except SQLAlchemyError as exc:
            logger.error("Listing reports failed", exc_info=exc, extra={"team_id": team_id, "error": str(exc)})
            raise PersistenceFailedError("Failed to load reports", details=_short_detail(exc)) from exc
