"""
Team Diagnostics Report Service
Tests — Report Persistence Adapter.
"""

import pytest
from sqlalchemy.exc import OperationalError

from team_reports.core.exceptions import InvalidRequestError, PersistenceFailedError
from team_reports.models import db
from team_reports.models.ai import AIUsageLog
from team_reports.models.report import GeneratedReport, to_epoch_ms
from team_reports.services.report_store import ReportStore


class _LockedSession:
    """Real session for reads, failing commit."""

    def __init__(self):
        self.rolled_back = False

    def query(self, *args, **kwargs):
        return db.session.query(*args, **kwargs)

    def begin_nested(self):
        return db.session.begin_nested()

    def add(self, obj):
        db.session.add(obj)

    def commit(self):
        raise OperationalError("INSERT", {}, Exception("database is locked"))

    def rollback(self):
        self.rolled_back = True
        db.session.rollback()


def _locked_timestamp(self, team_id):
    raise OperationalError("INSERT INTO generated_reports", {"team_id": team_id}, Exception("database is locked"))


@pytest.fixture()
def store():
    return ReportStore()


class TestSaveReport:

    def test_save_then_latest(self, store):
        created_at = store.save_report("team-1", "v1", ["m1", "m2"], "text")
        latest = store.get_latest_report("team-1")
        assert latest is not None
        assert latest.modules == ["m1", "m2"]
        assert latest.markdown == "text"
        assert latest.version == "v1"
        assert to_epoch_ms(latest.created_at) == to_epoch_ms(created_at)

    def test_created_at_has_millisecond_precision(self, store):
        created_at = store.save_report("team-1", "v1", ["m1"], "text")
        assert created_at.microsecond % 1000 == 0

    def test_back_to_back_saves_strictly_increasing(self, store):
        stamps = [to_epoch_ms(store.save_report("team-1", "v1", ["m1"], f"body {i}")) for i in range(5)]
        assert stamps == sorted(stamps)
        assert len(set(stamps)) == len(stamps)
        assert store.get_latest_report("team-1").markdown == "body 4"

    def test_reports_kept_per_team(self, store):
        store.save_report("team-1", "v1", ["m1"], "one")
        store.save_report("team-2", "v1", ["m2"], "two")
        assert store.get_latest_report("team-1").markdown == "one"
        assert store.get_latest_report("team-2").markdown == "two"

    def test_saves_are_appended(self, store):
        store.save_report("team-1", "v1", ["m1"], "first")
        store.save_report("team-1", "v2", ["m2"], "second")
        assert GeneratedReport.query.filter_by(team_id="team-1").count() == 2

    def test_module_order_preserved(self, store):
        store.save_report("team-1", "v1", ["c", "a", "b"], "text")
        assert store.get_latest_report("team-1").modules == ["c", "a", "b"]

    @pytest.mark.parametrize("team_id", ["", "   ", None])
    def test_team_id_required(self, store, team_id):
        with pytest.raises(InvalidRequestError):
            store.save_report(team_id, "v1", ["m1"], "text")

    def test_markdown_required(self, store):
        with pytest.raises(InvalidRequestError):
            store.save_report("team-1", "v1", ["m1"], "")

    def test_db_failure_becomes_persistence_failed(self):
        session = _LockedSession()
        with pytest.raises(PersistenceFailedError) as exc_info:
            ReportStore(session=session).save_report("team-1", "v1", ["m1"], "text")
        assert exc_info.value.details == "database error (OperationalError)"
        assert session.rolled_back

    def test_failed_insert_keeps_pending_rows(self, store, monkeypatch):
        db.session.add(AIUsageLog(provider="local", model="local-stub", purpose="team_report", team_id="team-1"))
        db.session.flush()
        monkeypatch.setattr(ReportStore, "_next_timestamp", _locked_timestamp)

        with pytest.raises(PersistenceFailedError) as exc_info:
            store.save_report("team-1", "v1", ["m1"], "text")
        assert "INSERT" not in exc_info.value.details

        db.session.commit()
        assert AIUsageLog.query.count() == 1
        assert GeneratedReport.query.count() == 0


class TestReadReports:

    def test_latest_for_unknown_team_is_none(self, store):
        assert store.get_latest_report("nobody") is None

    def test_history_newest_first(self, store):
        for body in ("first", "second", "third"):
            store.save_report("team-1", "v1", ["m1"], body)
        items = store.list_reports("team-1")
        assert [r.markdown for r in items] == ["third", "second", "first"]

    def test_history_limit(self, store):
        for i in range(4):
            store.save_report("team-1", "v1", ["m1"], f"body {i}")
        assert len(store.list_reports("team-1", limit=2)) == 2
        assert len(store.list_reports("team-1", limit=0)) == 1

    def test_to_dict_wire_shape(self, store):
        created_at = store.save_report("team-1", "v3", ["m1"], "text")
        data = store.get_latest_report("team-1").to_dict()
        assert data["teamId"] == "team-1"
        assert data["version"] == "v3"
        assert data["modules"] == ["m1"]
        assert data["createdAt"] == to_epoch_ms(created_at)
        assert isinstance(data["createdAt"], int)
