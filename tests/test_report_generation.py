"""
Team Diagnostics Report Service
Tests — Report Generation Gateway (service layer).

Covers:
    - Request parsing (required fields, tri-state module selection)
    - Override merging
    - Single LLM call, failure propagation without retry
    - Optional persistence, including a failing store
"""

import pytest

from team_reports.core.exceptions import (
    EmptySelectionError,
    GenerationFailedError,
    InvalidRequestError,
    PersistenceFailedError,
)
from team_reports.models.report import GeneratedReport
from team_reports.services.report_generation import (
    MISSING,
    GenerationRequest,
    ReportGenerationService,
)
from team_reports.services.report_store import ReportStore

from conftest import FakeGateway


def _payload(team_payload, **overrides):
    body = {"teamId": "org-1-team-1", "team": team_payload}
    body.update(overrides)
    return body


class _BrokenStore:
    def save_report(self, *args, **kwargs):
        raise PersistenceFailedError("Failed to save report", details="disk full")


# ═════════════════════════════════════════════════════════════════════════════
# REQUEST PARSING
# ═════════════════════════════════════════════════════════════════════════════

class TestGenerationRequest:

    def test_modules_absent_is_missing(self, team_payload):
        req = GenerationRequest.from_payload(_payload(team_payload))
        assert req.module_ids is MISSING

    def test_modules_null_is_missing(self, team_payload):
        req = GenerationRequest.from_payload(_payload(team_payload, modules=None))
        assert req.module_ids is MISSING

    def test_modules_empty_list_kept_empty(self, team_payload):
        req = GenerationRequest.from_payload(_payload(team_payload, modules=[]))
        assert req.module_ids == []
        assert req.module_ids is not MISSING

    def test_modules_accept_ids_and_objects(self, team_payload):
        req = GenerationRequest.from_payload(_payload(
            team_payload, modules=["c", {"id": "a", "title": "Alpha", "prompt": "..."}],
        ))
        assert req.module_ids == ["c", "a"]

    @pytest.mark.parametrize("modules", ["a,b", {"id": "a"}, [1], [{"title": "no id"}]])
    def test_malformed_modules_rejected(self, team_payload, modules):
        with pytest.raises(InvalidRequestError):
            GenerationRequest.from_payload(_payload(team_payload, modules=modules))

    @pytest.mark.parametrize("team_id", [None, "", "   ", 42])
    def test_team_id_required(self, team_payload, team_id):
        with pytest.raises(InvalidRequestError):
            GenerationRequest.from_payload(_payload(team_payload, teamId=team_id))

    def test_team_snapshot_required(self):
        with pytest.raises(InvalidRequestError):
            GenerationRequest.from_payload({"teamId": "t-1"})

    def test_team_snapshot_must_be_object(self):
        with pytest.raises(InvalidRequestError):
            GenerationRequest.from_payload({"teamId": "t-1", "team": "not a team"})

    def test_team_name_required(self, team_payload):
        team_payload["teamName"] = "  "
        with pytest.raises(InvalidRequestError):
            GenerationRequest.from_payload(_payload(team_payload))

    @pytest.mark.parametrize("field", ["aggregatedNarrative", "narrative", "valuesVector", "orgName", "teamName"])
    @pytest.mark.parametrize("value", [{"summary": "x"}, 42, ["a"]])
    def test_snapshot_text_fields_must_be_strings(self, team_payload, field, value):
        team_payload[field] = value
        with pytest.raises(InvalidRequestError) as exc_info:
            GenerationRequest.from_payload(_payload(team_payload))
        assert f"team.{field}" in exc_info.value.message

    def test_null_narratives_accepted(self, team_payload):
        team_payload["aggregatedNarrative"] = None
        team_payload["narrative"] = None
        req = GenerationRequest.from_payload(_payload(team_payload))
        assert req.team.narrative_text == ""

    def test_body_must_be_object(self):
        with pytest.raises(InvalidRequestError):
            GenerationRequest.from_payload(["teamId"])


# ═════════════════════════════════════════════════════════════════════════════
# GENERATION
# ═════════════════════════════════════════════════════════════════════════════

class TestReportGenerationService:

    def test_omitted_selection_uses_full_registry(self, registry, fake_gateway, team_payload):
        service = ReportGenerationService(fake_gateway, registry)
        result = service.generate(GenerationRequest.from_payload(_payload(team_payload)))
        assert result.modules == ["a", "b", "c"]
        assert "1. Alpha (id: a)\n2. Bravo (id: b)\n3. Charlie (id: c)" in fake_gateway.last_prompt

    def test_empty_selection_rejected_without_llm_call(self, registry, fake_gateway, team_payload):
        service = ReportGenerationService(fake_gateway, registry)
        with pytest.raises(EmptySelectionError):
            service.generate(GenerationRequest.from_payload(_payload(team_payload, modules=[])))
        assert fake_gateway.calls == []

    def test_unknown_module_rejected(self, registry, fake_gateway, team_payload):
        service = ReportGenerationService(fake_gateway, registry)
        with pytest.raises(InvalidRequestError):
            service.generate(GenerationRequest.from_payload(_payload(team_payload, modules=["zzz"])))
        assert fake_gateway.calls == []

    def test_selection_order_kept(self, registry, fake_gateway, team_payload):
        service = ReportGenerationService(fake_gateway, registry, version="v7")
        result = service.generate(GenerationRequest.from_payload(
            _payload(team_payload, modules=["c", "a", "c"]),
        ))
        assert result.modules == ["c", "a"]
        assert result.version == "v7"
        assert result.markdown == fake_gateway.content
        assert "1. Charlie (id: c)\n2. Alpha (id: a)" in fake_gateway.last_prompt

    def test_single_call_with_purpose_and_team(self, registry, fake_gateway, team_payload):
        service = ReportGenerationService(fake_gateway, registry, model="local-stub")
        service.generate(GenerationRequest.from_payload(_payload(team_payload)))
        assert len(fake_gateway.calls) == 1
        call = fake_gateway.calls[0]
        assert call["purpose"] == "team_report"
        assert call["team_id"] == "org-1-team-1"
        assert call["model"] == "local-stub"

    def test_overrides_replace_snapshot_fields(self, registry, fake_gateway, team_payload):
        service = ReportGenerationService(fake_gateway, registry)
        service.generate(GenerationRequest.from_payload(_payload(
            team_payload, narrative="Override narrative.", valuesVector="Override values.",
        )))
        prompt = fake_gateway.last_prompt
        assert "Override narrative." in prompt
        assert "Override values." in prompt
        assert team_payload["aggregatedNarrative"] not in prompt
        assert team_payload["valuesVector"] not in prompt

    def test_empty_overrides_ignored(self, registry, fake_gateway, team_payload):
        service = ReportGenerationService(fake_gateway, registry)
        service.generate(GenerationRequest.from_payload(_payload(
            team_payload, narrative="", valuesVector="",
        )))
        prompt = fake_gateway.last_prompt
        assert team_payload["aggregatedNarrative"] in prompt
        assert team_payload["valuesVector"] in prompt

    def test_alias_narrative_used_from_snapshot(self, registry, fake_gateway, team_payload):
        del team_payload["aggregatedNarrative"]
        team_payload["narrative"] = "Legacy narrative field."
        service = ReportGenerationService(fake_gateway, registry)
        service.generate(GenerationRequest.from_payload(_payload(team_payload)))
        assert "Legacy narrative field." in fake_gateway.last_prompt

    def test_generation_failure_propagates_once(self, registry, team_payload):
        gateway = FakeGateway(error="upstream timeout")
        service = ReportGenerationService(gateway, registry, store=ReportStore())
        with pytest.raises(GenerationFailedError) as exc_info:
            service.generate(GenerationRequest.from_payload(_payload(team_payload)), save=True)
        assert exc_info.value.upstream == "upstream timeout"
        assert len(gateway.calls) == 1
        assert GeneratedReport.query.count() == 0

    def test_build_prompt_does_not_call_llm(self, registry, fake_gateway, team_payload):
        service = ReportGenerationService(fake_gateway, registry)
        prompt, modules = service.build_prompt(GenerationRequest.from_payload(
            _payload(team_payload, modules=["b"]),
        ))
        assert [m.id for m in modules] == ["b"]
        assert "### MODULE 1: BRAVO" in prompt
        assert fake_gateway.calls == []


# ═════════════════════════════════════════════════════════════════════════════
# PERSISTENCE FROM GENERATION
# ═════════════════════════════════════════════════════════════════════════════

class TestGenerateAndSave:

    def test_not_saved_by_default(self, registry, fake_gateway, team_payload):
        service = ReportGenerationService(fake_gateway, registry, store=ReportStore())
        result = service.generate(GenerationRequest.from_payload(_payload(team_payload)))
        assert result.persisted is False
        assert GeneratedReport.query.count() == 0

    def test_save_records_selection(self, registry, fake_gateway, team_payload):
        store = ReportStore()
        service = ReportGenerationService(fake_gateway, registry, store=store)
        result = service.generate(
            GenerationRequest.from_payload(_payload(team_payload, modules=["b", "a"])), save=True,
        )
        assert result.persisted is True
        assert result.created_at is not None
        latest = store.get_latest_report("org-1-team-1")
        assert latest.modules == ["b", "a"]
        assert latest.markdown == fake_gateway.content
        assert result.to_dict()["saved"] is True

    def test_failed_save_keeps_markdown(self, registry, fake_gateway, team_payload):
        service = ReportGenerationService(fake_gateway, registry, store=_BrokenStore())
        result = service.generate(GenerationRequest.from_payload(_payload(team_payload)), save=True)
        assert result.markdown == fake_gateway.content
        assert result.persisted is False
        assert result.persistence_error == "Failed to save report"
        body = result.to_dict()
        assert body["saved"] is False
        assert body["markdown"] == fake_gateway.content

    def test_save_without_store_reported(self, registry, fake_gateway, team_payload):
        service = ReportGenerationService(fake_gateway, registry)
        result = service.generate(GenerationRequest.from_payload(_payload(team_payload)), save=True)
        assert result.persisted is False
        assert result.persistence_error
