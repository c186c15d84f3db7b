"""
Team Diagnostics Report Service
Report Generation Gateway.

Orchestrates one end-to-end generation request:
    1. Parse the request payload (team snapshot, overrides, module selection)
    2. Merge narrative / values overrides into the snapshot
    3. Resolve the module selection (tri-state, see below)
    4. Compile the prompt
    5. Single LLM call through LLMGateway (no retry)
    6. Optionally persist the result (caller-initiated)

Module selection is tri-state:
    - absent (key missing or null) → every registry module, registry order
    - empty list                   → EmptySelectionError, never defaulted
    - populated list               → resolved in the given order

Usage:
    service = ReportGenerationService(gateway, registry, store=ReportStore())
    result = service.generate(GenerationRequest.from_payload(body))
"""

import logging
from dataclasses import dataclass, field, replace

from team_reports.ai.prompt_compiler import compile_report_prompt
from team_reports.core.exceptions import (
    EmptySelectionError,
    InvalidRequestError,
    PersistenceFailedError,
)
from team_reports.models.report import to_epoch_ms
from team_reports.models.team import TeamAggregate

logger = logging.getLogger(__name__)

REPORT_PURPOSE = "team_report"


class _Missing:
    """Sentinel type for "the caller did not send a module selection"."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return "MISSING"

    def __bool__(self):
        return False


MISSING = _Missing()


def _parse_module_ids(raw) -> list[str]:
    """Accept module ids or module objects ({id, title, prompt}); keep order."""
    if not isinstance(raw, list):
        raise InvalidRequestError("modules must be a list of module ids or module objects")
    ids = []
    for idx, item in enumerate(raw):
        if isinstance(item, str) and item.strip():
            ids.append(item.strip())
        elif isinstance(item, dict) and isinstance(item.get("id"), str) and item["id"].strip():
            ids.append(item["id"].strip())
        else:
            raise InvalidRequestError(f"modules[{idx}] must be a module id or an object with an id")
    return ids


@dataclass
class GenerationRequest:
    """Parsed generation request.

    ``module_ids`` is MISSING when the caller sent no selection; an empty
    list means the caller explicitly selected nothing.
    """

    team_id: str
    team: TeamAggregate
    narrative_override: str | None = None
    values_override: str | None = None
    module_ids: object = MISSING

    @classmethod
    def from_payload(cls, payload) -> "GenerationRequest":
        """
        Build a request from the JSON body.

        Raises:
            InvalidRequestError: Missing/blank teamId, missing or malformed
                team snapshot, malformed modules value.
        """
        if not isinstance(payload, dict):
            raise InvalidRequestError("Request body must be a JSON object")

        team_id = payload.get("teamId")
        if not isinstance(team_id, str) or not team_id.strip():
            raise InvalidRequestError("teamId is required")

        team_raw = payload.get("team")
        if team_raw is None:
            raise InvalidRequestError("team is required")
        team = TeamAggregate.from_dict(team_raw)

        raw_modules = payload.get("modules")
        module_ids = MISSING if raw_modules is None else _parse_module_ids(raw_modules)

        return cls(
            team_id=team_id.strip(),
            team=team,
            narrative_override=_text_or_none(payload.get("narrative")),
            values_override=_text_or_none(payload.get("valuesVector")),
            module_ids=module_ids,
        )


def _text_or_none(value):
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidRequestError("narrative and valuesVector overrides must be strings")
    return value


@dataclass
class GenerationResult:
    """Outcome of one generation request."""

    markdown: str
    version: str
    modules: list[str] = field(default_factory=list)
    created_at: object = None
    persisted: bool = False
    persistence_error: str | None = None

    def to_dict(self) -> dict:
        data = {
            "markdown": self.markdown,
            "version": self.version,
            "modules": list(self.modules),
        }
        if self.persisted:
            data["createdAt"] = to_epoch_ms(self.created_at)
        if self.persistence_error:
            data["saved"] = False
            data["persistenceError"] = self.persistence_error
        elif self.persisted:
            data["saved"] = True
        return data


class ReportGenerationService:
    """
    Generation orchestrator.

    Args:
        gateway: Object with ``complete(prompt, model=None, *, purpose, team_id)``
            returning ``{"content": ...}`` (LLMGateway in production).
        registry: ModuleRegistry used for defaulting, resolution and exclusions.
        store: ReportStore used when ``generate(save=True)``.
        base_prompt: Preamble override; None uses the built-in preamble.
        model: Chat model override; None uses the gateway default.
        version: Version tag stamped on every result.
    """

    def __init__(self, gateway, registry, *, store=None, base_prompt=None, model=None, version="v1"):
        self.gateway = gateway
        self.registry = registry
        self.store = store
        self.base_prompt = base_prompt
        self.model = model
        self.version = version

    # ── Building blocks ───────────────────────────────────────────────────

    def merge_overrides(self, request: GenerationRequest) -> TeamAggregate:
        """Apply non-empty overrides on top of the snapshot (snapshot is not mutated)."""
        changes = {"team_id": request.team_id}
        if request.narrative_override:
            changes["aggregated_narrative"] = request.narrative_override
        if request.values_override:
            changes["values_vector"] = request.values_override
        return replace(request.team, **changes)

    def resolve_selection(self, module_ids) -> list:
        """
        Turn the tri-state selection into ordered ModuleDefinitions.

        Raises:
            EmptySelectionError: Explicitly empty selection.
            InvalidRequestError: Unknown module id.
        """
        if module_ids is MISSING:
            return list(self.registry.all())
        modules = self.registry.resolve(module_ids)
        if not modules:
            raise EmptySelectionError()
        return modules

    def build_prompt(self, request: GenerationRequest) -> tuple[str, list]:
        """Compile the prompt for a request. Returns (prompt, resolved modules)."""
        team = self.merge_overrides(request)
        modules = self.resolve_selection(request.module_ids)
        prompt = compile_report_prompt(
            team, modules, registry=self.registry, base_prompt=self.base_prompt,
        )
        return prompt, modules

    # ── Main entry point ──────────────────────────────────────────────────

    def generate(self, request: GenerationRequest, *, save: bool = False) -> GenerationResult:
        """
        Run one generation request.

        Args:
            request: Parsed request.
            save: Persist the result through ``store`` after a successful
                generation. A failed save is logged and recorded on the
                result; the markdown is still returned.

        Raises:
            InvalidRequestError / EmptySelectionError: Bad selection.
            GenerationFailedError: The LLM call failed (not retried).
        """
        prompt, modules = self.build_prompt(request)
        module_ids = [m.id for m in modules]

        logger.info(
            "Generating report team=%s modules=%s defaulted=%s prompt_chars=%d",
            request.team_id, module_ids, request.module_ids is MISSING, len(prompt),
            extra={"team_id": request.team_id},
        )

        completion = self.gateway.complete(
            prompt, model=self.model, purpose=REPORT_PURPOSE, team_id=request.team_id,
        )
        result = GenerationResult(
            markdown=completion["content"],
            version=self.version,
            modules=module_ids,
        )

        if save:
            self._persist(request.team_id, result)
        return result

    def _persist(self, team_id: str, result: GenerationResult) -> None:
        if self.store is None:
            result.persistence_error = "No report store configured"
            logger.error("Report not saved: no store configured", extra={"team_id": team_id})
            return
        try:
            result.created_at = self.store.save_report(
                team_id, result.version, result.modules, result.markdown,
            )
            result.persisted = True
        except PersistenceFailedError as exc:
            result.persistence_error = exc.message
            logger.error(
                "Report generated but not saved: %s", exc.details or exc.message,
                extra={"team_id": team_id},
            )
